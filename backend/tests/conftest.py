from __future__ import annotations

import pathlib
import sys
import uuid
from collections.abc import Callable

import pytest
from sqlalchemy.pool import StaticPool

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _load_dependencies():
    from taskflow import Config, create_app
    from backend.taskflow.extensions import db

    return Config, create_app, db


ConfigBase, create_app, db = _load_dependencies()


class TestConfig(ConfigBase):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite+pysqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "poolclass": StaticPool,
        "connect_args": {"check_same_thread": False},
    }
    CORS_ALLOWED_ORIGINS = "http://localhost"
    RATELIMIT_ENABLED = False
    LOG_LEVEL = "DEBUG"


@pytest.fixture(scope="module")
def app():
    app = create_app(TestConfig)
    ctx = app.app_context()
    ctx.push()
    yield app
    db.session.remove()
    ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def cleanup_records(app):
    from backend.taskflow.models import (
        Task,
        Template,
        Workflow,
        WorkflowAudit,
        WorkflowStatus,
        WorkflowTransition,
    )

    yield

    db.session.rollback()
    for model in (Task, Template, WorkflowTransition, WorkflowStatus, WorkflowAudit, Workflow):
        db.session.query(model).delete()
    db.session.commit()


@pytest.fixture()
def space_id() -> str:
    return f"space-{uuid.uuid4().hex[:8]}"


@pytest.fixture()
def template_factory(app) -> Callable[..., str]:
    from backend.taskflow.models.template import Template

    def factory(space_id: str, name: str = "Template", workflow_id: str | None = None) -> str:
        template = Template(space_id=space_id, name=name, workflow_id=workflow_id)
        db.session.add(template)
        db.session.commit()
        return template.id

    return factory


@pytest.fixture()
def task_factory(app) -> Callable[..., str]:
    from backend.taskflow.models.task import Task

    def factory(space_id: str, workflow_id: str, title: str = "Task") -> str:
        task = Task(space_id=space_id, title=title, workflow_id=workflow_id, workflow_version=1)
        db.session.add(task)
        db.session.commit()
        return task.id

    return factory


@pytest.fixture()
def statuses_payload() -> list[dict[str, object]]:
    return [
        {"key": "todo", "name": "To Do", "category": "TODO"},
        {"key": "doing", "name": "Doing", "category": "IN_PROGRESS"},
        {"key": "done", "name": "Done", "category": "DONE"},
    ]


@pytest.fixture()
def transitions_payload() -> list[dict[str, object]]:
    return [
        {"name": "Start", "fromKey": "todo", "toKey": "doing", "uiTrigger": "BUTTON"},
        {
            "name": "Finish",
            "fromKey": "doing",
            "toKey": "done",
            "validators": {"preventOpenSubtasks": True},
        },
    ]
