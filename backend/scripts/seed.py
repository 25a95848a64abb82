"""Seed a space with a default workflow and a template that uses it."""
from __future__ import annotations

import os
import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.taskflow import create_app
from backend.taskflow.extensions import db
from backend.taskflow.models.template import Template
from backend.taskflow.models.workflow import Workflow
from backend.taskflow.workflow.suggestions import FieldSummary, suggest
from backend.taskflow.workflow.versions import create_workflow

SPACE_ID = os.getenv("SEED_SPACE_ID", "demo-space")
EXAMPLE_TEMPLATE_NAME = "Feature Request"
EXAMPLE_PROMPT = "Plan, design, review and release product features"
EXAMPLE_FIELDS = [
    FieldSummary(id="priority", type="select", label="Priority", required=True),
    FieldSummary(id="design-doc", type="url", label="Design document"),
]


def _ensure_template() -> tuple[Template, bool]:
    template = Template.query.filter_by(space_id=SPACE_ID, name=EXAMPLE_TEMPLATE_NAME).first()
    if template is not None:
        return template, False
    template = Template(space_id=SPACE_ID, name=EXAMPLE_TEMPLATE_NAME)
    db.session.add(template)
    db.session.commit()
    return template, True


def _ensure_default_workflow(template: Template) -> tuple[bool, list[str]]:
    suggestion = suggest(
        prompt=EXAMPLE_PROMPT, fields=EXAMPLE_FIELDS, template_name=EXAMPLE_TEMPLATE_NAME
    )
    existing = Workflow.query.filter_by(space_id=SPACE_ID, name=suggestion.name).first()
    if existing is not None:
        return False, []

    payload = suggestion.to_payload()
    payload.update(
        {
            "isDefault": True,
            "aiOptimized": True,
            "linkedTemplateIds": [template.id],
        }
    )
    result = create_workflow(SPACE_ID, payload, actor_id="seed")
    return True, result.warnings


def main() -> None:
    app = create_app()
    with app.app_context():
        template, created_template = _ensure_template()
        created_workflow, warnings = _ensure_default_workflow(template)

        print(
            "Seed completed",
            f"space={SPACE_ID}",
            f"templates created={int(created_template)}",
            f"workflows created={int(created_workflow)}",
            f"warnings={len(warnings)}",
        )


if __name__ == "__main__":
    main()
