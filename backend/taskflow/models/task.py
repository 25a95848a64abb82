"""Work items that sit in a workflow status."""

from __future__ import annotations

import uuid

from ..extensions import db


class Task(db.Model):
    """A task pinned to the workflow version it was transitioned under."""

    __tablename__ = "tasks"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    space_id = db.Column(db.String(64), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    workflow_id = db.Column(
        db.String(36), db.ForeignKey("workflows.id"), nullable=True, index=True
    )
    workflow_status_id = db.Column(
        db.String(36), db.ForeignKey("workflow_statuses.id"), nullable=True
    )
    workflow_version = db.Column(db.Integer, nullable=True)

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<Task {self.title!r}>"
