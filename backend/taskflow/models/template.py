"""Task template records that consume a workflow."""

from __future__ import annotations

import uuid

from ..extensions import db


class Template(db.Model):
    """A task template; many templates may point at one workflow."""

    __tablename__ = "templates"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    space_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    workflow_id = db.Column(
        db.String(36), db.ForeignKey("workflows.id"), nullable=True, index=True
    )

    workflow = db.relationship("Workflow", back_populates="templates")

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<Template {self.name!r}>"
