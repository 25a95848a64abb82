"""Audit trail of structural workflow changes."""

from __future__ import annotations

from datetime import datetime, timezone

from ..extensions import db

AUDIT_ACTIONS = ("CREATED", "UPDATED")


class WorkflowAudit(db.Model):
    """Append-only record of a workflow version being written."""

    __tablename__ = "workflow_audits"

    id = db.Column(db.Integer, primary_key=True)
    workflow_id = db.Column(
        db.String(36),
        db.ForeignKey("workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version = db.Column(db.Integer, nullable=False)
    action = db.Column(db.Enum(*AUDIT_ACTIONS, name="workflow_audit_action"), nullable=False)
    actor_id = db.Column(db.String(64), nullable=True)
    metadata_json = db.Column("metadata", db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc).replace(tzinfo=None),
        nullable=False,
    )

    workflow = db.relationship("Workflow", back_populates="audits")

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<WorkflowAudit {self.action} {self.workflow_id} v{self.version}>"
