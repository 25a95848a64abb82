"""Workflow definition models.

A workflow's statuses and transitions are stored per ``(workflow_id,
version)``. Rows of a version are written once and never modified; the
``Workflow.version`` column points at the snapshot normal reads use.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from ..extensions import db
from ..workflow.graph import (
    CATEGORIES,
    COLOR_MAX_LENGTH,
    KEY_MAX_LENGTH,
    NAME_MAX_LENGTH,
    STATUS_REF_MAX_LENGTH,
    UI_TRIGGER_MAX_LENGTH,
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Workflow(db.Model):
    """Durable identity of a lifecycle definition within a space."""

    __tablename__ = "workflows"
    __table_args__ = (db.Index("ix_workflows_space_default", "space_id", "is_default"),)

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    space_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(NAME_MAX_LENGTH), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    ai_optimized = db.Column(db.Boolean, nullable=False, default=False)
    version = db.Column(db.Integer, nullable=False, default=1)
    created_by = db.Column(db.String(64), nullable=True)
    updated_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    statuses = db.relationship(
        "WorkflowStatus",
        back_populates="workflow",
        cascade="all, delete-orphan",
    )
    transitions = db.relationship(
        "WorkflowTransition",
        back_populates="workflow",
        cascade="all, delete-orphan",
    )
    audits = db.relationship(
        "WorkflowAudit",
        back_populates="workflow",
        cascade="all, delete-orphan",
        order_by="WorkflowAudit.id",
    )
    templates = db.relationship("Template", back_populates="workflow")

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<Workflow {self.name!r} v{self.version}>"


class WorkflowStatus(db.Model):
    """Node of one workflow version's graph."""

    __tablename__ = "workflow_statuses"
    __table_args__ = (
        db.UniqueConstraint("workflow_id", "version", "key", name="uq_workflow_status_key"),
        db.Index("ix_workflow_statuses_version", "workflow_id", "version"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    workflow_id = db.Column(
        db.String(36), db.ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False
    )
    version = db.Column(db.Integer, nullable=False)
    key = db.Column(db.String(KEY_MAX_LENGTH), nullable=False)
    name = db.Column(db.String(NAME_MAX_LENGTH), nullable=False)
    category = db.Column(
        db.Enum(*CATEGORIES, name="workflow_status_category"), nullable=False
    )
    color = db.Column(db.String(COLOR_MAX_LENGTH), nullable=True)
    is_initial = db.Column(db.Boolean, nullable=False, default=False)
    is_final = db.Column(db.Boolean, nullable=False, default=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    visibility_rules = db.Column(db.Text, nullable=True)
    field_lock_rules = db.Column(db.Text, nullable=True)
    status_ref_id = db.Column(db.String(STATUS_REF_MAX_LENGTH), nullable=True)

    workflow = db.relationship("Workflow", back_populates="statuses")

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<WorkflowStatus {self.key!r} v{self.version}>"


class WorkflowTransition(db.Model):
    """Directed edge between two statuses of the same workflow version."""

    __tablename__ = "workflow_transitions"
    __table_args__ = (
        db.UniqueConstraint(
            "workflow_id",
            "version",
            "from_status_id",
            "to_status_id",
            name="uq_workflow_transition_pair",
        ),
        db.Index("ix_workflow_transitions_version", "workflow_id", "version"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    workflow_id = db.Column(
        db.String(36), db.ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False
    )
    version = db.Column(db.Integer, nullable=False)
    key = db.Column(db.String(KEY_MAX_LENGTH), nullable=False)
    name = db.Column(db.String(NAME_MAX_LENGTH), nullable=False)
    from_status_id = db.Column(
        db.String(36), db.ForeignKey("workflow_statuses.id", ondelete="CASCADE"), nullable=False
    )
    to_status_id = db.Column(
        db.String(36), db.ForeignKey("workflow_statuses.id", ondelete="CASCADE"), nullable=False
    )
    order = db.Column(db.Integer, nullable=False, default=0)
    ui_trigger = db.Column(db.String(UI_TRIGGER_MAX_LENGTH), nullable=True)
    conditions = db.Column(db.Text, nullable=True)
    validators = db.Column(db.Text, nullable=True)
    post_functions = db.Column(db.Text, nullable=True)

    workflow = db.relationship("Workflow", back_populates="transitions")
    from_status = db.relationship("WorkflowStatus", foreign_keys=[from_status_id])
    to_status = db.relationship("WorkflowStatus", foreign_keys=[to_status_id])

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<WorkflowTransition {self.name!r} v{self.version}>"
