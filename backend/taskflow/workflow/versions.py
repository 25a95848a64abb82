"""Create, update, duplicate and delete workflows as immutable versions.

Every structural write produces a complete snapshot tagged with a new
version number; rows of earlier versions are never touched. Each mutating
call runs in a single session transaction and rolls back on any error, so a
rejected write leaves no partial graph behind.
"""
from __future__ import annotations

import json
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from flask import current_app

from ..exceptions import NotFoundError, ReferentialIntegrityError, WorkflowValidationError
from ..extensions import db
from ..models.audit import WorkflowAudit
from ..models.task import Task
from ..models.template import Template
from ..models.workflow import Workflow, WorkflowStatus, WorkflowTransition
from .graph import NAME_MAX_LENGTH, StatusDraft, TransitionDraft, normalize_key
from .normalizer import GraphPlan, prepare_graph
from .templates import reconcile_template_links

_UPDATABLE_FIELDS = (
    "name",
    "description",
    "isDefault",
    "aiOptimized",
    "statuses",
    "transitions",
    "linkedTemplateIds",
)


@dataclass
class WriteResult:
    """Detail of the written workflow plus the corrections applied to it."""

    workflow: dict[str, Any]
    warnings: list[str] = field(default_factory=list)


def _isoformat(value) -> str | None:
    if value is None:
        return None
    return value.isoformat() + "Z"


def _dump_rules(value: dict[str, Any] | None) -> str | None:
    if not value:
        return None
    return json.dumps(value)


def _load_rules(value: str | None) -> dict[str, Any] | None:
    if not value:
        return None
    try:
        loaded = json.loads(value)
    except (TypeError, ValueError):
        return None
    return loaded if isinstance(loaded, dict) else None


def _find_workflow(space_id: str, workflow_id: str, lock: bool = False) -> Workflow:
    query = Workflow.query.filter_by(id=workflow_id, space_id=space_id)
    if lock:
        # Serialises concurrent writers so each one reads the committed version.
        query = query.with_for_update().populate_existing()
    workflow = query.first()
    if workflow is None:
        raise NotFoundError("Workflow", workflow_id)
    return workflow


def _status_rows(workflow_id: str, version: int) -> list[WorkflowStatus]:
    return (
        WorkflowStatus.query.filter_by(workflow_id=workflow_id, version=version)
        .order_by(WorkflowStatus.order.asc())
        .all()
    )


def _transition_rows(workflow_id: str, version: int) -> list[WorkflowTransition]:
    return (
        WorkflowTransition.query.filter_by(workflow_id=workflow_id, version=version)
        .order_by(WorkflowTransition.order.asc())
        .all()
    )


def _linked_template_ids(workflow: Workflow) -> list[str]:
    templates = (
        Template.query.filter_by(workflow_id=workflow.id).order_by(Template.name.asc()).all()
    )
    return [template.id for template in templates]


def _serialize_summary(workflow: Workflow) -> dict[str, Any]:
    return {
        "id": workflow.id,
        "spaceId": workflow.space_id,
        "name": workflow.name,
        "description": workflow.description,
        "isDefault": workflow.is_default,
        "aiOptimized": workflow.ai_optimized,
        "version": workflow.version,
        "linkedTemplateIds": _linked_template_ids(workflow),
        "createdAt": _isoformat(workflow.created_at),
        "updatedAt": _isoformat(workflow.updated_at),
    }


def _serialize_status(status: WorkflowStatus) -> dict[str, Any]:
    return {
        "id": status.id,
        "key": status.key,
        "name": status.name,
        "category": status.category,
        "color": status.color,
        "isInitial": status.is_initial,
        "isFinal": status.is_final,
        "order": status.order,
        "visibilityRules": _load_rules(status.visibility_rules),
        "fieldLockRules": _load_rules(status.field_lock_rules),
        "statusRefId": status.status_ref_id,
    }


def _serialize_transition(
    transition: WorkflowTransition, key_by_id: dict[str, str]
) -> dict[str, Any]:
    return {
        "id": transition.id,
        "key": transition.key,
        "name": transition.name,
        "fromId": transition.from_status_id,
        "toId": transition.to_status_id,
        "fromKey": key_by_id.get(transition.from_status_id, ""),
        "toKey": key_by_id.get(transition.to_status_id, ""),
        "conditions": _load_rules(transition.conditions),
        "validators": _load_rules(transition.validators),
        "postFunctions": _load_rules(transition.post_functions),
        "uiTrigger": transition.ui_trigger,
        "order": transition.order,
    }


def _parse_statuses(items: Iterable[Any] | None) -> list[StatusDraft]:
    return [StatusDraft.from_payload(item) for item in items or () if isinstance(item, dict)]


def _parse_transitions(items: Iterable[Any] | None) -> list[TransitionDraft]:
    return [TransitionDraft.from_payload(item) for item in items or () if isinstance(item, dict)]


def _stored_drafts(workflow: Workflow) -> tuple[list[StatusDraft], list[TransitionDraft]]:
    """Rebuild the current version as drafts so it can be carried forward."""

    status_rows = _status_rows(workflow.id, workflow.version)
    key_by_id = {row.id: row.key for row in status_rows}
    statuses = [
        StatusDraft(
            key=row.key,
            name=row.name,
            category=row.category,
            color=row.color,
            is_initial=row.is_initial,
            is_final=row.is_final,
            order=row.order,
            visibility_rules=_load_rules(row.visibility_rules),
            field_lock_rules=_load_rules(row.field_lock_rules),
            status_ref_id=row.status_ref_id,
        )
        for row in status_rows
    ]
    transitions = [
        TransitionDraft(
            name=row.name,
            from_key=key_by_id.get(row.from_status_id, ""),
            to_key=key_by_id.get(row.to_status_id, ""),
            key=row.key,
            order=row.order,
            ui_trigger=row.ui_trigger,
            conditions=_load_rules(row.conditions),
            validators=_load_rules(row.validators),
            post_functions=_load_rules(row.post_functions),
        )
        for row in _transition_rows(workflow.id, workflow.version)
    ]
    return statuses, transitions


def _status_count_issues(statuses: list[StatusDraft]) -> list[str]:
    if not statuses:
        return ["Workflow must include at least one status."]
    return []


def _name_issues(value: Any) -> list[str]:
    name = value.strip() if isinstance(value, str) else ""
    if not name:
        return ["Workflow name is required."]
    if len(name) > NAME_MAX_LENGTH:
        return [f"Workflow name exceeds {NAME_MAX_LENGTH} characters."]
    return []


def _require_statuses(statuses: list[StatusDraft]) -> None:
    issues = _status_count_issues(statuses)
    if issues:
        raise WorkflowValidationError(issues[0].rstrip("."), issues=issues)


def _require_name(value: Any) -> str:
    issues = _name_issues(value)
    if issues:
        raise WorkflowValidationError(issues[0].rstrip("."), issues=issues)
    return value.strip()


def _ensure_valid(plan: GraphPlan, workflow_label: str) -> None:
    if plan.is_valid:
        return
    current_app.logger.warning(
        "Rejected graph for %s with %s issue(s)", workflow_label, len(plan.issues)
    )
    raise WorkflowValidationError(
        "Workflow graph failed validation", issues=plan.issues, warnings=plan.warnings
    )


def _clear_other_defaults(space_id: str, keep_id: str | None = None) -> None:
    query = Workflow.query.filter(Workflow.space_id == space_id, Workflow.is_default.is_(True))
    if keep_id is not None:
        query = query.filter(Workflow.id != keep_id)
    query.update({Workflow.is_default: False}, synchronize_session="fetch")


def _write_graph(workflow: Workflow, version: int, plan: GraphPlan) -> None:
    """Persist every status and transition of ``plan`` as ``version``."""

    status_rows: list[WorkflowStatus] = []
    for status in plan.statuses:
        row = WorkflowStatus(
            workflow_id=workflow.id,
            version=version,
            key=status.key,
            name=status.name,
            category=status.category,
            color=status.color,
            is_initial=status.is_initial,
            is_final=status.is_final,
            order=status.order or 0,
            visibility_rules=_dump_rules(status.visibility_rules),
            field_lock_rules=_dump_rules(status.field_lock_rules),
            status_ref_id=status.status_ref_id,
        )
        db.session.add(row)
        status_rows.append(row)
    db.session.flush()

    id_by_key = {row.key: row.id for row in status_rows}
    for transition in plan.transitions:
        from_id = id_by_key.get(normalize_key(transition.from_key))
        to_id = id_by_key.get(normalize_key(transition.to_key))
        if from_id is None or to_id is None:
            message = f"Transition references unknown status: {transition.name}"
            raise WorkflowValidationError(message, issues=[message])

        db.session.add(
            WorkflowTransition(
                workflow_id=workflow.id,
                version=version,
                key=normalize_key(transition.key) if transition.key else str(uuid.uuid4()),
                name=transition.name,
                from_status_id=from_id,
                to_status_id=to_id,
                order=transition.order or 0,
                ui_trigger=transition.ui_trigger,
                conditions=_dump_rules(transition.conditions),
                validators=_dump_rules(transition.validators),
                post_functions=_dump_rules(transition.post_functions),
            )
        )
    db.session.flush()


def _record_audit(
    workflow: Workflow,
    action: str,
    actor_id: str | None,
    metadata: dict[str, Any] | None = None,
) -> None:
    db.session.add(
        WorkflowAudit(
            workflow_id=workflow.id,
            version=workflow.version,
            action=action,
            actor_id=actor_id,
            metadata_json=json.dumps(metadata) if metadata else None,
        )
    )


def list_workflows(space_id: str) -> list[dict[str, Any]]:
    """Return summaries of every workflow in the space, by name."""

    workflows = Workflow.query.filter_by(space_id=space_id).order_by(Workflow.name.asc()).all()
    return [_serialize_summary(workflow) for workflow in workflows]


def get_workflow_detail(
    space_id: str, workflow_id: str, version: int | None = None
) -> dict[str, Any]:
    """Return a workflow with the graph of ``version`` (current by default)."""

    workflow = _find_workflow(space_id, workflow_id)
    target_version = workflow.version if version is None else version
    if target_version < 1 or target_version > workflow.version:
        raise NotFoundError("Workflow version", f"{workflow_id}@{target_version}")

    statuses = _status_rows(workflow.id, target_version)
    transitions = _transition_rows(workflow.id, target_version)
    key_by_id = {status.id: status.key for status in statuses}

    detail = _serialize_summary(workflow)
    detail["version"] = target_version
    detail["currentVersion"] = workflow.version
    detail["statuses"] = [_serialize_status(status) for status in statuses]
    detail["transitions"] = [
        _serialize_transition(transition, key_by_id) for transition in transitions
    ]
    return detail


def preview_graph(payload: dict[str, Any]) -> GraphPlan:
    """Run the checks ``create_workflow`` applies without writing anything.

    The name is only checked when the payload carries one.
    """

    issues = _name_issues(payload.get("name")) if "name" in payload else []
    statuses = _parse_statuses(payload.get("statuses"))
    status_issues = _status_count_issues(statuses)
    if status_issues:
        return GraphPlan(statuses=[], transitions=[], issues=issues + status_issues)

    plan = prepare_graph(statuses, _parse_transitions(payload.get("transitions")))
    plan.issues = issues + plan.issues
    return plan


def create_workflow(
    space_id: str, payload: dict[str, Any], actor_id: str | None = None
) -> WriteResult:
    """Create a workflow at version 1 from an authored or suggested graph."""

    name = _require_name(payload.get("name"))
    statuses = _parse_statuses(payload.get("statuses"))
    _require_statuses(statuses)
    plan = prepare_graph(statuses, _parse_transitions(payload.get("transitions")))
    _ensure_valid(plan, f"new workflow {name!r}")

    try:
        if payload.get("isDefault"):
            _clear_other_defaults(space_id)

        workflow = Workflow(
            space_id=space_id,
            name=name,
            description=payload.get("description") or None,
            is_default=bool(payload.get("isDefault")),
            ai_optimized=bool(payload.get("aiOptimized")),
            version=1,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.session.add(workflow)
        db.session.flush()

        _write_graph(workflow, 1, plan)
        if payload.get("linkedTemplateIds"):
            reconcile_template_links(workflow, payload["linkedTemplateIds"])
        _record_audit(workflow, "CREATED", actor_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Created workflow %s in space %s at version 1 (actor=%s)", workflow.id, space_id, actor_id
    )
    return WriteResult(get_workflow_detail(space_id, workflow.id), plan.warnings)


def update_workflow(
    space_id: str,
    workflow_id: str,
    payload: dict[str, Any],
    actor_id: str | None = None,
) -> WriteResult:
    """Apply metadata changes and, for graph changes, write the next version.

    A list left out of ``payload`` (statuses or transitions) is carried
    forward from the current version; the merged graph is validated as a
    whole before anything is written.
    """

    try:
        workflow = _find_workflow(space_id, workflow_id, lock=True)

        plan: GraphPlan | None = None
        if payload.get("statuses") is not None or payload.get("transitions") is not None:
            current_statuses, current_transitions = _stored_drafts(workflow)
            statuses = (
                _parse_statuses(payload["statuses"])
                if payload.get("statuses") is not None
                else current_statuses
            )
            _require_statuses(statuses)
            transitions = (
                _parse_transitions(payload["transitions"])
                if payload.get("transitions") is not None
                else current_transitions
            )
            plan = prepare_graph(statuses, transitions)
            _ensure_valid(plan, f"workflow {workflow.id}")

        if "name" in payload:
            workflow.name = _require_name(payload.get("name"))
        if "description" in payload:
            workflow.description = payload.get("description") or None
        if payload.get("isDefault") is not None:
            if payload["isDefault"]:
                _clear_other_defaults(space_id, keep_id=workflow.id)
            workflow.is_default = bool(payload["isDefault"])
        if payload.get("aiOptimized") is not None:
            workflow.ai_optimized = bool(payload["aiOptimized"])
        workflow.updated_by = actor_id

        if plan is not None:
            workflow.version = workflow.version + 1
            _write_graph(workflow, workflow.version, plan)
            changed = [
                name
                for name in _UPDATABLE_FIELDS
                if name in payload and name != "linkedTemplateIds"
            ]
            _record_audit(workflow, "UPDATED", actor_id, {"fields": changed})

        if payload.get("linkedTemplateIds") is not None:
            reconcile_template_links(workflow, payload["linkedTemplateIds"])

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    if plan is not None:
        current_app.logger.info(
            "Workflow %s advanced to version %s (actor=%s)", workflow.id, workflow.version, actor_id
        )
    return WriteResult(
        get_workflow_detail(space_id, workflow.id), plan.warnings if plan is not None else []
    )


def delete_workflow(space_id: str, workflow_id: str) -> None:
    """Delete a workflow with all its versions unless something still uses it."""

    try:
        workflow = _find_workflow(space_id, workflow_id, lock=True)
        template_count = Template.query.filter_by(workflow_id=workflow.id).count()
        task_count = Task.query.filter_by(workflow_id=workflow.id).count()
        if template_count or task_count:
            raise ReferentialIntegrityError(workflow.id, template_count, task_count)

        db.session.delete(workflow)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Deleted workflow %s from space %s", workflow_id, space_id)


def duplicate_workflow(
    space_id: str, workflow_id: str, actor_id: str | None = None
) -> WriteResult:
    """Clone the current version into a fresh, non-default workflow."""

    workflow = _find_workflow(space_id, workflow_id)
    statuses, transitions = _stored_drafts(workflow)
    payload = {
        "name": f"{workflow.name} Copy",
        "description": workflow.description,
        "isDefault": False,
        "aiOptimized": workflow.ai_optimized,
        "statuses": [status.to_payload() for status in statuses],
        "transitions": [transition.to_payload() for transition in transitions],
    }
    return create_workflow(space_id, payload, actor_id)


def list_audit_entries(space_id: str, workflow_id: str) -> list[dict[str, Any]]:
    workflow = _find_workflow(space_id, workflow_id)
    return [
        {
            "id": entry.id,
            "workflowId": entry.workflow_id,
            "version": entry.version,
            "action": entry.action,
            "actorId": entry.actor_id,
            "metadata": _load_rules(entry.metadata_json),
            "createdAt": _isoformat(entry.created_at),
        }
        for entry in workflow.audits
    ]
