"""Keeps the template-to-workflow association consistent."""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from ..exceptions import NotFoundError
from ..extensions import db
from ..models.template import Template
from ..models.workflow import Workflow


def _normalize_template_ids(template_ids: Iterable[Any]) -> list[str]:
    normalized: list[str] = []
    for value in template_ids:
        if value is None:
            continue
        candidate = str(value).strip()
        if candidate and candidate not in normalized:
            normalized.append(candidate)
    return normalized


def reconcile_template_links(workflow: Workflow, template_ids: Iterable[Any]) -> list[str]:
    """Point exactly the given templates of the workflow's space at it.

    Runs inside the caller's transaction and only flushes; the caller commits
    or rolls back together with the version write that triggered it.
    """

    target = _normalize_template_ids(template_ids)

    found: list[Template] = []
    if target:
        found = Template.query.filter(
            Template.space_id == workflow.space_id, Template.id.in_(target)
        ).all()
    found_ids = {template.id for template in found}
    missing = [template_id for template_id in target if template_id not in found_ids]
    if missing:
        raise NotFoundError("Template", ", ".join(missing))

    stale = Template.query.filter(Template.workflow_id == workflow.id)
    if target:
        stale = stale.filter(Template.id.notin_(target))
    for template in stale.all():
        template.workflow_id = None

    for template in found:
        template.workflow_id = workflow.id

    db.session.flush()
    return target


def assign_workflow_to_template(template_id: str, workflow_id: str | None) -> dict[str, Any]:
    """Attach one template to a workflow of its space, or detach it."""

    template = db.session.get(Template, template_id)
    if template is None:
        raise NotFoundError("Template", template_id)

    if workflow_id is not None:
        workflow = Workflow.query.filter_by(id=workflow_id, space_id=template.space_id).first()
        if workflow is None:
            raise NotFoundError("Workflow", workflow_id)

    try:
        template.workflow_id = workflow_id
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return {"id": template.id, "spaceId": template.space_id, "workflowId": template.workflow_id}
