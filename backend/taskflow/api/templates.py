"""REST API endpoint linking a task template to a workflow."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, jsonify

from ..utils.payload import read_json_object
from ..workflow.templates import assign_workflow_to_template

bp = Blueprint("templates", __name__)


@bp.patch("/templates/<template_id>/workflow")
def assign_template_workflow(template_id: str) -> tuple[object, int]:
    payload = read_json_object()
    if payload is None or "workflowId" not in payload:
        return jsonify({"error": "workflowId is required (null detaches)"}), HTTPStatus.BAD_REQUEST

    workflow_id = payload.get("workflowId")
    if workflow_id is not None and (not isinstance(workflow_id, str) or not workflow_id.strip()):
        return jsonify({"error": "workflowId must be a string or null"}), HTTPStatus.BAD_REQUEST

    template = assign_workflow_to_template(
        template_id, workflow_id.strip() if workflow_id is not None else None
    )
    return jsonify({"template": template}), HTTPStatus.OK
