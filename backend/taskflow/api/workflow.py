"""REST API endpoints for authoring and versioning workflows."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Blueprint, jsonify, request

from ..utils.actor import current_actor_id
from ..utils.payload import read_json_object
from ..workflow.versions import (
    create_workflow,
    delete_workflow,
    duplicate_workflow,
    get_workflow_detail,
    list_audit_entries,
    list_workflows,
    preview_graph,
    update_workflow,
)

bp = Blueprint("workflows", __name__)

_LIST_FIELDS = ("statuses", "transitions", "linkedTemplateIds")
_BOOL_FIELDS = ("isDefault", "aiOptimized")


def _space_id_arg() -> str | None:
    return (request.args.get("spaceId") or "").strip() or None


def _missing_space_id() -> tuple[object, int]:
    return jsonify({"error": "spaceId is required"}), HTTPStatus.BAD_REQUEST


def _validate_payload_shape(payload: dict[str, Any]) -> list[str]:
    """Reject structurally malformed bodies before they reach the engine."""

    errors: list[str] = []
    for name in _LIST_FIELDS:
        value = payload.get(name)
        if value is None:
            continue
        if not isinstance(value, list):
            errors.append(f"{name} must be a list")
        elif name != "linkedTemplateIds" and not all(isinstance(item, dict) for item in value):
            errors.append(f"{name} must contain objects")

    for name in _BOOL_FIELDS:
        value = payload.get(name)
        if value is not None and not isinstance(value, bool):
            errors.append(f"{name} must be a boolean")

    for name in ("name", "description"):
        value = payload.get(name)
        if value is not None and not isinstance(value, str):
            errors.append(f"{name} must be a string")

    return errors


def _read_payload() -> tuple[dict[str, Any], list[str]]:
    payload = read_json_object()
    if payload is None:
        return {}, ["request body must be a JSON object"]
    return payload, _validate_payload_shape(payload)


@bp.get("/workflows")
def list_space_workflows() -> tuple[object, int]:
    space_id = _space_id_arg()
    if space_id is None:
        return _missing_space_id()
    return jsonify({"workflows": list_workflows(space_id)}), HTTPStatus.OK


@bp.post("/workflows")
def create_space_workflow() -> tuple[object, int]:
    payload, errors = _read_payload()
    if errors:
        return jsonify({"errors": errors}), HTTPStatus.BAD_REQUEST

    space_id = payload.get("spaceId")
    if not isinstance(space_id, str) or not space_id.strip():
        return _missing_space_id()

    result = create_workflow(space_id.strip(), payload, current_actor_id())
    return jsonify({"workflow": result.workflow, "warnings": result.warnings}), HTTPStatus.CREATED


@bp.post("/workflows/validate")
def validate_workflow_graph() -> tuple[object, int]:
    """Dry-run the checks of a create without persisting anything."""

    payload, errors = _read_payload()
    if errors:
        return jsonify({"errors": errors}), HTTPStatus.BAD_REQUEST

    plan = preview_graph(payload)
    body = {
        "valid": plan.is_valid,
        "statuses": [status.to_payload() for status in plan.statuses],
        "transitions": [transition.to_payload() for transition in plan.transitions],
        "warnings": plan.warnings,
        "issues": plan.issues,
    }
    status = HTTPStatus.OK if plan.is_valid else HTTPStatus.UNPROCESSABLE_ENTITY
    return jsonify(body), status


@bp.get("/workflows/<workflow_id>")
def get_workflow(workflow_id: str) -> tuple[object, int]:
    space_id = _space_id_arg()
    if space_id is None:
        return _missing_space_id()

    version = request.args.get("version")
    if version is not None:
        try:
            version_number: int | None = int(version)
        except ValueError:
            return jsonify({"error": "version must be an integer"}), HTTPStatus.BAD_REQUEST
    else:
        version_number = None

    detail = get_workflow_detail(space_id, workflow_id, version_number)
    return jsonify({"workflow": detail}), HTTPStatus.OK


@bp.put("/workflows/<workflow_id>")
def update_space_workflow(workflow_id: str) -> tuple[object, int]:
    space_id = _space_id_arg()
    if space_id is None:
        return _missing_space_id()

    payload, errors = _read_payload()
    if errors:
        return jsonify({"errors": errors}), HTTPStatus.BAD_REQUEST

    result = update_workflow(space_id, workflow_id, payload, current_actor_id())
    return jsonify({"workflow": result.workflow, "warnings": result.warnings}), HTTPStatus.OK


@bp.delete("/workflows/<workflow_id>")
def delete_space_workflow(workflow_id: str) -> tuple[object, int]:
    space_id = _space_id_arg()
    if space_id is None:
        return _missing_space_id()

    delete_workflow(space_id, workflow_id)
    return "", HTTPStatus.NO_CONTENT


@bp.post("/workflows/<workflow_id>/duplicate")
def duplicate_space_workflow(workflow_id: str) -> tuple[object, int]:
    space_id = _space_id_arg()
    if space_id is None:
        return _missing_space_id()

    result = duplicate_workflow(space_id, workflow_id, current_actor_id())
    return jsonify({"workflow": result.workflow, "warnings": result.warnings}), HTTPStatus.CREATED


@bp.get("/workflows/<workflow_id>/audit")
def get_workflow_audit(workflow_id: str) -> tuple[object, int]:
    space_id = _space_id_arg()
    if space_id is None:
        return _missing_space_id()

    return jsonify({"entries": list_audit_entries(space_id, workflow_id)}), HTTPStatus.OK
