"""REST API endpoint checking whether a task may take a transition."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, jsonify

from ..utils.payload import read_json_object
from ..workflow.transitions import check_task_transition

bp = Blueprint("tasks", __name__)


def _optional_text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@bp.post("/tasks/<task_id>/transitions/check")
def check_transition(task_id: str) -> tuple[object, int]:
    payload = read_json_object()
    if payload is None:
        return jsonify({"error": "request body must be a JSON object"}), HTTPStatus.BAD_REQUEST

    transition_id = _optional_text(payload.get("transitionId"))
    transition_key = _optional_text(payload.get("transitionKey"))
    if transition_id is None and transition_key is None:
        return (
            jsonify({"error": "transitionId or transitionKey is required"}),
            HTTPStatus.BAD_REQUEST,
        )

    result = check_task_transition(task_id, transition_id, transition_key)
    return jsonify({"allowed": True, **result}), HTTPStatus.OK
