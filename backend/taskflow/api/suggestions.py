"""REST API endpoint proposing a first-draft workflow."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify

from ..extensions import limiter
from ..utils.payload import read_json_object
from ..workflow.suggestions import FieldSummary, suggest
from ..workflow.transitions import Hop, TransitionCandidate, predict_transition

bp = Blueprint("suggestions", __name__)


def _suggestion_rate_limit() -> str:
    return current_app.config.get("SUGGESTION_RATE_LIMIT", "30 per minute")


@bp.post("/ai/workflows/suggest")
@limiter.limit(_suggestion_rate_limit)
def suggest_workflow() -> tuple[object, int]:
    payload = read_json_object()
    if payload is None:
        return jsonify({"error": "request body must be a JSON object"}), HTTPStatus.BAD_REQUEST

    prompt = payload.get("prompt")
    if prompt is not None and not isinstance(prompt, str):
        return jsonify({"error": "prompt must be a string"}), HTTPStatus.BAD_REQUEST

    raw_fields = payload.get("fields")
    fields = [
        FieldSummary.from_payload(item)
        for item in (raw_fields if isinstance(raw_fields, list) else [])
        if isinstance(item, dict)
    ]
    template_name = payload.get("templateName")

    suggestion = suggest(
        prompt=prompt,
        fields=fields,
        template_name=template_name if isinstance(template_name, str) else None,
    )

    if not suggestion.is_valid:
        current_app.logger.warning(
            "Generated workflow suggestion failed validation: %s", "; ".join(suggestion.issues)
        )
        return (
            jsonify(
                {
                    "success": False,
                    "message": "AI generated workflow did not pass validation",
                    "issues": suggestion.issues,
                    "warnings": suggestion.warnings,
                }
            ),
            HTTPStatus.UNPROCESSABLE_ENTITY,
        )

    return (
        jsonify({"success": True, "suggestion": suggestion.to_payload(), "issues": []}),
        HTTPStatus.OK,
    )


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


@bp.post("/ai/workflows/transition")
@limiter.limit(_suggestion_rate_limit)
def predict_next_transition() -> tuple[object, int]:
    """Guess the transition a task most likely takes next."""

    payload = read_json_object()
    if payload is None:
        return jsonify({"error": "request body must be a JSON object"}), HTTPStatus.BAD_REQUEST

    raw_transitions = payload.get("transitions")
    if not isinstance(raw_transitions, list):
        return jsonify({"error": "transitions must be a list"}), HTTPStatus.BAD_REQUEST

    raw_history = payload.get("recentHistory")
    history = [
        Hop(from_key=str(item.get("fromKey") or ""), to_key=str(item.get("toKey") or ""))
        for item in (raw_history if isinstance(raw_history, list) else [])
        if isinstance(item, dict)
    ]
    current = payload.get("currentStatusKey")
    priority = payload.get("priority")

    candidates = [
        TransitionCandidate.from_payload(item) for item in raw_transitions if isinstance(item, dict)
    ]
    prediction = predict_transition(
        candidates,
        current_status_key=current if isinstance(current, str) else None,
        recent_history=history,
        tags=_string_list(payload.get("tags")),
        priority=priority if isinstance(priority, str) else None,
    )
    return (
        jsonify(
            {
                "success": True,
                "suggestion": prediction.to_payload() if prediction is not None else None,
            }
        ),
        HTTPStatus.OK,
    )
