"""Request body helpers shared by the blueprints."""

from __future__ import annotations

from typing import Any

from flask import request


def read_json_object() -> dict[str, Any] | None:
    """Return the JSON body when it is an object, otherwise ``None``."""

    payload = request.get_json(silent=True, force=True)
    return payload if isinstance(payload, dict) else None
