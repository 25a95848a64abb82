"""Helpers resolving who is performing the current request."""

from __future__ import annotations

from flask import current_app, request


def current_actor_id() -> str | None:
    """Return the acting user id forwarded by the authenticating proxy."""

    header = current_app.config.get("ACTOR_HEADER", "X-Actor-Id")
    value = request.headers.get(header)
    if not value:
        return None
    value = value.strip()
    return value[:64] or None
