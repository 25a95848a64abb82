"""Extensions used by the Flask application."""

from flask import current_app, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_sqlalchemy import SQLAlchemy


def _limiter_key_func() -> str:
    header = current_app.config.get("ACTOR_HEADER", "X-Actor-Id")
    actor = request.headers.get(header)
    if actor:
        return f"actor:{actor.strip()}"
    return get_remote_address()


db = SQLAlchemy()
cors = CORS()
limiter = Limiter(key_func=_limiter_key_func, default_limits=[])

__all__ = ["db", "cors", "limiter"]
