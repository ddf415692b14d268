"""
JWT Middleware for Flask.

Loads the signed-in actor into ``g.actor`` on every request and provides the
route decorators that require it.
"""

from __future__ import annotations

import logging
from functools import wraps
from http import HTTPStatus
from typing import TYPE_CHECKING

from flask import g, jsonify, request

from comanda_shared.actor import Actor
from comanda_shared.error_catalog import message
from comanda_shared.jwt_service import (
    InvalidTokenError,
    TokenExpiredError,
    actor_from_claims,
    decode_token,
    extract_token_from_request,
)
from comanda_shared.serializers import error_response

if TYPE_CHECKING:
    from flask import Flask

logger = logging.getLogger(__name__)


def init_jwt_middleware(app: Flask) -> None:
    @app.before_request
    def load_actor():
        g.actor = None

        token = extract_token_from_request(request)
        if not token:
            return

        try:
            g.actor = actor_from_claims(decode_token(token))
        except TokenExpiredError:
            logger.debug(f"Expired token on {request.path}")
        except InvalidTokenError as e:
            logger.warning(f"Invalid token on {request.path}: {e}")


def get_current_actor() -> Actor | None:
    return getattr(g, "actor", None)


def login_required(f):
    """Return 401 unless a valid access token was presented."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if get_current_actor() is None:
            return jsonify(error_response(message("auth_required"))), HTTPStatus.UNAUTHORIZED
        return f(*args, **kwargs)

    return decorated_function


def admin_required(f):
    """Return 401 without a token and 403 for staff logins."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor = get_current_actor()
        if actor is None:
            return jsonify(error_response(message("auth_required"))), HTTPStatus.UNAUTHORIZED
        if not actor.is_admin:
            logger.warning(f"Actor {actor.user_id} with role {actor.role} denied on {request.path}")
            return jsonify(error_response(message("admin_required"))), HTTPStatus.FORBIDDEN
        return f(*args, **kwargs)

    return decorated_function
