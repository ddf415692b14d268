"""
JWT Service - validation of Supabase access tokens.

The hosted auth service issues the tokens; this module only verifies them
with the project's JWT secret and turns the claims into an ``Actor``.
"""

from __future__ import annotations

import os
from typing import Any

import jwt
from flask import Request, current_app

from comanda_shared.actor import Actor
from comanda_shared.constants import UserRole

JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"


class JWTError(Exception):
    """Base exception for JWT errors."""

    def __init__(self, message: str, status: int = 401):
        self.message = message
        self.status = status
        super().__init__(message)


class TokenExpiredError(JWTError):
    """Token has expired."""

    def __init__(self):
        super().__init__("Token expired", 401)


class InvalidTokenError(JWTError):
    """Token is invalid or malformed."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message, 401)


def get_jwt_secret() -> str:
    """Get the Supabase JWT secret from config or environment."""
    try:
        secret = current_app.config.get("SUPABASE_JWT_SECRET")
        if secret:
            return secret
    except RuntimeError:
        pass

    secret = os.getenv("SUPABASE_JWT_SECRET")
    if not secret:
        raise RuntimeError("SUPABASE_JWT_SECRET must be configured")
    return secret


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate an access token.

    Raises:
        TokenExpiredError: If token has expired
        InvalidTokenError: If token is invalid
    """
    try:
        return jwt.decode(
            token, get_jwt_secret(), algorithms=[JWT_ALGORITHM], audience=JWT_AUDIENCE
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError(str(e))


def actor_from_claims(claims: dict[str, Any]) -> Actor:
    """
    Build the actor from token claims.

    Owners sign up without a role claim and are treated as admins; staff
    logins carry their role in ``user_metadata``.
    """
    subject = claims.get("sub")
    if not subject:
        raise InvalidTokenError("Token without subject")
    metadata = claims.get("user_metadata") or {}
    role = metadata.get("role") or claims.get("app_role") or UserRole.ADMIN.value
    if role not in {member.value for member in UserRole}:
        role = UserRole.ADMIN.value
    return Actor(
        user_id=subject,
        email=claims.get("email"),
        name=metadata.get("name") or metadata.get("full_name"),
        role=role,
    )


def extract_token_from_request(request: Request) -> str | None:
    """
    Extract the access token from a request.

    Checks the Authorization header (Bearer), then the X-Access-Token header,
    then the access_token cookie.
    """
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]

    token_header = request.headers.get("X-Access-Token")
    if token_header:
        return token_header

    return request.cookies.get("access_token")
