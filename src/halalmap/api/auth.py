"""
Admin capability check.

Token issuance lives outside this service; the API only answers "is this caller an admin?"
by comparing the bearer token with `auth.admin_token`. With no token configured, admin
routes are closed.
"""

from __future__ import annotations

import secrets

from fastapi import Depends, Header, HTTPException

from halalmap.config.settings import Settings, get_settings


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": "UNAUTHORIZED", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_admin(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not authorization:
        raise _unauthorized("No authorization token provided")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized("Invalid authorization format. Use: Bearer <token>")

    expected = settings.auth.admin_token
    if not expected or not secrets.compare_digest(token.strip().encode("utf-8"), expected.encode("utf-8")):
        raise _unauthorized("Invalid or expired token")
