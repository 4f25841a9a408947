"""Bearer token helpers (resolve the caller of a request)."""
from __future__ import annotations

from fastapi import HTTPException, Request

from booknet.core.security import decode_access_token
from booknet.db.models import User
from booknet.repositories.sql_repository import SQLRepository

BEARER_PREFIX = "bearer "

_repository = SQLRepository()


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization") or ""
    if not header.lower().startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None


def current_user(request: Request) -> User | None:
    """Return the enabled user behind the request's JWT, if any."""
    token = bearer_token(request)
    if not token:
        return None
    claims = decode_access_token(token)
    if not claims or not claims.get("sub"):
        return None
    user = _repository.get_user_by_email(claims["sub"])
    if not user or not user.enabled or user.account_locked:
        return None
    return user


def require_user(request: Request) -> User:
    """FastAPI dependency: 401 unless a valid bearer token is presented."""
    user = current_user(request)
    if not user:
        raise HTTPException(401, "Authentication required", headers={"WWW-Authenticate": "Bearer"})
    return user
