"""Security helpers (password hashing and JWT issuance)."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

import jwt
from argon2 import PasswordHasher, exceptions as argon_exc

from booknet.core.config import get_settings

logger = logging.getLogger(__name__)

_ph = PasswordHasher()
_ALGORITHM = "HS256"

# Compared against when the e-mail is unknown so both paths cost one argon2 verify.
DUMMY_HASH = _ph.hash("booknet-dummy-password")


def hash_password(password: str) -> str:
    return _ph.hash(password)


def verify_password(password: str, stored_hash: str | None) -> bool:
    stored = stored_hash or ""
    if not stored:
        return False
    try:
        return _ph.verify(stored, password)
    except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
        return False


def create_access_token(claims: Mapping[str, Any], subject: str, *, expires_delta: timedelta | None = None) -> str:
    """Mint a signed JWT carrying ``claims`` for ``subject``.

    Args:
        claims: Extra claims (e.g. ``fullName``, ``authorities``).
        subject: Value of the ``sub`` claim; the user e-mail.
        expires_delta: Lifetime override. Defaults to JWT_EXPIRATION_SECONDS.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(seconds=settings.jwt_expiration_seconds)
    payload = dict(claims)
    payload.update({"sub": subject, "iat": now, "exp": now + lifetime})
    return jwt.encode(payload, settings.jwt_secret, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Return the claims of a valid token, or None when the signature or expiry is bad."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired access token")
        return None
    except jwt.InvalidTokenError:
        logger.warning("Rejected invalid access token")
        return None
