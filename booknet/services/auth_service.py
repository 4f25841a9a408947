"""
Authentication and account lifecycle use cases.

One-time codes are issued per purpose (account activation, password reset),
live for ``TOKEN_TTL_MINUTES`` and gate the action they were issued for:

* activation: ISSUED -> ACTIVATED, or ISSUED -> EXPIRED with a fresh code mailed
  to the same user;
* password reset: ISSUED -> VERIFIED -> consumed by the password change. An
  expired reset code fails without a replacement.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional
import logging
import secrets

from booknet.core.config import get_settings
from booknet.core.mailer import EmailTemplateName, send_email
from booknet.core.security import DUMMY_HASH, create_access_token, hash_password, verify_password
from booknet.db.models import Token, TokenPurpose, User
from booknet.repositories.sql_repository import SQLRepository

logger = logging.getLogger(__name__)

CODE_ALPHABET = "0123456789"
MIN_PASSWORD_LENGTH = 8
DEFAULT_ROLE = "USER"


class AuthError(Exception):
    """Base class for authentication-related exceptions."""

    code = "auth_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RegistrationError(AuthError):
    code = "registration_invalid"


class AccountExistsError(AuthError):
    code = "account_exists"


class BadCredentialsError(AuthError):
    code = "bad_credentials"


class AccountDisabledError(AuthError):
    code = "account_disabled"


class AccountLockedError(AuthError):
    code = "account_locked"


class UserNotFoundError(AuthError):
    code = "user_not_found"


class InvalidTokenError(AuthError):
    code = "invalid_token"


class ExpiredTokenError(AuthError):
    code = "expired_token"


class CodeNotVerifiedError(AuthError):
    code = "code_not_verified"


class PasswordMismatchError(AuthError):
    code = "password_mismatch"


@dataclass
class AuthenticationResult:
    token: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_code(length: int) -> str:
    """Numeric one-time code, each digit drawn independently from a CSPRNG."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


@dataclass
class AuthService:
    """Handles registration, login, account activation and password reset flows."""

    repository: SQLRepository = field(default_factory=SQLRepository)
    clock: Callable[[], datetime] = _utcnow

    def __post_init__(self):
        self.settings = get_settings()

    # -------------------------------------- helpers --------------------------------------
    def _now(self) -> datetime:
        return _as_utc(self.clock())

    def _token_expired(self, token: Token, now: datetime) -> bool:
        return now > _as_utc(token.expires_at)

    def issue_token(self, user: User, purpose: TokenPurpose) -> str:
        """Persist a new code for ``user`` and return it. Sending it is up to the caller.

        Codes are not checked for uniqueness against outstanding ones.
        """
        code = generate_code(self.settings.activation_code_length)
        created_at = self._now()
        self.repository.create_token(
            user.id,
            code,
            purpose,
            created_at=created_at,
            expires_at=created_at + timedelta(minutes=self.settings.token_ttl_minutes),
        )
        return code

    def _send_validation_email(self, user: User) -> None:
        code = self.issue_token(user, TokenPurpose.ACCOUNT_ACTIVATION)
        sent = send_email(
            user.email,
            user.full_name,
            EmailTemplateName.ACTIVATE_ACCOUNT,
            self.settings.activation_url,
            code,
            "Account activation",
        )
        if sent:
            logger.info("Activation email sent to %s", user.email)
        else:
            logger.warning("Activation code issued for %s but email not delivered", user.email)

    def _find_token(self, code: str, purpose: TokenPurpose, message: str) -> Token:
        value = (code or "").strip()
        token = self.repository.get_token_for_purpose(value, purpose) if value else None
        if not token:
            logger.warning("Invalid %s code submitted", purpose.value)
            raise InvalidTokenError(message)
        return token

    def _token_owner(self, token: Token) -> User:
        user = self.repository.get_user(token.user_id)
        if not user:
            logger.warning("No user found with id %s", token.user_id)
            raise UserNotFoundError("User not found")
        return user

    # -------------------------------------- registration --------------------------------------
    def register(
        self,
        firstname: str,
        lastname: str,
        email: str,
        password: str,
        date_of_birth: Optional[date] = None,
    ) -> User:
        raw_email = (email or "").strip()
        if not raw_email:
            raise RegistrationError("Email is mandatory")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise RegistrationError(f"Password should be {MIN_PASSWORD_LENGTH} characters long minimum")
        if self.repository.get_user_by_email(raw_email):
            raise AccountExistsError("An account already exists for this email")
        if not self.repository.get_role(DEFAULT_ROLE):
            logger.error("%s role not found in the database", DEFAULT_ROLE)
            raise RuntimeError("User role not found")

        user = self.repository.create_user(
            firstname=(firstname or "").strip(),
            lastname=(lastname or "").strip(),
            email=raw_email,
            password_hash=hash_password(password),
            role_names=(DEFAULT_ROLE,),
            date_of_birth=date_of_birth,
            enabled=False,
            account_locked=False,
        )
        logger.info("Registration successful for user: %s", user.email)
        self._send_validation_email(user)
        return user

    # -------------------------------------- login --------------------------------------
    def authenticate(self, email: str, password: str) -> AuthenticationResult:
        raw_email = (email or "").strip()
        user = self.repository.get_user_by_email(raw_email) if raw_email else None
        if not user:
            verify_password(password or "", DUMMY_HASH)
            raise BadCredentialsError("Login and / or password is incorrect")
        if not verify_password(password or "", user.password):
            raise BadCredentialsError("Login and / or password is incorrect")
        if user.account_locked:
            raise AccountLockedError("User account is locked")
        if not user.enabled:
            raise AccountDisabledError("User account is disabled")

        claims = {
            "fullName": user.full_name,
            "authorities": sorted(role.name for role in user.roles),
        }
        return AuthenticationResult(token=create_access_token(claims, user.email))

    # -------------------------------------- activation --------------------------------------
    def activate_account(self, code: str) -> None:
        token = self._find_token(code, TokenPurpose.ACCOUNT_ACTIVATION, "Invalid activation token")
        now = self._now()

        if self._token_expired(token, now):
            user = self._token_owner(token)
            logger.warning("Expired activation token for %s. Sending new token", user.email)
            self._send_validation_email(user)
            raise ExpiredTokenError("Token expired. A new token has been sent to the same email")

        user = self._token_owner(token)
        if not self.repository.activate_user(user.id, token.id, now):
            logger.warning("Activation code for user id %s vanished before it was applied", token.user_id)
            raise InvalidTokenError("Invalid activation token")
        logger.info("Account successfully activated for user: %s", user.email)

    # -------------------------------------- password reset --------------------------------------
    def forgot_password(self, email: str) -> None:
        raw_email = (email or "").strip()
        user = self.repository.get_user_by_email(raw_email) if raw_email else None
        if not user:
            logger.warning("No user found with email: %s", raw_email)
            raise UserNotFoundError("User not found")

        code = self.issue_token(user, TokenPurpose.FORGOT_PASSWORD)
        sent = send_email(
            user.email,
            user.full_name,
            EmailTemplateName.FORGOT_PASSWORD,
            self.settings.reset_url,
            code,
            "Password reset request",
        )
        if sent:
            logger.info("Password reset email sent to %s", user.email)
        else:
            logger.warning("Password reset code issued for %s but email not delivered", user.email)

    def verify_reset_code(self, code: str) -> None:
        token = self._find_token(code, TokenPurpose.FORGOT_PASSWORD, "Invalid reset token")
        now = self._now()
        if self._token_expired(token, now):
            logger.warning("Expired reset code for user id %s", token.user_id)
            raise ExpiredTokenError("Token expired")

        self.repository.mark_token_validated(token.id, now)
        logger.info("Reset code successfully verified for user id %s", token.user_id)

    def reset_password(self, code: str, new_password: str, confirm_password: str) -> None:
        if (new_password or "") != (confirm_password or ""):
            logger.warning("Password mismatch on reset request")
            raise PasswordMismatchError("Passwords do not match")

        token = self._find_token(code, TokenPurpose.FORGOT_PASSWORD, "Invalid reset token")
        now = self._now()
        if self._token_expired(token, now):
            logger.warning("Expired password reset token for user id %s", token.user_id)
            raise ExpiredTokenError("Token expired")
        if token.validated_at is None:
            logger.warning("Unverified reset code for user id %s", token.user_id)
            raise CodeNotVerifiedError("Code not verified")

        user = self._token_owner(token)
        if not self.repository.reset_user_password(user.id, hash_password(new_password), token.id, now):
            logger.warning("Reset code for user id %s was already used", token.user_id)
            raise InvalidTokenError("Invalid reset token")
        logger.info("Password successfully updated for user: %s", user.email)

    # -------------------------------------- housekeeping --------------------------------------
    def purge_expired_tokens(self, now: Optional[datetime] = None) -> int:
        cutoff = _as_utc(now) if now else self._now()
        removed = self.repository.delete_expired_tokens(cutoff)
        logger.info("Purged %d expired tokens", removed)
        return removed
