"""
Login, logout, registration and password-reset use cases.

``AuthService`` composes the credential store, the password hasher, the token
service and the notifier. It raises the typed errors from
``login_portal.core.errors``; callers map them to responses.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

import structlog

from login_portal.core.config import get_settings
from login_portal.core.errors import AuthenticationError, InvalidTokenError, NotFoundError, ValidationError
from login_portal.core.security import (
    burn_password_check,
    get_password_hash,
    is_valid_email,
    normalize_email,
    utcnow,
    validate_password_strength,
    verify_and_update_password,
    verify_password,
)
from login_portal.services.notifier import Notifier
from login_portal.services.tokens import TokenService
from login_portal.stores.base import CredentialStore, UserRecord

logger = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
RESET_EMAIL_SENT = "Password reset email sent"
WEAK_PASSWORD = "Password must be 8-128 characters with upper and lowercase letters, a number, and a symbol"


@dataclass(frozen=True)
class LoginResult:
    token: str
    expires_at: datetime
    user: UserRecord


def _noop_audit(action: str, user_id: int | None = None, details: str | None = None) -> None:
    return None


class AuthService:
    def __init__(
        self,
        credentials: CredentialStore,
        tokens: TokenService,
        notifier: Notifier,
        audit: Callable[..., None] = _noop_audit,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.credentials = credentials
        self.tokens = tokens
        self.notifier = notifier
        self.audit = audit
        self.clock = clock

    @staticmethod
    def _check_email(email: str | None, password: str | None = None, check_password: bool = False) -> str:
        errors = []
        if email is None or not email.strip():
            errors.append("Email is required")
        if check_password and not password:
            errors.append("Password is required")
        if errors:
            raise ValidationError(errors, reason="missing_fields")
        if not is_valid_email(email):
            raise ValidationError("Invalid email format", reason="bad_email_format")
        return normalize_email(email)

    @staticmethod
    def _check_new_password(password: str | None) -> str:
        if not password:
            raise ValidationError("Password is required", reason="missing_fields")
        if not validate_password_strength(password):
            raise ValidationError(WEAK_PASSWORD, reason="weak_password")
        return password

    def _login_failed(self, reason: str, email: str, user_id: int | None = None) -> AuthenticationError:
        logger.info("login_failed", reason=reason, user_id=user_id, email_domain=email.rpartition("@")[2])
        self.audit("login_failed", user_id=user_id, details=reason)
        return AuthenticationError(INVALID_CREDENTIALS, reason=reason)

    def login(self, email: str | None, password: str | None) -> LoginResult:
        email = self._check_email(email, password, check_password=True)

        user = self.credentials.get_by_email(email)
        if user is None:
            burn_password_check(password)
            raise self._login_failed("unknown_user", email)

        verified, new_hash = verify_and_update_password(password, user.hashed_password)
        if not verified:
            raise self._login_failed("bad_password", email, user.id)
        if not user.is_active:
            raise self._login_failed("inactive_user", email, user.id)

        if new_hash:
            self.credentials.update_password(user.id, new_hash, user.password_changed_at)
            logger.info("password_rehashed", user_id=user.id)

        issued = self.tokens.issue_session(user.id)
        if get_settings().SINGLE_ACTIVE_SESSION:
            self.tokens.revoke_user_sessions(user.id, "superseded", keep_jti=issued.jti)

        logger.info("login_succeeded", user_id=user.id, jti=issued.jti)
        self.audit("login_success", user_id=user.id)
        return LoginResult(token=issued.token, expires_at=issued.expires_at, user=user)

    def logout(self, token: str | None) -> None:
        check = self.tokens.check_session(token) if token else None
        if self.tokens.revoke_session(token, reason="logout"):
            self.audit("logout", user_id=check.user_id if check else None)

    def request_password_reset(self, email: str | None) -> str:
        settings = get_settings()
        email = self._check_email(email)

        user = self.credentials.get_by_email(email)
        if user is None or not user.is_active:
            logger.info("password_reset_unknown_email", email_domain=email.rpartition("@")[2])
            self.audit("password_reset_unknown_email")
            if settings.PASSWORD_RESET_REVEALS_UNKNOWN_EMAIL:
                raise NotFoundError("Email not found", reason="unknown_email")
            return RESET_EMAIL_SENT

        token = self.tokens.issue_reset_token(user.id)
        reset_url = f"{settings.FRONTEND_URL}/reset-password?token={token}"
        try:
            self.notifier.send_password_reset(user.email, token, reset_url)
        except Exception as exc:
            # The caller still gets the generic acknowledgment; operators get the failure.
            logger.error("password_reset_delivery_failed", user_id=user.id, error=type(exc).__name__)
            self.audit("password_reset_email_failed", user_id=user.id, details=type(exc).__name__)
            return RESET_EMAIL_SENT

        self.audit("password_reset_requested", user_id=user.id)
        return RESET_EMAIL_SENT

    def reset_password(self, token: str | None, new_password: str | None) -> None:
        errors = []
        if not token:
            errors.append("Reset token is required")
        if not new_password:
            errors.append("Password is required")
        if errors:
            raise ValidationError(errors, reason="missing_fields")
        # Reject weak passwords before the token is consumed.
        self._check_new_password(new_password)

        user_id = self.tokens.redeem_reset_token(token)
        if not self.credentials.update_password(user_id, get_password_hash(new_password), self.clock()):
            raise InvalidTokenError(reason="user_missing")
        self.tokens.revoke_user_sessions(user_id, "password_reset")

        logger.info("password_reset_completed", user_id=user_id)
        self.audit("password_reset_completed", user_id=user_id)

    def register(self, email: str | None, password: str | None, full_name: str | None = None) -> UserRecord:
        email = self._check_email(email, password, check_password=True)
        self._check_new_password(password)
        full_name = (full_name or "").strip()
        if len(full_name) > 120:
            raise ValidationError("Full name must be at most 120 characters", reason="long_name")

        user = self.credentials.insert(email, full_name, get_password_hash(password), self.clock())
        logger.info("user_registered", user_id=user.id)
        self.audit("register", user_id=user.id)
        return user

    def change_password(self, user: UserRecord, current_jti: str | None, current_password: str | None, new_password: str | None) -> None:
        if not current_password:
            raise ValidationError("Current password is required", reason="missing_fields")
        self._check_new_password(new_password)
        if not verify_password(current_password, user.hashed_password):
            self.audit("password_change_failed", user_id=user.id)
            raise AuthenticationError("Current password is incorrect", reason="bad_password")

        self.credentials.update_password(user.id, get_password_hash(new_password), self.clock())
        self.tokens.revoke_user_sessions(user.id, "password_change", keep_jti=current_jti)
        logger.info("password_changed", user_id=user.id)
        self.audit("password_changed", user_id=user.id)
