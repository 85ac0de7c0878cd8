from dataclasses import replace

import structlog

from login_portal.core.errors import Unauthorized
from login_portal.services.tokens import SessionCheck, SessionReason, TokenService
from login_portal.stores.base import CredentialStore, UserRecord

logger = structlog.get_logger(__name__)


class SessionGuard:
    """Authorizes protected requests. Every failure looks the same to the caller."""

    def __init__(self, tokens: TokenService, credentials: CredentialStore):
        self.tokens = tokens
        self.credentials = credentials

    def _reject(self, check: SessionCheck) -> Unauthorized:
        logger.info("access_denied", reason=check.reason.value, user_id=check.user_id, jti=check.jti)
        return Unauthorized(reason=check.reason.value)

    def check(self, token: str | None) -> SessionCheck:
        """Classify ``token``; an ok result carries the active user it was checked against."""
        if not token:
            return SessionCheck(SessionReason.missing)
        check = self.tokens.check_session(token)
        if not check.ok:
            return check
        user = self.credentials.get_by_id(check.user_id)
        if user is None or not user.is_active:
            return SessionCheck(SessionReason.inactive_user, user_id=check.user_id, jti=check.jti)
        return replace(check, user=user)

    def authorize_session(self, token: str | None) -> tuple[UserRecord, str]:
        """Return the user and session id behind ``token`` or raise ``Unauthorized``."""
        check = self.check(token)
        if not check.ok:
            raise self._reject(check)
        return check.user, check.jti

    def authorize(self, token: str | None) -> UserRecord:
        user, _ = self.authorize_session(token)
        return user
