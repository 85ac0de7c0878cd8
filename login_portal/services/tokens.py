"""
Session and reset token lifecycle.

Session tokens are signed JWTs whose ``jti`` keys a server-side session record,
so a token can be revoked before it expires. Expiry is evaluated when a token is
checked; nothing sweeps in the background (see ``purge_expired``).
"""

import enum
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog
from jose import JWTError

from login_portal.core.config import get_settings
from login_portal.core.errors import InvalidTokenError
from login_portal.core.security import (
    create_session_jwt,
    decode_session_jwt,
    generate_reset_token,
    new_token_id,
    token_hash,
    utcnow,
)
from login_portal.stores.base import ResetTokenRecord, SessionRecord, TokenStore, UserRecord

logger = structlog.get_logger(__name__)


class SessionReason(str, enum.Enum):
    ok = "ok"
    missing = "missing"
    malformed = "malformed"
    expired = "expired"
    revoked = "revoked"
    unknown = "unknown"
    inactive_user = "inactive_user"


@dataclass(frozen=True)
class SessionCheck:
    reason: SessionReason
    user_id: int | None = None
    jti: str | None = None
    # Filled in by the session guard once the account is loaded.
    user: UserRecord | None = None

    @property
    def ok(self) -> bool:
        return self.reason is SessionReason.ok


@dataclass(frozen=True)
class IssuedSession:
    token: str
    jti: str
    user_id: int
    expires_at: datetime


class TokenService:
    def __init__(self, store: TokenStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def issue_session(self, user_id: int) -> IssuedSession:
        settings = get_settings()
        now = self.clock()
        expires_at = now + timedelta(minutes=settings.SESSION_TOKEN_EXPIRE_MINUTES)
        jti = new_token_id()
        self.store.add_session(SessionRecord(jti=jti, user_id=user_id, issued_at=now, expires_at=expires_at))
        token = create_session_jwt(str(user_id), jti, now, expires_at)
        logger.debug("session_issued", user_id=user_id, jti=jti)
        return IssuedSession(token=token, jti=jti, user_id=user_id, expires_at=expires_at)

    def _claims(self, token: str) -> dict | None:
        try:
            claims = decode_session_jwt(token, verify_exp=False)
        except JWTError:
            return None
        if claims.get("typ") != "session" or not claims.get("jti") or not claims.get("sub"):
            return None
        return claims

    def check_session(self, token: str | None) -> SessionCheck:
        if not token:
            return SessionCheck(SessionReason.missing)

        claims = self._claims(token)
        if claims is None:
            return SessionCheck(SessionReason.malformed)

        record = self.store.get_session(claims["jti"])
        if record is None or str(record.user_id) != claims["sub"]:
            return SessionCheck(SessionReason.unknown, jti=claims["jti"])
        if record.is_revoked:
            return SessionCheck(SessionReason.revoked, user_id=record.user_id, jti=record.jti)
        if record.is_expired(self.clock()):
            return SessionCheck(SessionReason.expired, user_id=record.user_id, jti=record.jti)
        return SessionCheck(SessionReason.ok, user_id=record.user_id, jti=record.jti)

    def revoke_session(self, token: str | None, reason: str = "logout") -> bool:
        """Revoke the session behind ``token``. Unknown, malformed or already revoked tokens are a no-op."""
        if not token:
            return False
        claims = self._claims(token)
        if claims is None:
            return False
        revoked = self.store.revoke_session(claims["jti"], self.clock(), reason)
        logger.info("session_revoked" if revoked else "session_revoke_noop", jti=claims["jti"], reason=reason)
        return revoked

    def revoke_user_sessions(self, user_id: int, reason: str, keep_jti: str | None = None) -> int:
        count = self.store.revoke_user_sessions(user_id, self.clock(), reason, keep_jti=keep_jti)
        if count:
            logger.info("user_sessions_revoked", user_id=user_id, count=count, reason=reason)
        return count

    def issue_reset_token(self, user_id: int) -> str:
        settings = get_settings()
        now = self.clock()
        # Only the newest reset link stays usable.
        self.store.invalidate_user_reset_tokens(user_id, now)
        token = generate_reset_token()
        self.store.add_reset_token(
            ResetTokenRecord(
                token_hash=token_hash(token, settings.SECRET_KEY),
                user_id=user_id,
                expires_at=now + timedelta(minutes=settings.PASSWORD_RESET_TOKEN_TTL_MINUTES),
                created_at=now,
            )
        )
        return token

    def redeem_reset_token(self, token: str) -> int:
        if not token:
            raise InvalidTokenError(reason="missing")
        user_id = self.store.consume_reset_token(token_hash(token, get_settings().SECRET_KEY), self.clock())
        if user_id is None:
            logger.info("reset_token_rejected")
            raise InvalidTokenError(reason="unknown_expired_or_used")
        return user_id

    def purge_expired(self) -> int:
        purged = self.store.purge_expired(self.clock())
        logger.info("tokens_purged", count=purged)
        return purged
