"""
Store contracts for credentials and tokens.

Services talk to persistence only through these protocols, so the SQL and
in-memory backings are interchangeable. Every mutating token operation is
atomic per key: implementations must guarantee that a revoke or consume
succeeds for at most one caller.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class UserRecord:
    id: int
    email: str
    full_name: str
    hashed_password: str
    is_active: bool
    created_at: datetime
    password_changed_at: datetime | None = None


@dataclass(frozen=True)
class SessionRecord:
    jti: str
    user_id: int
    issued_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None
    revoke_reason: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None


@dataclass(frozen=True)
class ResetTokenRecord:
    token_hash: str
    user_id: int
    expires_at: datetime
    created_at: datetime
    used_at: datetime | None = None


@runtime_checkable
class CredentialStore(Protocol):
    def get_by_email(self, email: str) -> UserRecord | None:
        """Look up by normalized email. The value is matched literally."""
        ...

    def get_by_id(self, user_id: int) -> UserRecord | None:
        ...

    def insert(self, email: str, full_name: str, hashed_password: str, created_at: datetime) -> UserRecord:
        """Create a user. Raises ``ConflictError`` when the email is taken."""
        ...

    def update_password(self, user_id: int, hashed_password: str, changed_at: datetime | None) -> bool:
        ...


@runtime_checkable
class TokenStore(Protocol):
    def add_session(self, record: SessionRecord) -> None:
        ...

    def get_session(self, jti: str) -> SessionRecord | None:
        ...

    def revoke_session(self, jti: str, revoked_at: datetime, reason: str) -> bool:
        """Mark an active session revoked. Returns False if unknown or already revoked."""
        ...

    def revoke_user_sessions(self, user_id: int, revoked_at: datetime, reason: str, keep_jti: str | None = None) -> int:
        ...

    def add_reset_token(self, record: ResetTokenRecord) -> None:
        ...

    def consume_reset_token(self, token_hash: str, now: datetime) -> int | None:
        """
        Atomically mark an unused, unexpired reset token as used.

        Returns the owning user id on success, None when the token is unknown,
        expired, or was already consumed.
        """
        ...

    def invalidate_user_reset_tokens(self, user_id: int, now: datetime) -> int:
        ...

    def purge_expired(self, now: datetime) -> int:
        ...
