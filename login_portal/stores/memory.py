import itertools
import threading
from collections import defaultdict
from dataclasses import replace
from datetime import datetime

from login_portal.core.errors import ConflictError
from login_portal.stores.base import ResetTokenRecord, SessionRecord, UserRecord


class KeyedLocks:
    """One lock per key; the registry lock is only held while fetching a key's lock."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[object, threading.Lock] = defaultdict(threading.Lock)

    def __call__(self, key: object) -> threading.Lock:
        with self._guard:
            return self._locks[key]

    def discard(self, key: object) -> None:
        with self._guard:
            self._locks.pop(key, None)


class MemoryCredentialStore:
    def __init__(self):
        self._users: dict[int, UserRecord] = {}
        self._by_email: dict[str, int] = {}
        self._ids = itertools.count(1)
        self._locks = KeyedLocks()

    def get_by_email(self, email: str) -> UserRecord | None:
        user_id = self._by_email.get(email)
        return self._users.get(user_id) if user_id is not None else None

    def get_by_id(self, user_id: int) -> UserRecord | None:
        return self._users.get(user_id)

    def insert(self, email: str, full_name: str, hashed_password: str, created_at: datetime) -> UserRecord:
        with self._locks(("email", email)):
            if email in self._by_email:
                raise ConflictError("Email already registered", reason="duplicate_email")
            record = UserRecord(
                id=next(self._ids),
                email=email,
                full_name=full_name,
                hashed_password=hashed_password,
                is_active=True,
                created_at=created_at,
            )
            self._users[record.id] = record
            self._by_email[email] = record.id
        return record

    def update_password(self, user_id: int, hashed_password: str, changed_at: datetime | None) -> bool:
        with self._locks(("user", user_id)):
            current = self._users.get(user_id)
            if current is None:
                return False
            self._users[user_id] = replace(current, hashed_password=hashed_password, password_changed_at=changed_at)
        return True

    def set_active(self, user_id: int, is_active: bool) -> None:
        with self._locks(("user", user_id)):
            self._users[user_id] = replace(self._users[user_id], is_active=is_active)


class MemoryTokenStore:
    def __init__(self):
        self._sessions: dict[str, SessionRecord] = {}
        self._resets: dict[str, ResetTokenRecord] = {}
        self._locks = KeyedLocks()

    def add_session(self, record: SessionRecord) -> None:
        with self._locks(("session", record.jti)):
            self._sessions[record.jti] = record

    def get_session(self, jti: str) -> SessionRecord | None:
        return self._sessions.get(jti)

    def revoke_session(self, jti: str, revoked_at: datetime, reason: str) -> bool:
        # Unknown ids never get a lock.
        if jti not in self._sessions:
            return False
        with self._locks(("session", jti)):
            current = self._sessions.get(jti)
            if current is None or current.revoked_at is not None:
                return False
            self._sessions[jti] = replace(current, revoked_at=revoked_at, revoke_reason=reason)
        # Revocation is final, so the lock is no longer needed.
        self._locks.discard(("session", jti))
        return True

    def revoke_user_sessions(self, user_id: int, revoked_at: datetime, reason: str, keep_jti: str | None = None) -> int:
        jtis = [s.jti for s in list(self._sessions.values()) if s.user_id == user_id and s.jti != keep_jti]
        return sum(1 for jti in jtis if self.revoke_session(jti, revoked_at, reason))

    def add_reset_token(self, record: ResetTokenRecord) -> None:
        with self._locks(("reset", record.token_hash)):
            self._resets[record.token_hash] = record

    def consume_reset_token(self, token_hash: str, now: datetime) -> int | None:
        if token_hash not in self._resets:
            return None
        with self._locks(("reset", token_hash)):
            current = self._resets.get(token_hash)
            if current is None or current.used_at is not None or now > current.expires_at:
                return None
            self._resets[token_hash] = replace(current, used_at=now)
        self._locks.discard(("reset", token_hash))
        return current.user_id

    def invalidate_user_reset_tokens(self, user_id: int, now: datetime) -> int:
        count = 0
        for record in list(self._resets.values()):
            if record.user_id != user_id:
                continue
            with self._locks(("reset", record.token_hash)):
                current = self._resets.get(record.token_hash)
                if current is not None and current.used_at is None:
                    self._resets[record.token_hash] = replace(current, used_at=now)
                    count += 1
        return count

    def purge_expired(self, now: datetime) -> int:
        purged = 0
        for jti, record in list(self._sessions.items()):
            if record.is_expired(now) or record.is_revoked:
                with self._locks(("session", jti)):
                    self._sessions.pop(jti, None)
                self._locks.discard(("session", jti))
                purged += 1
        for key, record in list(self._resets.items()):
            if now > record.expires_at or record.used_at is not None:
                with self._locks(("reset", key)):
                    self._resets.pop(key, None)
                self._locks.discard(("reset", key))
                purged += 1
        return purged
