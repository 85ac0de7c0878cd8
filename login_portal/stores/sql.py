from datetime import datetime, timezone

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from login_portal.core.errors import ConflictError
from login_portal.models.password_reset import PasswordResetToken
from login_portal.models.session import SessionToken
from login_portal.models.user import User
from login_portal.stores.base import ResetTokenRecord, SessionRecord, UserRecord


def _db_time(value: datetime | None) -> datetime | None:
    # Columns hold naive UTC.
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _aware(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _user_record(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        email=row.email,
        full_name=row.full_name,
        hashed_password=row.hashed_password,
        is_active=row.is_active,
        created_at=_aware(row.created_at),
        password_changed_at=_aware(row.password_changed_at),
    )


def _session_record(row: SessionToken) -> SessionRecord:
    return SessionRecord(
        jti=row.jti,
        user_id=row.user_id,
        issued_at=_aware(row.issued_at),
        expires_at=_aware(row.expires_at),
        revoked_at=_aware(row.revoked_at),
        revoke_reason=row.revoke_reason,
    )


class SqlCredentialStore:
    def __init__(self, db: Session):
        self.db = db

    def get_by_email(self, email: str) -> UserRecord | None:
        row = self.db.execute(select(User).where(User.email == email)).scalar_one_or_none()
        return _user_record(row) if row else None

    def get_by_id(self, user_id: int) -> UserRecord | None:
        row = self.db.get(User, user_id)
        return _user_record(row) if row else None

    def insert(self, email: str, full_name: str, hashed_password: str, created_at: datetime) -> UserRecord:
        row = User(
            email=email,
            full_name=full_name,
            hashed_password=hashed_password,
            is_active=True,
            created_at=_db_time(created_at),
        )
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Email already registered", reason="duplicate_email")
        self.db.refresh(row)
        return _user_record(row)

    def update_password(self, user_id: int, hashed_password: str, changed_at: datetime | None) -> bool:
        result = self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(hashed_password=hashed_password, password_changed_at=_db_time(changed_at))
        )
        self.db.commit()
        return result.rowcount == 1


class SqlTokenStore:
    """Token state in SQL. Single-row transitions are conditional UPDATEs checked by rowcount."""

    def __init__(self, db: Session):
        self.db = db

    def add_session(self, record: SessionRecord) -> None:
        self.db.add(
            SessionToken(
                jti=record.jti,
                user_id=record.user_id,
                issued_at=_db_time(record.issued_at),
                expires_at=_db_time(record.expires_at),
            )
        )
        self.db.commit()

    def get_session(self, jti: str) -> SessionRecord | None:
        row = self.db.execute(select(SessionToken).where(SessionToken.jti == jti)).scalar_one_or_none()
        return _session_record(row) if row else None

    def revoke_session(self, jti: str, revoked_at: datetime, reason: str) -> bool:
        result = self.db.execute(
            update(SessionToken)
            .where(SessionToken.jti == jti, SessionToken.revoked_at.is_(None))
            .values(revoked_at=_db_time(revoked_at), revoke_reason=reason)
        )
        self.db.commit()
        return result.rowcount == 1

    def revoke_user_sessions(self, user_id: int, revoked_at: datetime, reason: str, keep_jti: str | None = None) -> int:
        stmt = update(SessionToken).where(SessionToken.user_id == user_id, SessionToken.revoked_at.is_(None))
        if keep_jti:
            stmt = stmt.where(SessionToken.jti != keep_jti)
        result = self.db.execute(stmt.values(revoked_at=_db_time(revoked_at), revoke_reason=reason))
        self.db.commit()
        return result.rowcount

    def add_reset_token(self, record: ResetTokenRecord) -> None:
        self.db.add(
            PasswordResetToken(
                user_id=record.user_id,
                token_hash=record.token_hash,
                expires_at=_db_time(record.expires_at),
                created_at=_db_time(record.created_at),
            )
        )
        self.db.commit()

    def consume_reset_token(self, token_hash: str, now: datetime) -> int | None:
        now_db = _db_time(now)
        user_id = self.db.execute(
            select(PasswordResetToken.user_id).where(PasswordResetToken.token_hash == token_hash)
        ).scalar_one_or_none()
        if user_id is None:
            return None
        result = self.db.execute(
            update(PasswordResetToken)
            .where(
                PasswordResetToken.token_hash == token_hash,
                PasswordResetToken.used_at.is_(None),
                PasswordResetToken.expires_at >= now_db,
            )
            .values(used_at=now_db)
        )
        self.db.commit()
        return user_id if result.rowcount == 1 else None

    def invalidate_user_reset_tokens(self, user_id: int, now: datetime) -> int:
        result = self.db.execute(
            update(PasswordResetToken)
            .where(PasswordResetToken.user_id == user_id, PasswordResetToken.used_at.is_(None))
            .values(used_at=_db_time(now))
        )
        self.db.commit()
        return result.rowcount

    def purge_expired(self, now: datetime) -> int:
        now_db = _db_time(now)
        sessions = self.db.execute(
            delete(SessionToken).where(or_(SessionToken.expires_at < now_db, SessionToken.revoked_at.is_not(None)))
        )
        resets = self.db.execute(
            delete(PasswordResetToken).where(
                or_(PasswordResetToken.expires_at < now_db, PasswordResetToken.used_at.is_not(None))
            )
        )
        self.db.commit()
        return sessions.rowcount + resets.rowcount
