from collections.abc import Generator
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from login_portal.core.config import get_settings
from login_portal.core.database import get_db
from login_portal.services.audit import DbAuditor, LogAuditor
from login_portal.services.auth import AuthService
from login_portal.services.guard import SessionGuard
from login_portal.services.notifier import Notifier, build_notifier
from login_portal.services.tokens import TokenService
from login_portal.stores.base import CredentialStore, TokenStore, UserRecord
from login_portal.stores.memory import MemoryCredentialStore, MemoryTokenStore
from login_portal.stores.sql import SqlCredentialStore, SqlTokenStore

# auto_error=False: a missing header must reach the guard, which rejects it without a store lookup.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def get_store_db() -> Generator[Session | None, None, None]:
    """Request-scoped SQL session, or None when the stores keep no SQL state."""
    if get_settings().STORE_BACKEND == "memory":
        yield None
        return
    yield from get_db()


@lru_cache
def memory_stores() -> tuple[MemoryCredentialStore, MemoryTokenStore]:
    return MemoryCredentialStore(), MemoryTokenStore()


def get_credential_store(db: Session | None = Depends(get_store_db)) -> CredentialStore:
    if db is None:
        return memory_stores()[0]
    return SqlCredentialStore(db)


def get_token_store(db: Session | None = Depends(get_store_db)) -> TokenStore:
    if db is None:
        return memory_stores()[1]
    return SqlTokenStore(db)


def get_notifier() -> Notifier:
    return build_notifier(get_settings())


def get_token_service(store: TokenStore = Depends(get_token_store)) -> TokenService:
    return TokenService(store)


def get_session_guard(
    tokens: TokenService = Depends(get_token_service),
    credentials: CredentialStore = Depends(get_credential_store),
) -> SessionGuard:
    return SessionGuard(tokens, credentials)


def get_auditor(request: Request, db: Session | None = Depends(get_store_db)):
    ip_address = request.client.host if request.client else None
    if db is None:
        return LogAuditor(ip_address)
    return DbAuditor(db, ip_address)


def get_auth_service(
    credentials: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
    notifier: Notifier = Depends(get_notifier),
    audit=Depends(get_auditor),
) -> AuthService:
    return AuthService(credentials, tokens, notifier, audit=audit)


@dataclass(frozen=True)
class CurrentSession:
    user: UserRecord
    jti: str
    token: str


def get_current_session(
    token: str | None = Depends(oauth2_scheme),
    guard: SessionGuard = Depends(get_session_guard),
) -> CurrentSession:
    user, jti = guard.authorize_session(token)
    return CurrentSession(user=user, jti=jti, token=token)


def get_current_user(session: CurrentSession = Depends(get_current_session)) -> UserRecord:
    return session.user
