import os

from login_portal.core.config import get_settings
from login_portal.core.database import Base, SessionLocal, engine
from login_portal.core.errors import AuthError
from login_portal.models import audit, password_reset, session, user  # noqa: F401
from login_portal.services.audit import DbAuditor
from login_portal.services.auth import AuthService
from login_portal.services.notifier import build_notifier
from login_portal.services.tokens import TokenService
from login_portal.stores.sql import SqlCredentialStore, SqlTokenStore


def create_user(email: str, full_name: str, password: str) -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        credentials = SqlCredentialStore(db)
        auth = AuthService(
            credentials,
            TokenService(SqlTokenStore(db)),
            build_notifier(get_settings()),
            audit=DbAuditor(db, resource="bootstrap"),
        )
        try:
            created = auth.register(email, password, full_name)
        except AuthError as exc:
            print(f"User not created: {exc.message}")
            return
        print(f"Created user: {created.email}")
    finally:
        db.close()


if __name__ == "__main__":
    # Do not hardcode credentials in the repo. Use env vars for local bootstrap.
    email = os.getenv("BOOTSTRAP_USER_EMAIL")
    password = os.getenv("BOOTSTRAP_USER_PASSWORD")
    if email and password:
        create_user(email, os.getenv("BOOTSTRAP_USER_NAME", "Portal Admin"), password)
    else:
        print("Bootstrap skipped. Set BOOTSTRAP_USER_EMAIL and BOOTSTRAP_USER_PASSWORD to create a user.")
