import structlog

from login_portal.core.config import get_settings
from login_portal.core.database import SessionLocal
from login_portal.services.email import password_reset_body, send_email
from login_portal.services.tokens import TokenService
from login_portal.stores.sql import SqlTokenStore
from login_portal.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


@celery_app.task(bind=True, max_retries=3, default_retry_delay=30)
def send_password_reset_email(self, recipient: str, reset_url: str) -> dict:
    settings = get_settings()
    body = password_reset_body(reset_url, settings.PASSWORD_RESET_TOKEN_TTL_MINUTES)
    try:
        send_email(recipient, "Reset your password", body)
    except Exception as exc:
        logger.error("password_reset_email_failed", error=type(exc).__name__, attempt=self.request.retries)
        raise self.retry(exc=exc)
    return {"status": "sent"}


@celery_app.task
def purge_expired_tokens() -> dict:
    db = SessionLocal()
    try:
        purged = TokenService(SqlTokenStore(db)).purge_expired()
        return {"purged": purged}
    finally:
        db.close()
