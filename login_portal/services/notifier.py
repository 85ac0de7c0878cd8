from typing import Protocol, runtime_checkable

import structlog

from login_portal.core.config import Settings, get_settings
from login_portal.services.email import password_reset_body, send_email

logger = structlog.get_logger(__name__)


@runtime_checkable
class Notifier(Protocol):
    def send_password_reset(self, recipient: str, reset_token: str, reset_url: str) -> None:
        ...


class SmtpNotifier:
    def send_password_reset(self, recipient: str, reset_token: str, reset_url: str) -> None:
        body = password_reset_body(reset_url, get_settings().PASSWORD_RESET_TOKEN_TTL_MINUTES)
        send_email(recipient, "Reset your password", body)


class CeleryNotifier:
    """Hands delivery to a worker; only broker failures surface here."""

    def send_password_reset(self, recipient: str, reset_token: str, reset_url: str) -> None:
        from login_portal.workers.tasks import send_password_reset_email

        send_password_reset_email.delay(recipient, reset_url)


class LogNotifier:
    def send_password_reset(self, recipient: str, reset_token: str, reset_url: str) -> None:
        # Development only: the link is never logged, just the fact that one was produced.
        logger.info("password_reset_notification_skipped", recipient_domain=recipient.rpartition("@")[2])


def build_notifier(settings: Settings) -> Notifier:
    if settings.NOTIFIER_BACKEND == "celery":
        return CeleryNotifier()
    if settings.NOTIFIER_BACKEND == "log":
        return LogNotifier()
    return SmtpNotifier()
