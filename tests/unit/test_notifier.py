"""
Notifier selection and SMTP delivery with smtplib mocked out.
"""
from unittest.mock import MagicMock, patch

import pytest

from login_portal.core.config import get_settings
from login_portal.services.notifier import CeleryNotifier, LogNotifier, Notifier, SmtpNotifier, build_notifier


@pytest.mark.unit
@pytest.mark.parametrize(
    "backend, expected",
    [("smtp", SmtpNotifier), ("celery", CeleryNotifier), ("log", LogNotifier)],
)
def test_build_notifier(monkeypatch, backend, expected):
    settings = get_settings()
    monkeypatch.setattr(settings, "NOTIFIER_BACKEND", backend)

    notifier = build_notifier(settings)

    assert isinstance(notifier, expected)
    assert isinstance(notifier, Notifier)


@pytest.mark.unit
def test_smtp_notifier_sends_reset_link(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr(settings, "SMTP_USERNAME", "mailer")
    monkeypatch.setattr(settings, "SMTP_PASSWORD", "secret")

    with patch("login_portal.services.email.smtplib.SMTP") as smtp_cls:
        server = MagicMock()
        smtp_cls.return_value.__enter__.return_value = server

        SmtpNotifier().send_password_reset("user@example.com", "tok", "http://localhost:4200/reset-password?token=tok")

    server.starttls.assert_called_once()
    server.login.assert_called_once_with("mailer", "secret")
    message = server.send_message.call_args.args[0]
    assert message["To"] == "user@example.com"
    assert "reset-password?token=tok" in message.get_content()


@pytest.mark.unit
def test_smtp_notifier_unconfigured_raises(monkeypatch):
    monkeypatch.setattr(get_settings(), "SMTP_HOST", "")

    with pytest.raises(RuntimeError):
        SmtpNotifier().send_password_reset("user@example.com", "tok", "http://x/reset")


@pytest.mark.unit
def test_celery_notifier_queues_delivery():
    with patch("login_portal.workers.tasks.send_password_reset_email") as task:
        CeleryNotifier().send_password_reset("user@example.com", "tok", "http://x/reset?token=tok")

    task.delay.assert_called_once_with("user@example.com", "http://x/reset?token=tok")
