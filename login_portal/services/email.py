import smtplib
from email.message import EmailMessage

from login_portal.core.config import get_settings


def send_email(to_email: str, subject: str, body: str) -> None:
    settings = get_settings()
    if not settings.SMTP_HOST:
        raise RuntimeError("SMTP is not configured")

    msg = EmailMessage()
    msg["From"] = settings.SMTP_FROM_EMAIL
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=20) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)


def password_reset_body(reset_url: str, ttl_minutes: int) -> str:
    return (
        "You requested a password reset.\n\n"
        f"Reset link (expires in {ttl_minutes} minutes):\n{reset_url}\n\n"
        "If you did not request this, you can ignore this email."
    )
