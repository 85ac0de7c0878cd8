import hashlib
import hmac
import re
import secrets
from datetime import datetime, timezone

from jose import jwt
from passlib.context import CryptContext

from login_portal.core.config import get_settings

pwd_context = CryptContext(schemes=["argon2", "bcrypt"], deprecated="auto")

# Same shape check the login form applies: something@something.tld, no whitespace.
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[^\w\s]).{8,128}$")

# Verified against when the email is unknown so both login failures cost the same.
_DUMMY_HASH = pwd_context.hash(secrets.token_urlsafe(16))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email.strip()))


def validate_password_strength(password: str) -> bool:
    return bool(PASSWORD_RE.match(password))


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def verify_and_update_password(plain_password: str, hashed_password: str) -> tuple[bool, str | None]:
    """Verify, returning a replacement hash when the stored one uses deprecated parameters."""
    return pwd_context.verify_and_update(plain_password, hashed_password)


def burn_password_check(plain_password: str) -> None:
    pwd_context.verify(plain_password, _DUMMY_HASH)


def token_hash(token: str, secret: str) -> str:
    # Stable HMAC hash for bearer secrets; store only this.
    return hmac.new(secret.encode("utf-8"), token.encode("utf-8"), hashlib.sha256).hexdigest()


def generate_reset_token() -> str:
    return secrets.token_urlsafe(48)


def create_session_jwt(subject: str, jti: str, issued_at: datetime, expires_at: datetime) -> str:
    settings = get_settings()
    payload = {
        "sub": subject,
        "typ": "session",
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": issued_at,
        "exp": expires_at,
        "jti": jti,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_session_jwt(token: str, verify_exp: bool = True) -> dict:
    settings = get_settings()
    return jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM],
        audience=settings.JWT_AUDIENCE,
        issuer=settings.JWT_ISSUER,
        options={"verify_exp": verify_exp},
    )


def new_token_id() -> str:
    return secrets.token_urlsafe(24)
