from login_portal.models.user import User
from login_portal.models.session import SessionToken
from login_portal.models.password_reset import PasswordResetToken
from login_portal.models.audit import AuditLog

__all__ = [
    "User",
    "SessionToken",
    "PasswordResetToken",
    "AuditLog",
]
