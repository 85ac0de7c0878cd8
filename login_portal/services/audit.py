import structlog
from sqlalchemy.orm import Session

from login_portal.core.security import utcnow
from login_portal.models.audit import AuditLog

logger = structlog.get_logger(__name__)


def audit_event(db: Session, action: str, resource: str, user_id: int | None = None, ip_address: str | None = None, details: str | None = None) -> None:
    entry = AuditLog(
        user_id=user_id,
        action=action,
        resource=resource,
        ip_address=ip_address,
        details=details,
        created_at=utcnow().replace(tzinfo=None),
    )
    db.add(entry)
    db.commit()


class DbAuditor:
    """Records auth events for one request into ``audit_logs``."""

    def __init__(self, db: Session, ip_address: str | None = None, resource: str = "auth"):
        self.db = db
        self.ip_address = ip_address
        self.resource = resource

    def __call__(self, action: str, user_id: int | None = None, details: str | None = None) -> None:
        audit_event(self.db, action, self.resource, user_id=user_id, ip_address=self.ip_address, details=details)


class LogAuditor:
    def __init__(self, ip_address: str | None = None):
        self.ip_address = ip_address

    def __call__(self, action: str, user_id: int | None = None, details: str | None = None) -> None:
        logger.info("audit", action=action, user_id=user_id, ip_address=self.ip_address, details=details)
