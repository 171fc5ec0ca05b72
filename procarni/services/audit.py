from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from procarni.core.logging_config import logger
from procarni.models import AuditLogEntry


def record_audit(db: Session, action: str, user_id: Optional[str], **details: Any) -> None:
    """Append an audit row. A failing audit write is logged, it never fails the request."""
    try:
        db.add(AuditLogEntry(action=action, user_id=user_id, details=details))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.bind(action=action, user_id=user_id).warning("audit_write_failed", error=str(exc))
