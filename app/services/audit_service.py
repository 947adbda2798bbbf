"""
Audit trail for attendance and office-settings changes.

Entries are written after the business transaction commits, in their own
commit, so an audit failure never undoes a punch.
"""
import logging
from typing import Any, Dict, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog
from app.utils.datetime_utils import now_utc
from app.utils.json_serializer import sanitize_for_json

_log = logging.getLogger(__name__)


def log_audit(
    db: Session,
    actor_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Insert and commit one audit row.

    actor_id is None for system jobs (heartbeat sweep). meta is made JSON-safe
    (datetimes, dates, enums, pydantic models) before it is stored.
    """
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=sanitize_for_json(meta) if meta is not None else None,
        # set explicitly: SQLite server_default returns naive strings
        created_at=now_utc(),
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def try_log_audit(db: Session, **kwargs: Any) -> Optional[AuditLog]:
    """log_audit for use after the main transaction has committed: a failure is logged, not raised."""
    try:
        return log_audit(db, **kwargs)
    except SQLAlchemyError:
        db.rollback()
        _log.warning(
            "audit log write failed: action=%s entity_id=%s",
            kwargs.get("action"), kwargs.get("entity_id"), exc_info=True,
        )
        return None
