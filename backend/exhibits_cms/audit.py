from datetime import datetime

from sqlalchemy.orm import Session

from . import models


def log_action(
    db: Session,
    user_id: int | None,
    action: str,
    target_type: str | None = None,
    target_id: str | None = None,
    details: dict | None = None,
) -> models.AuditLog:
    """Stage an audit row; it commits with the operation it describes."""

    log = models.AuditLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=details or {},
        created_at=models.utcnow(),
    )
    db.add(log)
    return log


def history(
    db: Session,
    target_type: str,
    target_id: str,
    *,
    since: datetime | None = None,
) -> list[models.AuditLog]:
    query = db.query(models.AuditLog).filter(
        models.AuditLog.target_type == target_type,
        models.AuditLog.target_id == target_id,
    )
    if since:
        query = query.filter(models.AuditLog.created_at >= since)
    return query.order_by(models.AuditLog.id).all()
