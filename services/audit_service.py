from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.audit_log import AuditLog
from models.user import User

log = logging.getLogger(__name__)


class AuditService:
    # Action verbs written by this service
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    STATUS_CHANGE = "STATUS_CHANGE"
    ARCHIVE = "ARCHIVE"
    CREATE_USER = "CREATE_USER"
    UPDATE_USER = "UPDATE_USER"
    UPSERT = "UPSERT"
    CSV_EXPORT = "CSV_EXPORT"

    @staticmethod
    def create_log(
        db: Session,
        *,
        action: str,
        entity_type: str,
        entity_id: Any = None,
        actor: User | None = None,
        details: dict | None = None,
        ip_address: str | None = None,
    ) -> AuditLog:
        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            actor_id=getattr(actor, "id", None),
            actor_email=getattr(actor, "email", None),
            actor_role=getattr(actor, "role", None),
            ip_address=ip_address,
            details_json=json.dumps(details or {}, default=str),
        )

        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    @staticmethod
    def record(db: Session, **kwargs: Any) -> AuditLog | None:
        """Write an audit entry after a committed mutation.

        A failure here is logged and dropped; the mutation it describes stays committed.
        """
        try:
            return AuditService.create_log(db, **kwargs)
        except SQLAlchemyError as exc:
            db.rollback()
            log.error(
                "Audit entry %s on %s %s was not written: %s",
                kwargs.get("action"),
                kwargs.get("entity_type"),
                kwargs.get("entity_id"),
                exc,
                exc_info=True,
            )
            return None

    @staticmethod
    def list_logs(
        db: Session,
        *,
        limit: int,
        offset: int,
        action: str | None = None,
        entity_type: str | None = None,
        entity_id: str | None = None,
        actor_email: str | None = None,
        from_time: datetime | None = None,
        to_time: datetime | None = None,
    ) -> tuple[int, list[AuditLog]]:
        query = db.query(AuditLog)

        if action:
            query = query.filter(AuditLog.action == action.strip().upper())
        if entity_type:
            query = query.filter(AuditLog.entity_type.ilike(entity_type.strip()))
        if entity_id:
            query = query.filter(AuditLog.entity_id == entity_id.strip())
        if actor_email:
            query = query.filter(AuditLog.actor_email.ilike(f"%{actor_email.strip()}%"))
        if from_time is not None:
            query = query.filter(AuditLog.event_time >= from_time)
        if to_time is not None:
            query = query.filter(AuditLog.event_time <= to_time)

        total = query.count()
        logs = query.order_by(AuditLog.event_time.desc()).offset(offset).limit(limit).all()
        return total, logs


__all__ = ["AuditService"]
