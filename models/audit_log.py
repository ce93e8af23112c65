from datetime import datetime
import json
import logging
import uuid

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.dialects.postgresql import UUID

from core.database import Base

log = logging.getLogger(__name__)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)  # type: ignore
    event_time = Column(DateTime(timezone=True), default=datetime.utcnow, index=True, nullable=False)  # type: ignore
    action = Column(String(64), index=True, nullable=False)  # type: ignore
    entity_type = Column(String(64), index=True, nullable=False)  # type: ignore
    entity_id = Column(String(64), index=True, nullable=True)  # type: ignore

    actor_id = Column(UUID(as_uuid=True), index=True, nullable=True)  # type: ignore
    actor_email = Column(String(255), index=True, nullable=True)  # type: ignore
    actor_role = Column(String(32), nullable=True)  # type: ignore

    ip_address = Column(String(64), nullable=True)  # type: ignore
    details_json = Column(Text, nullable=True)  # type: ignore

    @property
    def details(self) -> dict:
        raw_value = getattr(self, "details_json", None)
        if not raw_value:
            return {}
        try:
            payload = json.loads(str(raw_value))
        except ValueError:
            log.warning("Audit entry %s has unreadable details", self.id)
            return {}
        return payload if isinstance(payload, dict) else {}
