from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AuditLogResponse(BaseModel):
    id: UUID
    event_time: datetime
    action: str
    entity_type: str
    entity_id: str | None
    actor_id: UUID | None
    actor_email: str | None
    actor_role: str | None
    ip_address: str | None
    details: dict[str, Any] = {}

    model_config = ConfigDict(from_attributes=True)


class AuditLogListResponse(BaseModel):
    total: int
    count: int
    logs: list[AuditLogResponse]
