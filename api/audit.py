from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.dependencies import require_admin
from core.database import get_db
from schemas.audit_log import AuditLogListResponse
from services.audit_service import AuditService
from services.config_service import get_audit_log_max_limit

router = APIRouter(prefix="/admin/audit", tags=["audit"], dependencies=[Depends(require_admin)])


@router.get("/logs", response_model=AuditLogListResponse)
def list_audit_logs(
    db: Session = Depends(get_db),
    limit: int = Query(default=50, ge=1),
    offset: int = Query(default=0, ge=0),
    action: str | None = Query(default=None),
    entity_type: str | None = Query(default=None),
    entity_id: str | None = Query(default=None),
    actor_email: str | None = Query(default=None),
    from_time: datetime | None = Query(default=None),
    to_time: datetime | None = Query(default=None),
):
    bounded_limit = min(limit, get_audit_log_max_limit())
    total, logs = AuditService.list_logs(
        db,
        limit=bounded_limit,
        offset=offset,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_email=actor_email,
        from_time=from_time,
        to_time=to_time,
    )
    return {"total": total, "count": len(logs), "logs": logs}
