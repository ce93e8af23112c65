from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from api.dependencies import require_management
from core.database import get_db
from core.security import get_client_ip
from models.damage_report import DamageCause, DamageSeverity, DamageStatus
from models.user import User
from services.reporting_service import ReportingService

router = APIRouter(prefix="/export", tags=["export"])


@router.get("/csv")
def export_damage_reports_csv(
    request: Request,
    status: Optional[DamageStatus] = Query(default=None),
    severity: Optional[DamageSeverity] = Query(default=None),
    cause: Optional[DamageCause] = Query(default=None),
    customer_id: Optional[UUID] = Query(default=None),
    reported_by: Optional[UUID] = Query(default=None),
    search: Optional[str] = Query(default=None),
    date_from: Optional[datetime] = Query(default=None),
    date_to: Optional[datetime] = Query(default=None),
    include_archived: bool = Query(default=False),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_management)
):
    """Download the damage reports matching the list filters as a CSV file."""
    filters = {
        "status": status,
        "severity": severity,
        "cause": cause,
        "customer_id": customer_id,
        "reported_by": reported_by,
        "search": search,
        "date_from": date_from,
        "date_to": date_to,
        "include_archived": include_archived,
    }
    filename, content = ReportingService.export_csv(db, current_user, filters, get_client_ip(request))
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache",
        },
    )
