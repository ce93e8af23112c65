from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from api.dependencies import require_management
from core.database import get_db
from core.security import get_client_ip, get_current_user
from models.damage_report import DamageCause, DamageSeverity, DamageStatus
from models.user import User
from schemas.batch import BulkArchiveResponse, BulkStatusResponse
from schemas.damage_report import (
    BulkArchiveRequest,
    BulkStatusRequest,
    DamageReportCreate,
    DamageReportListResponse,
    DamageReportResponse,
    DamageReportUpdate,
    StatusChangeRequest,
    StatusHistoryResponse,
)
from services.batch_service import SkippedItem
from services.damage_report_service import DamageReportService

router = APIRouter(prefix="/damage-reports", tags=["damage-reports"])


def _skipped(items: list[SkippedItem]) -> list[dict]:
    return [{"id": str(item.identifier), "reason": item.reason} for item in items]


@router.get("/", response_model=DamageReportListResponse)
def list_damage_reports(
    limit: int = Query(default=25, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
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
    current_user: User = Depends(get_current_user)
):
    total, reports = DamageReportService.list_reports(
        db,
        limit=limit,
        offset=offset,
        status=status,
        severity=severity,
        cause=cause,
        customer_id=customer_id,
        reported_by=reported_by,
        search=search,
        date_from=date_from,
        date_to=date_to,
        include_archived=include_archived,
    )
    return {"total": total, "count": len(reports), "reports": reports}


@router.post("/", response_model=DamageReportResponse, status_code=201)
def create_damage_report(
    payload: DamageReportCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return DamageReportService.create_report(payload, current_user, db, get_client_ip(request))


@router.post("/bulk-status", response_model=BulkStatusResponse)
def bulk_change_status(
    payload: BulkStatusRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_management)
):
    """Apply one target status to many reports; invalid moves are skipped, not fatal."""
    result = DamageReportService.bulk_change_status(
        payload.ids, payload.status, current_user, db, note=payload.note, ip_address=get_client_ip(request)
    )
    return {"data": {"updated": result.succeeded_count, "skipped": _skipped(result.skipped)}}


@router.post("/bulk-archive", response_model=BulkArchiveResponse)
def bulk_archive(
    payload: BulkArchiveRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_management)
):
    """Archive CLOSED reports; anything else is skipped with a reason."""
    result = DamageReportService.bulk_archive(payload.ids, current_user, db, ip_address=get_client_ip(request))
    return {"data": {"archived": result.succeeded_count, "skipped": _skipped(result.skipped)}}


@router.get("/{report_id}", response_model=DamageReportResponse)
def get_damage_report(
    report_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return DamageReportService.get_report(report_id, db)


@router.put("/{report_id}", response_model=DamageReportResponse)
def update_damage_report(
    report_id: UUID,
    payload: DamageReportUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return DamageReportService.update_report(report_id, payload, current_user, db, get_client_ip(request))


@router.get("/{report_id}/history", response_model=list[StatusHistoryResponse])
def get_damage_report_history(
    report_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return DamageReportService.list_history(report_id, db)


@router.patch("/{report_id}/status", response_model=DamageReportResponse)
def change_damage_report_status(
    report_id: UUID,
    payload: StatusChangeRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return DamageReportService.change_status(
        report_id, payload.status, current_user, db, note=payload.note, ip_address=get_client_ip(request)
    )
