from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.dependencies import require_management
from core.database import get_db
from services.reporting_service import ReportingService

router = APIRouter(prefix="/reports", tags=["reports"], dependencies=[Depends(require_management)])


@router.get("/dashboard-stats")
def dashboard_stats(db: Session = Depends(get_db)):
    """Headline counts, breakdowns and the latest reports for the management dashboard."""
    return {"data": ReportingService.dashboard_stats(db)}


@router.get("/by-customer")
def reports_by_customer(db: Session = Depends(get_db)):
    return {"data": ReportingService.by_customer(db)}


@router.get("/by-cause")
def reports_by_cause(db: Session = Depends(get_db)):
    return {"data": ReportingService.by_cause(db)}


@router.get("/by-severity")
def reports_by_severity(db: Session = Depends(get_db)):
    return {"data": ReportingService.by_severity(db)}


@router.get("/by-status")
def reports_by_status(db: Session = Depends(get_db)):
    return {"data": ReportingService.by_status(db)}


@router.get("/monthly-trend")
def monthly_trend(db: Session = Depends(get_db)):
    """Last twelve calendar months, oldest first."""
    return {"data": ReportingService.monthly_trend(db)}
