"""
Reporting service for management dashboards and spreadsheet exports.

Every figure covers all reports, archived ones included; the CSV export uses
the same filters as the damage report list.
"""
import csv
import io
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from models.customer import Customer
from models.damage_report import DamageReport, DamageStatus
from models.user import User
from schemas.damage_report import DamageReportResponse
from services.audit_service import AuditService
from services.damage_report_service import DamageReportService

log = logging.getLogger(__name__)

TOP_GROUPS = 10
RECENT_REPORTS = 10
TREND_MONTHS = 12

CSV_HEADERS = [
    "Reference #",
    "Date of Damage",
    "Customer Code",
    "Customer Name",
    "Product SKU",
    "Product Name",
    "Quantity",
    "Severity",
    "Cause",
    "Description",
    "Status",
    "Reporter",
    "Estimated Loss",
    "Date Reported",
    "Date Resolved",
]


def _money(value: Optional[Decimal]) -> Optional[float]:
    if value is None:
        return None
    return round(float(value), 2)


def _label(value: Optional[Enum]) -> str:
    if value is None:
        return ""
    return value.value.replace("_", " ").title()


def _month_start(year: int, month: int, offset: int) -> datetime:
    """First day of the month ``offset`` months away from year/month."""
    index = year * 12 + (month - 1) + offset
    return datetime(index // 12, index % 12 + 1, 1)


def _grouped(db: Session, column, limit: Optional[int] = None) -> list[dict]:
    """Count and loss total per distinct value of one report column, largest groups first."""
    count = func.count(DamageReport.id)
    query = (
        db.query(column, count, func.sum(DamageReport.estimated_loss))
        .group_by(column)
        .order_by(count.desc(), column)
    )
    if limit is not None:
        query = query.limit(limit)
    return [
        {"key": key, "count": total, "total_loss": _money(loss)}
        for key, total, loss in query.all()
    ]


class ReportingService:
    @staticmethod
    def by_status(db: Session) -> list[dict]:
        return [
            {"status": row["key"].value, "count": row["count"], "total_loss": row["total_loss"]}
            for row in _grouped(db, DamageReport.status)
        ]

    @staticmethod
    def by_cause(db: Session, limit: Optional[int] = None) -> list[dict]:
        return [
            {"cause": row["key"].value, "count": row["count"], "total_loss": row["total_loss"]}
            for row in _grouped(db, DamageReport.cause, limit)
        ]

    @staticmethod
    def by_severity(db: Session) -> list[dict]:
        # Severity is optional; unrated reports group under None
        return [
            {
                "severity": row["key"].value if row["key"] is not None else None,
                "count": row["count"],
                "total_loss": row["total_loss"],
            }
            for row in _grouped(db, DamageReport.severity)
        ]

    @staticmethod
    def by_customer(db: Session, limit: Optional[int] = None) -> list[dict]:
        count = func.count(DamageReport.id)
        query = (
            db.query(
                Customer.id,
                Customer.name,
                Customer.code,
                Customer.is_active,
                count.label("count"),
                func.sum(DamageReport.estimated_loss).label("total_loss"),
            )
            .join(DamageReport, DamageReport.customer_id == Customer.id)
            .group_by(Customer.id, Customer.name, Customer.code, Customer.is_active)
            .order_by(count.desc(), Customer.name)
        )
        if limit is not None:
            query = query.limit(limit)

        return [
            {
                "customer_id": str(row.id),
                "customer": {"id": str(row.id), "name": row.name, "code": row.code, "is_active": row.is_active},
                "count": row.count,
                "total_loss": _money(row.total_loss),
            }
            for row in query.all()
        ]

    @staticmethod
    def monthly_trend(db: Session, now: Optional[datetime] = None) -> list[dict]:
        """Report count and loss per calendar month, oldest first, current month last."""
        now = now or datetime.utcnow()
        months = [
            _month_start(now.year, now.month, offset)
            for offset in range(-(TREND_MONTHS - 1), 1)
        ]
        buckets: dict[str, dict[str, Any]] = {
            start.strftime("%Y-%m"): {"month": start.strftime("%Y-%m"), "count": 0, "total_loss": 0.0}
            for start in months
        }
        end = _month_start(now.year, now.month, 1)

        rows = (
            db.query(DamageReport.date_reported, DamageReport.estimated_loss)
            .filter(DamageReport.date_reported >= months[0], DamageReport.date_reported < end)
            .all()
        )
        for date_reported, loss in rows:
            bucket = buckets.get(date_reported.strftime("%Y-%m"))
            if bucket is None:
                continue
            bucket["count"] += 1
            if loss is not None:
                bucket["total_loss"] = round(bucket["total_loss"] + float(loss), 2)
        return list(buckets.values())

    @staticmethod
    def dashboard_stats(db: Session, now: Optional[datetime] = None) -> dict:
        now = now or datetime.utcnow()
        today_start = datetime(now.year, now.month, now.day)
        week_start = today_start - timedelta(days=today_start.weekday())
        month_start = datetime(now.year, now.month, 1)

        def reported_since(start: datetime) -> int:
            return db.query(DamageReport).filter(DamageReport.date_reported >= start).count()

        open_count, open_loss = (
            db.query(func.count(DamageReport.id), func.sum(DamageReport.estimated_loss))
            .filter(DamageReport.status != DamageStatus.CLOSED)
            .one()
        )
        recent = (
            db.query(DamageReport)
            .options(joinedload(DamageReport.customer), joinedload(DamageReport.product))
            .order_by(DamageReport.date_reported.desc())
            .limit(RECENT_REPORTS)
            .all()
        )

        return {
            "counts": {
                "today": reported_since(today_start),
                "this_week": reported_since(week_start),
                "this_month": reported_since(month_start),
            },
            "by_status": ReportingService.by_status(db),
            "by_cause": ReportingService.by_cause(db, limit=TOP_GROUPS),
            "by_customer": ReportingService.by_customer(db, limit=TOP_GROUPS),
            "recent_damages": [
                DamageReportResponse.model_validate(report).model_dump(mode="json") for report in recent
            ],
            "open_reports": {
                "count": open_count,
                "total_estimated_loss": _money(open_loss) or 0.0,
            },
        }

    @staticmethod
    def export_csv(
        db: Session,
        actor: User,
        filters: dict[str, Any],
        ip_address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> tuple[str, str]:
        """Render the filtered reports as CSV; returns (filename, csv text)."""
        now = now or datetime.utcnow()
        reports = (
            DamageReportService.filter_reports(db, **filters)
            .options(
                joinedload(DamageReport.customer),
                joinedload(DamageReport.product),
                joinedload(DamageReport.reporter),
            )
            .order_by(DamageReport.date_reported.desc())
            .all()
        )

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for report in reports:
            cause = _label(report.cause)
            if report.cause_other:
                cause = f"{cause} ({report.cause_other})"
            loss = _money(report.estimated_loss)
            writer.writerow([
                report.reference_number,
                report.date_of_damage.strftime("%Y-%m-%d"),
                report.customer.code,
                report.customer.name,
                report.product.sku,
                report.product.name,
                report.quantity,
                _label(report.severity),
                cause,
                report.description,
                _label(report.status),
                report.reporter.full_name if report.reporter else "",
                f"{loss:.2f}" if loss is not None else "",
                report.date_reported.strftime("%Y-%m-%d %H:%M:%S"),
                report.date_resolved.strftime("%Y-%m-%d") if report.date_resolved else "",
            ])

        applied = {
            key: value.value if isinstance(value, Enum) else value
            for key, value in filters.items()
            if value is not None
        }
        AuditService.record(
            db,
            action=AuditService.CSV_EXPORT,
            entity_type="DamageReport",
            actor=actor,
            details={"filters": applied, "row_count": len(reports)},
            ip_address=ip_address,
        )
        log.info("CSV export of %s damage reports by %s", len(reports), actor.email)

        filename = f"damage-reports-{now.strftime('%Y%m%d-%H%M')}.csv"
        return filename, buffer.getvalue()
