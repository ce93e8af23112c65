from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from models.damage_report import DamageReport

REFERENCE_PREFIX = "DMG"


def format_reference_number(day: datetime, sequence: int) -> str:
    return f"{REFERENCE_PREFIX}-{day.strftime('%Y%m%d')}-{sequence:04d}"


def count_reports_on_day(db: Session, day: datetime) -> int:
    start = datetime(day.year, day.month, day.day)
    end = start + timedelta(days=1)
    return db.query(DamageReport).filter(
        DamageReport.date_reported >= start,
        DamageReport.date_reported < end,
    ).count()


def generate_reference_number(db: Session, at_time: Optional[datetime] = None) -> str:
    """
    Next DMG-YYYYMMDD-NNNN for the UTC day of ``at_time``.

    The sequence is today's report count plus one. Two concurrent creators can
    get the same value; the unique constraint on reference_number catches that
    and the caller retries with a fresh count.
    """
    day = at_time or datetime.utcnow()
    return format_reference_number(day, count_reports_on_day(db, day) + 1)
