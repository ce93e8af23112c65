import logging
import uuid
from datetime import datetime
from typing import Optional, Union, cast

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from core.exceptions import (
    BatchRequestError,
    InvalidTransitionError,
    NotFoundError,
    ReferenceExhaustedError,
)
from models.customer import Customer
from models.damage_report import DamageCause, DamageReport, DamageStatus, StatusHistory
from models.product import Product
from models.user import User
from models.warehouse_location import WarehouseLocation
from schemas.damage_report import DamageReportCreate, DamageReportUpdate
from services.audit_service import AuditService
from services.batch_service import BatchResult, SkippedItem, run_batch
from services.config_service import REFERENCE_MAX_ATTEMPTS, get_bulk_max_items
from services.notification_service import NotificationService
from services.reference_service import generate_reference_number

log = logging.getLogger(__name__)

ENTITY = "DamageReport"


def parse_report_id(raw_id: Union[str, uuid.UUID]) -> uuid.UUID:
    if isinstance(raw_id, uuid.UUID):
        return raw_id
    try:
        return uuid.UUID(str(raw_id).strip())
    except ValueError:
        raise NotFoundError("Damage report")


def actor_name(actor: User) -> str:
    return getattr(actor, "full_name", None) or str(getattr(actor, "username", ""))


class DamageReportService:
    @staticmethod
    def get_report(report_id: uuid.UUID, db: Session) -> DamageReport:
        report = db.get(DamageReport, report_id)
        if not report:
            raise NotFoundError("Damage report")
        return report

    @staticmethod
    def filter_reports(
        db: Session,
        *,
        status: Optional[DamageStatus] = None,
        severity=None,
        cause: Optional[DamageCause] = None,
        customer_id: Optional[uuid.UUID] = None,
        reported_by: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        include_archived: bool = False,
    ) -> Query:
        query = db.query(DamageReport)

        if not include_archived:
            query = query.filter(DamageReport.is_archived.is_(False))
        if status is not None:
            query = query.filter(DamageReport.status == status)
        if severity is not None:
            query = query.filter(DamageReport.severity == severity)
        if cause is not None:
            query = query.filter(DamageReport.cause == cause)
        if customer_id is not None:
            query = query.filter(DamageReport.customer_id == customer_id)
        if reported_by is not None:
            query = query.filter(DamageReport.reported_by == reported_by)
        if date_from is not None:
            query = query.filter(DamageReport.date_of_damage >= date_from)
        if date_to is not None:
            query = query.filter(DamageReport.date_of_damage <= date_to)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.join(DamageReport.customer).join(DamageReport.product).filter(or_(
                DamageReport.reference_number.ilike(pattern),
                DamageReport.description.ilike(pattern),
                Customer.name.ilike(pattern),
                Product.name.ilike(pattern),
                Product.sku.ilike(pattern),
            ))

        return query

    @staticmethod
    def list_reports(db: Session, *, limit: int, offset: int, **filters) -> tuple[int, list[DamageReport]]:
        query = DamageReportService.filter_reports(db, **filters)
        total = query.count()
        reports = query.order_by(DamageReport.date_reported.desc()).offset(offset).limit(limit).all()
        return total, reports

    @staticmethod
    def _check_references(
        db: Session,
        customer_id: uuid.UUID,
        product_id: uuid.UUID,
        warehouse_location_id: Optional[uuid.UUID],
    ) -> None:
        customer = db.get(Customer, customer_id)
        if not customer:
            raise NotFoundError("Customer")
        product = db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product")
        if product.customer_id != customer.id:
            raise HTTPException(status_code=400, detail="Product does not belong to the selected customer")
        if warehouse_location_id is not None and not db.get(WarehouseLocation, warehouse_location_id):
            raise NotFoundError("Warehouse location")

    @staticmethod
    def create_report(
        payload: DamageReportCreate,
        actor: User,
        db: Session,
        ip_address: Optional[str] = None,
    ) -> DamageReport:
        """Create an OPEN report with a fresh reference number and its first history row."""
        DamageReportService._check_references(
            db, payload.customer_id, payload.product_id, payload.warehouse_location_id
        )

        for attempt in range(1, REFERENCE_MAX_ATTEMPTS + 1):
            now = datetime.utcnow()
            reference = generate_reference_number(db, now)
            report = DamageReport(
                reference_number=reference,
                customer_id=payload.customer_id,
                product_id=payload.product_id,
                warehouse_location_id=payload.warehouse_location_id,
                quantity=payload.quantity,
                severity=payload.severity,
                cause=payload.cause,
                cause_other=(payload.cause_other or "").strip() or None,
                description=payload.description.strip(),
                estimated_loss=payload.estimated_loss,
                status=DamageStatus.OPEN,
                date_of_damage=payload.date_of_damage,
                date_reported=now,
                reported_by=actor.id,
                updated_at=now,
            )
            report.status_history.append(StatusHistory(
                from_status=None,
                to_status=DamageStatus.OPEN,
                changed_by=actor.id,
                changed_by_name=actor_name(actor),
                note="Damage report created",
                created_at=now,
            ))
            db.add(report)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                log.warning(
                    "Reference number %s already taken (attempt %s/%s)",
                    reference, attempt, REFERENCE_MAX_ATTEMPTS,
                )
                continue

            db.refresh(report)
            AuditService.record(
                db,
                action=AuditService.CREATE,
                entity_type=ENTITY,
                entity_id=report.id,
                actor=actor,
                details={"reference_number": reference},
                ip_address=ip_address,
            )
            return report

        log.error("Could not allocate a damage reference number after %s attempts", REFERENCE_MAX_ATTEMPTS)
        raise ReferenceExhaustedError()

    @staticmethod
    def update_report(
        report_id: uuid.UUID,
        payload: DamageReportUpdate,
        actor: User,
        db: Session,
        ip_address: Optional[str] = None,
    ) -> DamageReport:
        report = DamageReportService.get_report(report_id, db)
        if report.is_archived:
            raise HTTPException(status_code=400, detail="Archived reports cannot be modified")

        changes = payload.model_dump(exclude_unset=True)
        if {"customer_id", "product_id", "warehouse_location_id"} & changes.keys():
            DamageReportService._check_references(
                db,
                changes.get("customer_id") or report.customer_id,
                changes.get("product_id") or report.product_id,
                changes.get("warehouse_location_id"),
            )

        cause = changes.get("cause", report.cause)
        cause_other = changes.get("cause_other", report.cause_other)
        if cause == DamageCause.OTHER and not (cause_other or "").strip():
            raise HTTPException(status_code=400, detail="cause_other is required when cause is OTHER")

        for field, value in changes.items():
            if isinstance(value, str):
                value = value.strip()
            setattr(report, field, value)
        report.updated_at = datetime.utcnow()  # type: ignore[assignment]

        db.commit()
        db.refresh(report)
        AuditService.record(
            db,
            action=AuditService.UPDATE,
            entity_type=ENTITY,
            entity_id=report.id,
            actor=actor,
            details={"reference_number": report.reference_number, "updated_fields": sorted(changes)},
            ip_address=ip_address,
        )
        return report

    @staticmethod
    def list_history(report_id: uuid.UUID, db: Session) -> list[StatusHistory]:
        DamageReportService.get_report(report_id, db)
        return (
            db.query(StatusHistory)
            .filter(StatusHistory.report_id == report_id)
            .order_by(StatusHistory.created_at.asc())
            .all()
        )

    @staticmethod
    def change_status(
        report_id: uuid.UUID,
        target_status: DamageStatus,
        actor: User,
        db: Session,
        note: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> DamageReport:
        """
        Move a report along one edge of the status map.

        The status update and its history row commit together. The audit entry
        and the notification follow the commit and cannot undo it.
        """
        report = DamageReportService.get_report(report_id, db)
        current_status = cast(DamageStatus, report.status)

        if not report.can_transition_to(target_status):
            raise InvalidTransitionError(current_status.value, target_status.value)

        now = datetime.utcnow()
        note = (note or "").strip() or None
        report.status = target_status  # type: ignore[assignment]
        report.updated_at = now  # type: ignore[assignment]
        if target_status == DamageStatus.CLOSED:
            report.date_resolved = now  # type: ignore[assignment]
            report.reviewed_by = actor.id  # type: ignore[assignment]

        db.add(StatusHistory(
            report_id=report.id,
            from_status=current_status,
            to_status=target_status,
            changed_by=actor.id,
            changed_by_name=actor_name(actor),
            note=note,
            created_at=now,
        ))
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        db.refresh(report)

        AuditService.record(
            db,
            action=AuditService.STATUS_CHANGE,
            entity_type=ENTITY,
            entity_id=report.id,
            actor=actor,
            details={
                "reference_number": report.reference_number,
                "from_status": current_status.value,
                "new_status": target_status.value,
                "note": note,
            },
            ip_address=ip_address,
        )
        NotificationService.notify_status_change(report, actor, db, note=note)
        return report

    @staticmethod
    def validate_batch_ids(ids: list[str]) -> None:
        """Reject the whole request before any item runs."""
        max_items = get_bulk_max_items()
        if not ids:
            raise BatchRequestError("ids must contain at least one report id")
        if len(ids) > max_items:
            raise BatchRequestError(f"ids may contain at most {max_items} report ids")

    @staticmethod
    def bulk_change_status(
        ids: list[str],
        target_status: DamageStatus,
        actor: User,
        db: Session,
        note: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> BatchResult[DamageReport]:
        DamageReportService.validate_batch_ids(ids)

        def apply(raw_id: str) -> DamageReport:
            return DamageReportService.change_status(
                parse_report_id(raw_id), target_status, actor, db, note=note, ip_address=ip_address
            )

        return run_batch(ids, apply, rollback=db.rollback, label="bulk status change")

    @staticmethod
    def bulk_archive(
        ids: list[str],
        actor: User,
        db: Session,
        ip_address: Optional[str] = None,
    ) -> BatchResult[DamageReport]:
        """
        Archive CLOSED reports.

        Eligibility is decided per id first; the eligible reports are then
        flagged with a single UPDATE. Only the rows that UPDATE actually flagged
        count as archived and get an audit entry. An eligible report that another
        request archived in the meantime is skipped as already archived.
        """
        DamageReportService.validate_batch_ids(ids)
        seen: set[uuid.UUID] = set()

        def check_eligible(item: tuple[int, str]) -> tuple[int, DamageReport]:
            position, raw_id = item
            report_id = parse_report_id(raw_id)
            if report_id in seen:
                raise ValueError("Duplicate id in request")
            report = DamageReportService.get_report(report_id, db)
            if report.is_archived:
                raise ValueError("Already archived")
            if report.status != DamageStatus.CLOSED:
                raise ValueError("Report is not closed")
            seen.add(report_id)
            return position, report

        checked = run_batch(
            list(enumerate(ids)),
            check_eligible,
            identify=lambda index, item: item[1],
            label="bulk archive eligibility",
        )
        result: BatchResult[DamageReport] = BatchResult(
            succeeded=[report for _, report in checked.succeeded],
            skipped=checked.skipped,
        )
        if not checked.succeeded:
            return result

        now = datetime.utcnow()
        eligible_ids = [report.id for _, report in checked.succeeded]
        try:
            db.query(DamageReport).filter(
                DamageReport.id.in_(eligible_ids),
                DamageReport.status == DamageStatus.CLOSED,
                DamageReport.is_archived.is_(False),
            ).update(
                {DamageReport.is_archived: True, DamageReport.archived_at: now},
                synchronize_session=False,
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        flagged = {
            row.id
            for row in db.query(DamageReport.id).filter(
                DamageReport.id.in_(eligible_ids),
                DamageReport.archived_at == now,
            )
        }
        if len(flagged) != len(eligible_ids):
            log.warning("Bulk archive flagged %s of %s eligible reports", len(flagged), len(eligible_ids))

            # The eligibility skips fill the remaining positions, already in input order
            eligible_positions = {position for position, _ in checked.succeeded}
            skipped_at = dict(zip(
                (position for position in range(len(ids)) if position not in eligible_positions),
                checked.skipped,
            ))
            for position, report in checked.succeeded:
                if report.id not in flagged:
                    skipped_at[position] = SkippedItem(identifier=ids[position], reason="Already archived")
            result = BatchResult(
                succeeded=[report for _, report in checked.succeeded if report.id in flagged],
                skipped=[skipped_at[position] for position in sorted(skipped_at)],
            )

        for report in result.succeeded:
            AuditService.record(
                db,
                action=AuditService.ARCHIVE,
                entity_type=ENTITY,
                entity_id=report.id,
                actor=actor,
                details={"reference_number": report.reference_number},
                ip_address=ip_address,
            )
        return result
