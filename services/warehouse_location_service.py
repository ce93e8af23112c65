import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError
from models.damage_report import DamageReport
from models.user import User
from models.warehouse_location import WarehouseLocation
from schemas.warehouse_location import WarehouseLocationCreate, WarehouseLocationUpdate
from services.audit_service import AuditService

ENTITY = "WarehouseLocation"
LOCATION_FIELDS = ("zone", "aisle", "rack", "shelf", "description")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class WarehouseLocationService:
    @staticmethod
    def get_location(location_id: uuid.UUID, db: Session) -> WarehouseLocation:
        location = db.get(WarehouseLocation, location_id)
        if not location:
            raise NotFoundError("Warehouse location")
        return location

    @staticmethod
    def find_by_code(code: str, db: Session) -> Optional[WarehouseLocation]:
        return db.query(WarehouseLocation).filter(WarehouseLocation.code == code.strip()).first()

    @staticmethod
    def list_locations(
        db: Session,
        *,
        search: Optional[str] = None,
        include_inactive: bool = False,
    ) -> list[WarehouseLocation]:
        query = db.query(WarehouseLocation)
        if not include_inactive:
            query = query.filter(WarehouseLocation.is_active.is_(True))
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                WarehouseLocation.code.ilike(pattern),
                WarehouseLocation.zone.ilike(pattern),
                WarehouseLocation.description.ilike(pattern),
            ))
        return query.order_by(WarehouseLocation.code).all()

    @staticmethod
    def create_location(
        payload: WarehouseLocationCreate,
        actor: User,
        db: Session,
        ip_address: Optional[str] = None,
    ) -> WarehouseLocation:
        code = payload.code.strip()
        if WarehouseLocationService.find_by_code(code, db):
            raise ConflictError(f"Warehouse location with code '{code}' already exists")

        location = WarehouseLocation(
            code=code,
            is_active=payload.is_active,
            **{field: _clean(getattr(payload, field)) for field in LOCATION_FIELDS},
        )
        db.add(location)
        db.commit()
        db.refresh(location)
        AuditService.record(
            db,
            action=AuditService.CREATE,
            entity_type=ENTITY,
            entity_id=location.id,
            actor=actor,
            details={"code": location.code},
            ip_address=ip_address,
        )
        return location

    @staticmethod
    def update_location(
        location_id: uuid.UUID,
        payload: WarehouseLocationUpdate,
        actor: User,
        db: Session,
        ip_address: Optional[str] = None,
    ) -> WarehouseLocation:
        location = WarehouseLocationService.get_location(location_id, db)
        changes = payload.model_dump(exclude_unset=True)

        if changes.get("code"):
            code = changes["code"].strip()
            existing = WarehouseLocationService.find_by_code(code, db)
            if existing and existing.id != location.id:
                raise ConflictError(f"Warehouse location with code '{code}' already exists")
            changes["code"] = code

        for field, value in changes.items():
            setattr(location, field, _clean(value) if field in LOCATION_FIELDS else value)

        db.commit()
        db.refresh(location)
        AuditService.record(
            db,
            action=AuditService.UPDATE,
            entity_type=ENTITY,
            entity_id=location.id,
            actor=actor,
            details={"code": location.code, "updated_fields": sorted(changes)},
            ip_address=ip_address,
        )
        return location

    @staticmethod
    def delete_location(
        location_id: uuid.UUID,
        actor: User,
        db: Session,
        ip_address: Optional[str] = None,
    ) -> None:
        location = WarehouseLocationService.get_location(location_id, db)
        usage = db.query(DamageReport).filter(DamageReport.warehouse_location_id == location.id).count()
        if usage > 0:
            raise ConflictError(
                f"Cannot delete: location is used by {usage} damage report(s). Deactivate it instead."
            )

        code = location.code
        db.delete(location)
        db.commit()
        AuditService.record(
            db,
            action=AuditService.DELETE,
            entity_type=ENTITY,
            entity_id=location_id,
            actor=actor,
            details={"code": code},
            ip_address=ip_address,
        )

    @staticmethod
    def upsert_by_code(
        values: dict,
        actor: User,
        db: Session,
        ip_address: Optional[str] = None,
    ) -> WarehouseLocation:
        """Create the location, or overwrite every field of the one with the same code."""
        code = values["code"]
        location = WarehouseLocationService.find_by_code(code, db)
        created = location is None
        if location is None:
            location = WarehouseLocation(code=code)
            db.add(location)

        for field in LOCATION_FIELDS:
            setattr(location, field, _clean(values.get(field)))
        location.is_active = values.get("is_active", True)
        location.updated_at = datetime.utcnow()  # type: ignore[assignment]

        db.commit()
        db.refresh(location)
        AuditService.record(
            db,
            action=AuditService.UPSERT,
            entity_type=ENTITY,
            entity_id=location.id,
            actor=actor,
            details={"code": location.code, "created": created, "source": "csv_import"},
            ip_address=ip_address,
        )
        return location
