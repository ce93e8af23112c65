import uuid
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError
from models.customer import Customer
from models.damage_report import DamageReport
from models.user import User
from schemas.customer import CustomerCreate, CustomerUpdate
from services.audit_service import AuditService

ENTITY = "Customer"


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class CustomerService:
    @staticmethod
    def get_customer(customer_id: uuid.UUID, db: Session) -> Customer:
        customer = db.get(Customer, customer_id)
        if not customer:
            raise NotFoundError("Customer")
        return customer

    @staticmethod
    def find_by_code(code: str, db: Session) -> Optional[Customer]:
        return db.query(Customer).filter(Customer.code == normalize_code(code)).first()

    @staticmethod
    def list_customers(
        db: Session,
        *,
        limit: int,
        offset: int,
        search: Optional[str] = None,
        include_inactive: bool = False,
    ) -> list[Customer]:
        query = db.query(Customer)
        if not include_inactive:
            query = query.filter(Customer.is_active.is_(True))
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Customer.name.ilike(pattern),
                Customer.code.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.contact_name.ilike(pattern),
            ))
        return query.order_by(Customer.name).offset(offset).limit(limit).all()

    @staticmethod
    def create_customer(
        payload: CustomerCreate,
        actor: User,
        db: Session,
        ip_address: Optional[str] = None,
        source: Optional[str] = None,
    ) -> Customer:
        code = normalize_code(payload.code)
        if CustomerService.find_by_code(code, db):
            raise ConflictError(f"Customer with code '{code}' already exists")

        customer = Customer(
            name=payload.name.strip(),
            code=code,
            email=_blank_to_none(payload.email),
            phone=_blank_to_none(payload.phone),
            contact_name=_blank_to_none(payload.contact_name),
        )
        db.add(customer)
        db.commit()
        db.refresh(customer)

        details = {"name": customer.name, "code": customer.code}
        if source:
            details["source"] = source
        AuditService.record(
            db,
            action=AuditService.CREATE,
            entity_type=ENTITY,
            entity_id=customer.id,
            actor=actor,
            details=details,
            ip_address=ip_address,
        )
        return customer

    @staticmethod
    def update_customer(
        customer_id: uuid.UUID,
        payload: CustomerUpdate,
        actor: User,
        db: Session,
        ip_address: Optional[str] = None,
    ) -> Customer:
        customer = CustomerService.get_customer(customer_id, db)
        changes = payload.model_dump(exclude_unset=True)

        if changes.get("code"):
            code = normalize_code(changes["code"])
            if code != customer.code and CustomerService.find_by_code(code, db):
                raise ConflictError(f"Customer with code '{code}' already exists")
            changes["code"] = code

        for field, value in changes.items():
            if field in {"email", "phone", "contact_name"}:
                value = _blank_to_none(value)
            elif isinstance(value, str):
                value = value.strip()
            setattr(customer, field, value)

        db.commit()
        db.refresh(customer)
        AuditService.record(
            db,
            action=AuditService.UPDATE,
            entity_type=ENTITY,
            entity_id=customer.id,
            actor=actor,
            details={"code": customer.code, "updated_fields": sorted(changes)},
            ip_address=ip_address,
        )
        return customer

    @staticmethod
    def delete_customer(
        customer_id: uuid.UUID,
        actor: User,
        db: Session,
        ip_address: Optional[str] = None,
    ) -> dict:
        """Hard delete, or deactivate when damage reports still reference the customer."""
        customer = CustomerService.get_customer(customer_id, db)
        damage_count = db.query(DamageReport).filter(DamageReport.customer_id == customer.id).count()
        code = customer.code

        if damage_count > 0:
            customer.is_active = False  # type: ignore[assignment]
            outcome = {"deleted": False, "soft_deleted": True}
        else:
            db.delete(customer)
            outcome = {"deleted": True, "soft_deleted": False}
        db.commit()

        AuditService.record(
            db,
            action=AuditService.DELETE,
            entity_type=ENTITY,
            entity_id=customer_id,
            actor=actor,
            details={"code": code, **outcome},
            ip_address=ip_address,
        )
        return outcome
