import uuid
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError
from models.damage_report import DamageReport
from models.product import Product
from models.user import User
from schemas.product import ProductCreate, ProductUpdate
from services.audit_service import AuditService
from services.customer_service import CustomerService

ENTITY = "Product"


def normalize_sku(sku: str) -> str:
    return sku.strip().upper()


class ProductService:
    @staticmethod
    def get_product(product_id: uuid.UUID, db: Session) -> Product:
        product = db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product")
        return product

    @staticmethod
    def find_by_sku(sku: str, customer_id: uuid.UUID, db: Session) -> Optional[Product]:
        return db.query(Product).filter(
            Product.sku == normalize_sku(sku),
            Product.customer_id == customer_id,
        ).first()

    @staticmethod
    def list_products(
        db: Session,
        *,
        limit: int,
        offset: int,
        search: Optional[str] = None,
        customer_id: Optional[uuid.UUID] = None,
        include_inactive: bool = False,
    ) -> list[Product]:
        query = db.query(Product)
        if not include_inactive:
            query = query.filter(Product.is_active.is_(True))
        if customer_id is not None:
            query = query.filter(Product.customer_id == customer_id)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Product.sku.ilike(pattern),
                Product.name.ilike(pattern),
                Product.barcode.ilike(pattern),
            ))
        return query.order_by(Product.name).offset(offset).limit(limit).all()

    @staticmethod
    def create_product(
        payload: ProductCreate,
        actor: User,
        db: Session,
        ip_address: Optional[str] = None,
        source: Optional[str] = None,
    ) -> Product:
        customer = CustomerService.get_customer(payload.customer_id, db)
        sku = normalize_sku(payload.sku)
        if ProductService.find_by_sku(sku, customer.id, db):
            raise ConflictError(f"Product with SKU '{payload.sku}' already exists for customer '{customer.code}'")

        product = Product(
            sku=sku,
            name=payload.name.strip(),
            barcode=(payload.barcode or "").strip() or None,
            description=(payload.description or "").strip() or None,
            unit_value=payload.unit_value,
            customer_id=customer.id,
        )
        db.add(product)
        db.commit()
        db.refresh(product)

        details = {"sku": product.sku, "name": product.name, "customer_code": customer.code}
        if source:
            details["source"] = source
        AuditService.record(
            db,
            action=AuditService.CREATE,
            entity_type=ENTITY,
            entity_id=product.id,
            actor=actor,
            details=details,
            ip_address=ip_address,
        )
        return product

    @staticmethod
    def update_product(
        product_id: uuid.UUID,
        payload: ProductUpdate,
        actor: User,
        db: Session,
        ip_address: Optional[str] = None,
    ) -> Product:
        product = ProductService.get_product(product_id, db)
        changes = payload.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if isinstance(value, str):
                value = value.strip() or (None if field in {"barcode", "description"} else value)
            setattr(product, field, value)

        db.commit()
        db.refresh(product)
        AuditService.record(
            db,
            action=AuditService.UPDATE,
            entity_type=ENTITY,
            entity_id=product.id,
            actor=actor,
            details={"sku": product.sku, "updated_fields": sorted(changes)},
            ip_address=ip_address,
        )
        return product

    @staticmethod
    def delete_product(
        product_id: uuid.UUID,
        actor: User,
        db: Session,
        ip_address: Optional[str] = None,
    ) -> dict:
        """Hard delete, or deactivate when damage reports still reference the product."""
        product = ProductService.get_product(product_id, db)
        damage_count = db.query(DamageReport).filter(DamageReport.product_id == product.id).count()
        sku = product.sku

        if damage_count > 0:
            product.is_active = False  # type: ignore[assignment]
            outcome = {"deleted": False, "soft_deleted": True}
        else:
            db.delete(product)
            outcome = {"deleted": True, "soft_deleted": False}
        db.commit()

        AuditService.record(
            db,
            action=AuditService.DELETE,
            entity_type=ENTITY,
            entity_id=product_id,
            actor=actor,
            details={"sku": sku, **outcome},
            ip_address=ip_address,
        )
        return outcome
