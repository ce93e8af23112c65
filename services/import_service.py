"""
CSV bulk import for customers, products, users and warehouse locations.

Each data row is validated and created on its own through ``run_batch``; a bad
row is reported with its spreadsheet row number (header is row 1) and never
blocks the rows after it.
"""
import csv
import io
import logging
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from fastapi import HTTPException, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError, RowValidationError
from models.user import Role, User
from schemas.customer import CustomerCreate
from schemas.imports import (
    CustomerImportRow,
    ImportRow,
    ProductImportRow,
    UserImportRow,
    WarehouseLocationImportRow,
    first_error_message,
)
from schemas.product import ProductCreate
from schemas.user import UserCreate
from services.audit_service import AuditService
from services.auth_service import AuthService
from services.batch_service import BatchResult, run_batch
from services.config_service import get_import_max_file_bytes
from services.customer_service import CustomerService
from services.product_service import ProductService, normalize_sku
from services.warehouse_location_service import WarehouseLocationService

log = logging.getLogger(__name__)

CSV_CONTENT_TYPES = {"text/csv", "application/vnd.ms-excel", "application/csv"}


class ImportKind(str, Enum):
    CUSTOMERS = "customers"
    PRODUCTS = "products"
    USERS = "users"
    WAREHOUSE_LOCATIONS = "warehouse_locations"


ROW_SCHEMAS: dict[ImportKind, type[ImportRow]] = {
    ImportKind.CUSTOMERS: CustomerImportRow,
    ImportKind.PRODUCTS: ProductImportRow,
    ImportKind.USERS: UserImportRow,
    ImportKind.WAREHOUSE_LOCATIONS: WarehouseLocationImportRow,
}


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def read_csv_upload(upload: Optional[UploadFile]) -> bytes:
    """Reject missing, non-CSV and oversized uploads before any row is read."""
    if upload is None or not upload.filename:
        raise _bad_request("No file uploaded")

    is_csv_name = upload.filename.lower().endswith(".csv")
    if not is_csv_name and upload.content_type not in CSV_CONTENT_TYPES:
        raise _bad_request("Only CSV files are allowed")

    max_bytes = get_import_max_file_bytes()
    content = upload.file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise _bad_request(f"File exceeds the maximum upload size of {max_bytes} bytes")
    return content


def parse_csv(content: bytes) -> list[dict[str, str]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise _bad_request("CSV parse error: file is not valid UTF-8")

    reader = csv.DictReader(io.StringIO(text), restval="")
    try:
        if not reader.fieldnames or not any(name.strip() for name in reader.fieldnames):
            raise _bad_request("CSV parse error: missing header row")
        rows = []
        for record in reader:
            row = {
                key.strip(): (value or "").strip()
                for key, value in record.items()
                if key is not None
            }
            # Blank lines carry no data
            if any(row.values()):
                rows.append(row)
    except csv.Error as exc:
        raise _bad_request(f"CSV parse error: {exc}")
    return rows


def parse_unit_value(raw: Optional[str]) -> Optional[Decimal]:
    if raw is None:
        return None
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise RowValidationError("unitValue must be a non-negative number")
    if not value.is_finite() or value < 0:
        raise RowValidationError("unitValue must be a non-negative number")
    return value


def _create_customer(row: CustomerImportRow, actor: User, db: Session, ip_address: Optional[str]):
    payload = CustomerCreate(
        name=row.name,
        code=row.code,
        email=row.email,
        phone=row.phone,
        contact_name=row.contact_name,
    )
    return CustomerService.create_customer(payload, actor, db, ip_address, source="csv_import")


def _create_product(row: ProductImportRow, actor: User, db: Session, ip_address: Optional[str]):
    customer = CustomerService.find_by_code(row.customer_code, db)
    if customer is None:
        raise NotFoundError(f"Customer with code '{row.customer_code}'")
    if ProductService.find_by_sku(row.sku, customer.id, db):
        raise ConflictError(
            f"Product with SKU '{row.sku}' already exists for customer '{row.customer_code}'"
        )

    payload = ProductCreate(
        sku=normalize_sku(row.sku),
        name=row.name,
        customer_id=customer.id,
        barcode=row.barcode,
        description=row.description,
        unit_value=parse_unit_value(row.unit_value),
    )
    return ProductService.create_product(payload, actor, db, ip_address, source="csv_import")


def _create_user(row: UserImportRow, actor: User, db: Session, ip_address: Optional[str]):
    payload = UserCreate(
        email=row.email,
        username=row.username,
        first_name=row.first_name,
        last_name=row.last_name,
        password=row.password,
        role=row.role or Role.WAREHOUSE_USER,
    )
    user = AuthService.register_user(payload, db, must_change_password=True)
    AuditService.record(
        db,
        action=AuditService.CREATE_USER,
        entity_type="User",
        entity_id=user.id,
        actor=actor,
        details={"email": user.email, "role": user.role, "source": "csv_import"},
        ip_address=ip_address,
    )
    return user


def _upsert_location(row: WarehouseLocationImportRow, actor: User, db: Session, ip_address: Optional[str]):
    return WarehouseLocationService.upsert_by_code(row.model_dump(), actor, db, ip_address)


CREATORS = {
    ImportKind.CUSTOMERS: _create_customer,
    ImportKind.PRODUCTS: _create_product,
    ImportKind.USERS: _create_user,
    ImportKind.WAREHOUSE_LOCATIONS: _upsert_location,
}


def validate_and_create(
    raw_row: dict[str, str],
    kind: ImportKind,
    actor: User,
    db: Session,
    ip_address: Optional[str] = None,
) -> Any:
    """Schema rules first, then business rules; the first failure is the row's message."""
    try:
        row = ROW_SCHEMAS[kind].model_validate(raw_row)
    except ValidationError as exc:
        raise RowValidationError(first_error_message(exc))
    return CREATORS[kind](row, actor, db, ip_address)


def import_rows(
    rows: list[dict[str, str]],
    kind: ImportKind,
    actor: User,
    db: Session,
    ip_address: Optional[str] = None,
) -> BatchResult:
    result = run_batch(
        rows,
        lambda raw: validate_and_create(raw, kind, actor, db, ip_address),
        identify=lambda index, raw: index + 2,
        values=dict,
        rollback=db.rollback,
        label=f"{kind.value} import",
    )
    log.info("Imported %s %s by %s", result.succeeded_count, kind.value, actor.email)
    return result


def import_upload(
    upload: Optional[UploadFile],
    kind: ImportKind,
    actor: User,
    db: Session,
    ip_address: Optional[str] = None,
) -> dict:
    rows = parse_csv(read_csv_upload(upload))
    result = import_rows(rows, kind, actor, db, ip_address)
    return {
        "data": {
            "created": result.succeeded_count,
            "errors": [
                {"row": item.identifier, "message": item.reason, "values": item.values or {}}
                for item in result.skipped
            ],
        }
    }
