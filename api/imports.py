from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.orm import Session

from api.dependencies import require_admin, require_management
from core.database import get_db
from core.security import get_client_ip
from models.user import User
from schemas.batch import ImportResponse
from services.import_service import ImportKind, import_upload

router = APIRouter(prefix="/import", tags=["import"])


@router.post("/customers", response_model=ImportResponse)
def import_customers(
    request: Request,
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_management)
):
    """Columns: name, code, email, phone, contactName."""
    return import_upload(file, ImportKind.CUSTOMERS, current_user, db, get_client_ip(request))


@router.post("/products", response_model=ImportResponse)
def import_products(
    request: Request,
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_management)
):
    """Columns: sku, name, customerCode, barcode, description, unitValue."""
    return import_upload(file, ImportKind.PRODUCTS, current_user, db, get_client_ip(request))


@router.post("/users", response_model=ImportResponse)
def import_users(
    request: Request,
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Columns: email, username, firstName, lastName, password, role."""
    return import_upload(file, ImportKind.USERS, current_user, db, get_client_ip(request))
