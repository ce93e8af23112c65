from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from api.dependencies import require_management
from core.database import get_db
from core.security import get_client_ip, get_current_user
from models.user import User
from schemas.customer import CustomerCreate, CustomerDeleteResponse, CustomerResponse, CustomerUpdate
from services.customer_service import CustomerService

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("/", response_model=list[CustomerResponse])
def list_customers(
    search: Optional[str] = Query(default=None),
    include_inactive: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CustomerService.list_customers(
        db, limit=limit, offset=offset, search=search, include_inactive=include_inactive
    )


@router.post("/", response_model=CustomerResponse, status_code=201)
def create_customer(
    payload: CustomerCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_management)
):
    return CustomerService.create_customer(payload, current_user, db, get_client_ip(request))


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CustomerService.get_customer(customer_id, db)


@router.put("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: UUID,
    payload: CustomerUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_management)
):
    return CustomerService.update_customer(customer_id, payload, current_user, db, get_client_ip(request))


@router.delete("/{customer_id}", response_model=CustomerDeleteResponse)
def delete_customer(
    customer_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_management)
):
    """Customers with damage history are deactivated instead of removed."""
    return CustomerService.delete_customer(customer_id, current_user, db, get_client_ip(request))
