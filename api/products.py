from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from api.dependencies import require_management
from core.database import get_db
from core.security import get_client_ip, get_current_user
from models.user import User
from schemas.customer import CustomerDeleteResponse
from schemas.product import ProductCreate, ProductResponse, ProductUpdate
from services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/", response_model=list[ProductResponse])
def list_products(
    search: Optional[str] = Query(default=None),
    customer_id: Optional[UUID] = Query(default=None),
    include_inactive: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ProductService.list_products(
        db,
        limit=limit,
        offset=offset,
        search=search,
        customer_id=customer_id,
        include_inactive=include_inactive,
    )


@router.post("/", response_model=ProductResponse, status_code=201)
def create_product(
    payload: ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_management)
):
    return ProductService.create_product(payload, current_user, db, get_client_ip(request))


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ProductService.get_product(product_id, db)


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: UUID,
    payload: ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_management)
):
    return ProductService.update_product(product_id, payload, current_user, db, get_client_ip(request))


@router.delete("/{product_id}", response_model=CustomerDeleteResponse)
def delete_product(
    product_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_management)
):
    return ProductService.delete_product(product_id, current_user, db, get_client_ip(request))
