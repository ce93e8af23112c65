from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from sqlalchemy.orm import Session

from api.dependencies import require_admin
from core.database import get_db
from core.security import get_client_ip, get_current_user
from models.user import User
from schemas.batch import ImportResponse
from schemas.warehouse_location import (
    WarehouseLocationCreate,
    WarehouseLocationResponse,
    WarehouseLocationUpdate,
)
from services.import_service import ImportKind, import_upload
from services.warehouse_location_service import WarehouseLocationService

router = APIRouter(prefix="/warehouse-locations", tags=["warehouse-locations"])


@router.get("/", response_model=list[WarehouseLocationResponse])
def list_locations(
    search: Optional[str] = Query(default=None),
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return WarehouseLocationService.list_locations(db, search=search, include_inactive=include_inactive)


@router.post("/", response_model=WarehouseLocationResponse, status_code=201)
def create_location(
    payload: WarehouseLocationCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    return WarehouseLocationService.create_location(payload, current_user, db, get_client_ip(request))


@router.post("/import", response_model=ImportResponse)
def import_locations(
    request: Request,
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Upsert locations by code from a CSV file."""
    return import_upload(file, ImportKind.WAREHOUSE_LOCATIONS, current_user, db, get_client_ip(request))


@router.get("/{location_id}", response_model=WarehouseLocationResponse)
def get_location(
    location_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return WarehouseLocationService.get_location(location_id, db)


@router.put("/{location_id}", response_model=WarehouseLocationResponse)
def update_location(
    location_id: UUID,
    payload: WarehouseLocationUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    return WarehouseLocationService.update_location(location_id, payload, current_user, db, get_client_ip(request))


@router.delete("/{location_id}", status_code=204)
def delete_location(
    location_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    WarehouseLocationService.delete_location(location_id, current_user, db, get_client_ip(request))
