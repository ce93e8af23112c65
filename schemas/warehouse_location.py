from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class WarehouseLocationCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    zone: Optional[str] = Field(None, max_length=100)
    aisle: Optional[str] = Field(None, max_length=100)
    rack: Optional[str] = Field(None, max_length=100)
    shelf: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_active: bool = True


class WarehouseLocationUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    zone: Optional[str] = Field(None, max_length=100)
    aisle: Optional[str] = Field(None, max_length=100)
    rack: Optional[str] = Field(None, max_length=100)
    shelf: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class WarehouseLocationResponse(BaseModel):
    id: UUID
    code: str
    zone: Optional[str] = None
    aisle: Optional[str] = None
    rack: Optional[str] = None
    shelf: Optional[str] = None
    description: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
