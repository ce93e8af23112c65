from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from schemas.customer import CustomerSummary


class ProductCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    customer_id: UUID
    barcode: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    unit_value: Optional[Decimal] = Field(None, ge=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    barcode: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    unit_value: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None


class ProductSummary(BaseModel):
    id: UUID
    sku: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class ProductResponse(ProductSummary):
    barcode: Optional[str] = None
    description: Optional[str] = None
    unit_value: Optional[float] = None
    is_active: bool
    customer_id: UUID
    customer: Optional[CustomerSummary] = None
    created_at: datetime
    updated_at: datetime
