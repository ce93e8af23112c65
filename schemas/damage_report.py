from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.damage_report import DamageCause, DamageSeverity, DamageStatus
from schemas.customer import CustomerSummary
from schemas.product import ProductSummary


class DamageReportCreate(BaseModel):
    customer_id: UUID
    product_id: UUID
    warehouse_location_id: Optional[UUID] = None
    quantity: int = Field(..., gt=0)
    severity: Optional[DamageSeverity] = None
    cause: DamageCause
    cause_other: Optional[str] = Field(None, max_length=500)
    description: str = Field(..., min_length=10, max_length=5000)
    estimated_loss: Optional[Decimal] = Field(None, ge=0)
    date_of_damage: datetime

    @model_validator(mode="after")
    def cause_other_required_for_other(self):
        if self.cause == DamageCause.OTHER and not (self.cause_other or "").strip():
            raise ValueError("cause_other is required when cause is OTHER")
        return self


class DamageReportUpdate(BaseModel):
    customer_id: Optional[UUID] = None
    product_id: Optional[UUID] = None
    warehouse_location_id: Optional[UUID] = None
    quantity: Optional[int] = Field(None, gt=0)
    severity: Optional[DamageSeverity] = None
    cause: Optional[DamageCause] = None
    cause_other: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, min_length=10, max_length=5000)
    estimated_loss: Optional[Decimal] = Field(None, ge=0)
    date_of_damage: Optional[datetime] = None


class StatusChangeRequest(BaseModel):
    status: DamageStatus
    note: Optional[str] = Field(None, max_length=1000)


class StatusHistoryResponse(BaseModel):
    id: UUID
    from_status: Optional[DamageStatus] = None
    to_status: DamageStatus
    changed_by: Optional[UUID] = None
    changed_by_name: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DamageReportResponse(BaseModel):
    id: UUID
    reference_number: str
    customer_id: UUID
    product_id: UUID
    warehouse_location_id: Optional[UUID] = None
    customer: Optional[CustomerSummary] = None
    product: Optional[ProductSummary] = None
    quantity: int
    severity: Optional[DamageSeverity] = None
    cause: DamageCause
    cause_other: Optional[str] = None
    description: str
    estimated_loss: Optional[float] = None
    status: DamageStatus
    allowed_next_statuses: list[DamageStatus] = []
    date_of_damage: datetime
    date_reported: datetime
    date_resolved: Optional[datetime] = None
    is_archived: bool
    archived_at: Optional[datetime] = None
    reported_by: Optional[UUID] = None
    reviewed_by: Optional[UUID] = None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DamageReportListResponse(BaseModel):
    total: int
    count: int
    reports: list[DamageReportResponse]


class BulkStatusRequest(BaseModel):
    ids: list[str]
    status: DamageStatus
    note: Optional[str] = Field(None, max_length=1000)


class BulkArchiveRequest(BaseModel):
    ids: list[str]
