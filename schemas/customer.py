from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

CODE_PATTERN = r"^[A-Za-z0-9_-]+$"


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    code: str = Field(..., min_length=2, max_length=20, pattern=CODE_PATTERN)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    contact_name: Optional[str] = Field(None, max_length=100)

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, min_length=2, max_length=20, pattern=CODE_PATTERN)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    contact_name: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None


class CustomerSummary(BaseModel):
    id: UUID
    name: str
    code: str

    model_config = ConfigDict(from_attributes=True)


class CustomerResponse(CustomerSummary):
    email: Optional[str] = None
    phone: Optional[str] = None
    contact_name: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CustomerDeleteResponse(BaseModel):
    deleted: bool
    soft_deleted: bool
