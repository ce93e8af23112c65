# Software Engineer: Kyeshav Chettiar 
# Company FXO - Adcorp 
# Configured and pushed onto the virtual machine for testing and evaluation for team members to use within the companies rules and regulations 
# v3.0.0.0 

from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.dialects.postgresql import UUID
import uuid
from core.database import Base


class Role(PyEnum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    WAREHOUSE_USER = "WAREHOUSE_USER"


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)  # type: ignore
    username = Column(String(50), unique=True, index=True, nullable=False)  # type: ignore
    email = Column(String(255), unique=True, index=True, nullable=False)  # type: ignore
    first_name = Column(String(100), nullable=False, default="")  # type: ignore
    last_name = Column(String(100), nullable=False, default="")  # type: ignore
    is_active = Column(Boolean, default=True)  # type: ignore
    must_change_password = Column(Boolean, nullable=False, default=False)  # type: ignore
    hashed_password = Column(String, nullable=False)  # type: ignore
    role = Column(String(32), default=Role.WAREHOUSE_USER.value)  # type: ignore  # ADMIN, MANAGER or WAREHOUSE_USER
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)  # type: ignore

    @property
    def full_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or str(self.username)
