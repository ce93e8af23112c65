"""
Damage report SQLAlchemy models with the status state machine and history trail.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum as PyEnum
from typing import cast
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from core.database import Base


class DamageStatus(PyEnum):
    OPEN = "OPEN"
    CUSTOMER_NOTIFIED = "CUSTOMER_NOTIFIED"
    DESTROY_STOCK = "DESTROY_STOCK"
    REP_COLLECT = "REP_COLLECT"
    CLOSED = "CLOSED"


class DamageSeverity(PyEnum):
    MINOR = "MINOR"
    MODERATE = "MODERATE"
    MAJOR = "MAJOR"
    TOTAL_LOSS = "TOTAL_LOSS"


class DamageCause(PyEnum):
    FORKLIFT_IMPACT = "FORKLIFT_IMPACT"
    DROPPED_DURING_HANDLING = "DROPPED_DURING_HANDLING"
    WATER_DAMAGE = "WATER_DAMAGE"
    CRUSH_DAMAGE = "CRUSH_DAMAGE"
    PALLET_FAILURE = "PALLET_FAILURE"
    TEMPERATURE_EXPOSURE = "TEMPERATURE_EXPOSURE"
    INCORRECT_STACKING = "INCORRECT_STACKING"
    TRANSIT_DAMAGE_INBOUND = "TRANSIT_DAMAGE_INBOUND"
    TRANSIT_DAMAGE_OUTBOUND = "TRANSIT_DAMAGE_OUTBOUND"
    PEST_DAMAGE = "PEST_DAMAGE"
    EXPIRED_PRODUCT = "EXPIRED_PRODUCT"
    PACKAGING_FAILURE = "PACKAGING_FAILURE"
    UNKNOWN = "UNKNOWN"
    OTHER = "OTHER"


# State transition rules: which states can transition to which
VALID_STATUS_TRANSITIONS: dict[DamageStatus, frozenset[DamageStatus]] = {
    DamageStatus.OPEN: frozenset({DamageStatus.CUSTOMER_NOTIFIED}),
    DamageStatus.CUSTOMER_NOTIFIED: frozenset({DamageStatus.DESTROY_STOCK, DamageStatus.REP_COLLECT}),
    DamageStatus.DESTROY_STOCK: frozenset({DamageStatus.CLOSED}),
    DamageStatus.REP_COLLECT: frozenset({DamageStatus.CLOSED}),
    DamageStatus.CLOSED: frozenset(),  # Terminal state
}


class DamageReport(Base):
    """
    A damaged-stock incident for one customer's product.

    ``reference_number`` is assigned once at creation and never rewritten.
    ``is_archived`` is only ever set on CLOSED reports.
    """
    __tablename__ = "damage_reports"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reference_number = Column(String(32), unique=True, index=True, nullable=False)

    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False)
    warehouse_location_id = Column(UUID(as_uuid=True), ForeignKey("warehouse_locations.id"), nullable=True)

    quantity = Column(Integer, nullable=False)
    severity = Column(Enum(DamageSeverity, native_enum=False), nullable=True)
    cause = Column(Enum(DamageCause, native_enum=False), nullable=False)
    cause_other = Column(String(500), nullable=True)
    description = Column(Text, nullable=False)
    estimated_loss = Column(Numeric(12, 2), nullable=True)

    status = Column(
        Enum(DamageStatus, native_enum=False),
        nullable=False,
        default=DamageStatus.OPEN,
        index=True,
    )

    date_of_damage = Column(DateTime(timezone=True), nullable=False)
    date_reported = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False, index=True)
    date_resolved = Column(DateTime(timezone=True), nullable=True)

    is_archived = Column(Boolean, nullable=False, default=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    reported_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    reviewed_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    customer = relationship("Customer")
    product = relationship("Product")
    warehouse_location = relationship("WarehouseLocation")
    reporter = relationship("User", foreign_keys=[reported_by])
    status_history = relationship(
        "StatusHistory",
        back_populates="report",
        order_by="StatusHistory.created_at",
        cascade="all, delete-orphan",
    )

    @property
    def allowed_next_statuses(self) -> list[DamageStatus]:
        allowed = VALID_STATUS_TRANSITIONS.get(cast(DamageStatus, self.status), frozenset())
        return sorted(allowed, key=lambda s: s.value)

    def can_transition_to(self, new_status: DamageStatus) -> bool:
        return new_status in VALID_STATUS_TRANSITIONS.get(cast(DamageStatus, self.status), frozenset())

    def __repr__(self) -> str:
        return f"<DamageReport(reference={self.reference_number}, status={self.status})>"


class StatusHistory(Base):
    """Append-only record of one accepted status change."""
    __tablename__ = "damage_status_history"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    report_id = Column(UUID(as_uuid=True), ForeignKey("damage_reports.id"), nullable=False, index=True)

    # NULL only for the creation event
    from_status = Column(Enum(DamageStatus, native_enum=False), nullable=True)
    to_status = Column(Enum(DamageStatus, native_enum=False), nullable=False)

    changed_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    changed_by_name = Column(String(200), nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    report = relationship("DamageReport", back_populates="status_history")
