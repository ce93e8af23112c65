from datetime import datetime
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from core.database import Base


class Product(Base):
    __tablename__ = "products"

    # The same SKU may exist under two different customers
    __table_args__ = (
        UniqueConstraint("sku", "customer_id", name="uq_product_sku_customer"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sku = Column(String(100), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    barcode = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    unit_value = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    customer = relationship("Customer", back_populates="products")
