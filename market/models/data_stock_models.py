# market/models/data_stock_models.py
import enum
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from market.core.db import Base, BigId


class DataStockStatus(str, enum.Enum):
    ACTIVE = "active"
    SOLD = "sold"
    INVALID = "invalid"
    LOCKED = "locked"


class DataStock(Base):
    """A fulfillment credential belonging to a variant."""

    __tablename__ = "data_stocks"

    id = Column(BigId, primary_key=True, index=True)
    variant_id = Column(BigId, ForeignKey("product_variants.id", ondelete="RESTRICT"), nullable=False, index=True)
    transaction_id = Column(BigId, ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True, index=True)
    status = Column(
        Enum(DataStockStatus, name="data_stock_status", values_callable=lambda e: [m.value for m in e]),
        default=DataStockStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    expired_license = Column(String(255), nullable=True)
    note = Column(Text, nullable=True)
    expired_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    variant = relationship("ProductVariant", lazy="selectin")
