# market/models/cart_models.py
from sqlalchemy import (
    Column, Integer, Boolean, Text, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from market.core.db import Base, BigId


class Cart(Base):
    """One (user, product, variant) line awaiting checkout."""

    __tablename__ = "carts"

    id = Column(BigId, primary_key=True, index=True)
    user_id = Column(BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(BigId, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variant_id = Column(BigId, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False)
    checked = Column(Boolean, default=True, nullable=False)
    note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    product = relationship("Product", lazy="selectin")
    variant = relationship("ProductVariant", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("user_id", "product_id", "variant_id", name="uq_cart_user_product_variant"),
        CheckConstraint(quantity > 0, name="check_cart_quantity_positive"),
    )
