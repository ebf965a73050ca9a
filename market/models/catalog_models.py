# market/models/catalog_models.py
from decimal import Decimal
import enum
from sqlalchemy import (
    Column, Integer, String, Boolean, Numeric, Text, DateTime, ForeignKey,
    CheckConstraint, Enum, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from market.core.db import Base, BigId


class VariantStatus(str, enum.Enum):
    ON = "on"
    OFF = "off"
    OUT = "out"


class DiscountType(str, enum.Enum):
    PERCENT = "percent"
    NOMINAL = "nominal"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Category(Base):
    __tablename__ = "categories"

    id = Column(BigId, primary_key=True, index=True)
    sort = Column(Integer, default=0, nullable=False)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    image = Column(String, nullable=True)
    status = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Product(Base):
    __tablename__ = "products"

    id = Column(BigId, primary_key=True, index=True)
    sort = Column(Integer, default=0, nullable=False)
    category_id = Column(BigId, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    image = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    status = Column(Boolean, default=True, nullable=False)
    view = Column(Integer, default=0, nullable=False)
    sold = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("Category", lazy="selectin")
    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProductVariant.sort",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(view >= 0, name="check_product_view_non_negative"),
        CheckConstraint(sold >= 0, name="check_product_sold_non_negative"),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(BigId, primary_key=True, index=True)
    sort = Column(Integer, default=0, nullable=False)
    product_id = Column(BigId, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(14, 2), nullable=False)
    discount_type = Column(
        "discount_percent",
        Enum(DiscountType, name="discount_type", values_callable=_enum_values),
        default=DiscountType.PERCENT,
        nullable=False,
    )
    discount = Column(Numeric(14, 2), default=Decimal("0.00"), nullable=False)
    min_order = Column(Integer, default=1, nullable=False)
    discount_start = Column(DateTime(timezone=True), nullable=True)
    discount_end = Column(DateTime(timezone=True), nullable=True)
    status = Column(
        Enum(VariantStatus, name="variant_status", values_callable=_enum_values),
        default=VariantStatus.ON,
        nullable=False,
    )
    label = Column(String(255), nullable=True)
    note = Column(Text, nullable=True)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    product = relationship("Product", back_populates="variants", lazy="selectin")

    __table_args__ = (
        CheckConstraint(price > 0, name="check_variant_price_positive"),
        CheckConstraint(discount >= 0, name="check_variant_discount_non_negative"),
        CheckConstraint(min_order >= 1, name="check_variant_min_order_positive"),
        Index("ix_variant_product_sort", "product_id", "sort"),
    )

    def __repr__(self):
        return f"<ProductVariant(id={self.id}, sku='{self.sku}')>"
