# market/schemas/catalog_schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from typing_extensions import Annotated

from market.models.catalog_models import DiscountType, VariantStatus
from market.schemas.response_schemas import Money

PositiveDecimal = Annotated[Decimal, Field(gt=0, max_digits=14, decimal_places=2)]
NonNegativeDecimal = Annotated[Decimal, Field(ge=0, max_digits=14, decimal_places=2)]


def _clean_slug(value):
    return value.strip().lower() if isinstance(value, str) else value


# --------------------------
# Category Schemas
# --------------------------
class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    sort: int = 0
    image: Optional[str] = None
    status: bool = True

    @field_validator("slug")
    def lower_slug(cls, value):
        return _clean_slug(value)


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    sort: Optional[int] = None
    image: Optional[str] = None
    status: Optional[bool] = None

    @field_validator("slug")
    def lower_slug(cls, value):
        return _clean_slug(value)


class CategoryOut(BaseModel):
    id: int
    name: str
    slug: str
    sort: int
    image: Optional[str] = None
    status: bool

    class Config:
        from_attributes = True


# --------------------------
# Variant Schemas
# --------------------------
class VariantCreate(BaseModel):
    product_id: int
    sku: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1)
    price: PositiveDecimal
    discount_type: DiscountType = DiscountType.PERCENT
    discount: NonNegativeDecimal = Decimal("0")
    min_order: int = Field(default=1, ge=1)
    discount_start: Optional[datetime] = None
    discount_end: Optional[datetime] = None
    status: VariantStatus = VariantStatus.ON
    sort: int = 0
    label: Optional[str] = None
    note: Optional[str] = None
    description: Optional[str] = None

    @field_validator("sku")
    def upper_sku(cls, value):
        return value.strip().upper()


class VariantUpdate(BaseModel):
    """All fields optional for partial updates."""
    product_id: Optional[int] = None
    sku: Optional[str] = None
    name: Optional[str] = None
    price: Optional[PositiveDecimal] = None
    discount_type: Optional[DiscountType] = None
    discount: Optional[NonNegativeDecimal] = None
    min_order: Optional[int] = Field(default=None, ge=1)
    discount_start: Optional[datetime] = None
    discount_end: Optional[datetime] = None
    status: Optional[VariantStatus] = None
    sort: Optional[int] = None
    label: Optional[str] = None
    note: Optional[str] = None
    description: Optional[str] = None

    @field_validator("sku")
    def upper_sku(cls, value):
        return value.strip().upper() if value else value


class VariantOut(BaseModel):
    id: int
    product_id: int
    sku: str
    name: str
    price: Money
    discount_type: DiscountType
    discount: Money
    min_order: int
    status: VariantStatus
    sort: int
    label: Optional[str] = None
    note: Optional[str] = None

    class Config:
        from_attributes = True


# --------------------------
# Product Schemas
# --------------------------
class ProductCreate(BaseModel):
    category_id: int
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    sort: int = 0
    image: Optional[str] = None
    description: Optional[str] = None
    status: bool = True

    @field_validator("slug")
    def lower_slug(cls, value):
        return _clean_slug(value)


class ProductUpdate(BaseModel):
    """All fields optional for partial updates."""
    category_id: Optional[int] = None
    name: Optional[str] = None
    slug: Optional[str] = None
    sort: Optional[int] = None
    image: Optional[str] = None
    description: Optional[str] = None
    status: Optional[bool] = None

    @field_validator("slug")
    def lower_slug(cls, value):
        return _clean_slug(value)


class ProductOut(BaseModel):
    id: int
    category_id: int
    name: str
    slug: str
    sort: int
    image: Optional[str] = None
    description: Optional[str] = None
    status: bool
    view: int
    sold: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductDetailOut(ProductOut):
    category: Optional[CategoryOut] = None
    variants: List[VariantOut] = []
