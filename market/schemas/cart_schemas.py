# market/schemas/cart_schemas.py
from typing import List, Optional

from pydantic import BaseModel, Field

from market.schemas.response_schemas import Money


class CartAdd(BaseModel):
    product_id: int
    variant_id: int
    quantity: int = Field(..., gt=0)
    note: Optional[str] = None


class CartUpdate(BaseModel):
    quantity: Optional[int] = Field(default=None, gt=0)
    checked: Optional[bool] = None
    note: Optional[str] = None


class CartToggle(BaseModel):
    checked: bool


class CartLineOut(BaseModel):
    id: int
    product_id: int
    variant_id: int
    quantity: int
    checked: bool
    note: Optional[str] = None
    product_name: Optional[str] = None
    product_slug: Optional[str] = None
    variant_name: Optional[str] = None
    sku: Optional[str] = None
    variant_status: Optional[str] = None
    price: Money
    item_price: Money
    item_total: Money


class CartSummary(BaseModel):
    total_items: int
    total_price: Money


class CartOut(BaseModel):
    items: List[CartLineOut]
    summary: CartSummary


class CartWriteOut(BaseModel):
    id: int
    quantity: int
    note: Optional[str] = None
