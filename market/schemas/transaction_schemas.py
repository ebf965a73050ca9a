# market/schemas/transaction_schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from market.models.transaction_models import OrderItemStatus, TransactionStatus
from market.schemas.response_schemas import Money


class CheckoutRequest(BaseModel):
    buyer: str = Field(..., min_length=1, max_length=255)
    contact: str = Field(..., min_length=1, max_length=255)
    coupon_code: Optional[str] = Field(default=None, max_length=100)
    note: Optional[str] = None

    @field_validator("buyer", "contact", "coupon_code", "note")
    def strip_text(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class CheckoutOut(BaseModel):
    transaction_id: int
    invoice: str
    total_quantity: int
    total_price: Money
    discount: Money
    final_amount: Money


class StatusUpdate(BaseModel):
    status: TransactionStatus


class OrderItemStatusUpdate(BaseModel):
    status: OrderItemStatus


class OrderItemOut(BaseModel):
    id: int
    transaction_id: int
    user_id: int
    variant_id: int
    quantity: int
    price: Money
    status: OrderItemStatus
    note: Optional[str] = None
    variant_name: Optional[str] = None
    sku: Optional[str] = None
    product_name: Optional[str] = None
    invoice: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransactionOut(BaseModel):
    id: int
    invoice: str
    buyer: str
    contact: str
    quantity: int
    price: Money
    fees: Money
    amount: Money
    coupon_code: Optional[str] = None
    note: Optional[str] = None
    status: TransactionStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    activity_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransactionDetailOut(TransactionOut):
    items: List[OrderItemOut] = []


class StatusChangeOut(BaseModel):
    id: int
    previous_status: TransactionStatus
    status: TransactionStatus
    changed: bool
