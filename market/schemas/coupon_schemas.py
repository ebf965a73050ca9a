# market/schemas/coupon_schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from typing_extensions import Annotated

from market.models.coupon_models import CouponType
from market.schemas.response_schemas import Money
from market.utils.datetime_utils import to_utc

PositiveDecimal = Annotated[Decimal, Field(gt=0, max_digits=14, decimal_places=2)]


class CouponBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)
    type: CouponType
    value: PositiveDecimal
    max_value: Optional[PositiveDecimal] = None
    min_purchase: Optional[PositiveDecimal] = None
    usage_limit: Optional[int] = Field(default=None, gt=0)
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    login_required: bool = False
    status: bool = True

    @field_validator("code")
    def strip_code(cls, value):
        return value.strip()

    @field_validator("starts_at", "expires_at")
    def window_in_utc(cls, value):
        return to_utc(value)

    @model_validator(mode="after")
    def check_window(self):
        if self.starts_at and self.expires_at and self.starts_at > self.expires_at:
            raise ValueError("starts_at must not be after expires_at")
        return self


class CouponCreate(CouponBase):
    pass


class CouponUpdate(BaseModel):
    code: Optional[str] = None
    type: Optional[CouponType] = None
    value: Optional[PositiveDecimal] = None
    max_value: Optional[PositiveDecimal] = None
    min_purchase: Optional[PositiveDecimal] = None
    usage_limit: Optional[int] = Field(default=None, gt=0)
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    login_required: Optional[bool] = None
    status: Optional[bool] = None

    @field_validator("code")
    def strip_code(cls, value):
        return value.strip() if value else value

    @field_validator("starts_at", "expires_at")
    def window_in_utc(cls, value):
        return to_utc(value)


class CouponOut(BaseModel):
    id: int
    code: str
    type: CouponType
    value: Money
    max_value: Optional[Money] = None
    min_purchase: Optional[Money] = None
    usage_limit: Optional[int] = None
    used: int
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    login_required: bool
    status: bool

    class Config:
        from_attributes = True


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1)
    total_price: PositiveDecimal


class CouponValidateOut(BaseModel):
    coupon: CouponOut
    discount_amount: Money
    final_price: Money
