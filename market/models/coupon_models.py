# market/models/coupon_models.py
import enum
from sqlalchemy import Column, Integer, Boolean, Numeric, DateTime, String, Enum, CheckConstraint
from sqlalchemy.sql import func
from market.core.db import Base, BigId


class CouponType(str, enum.Enum):
    PERCENT = "percent"
    AMOUNT = "amount"


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(BigId, primary_key=True, index=True)
    # the redeemable code lives in the "description" column
    code = Column("description", String(100), unique=True, nullable=False, index=True)
    type = Column(
        Enum(CouponType, name="coupon_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    value = Column(Numeric(14, 2), nullable=False)
    max_value = Column(Numeric(14, 2), nullable=True)
    min_purchase = Column(Numeric(14, 2), nullable=True)
    usage_limit = Column("limit", Integer, nullable=True)
    used = Column(Integer, default=0, nullable=False)
    starts_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    login_required = Column(Boolean, default=False, nullable=False)
    status = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(value > 0, name="check_coupon_value_positive"),
        CheckConstraint(used >= 0, name="check_coupon_used_non_negative"),
        CheckConstraint("\"limit\" IS NULL OR used <= \"limit\"", name="check_coupon_used_within_limit"),
    )

    def __repr__(self):
        return f"<Coupon(id={self.id}, code='{self.code}')>"
