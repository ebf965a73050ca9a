# market/services/coupon_service.py
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.errors import (
    Conflict, CouponLimitReached, CouponNotFound, MinimumPurchaseNotMet, NotFound, ValidationError
)
from market.models.coupon_models import Coupon, CouponType
from market.schemas.coupon_schemas import CouponCreate, CouponUpdate
from market.services.catalog_service import count_rows
from market.utils.activity_helpers import log_user_activity
from market.utils.datetime_utils import to_utc
from market.utils.decimal_utils import to_decimal


@dataclass
class CouponEvaluation:
    coupon: Coupon
    discount_amount: Decimal


def _redeemable_at(now: datetime):
    """Enabled coupons whose [starts_at, expires_at] window contains ``now``."""
    return (
        Coupon.status == True,  # noqa: E712
        or_(Coupon.starts_at.is_(None), Coupon.starts_at <= now),
        or_(Coupon.expires_at.is_(None), Coupon.expires_at >= now),
    )


def compute_discount(coupon: Coupon, total_price) -> Decimal:
    """
    Percent coupons take ``total * value / 100`` capped at max_value; amount
    coupons take their flat value, even when it exceeds the total.
    """
    total_price = to_decimal(total_price)
    if CouponType(coupon.type) == CouponType.PERCENT:
        discount = to_decimal(total_price * to_decimal(coupon.value) / Decimal("100"))
        if coupon.max_value and discount > to_decimal(coupon.max_value):
            discount = to_decimal(coupon.max_value)
        return discount
    return to_decimal(coupon.value)


# --------------------------
# COUPON EVALUATOR
# --------------------------
async def evaluate(
    db: AsyncSession,
    code: str,
    total_price,
    now: Optional[datetime] = None,
    lock: bool = False,
) -> CouponEvaluation:
    """
    Check ``code`` against ``total_price`` without changing anything.

    Absent, disabled and out-of-window codes all raise CouponNotFound.
    With ``lock`` the coupon row stays locked for the rest of the transaction.
    """
    now = to_utc(now) or datetime.now(timezone.utc)
    total_price = to_decimal(total_price)

    query = select(Coupon).where(Coupon.code == code.strip(), *_redeemable_at(now))
    if lock:
        query = query.with_for_update()
    result = await db.execute(query)
    coupon = result.scalars().first()
    if coupon is None:
        raise CouponNotFound()

    if coupon.usage_limit is not None and coupon.used >= coupon.usage_limit:
        raise CouponLimitReached()
    if coupon.min_purchase and total_price < to_decimal(coupon.min_purchase):
        raise MinimumPurchaseNotMet(to_decimal(coupon.min_purchase))

    return CouponEvaluation(coupon=coupon, discount_amount=compute_discount(coupon, total_price))


async def claim_coupon_use(db: AsyncSession, coupon: Coupon) -> None:
    """
    Increment ``used`` inside the caller's transaction.

    The limit is re-checked by the UPDATE itself, so a reader holding a stale
    ``used`` value cannot push the counter past the limit.
    """
    result = await db.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon.id,
            or_(Coupon.usage_limit.is_(None), Coupon.used < Coupon.usage_limit),
        )
        .values(used=Coupon.used + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise CouponLimitReached()


async def validate_coupon(db: AsyncSession, code: str, total_price) -> dict:
    evaluation = await evaluate(db, code, total_price)
    total_price = to_decimal(total_price)
    return {
        "coupon": evaluation.coupon,
        "discount_amount": evaluation.discount_amount,
        "final_price": to_decimal(total_price - evaluation.discount_amount),
    }


# --------------------------
# CRUD
# --------------------------
async def list_coupons(
    db: AsyncSession, status: Optional[bool] = None, page: int = 1, limit: int = 10
) -> Tuple[List[Coupon], int]:
    query = select(Coupon)
    if status is not None:
        query = query.where(Coupon.status == status)
    total = await count_rows(db, query)
    result = await db.execute(
        query.order_by(Coupon.created_at.desc(), Coupon.id.desc()).limit(limit).offset((page - 1) * limit)
    )
    return result.scalars().all(), total


async def get_active_coupons(db: AsyncSession, now: Optional[datetime] = None) -> List[Coupon]:
    now = to_utc(now) or datetime.now(timezone.utc)
    result = await db.execute(
        select(Coupon)
        .where(
            *_redeemable_at(now),
            or_(Coupon.usage_limit.is_(None), Coupon.used < Coupon.usage_limit),
        )
        .order_by(Coupon.created_at.desc(), Coupon.id.desc())
    )
    return result.scalars().all()


async def get_coupon(db: AsyncSession, coupon_id: int) -> Coupon:
    coupon = await db.get(Coupon, coupon_id)
    if not coupon:
        raise NotFound("Coupon not found")
    return coupon


async def _ensure_code_free(db: AsyncSession, code: str, exclude_id: Optional[int] = None):
    query = select(Coupon.id).where(Coupon.code == code)
    if exclude_id is not None:
        query = query.where(Coupon.id != exclude_id)
    if (await db.execute(query)).first():
        raise Conflict("Coupon code already exists")


async def create_coupon(db: AsyncSession, data: CouponCreate, current_user) -> Coupon:
    if data.type == CouponType.PERCENT and data.value > 100:
        raise ValidationError("Percent coupon value must be between 0 and 100")
    await _ensure_code_free(db, data.code)

    coupon = Coupon(**data.model_dump(), used=0)
    db.add(coupon)
    await db.flush()

    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Created coupon '{coupon.code}' (ID: {coupon.id})",
    )
    await db.commit()
    await db.refresh(coupon)
    return coupon


async def update_coupon(db: AsyncSession, coupon_id: int, data: CouponUpdate, current_user) -> Coupon:
    coupon = await get_coupon(db, coupon_id)
    changes = data.model_dump(exclude_unset=True)
    for key in ("code", "type", "value", "login_required", "status"):
        if key in changes and changes[key] is None:
            changes.pop(key)

    if changes.get("code") and changes["code"] != coupon.code:
        await _ensure_code_free(db, changes["code"], exclude_id=coupon_id)

    coupon_type = changes.get("type") or coupon.type
    value = changes.get("value") or coupon.value
    if CouponType(coupon_type) == CouponType.PERCENT and to_decimal(value) > 100:
        raise ValidationError("Percent coupon value must be between 0 and 100")
    if changes.get("usage_limit") is not None and changes["usage_limit"] < coupon.used:
        raise ValidationError(f"Usage limit cannot be lower than current usage ({coupon.used})")

    # rows read back from SQLite come out naive
    starts_at = to_utc(changes.get("starts_at", coupon.starts_at))
    expires_at = to_utc(changes.get("expires_at", coupon.expires_at))
    if "starts_at" in changes or "expires_at" in changes:
        if starts_at and expires_at and starts_at > expires_at:
            raise ValidationError("starts_at must not be after expires_at")

    for key, value in changes.items():
        setattr(coupon, key, value)

    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Updated coupon '{coupon.code}' (ID: {coupon.id})",
    )
    await db.commit()
    await db.refresh(coupon)
    return coupon


async def delete_coupon(db: AsyncSession, coupon_id: int, current_user) -> None:
    coupon = await get_coupon(db, coupon_id)
    await db.delete(coupon)
    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Deleted coupon '{coupon.code}' (ID: {coupon_id})",
    )
    await db.commit()
