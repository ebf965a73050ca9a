"""Tests for the checkout pipeline."""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from conftest import add_cart_line, make_coupon, make_variant
from market.core.db import AsyncSessionLocal
from market.core.errors import (
    Conflict, CouponLimitReached, EmptyCart, MinimumPurchaseNotMet, UnavailableVariant
)
from market.models import Cart, Coupon, CouponType, OrderItem, Transaction, TransactionStatus, VariantStatus
from market.services.checkout_service import checkout

pytestmark = pytest.mark.anyio


async def _checkout(user, **kwargs):
    async with AsyncSessionLocal() as session:
        return await checkout(session, user, buyer="Jane Doe", contact="jane@example.com", **kwargs)


def _count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


class TestCheckoutTotals:
    async def test_without_coupon(self, catalog, buyer, db):
        add_cart_line(db, buyer, catalog["variant"], 2)

        result = await _checkout(buyer)

        assert result["total_quantity"] == 2
        assert result["total_price"] == Decimal("180.00")
        assert result["discount"] == Decimal("0.00")
        assert result["final_amount"] == Decimal("180.00")
        assert result["invoice"].startswith("INV-")

    async def test_with_clamped_percent_coupon(self, catalog, buyer, db):
        add_cart_line(db, buyer, catalog["variant"], 2)
        coupon = make_coupon(db, "SAVE20", type=CouponType.PERCENT, value="20", max_value="20")

        result = await _checkout(buyer, coupon_code="SAVE20")

        assert result["discount"] == Decimal("20.00")
        assert result["final_amount"] == Decimal("160.00")
        db.expire_all()
        assert db.get(Coupon, coupon.id).used == 1
        transaction = db.get(Transaction, result["transaction_id"])
        assert transaction.coupon_code == "SAVE20"
        assert transaction.amount == Decimal("160.00")

    async def test_persisted_rows_agree(self, catalog, buyer, db):
        other = make_variant(db, catalog["product"], "VID-3M", "250.00")
        add_cart_line(db, buyer, catalog["variant"], 2, note="for my tv")
        add_cart_line(db, buyer, other, 1)

        result = await _checkout(buyer, note="gift")

        db.expire_all()
        transaction = db.get(Transaction, result["transaction_id"])
        items = db.execute(
            select(OrderItem).where(OrderItem.transaction_id == transaction.id).order_by(OrderItem.id)
        ).scalars().all()

        assert transaction.status == TransactionStatus.PENDING
        assert transaction.price == Decimal("430.00")
        assert transaction.amount == transaction.price - Decimal("0.00")
        assert sum(item.quantity for item in items) == transaction.quantity == 3
        assert [item.price for item in items] == [Decimal("90.00"), Decimal("250.00")]
        assert items[0].note == "for my tv"
        assert all(item.user_id == buyer.id for item in items)

    async def test_amount_coupon_can_make_total_negative(self, catalog, buyer, db):
        add_cart_line(db, buyer, catalog["variant"], 2)
        make_coupon(db, "HUGE", type=CouponType.AMOUNT, value="500")

        result = await _checkout(buyer, coupon_code="HUGE")

        assert result["discount"] == Decimal("500.00")
        assert result["final_amount"] == Decimal("-320.00")


class TestCheckoutCart:
    async def test_empty_cart(self, catalog, buyer, db):
        with pytest.raises(EmptyCart) as exc:
            await _checkout(buyer)
        assert exc.value.status_code == 400
        assert _count(db, Transaction) == 0

    async def test_only_unchecked_lines_counts_as_empty(self, catalog, buyer, db):
        add_cart_line(db, buyer, catalog["variant"], 2, checked=False)
        with pytest.raises(EmptyCart):
            await _checkout(buyer)
        assert _count(db, Transaction) == 0

    async def test_second_checkout_finds_cart_empty(self, catalog, buyer, db):
        add_cart_line(db, buyer, catalog["variant"], 2)

        await _checkout(buyer)
        with pytest.raises(EmptyCart):
            await _checkout(buyer)

        assert _count(db, Transaction) == 1

    async def test_concurrent_double_checkout_creates_one_order(self, catalog, buyer, db):
        add_cart_line(db, buyer, catalog["variant"], 2)

        results = await asyncio.gather(_checkout(buyer), _checkout(buyer), return_exceptions=True)

        succeeded = [result for result in results if isinstance(result, dict)]
        failed = [result for result in results if isinstance(result, Exception)]
        assert len(succeeded) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], (Conflict, EmptyCart))
        assert _count(db, Transaction) == 1
        assert _count(db, OrderItem) == 1
        assert _count(db, Cart) == 0

    async def test_unchecked_lines_stay_in_cart(self, catalog, buyer, db):
        other = make_variant(db, catalog["product"], "VID-3M", "250.00")
        add_cart_line(db, buyer, catalog["variant"], 2)
        kept = add_cart_line(db, buyer, other, 1, checked=False)

        await _checkout(buyer)

        remaining = db.execute(select(Cart.id).where(Cart.user_id == buyer.id)).scalars().all()
        assert remaining == [kept.id]

    async def test_unavailable_variant_rolls_back(self, catalog, buyer, db):
        off = make_variant(db, catalog["product"], "VID-OFF", "10.00", status=VariantStatus.OFF)
        add_cart_line(db, buyer, catalog["variant"], 2)
        add_cart_line(db, buyer, off, 1)

        with pytest.raises(UnavailableVariant):
            await _checkout(buyer)

        assert _count(db, Transaction) == 0
        assert _count(db, Cart) == 2


class TestCheckoutCoupons:
    async def test_unknown_coupon_is_ignored(self, catalog, buyer, db):
        add_cart_line(db, buyer, catalog["variant"], 2)

        result = await _checkout(buyer, coupon_code="NOPE")

        assert result["discount"] == Decimal("0.00")
        assert result["final_amount"] == Decimal("180.00")
        db.expire_all()
        transaction = db.get(Transaction, result["transaction_id"])
        # kept as submitted even though no discount applied
        assert transaction.coupon_code == "NOPE"
        assert transaction.amount == transaction.price

    async def test_minimum_purchase_aborts(self, catalog, buyer, db):
        add_cart_line(db, buyer, catalog["variant"], 2)
        coupon = make_coupon(db, "BIG", min_purchase="500")

        with pytest.raises(MinimumPurchaseNotMet):
            await _checkout(buyer, coupon_code="BIG")

        assert _count(db, Transaction) == 0
        assert _count(db, OrderItem) == 0
        assert _count(db, Cart) == 1
        db.expire_all()
        assert db.get(Coupon, coupon.id).used == 0

    async def test_single_use_coupon_applies_once(self, catalog, buyer, other_buyer, db):
        coupon = make_coupon(db, "ONCE", value="10", usage_limit=1)
        add_cart_line(db, buyer, catalog["variant"], 2)
        add_cart_line(db, other_buyer, catalog["variant"], 1)

        first = await _checkout(buyer, coupon_code="ONCE")
        with pytest.raises(CouponLimitReached):
            await _checkout(other_buyer, coupon_code="ONCE")

        assert first["discount"] == Decimal("18.00")
        assert _count(db, Transaction) == 1
        db.expire_all()
        assert db.get(Coupon, coupon.id).used == 1
        # the losing buyer keeps their cart
        assert db.execute(select(Cart).where(Cart.user_id == other_buyer.id)).scalars().first() is not None

    async def test_concurrent_checkouts_share_single_use_coupon(self, catalog, buyer, other_buyer, db):
        coupon = make_coupon(db, "ONCE", value="10", usage_limit=1)
        add_cart_line(db, buyer, catalog["variant"], 2)
        add_cart_line(db, other_buyer, catalog["variant"], 1)

        results = await asyncio.gather(
            _checkout(buyer, coupon_code="ONCE"),
            _checkout(other_buyer, coupon_code="ONCE"),
            return_exceptions=True,
        )

        succeeded = [result for result in results if isinstance(result, dict)]
        failed = [result for result in results if isinstance(result, Exception)]
        assert len(succeeded) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], CouponLimitReached)
        assert _count(db, Transaction) == 1
        db.expire_all()
        assert db.get(Coupon, coupon.id).used == 1
        assert _count(db, Cart) == 1
