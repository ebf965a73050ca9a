"""Tests for coupon evaluation and usage claims."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from conftest import make_coupon, make_user
from market.core.db import AsyncSessionLocal
from market.core.errors import CouponLimitReached, CouponNotFound, MinimumPurchaseNotMet
from market.models import Coupon, CouponType
from market.schemas.coupon_schemas import CouponCreate, CouponUpdate
from market.services import coupon_service

pytestmark = pytest.mark.anyio


class TestEvaluate:
    async def test_percent_coupon_clamped(self, db):
        make_coupon(db, "SAVE20", value="20", max_value="20")
        async with AsyncSessionLocal() as session:
            evaluation = await coupon_service.evaluate(session, "SAVE20", Decimal("180"))
        assert evaluation.discount_amount == Decimal("20.00")
        assert evaluation.coupon.code == "SAVE20"

    async def test_amount_coupon(self, db):
        make_coupon(db, "FLAT15", type=CouponType.AMOUNT, value="15")
        async with AsyncSessionLocal() as session:
            evaluation = await coupon_service.evaluate(session, "FLAT15", Decimal("180"))
        assert evaluation.discount_amount == Decimal("15.00")

    async def test_unknown_code(self, db):
        async with AsyncSessionLocal() as session:
            with pytest.raises(CouponNotFound) as exc:
                await coupon_service.evaluate(session, "NOPE", Decimal("10"))
        assert exc.value.status_code == 404

    async def test_disabled_coupon_looks_absent(self, db):
        make_coupon(db, "OFF", status=False)
        async with AsyncSessionLocal() as session:
            with pytest.raises(CouponNotFound):
                await coupon_service.evaluate(session, "OFF", Decimal("10"))

    async def test_expired_coupon_looks_absent(self, db):
        now = datetime.now(timezone.utc)
        make_coupon(db, "OLD", starts_at=now - timedelta(days=10), expires_at=now - timedelta(days=1))
        async with AsyncSessionLocal() as session:
            with pytest.raises(CouponNotFound):
                await coupon_service.evaluate(session, "OLD", Decimal("10"))

    async def test_not_started_coupon_looks_absent(self, db):
        now = datetime.now(timezone.utc)
        make_coupon(db, "SOON", starts_at=now + timedelta(days=1), expires_at=now + timedelta(days=10))
        async with AsyncSessionLocal() as session:
            with pytest.raises(CouponNotFound):
                await coupon_service.evaluate(session, "SOON", Decimal("10"))

    async def test_limit_reached(self, db):
        make_coupon(db, "ONCE", usage_limit=1, used=1)
        async with AsyncSessionLocal() as session:
            with pytest.raises(CouponLimitReached):
                await coupon_service.evaluate(session, "ONCE", Decimal("10"))

    async def test_minimum_purchase(self, db):
        make_coupon(db, "BIG", min_purchase="200")
        async with AsyncSessionLocal() as session:
            with pytest.raises(MinimumPurchaseNotMet) as exc:
                await coupon_service.evaluate(session, "BIG", Decimal("180"))
        assert exc.value.min_purchase == Decimal("200.00")

    async def test_evaluate_does_not_consume(self, db):
        coupon = make_coupon(db, "PEEK", usage_limit=1)
        async with AsyncSessionLocal() as session:
            await coupon_service.evaluate(session, "PEEK", Decimal("10"))
            await coupon_service.evaluate(session, "PEEK", Decimal("10"))
        db.expire_all()
        assert db.get(Coupon, coupon.id).used == 0


class TestCouponWindow:
    JAKARTA = timezone(timedelta(hours=7))

    async def test_offset_datetimes_are_stored_as_utc(self):
        data = CouponCreate(
            code="WIB",
            type=CouponType.PERCENT,
            value=Decimal("10"),
            starts_at=datetime(2026, 1, 1, 9, 0, tzinfo=self.JAKARTA),
            expires_at=datetime(2026, 1, 2, 9, 0),
        )
        assert data.starts_at == datetime(2026, 1, 1, 2, 0, tzinfo=timezone.utc)
        assert data.starts_at.utcoffset() == timedelta(0)
        # naive input is read as UTC
        assert data.expires_at == datetime(2026, 1, 2, 9, 0, tzinfo=timezone.utc)

    async def test_offset_expiry_in_the_past_is_rejected(self, db):
        admin = make_user(db, "admin", role="admin")
        local_now = datetime.now(self.JAKARTA)
        data = CouponCreate(
            code="LATE",
            type=CouponType.PERCENT,
            value=Decimal("10"),
            starts_at=local_now - timedelta(days=1),
            expires_at=local_now - timedelta(hours=1),
        )
        async with AsyncSessionLocal() as session:
            await coupon_service.create_coupon(session, data, admin)
        async with AsyncSessionLocal() as session:
            with pytest.raises(CouponNotFound):
                await coupon_service.evaluate(session, "LATE", Decimal("100"))

    async def test_bounds_are_inclusive(self, db):
        starts_at = datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)
        expires_at = datetime(2026, 3, 31, 23, 59, 59, tzinfo=timezone.utc)
        make_coupon(db, "MARCH", value="10", starts_at=starts_at, expires_at=expires_at)

        async with AsyncSessionLocal() as session:
            first = await coupon_service.evaluate(session, "MARCH", Decimal("100"), now=starts_at)
            last = await coupon_service.evaluate(session, "MARCH", Decimal("100"), now=expires_at)
            assert first.discount_amount == last.discount_amount == Decimal("10.00")

            with pytest.raises(CouponNotFound):
                await coupon_service.evaluate(
                    session, "MARCH", Decimal("100"), now=starts_at - timedelta(seconds=1)
                )
            with pytest.raises(CouponNotFound):
                await coupon_service.evaluate(
                    session, "MARCH", Decimal("100"), now=expires_at + timedelta(seconds=1)
                )

    async def test_offset_now_is_compared_in_utc(self, db):
        expires_at = datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)
        make_coupon(db, "NOON", value="10", starts_at=expires_at - timedelta(days=1), expires_at=expires_at)

        async with AsyncSessionLocal() as session:
            # 19:00 in UTC+7 is the expiry instant itself
            evaluation = await coupon_service.evaluate(
                session, "NOON", Decimal("100"), now=expires_at.astimezone(self.JAKARTA)
            )
            assert evaluation.coupon.code == "NOON"
            with pytest.raises(CouponNotFound):
                await coupon_service.evaluate(
                    session, "NOON", Decimal("100"),
                    now=(expires_at + timedelta(minutes=1)).astimezone(self.JAKARTA),
                )

    async def test_update_with_offset_expiry(self, db):
        admin = make_user(db, "admin", role="admin")
        coupon = make_coupon(db, "MOVE", value="10")
        local_past = datetime.now(self.JAKARTA) - timedelta(hours=1)

        async with AsyncSessionLocal() as session:
            updated = await coupon_service.update_coupon(
                session, coupon.id, CouponUpdate(expires_at=local_past), admin
            )
            assert updated.code == "MOVE"
        async with AsyncSessionLocal() as session:
            with pytest.raises(CouponNotFound):
                await coupon_service.evaluate(session, "MOVE", Decimal("100"))


class TestValidateCoupon:
    async def test_returns_final_price(self, db):
        make_coupon(db, "SAVE20", value="20", max_value="20")
        async with AsyncSessionLocal() as session:
            result = await coupon_service.validate_coupon(session, "SAVE20", Decimal("180"))
        assert result["discount_amount"] == Decimal("20.00")
        assert result["final_price"] == Decimal("160.00")


class TestClaimCouponUse:
    async def test_increments_used(self, db):
        coupon = make_coupon(db, "MULTI", usage_limit=3)
        async with AsyncSessionLocal() as session:
            row = await session.get(Coupon, coupon.id)
            await coupon_service.claim_coupon_use(session, row)
            await session.commit()
        db.expire_all()
        assert db.get(Coupon, coupon.id).used == 1

    async def test_unlimited_coupon(self, db):
        coupon = make_coupon(db, "FOREVER", used=41)
        async with AsyncSessionLocal() as session:
            row = await session.get(Coupon, coupon.id)
            await coupon_service.claim_coupon_use(session, row)
            await session.commit()
        db.expire_all()
        assert db.get(Coupon, coupon.id).used == 42

    async def test_stale_reader_cannot_exceed_limit(self, db):
        coupon = make_coupon(db, "LAST", usage_limit=1)

        async with AsyncSessionLocal() as slow:
            result = await slow.execute(select(Coupon).where(Coupon.code == "LAST"))
            stale = result.scalars().first()
            assert stale.used == 0

            # a concurrent checkout takes the only use first
            async with AsyncSessionLocal() as fast:
                row = await fast.get(Coupon, coupon.id)
                await coupon_service.claim_coupon_use(fast, row)
                await fast.commit()

            with pytest.raises(CouponLimitReached):
                await coupon_service.claim_coupon_use(slow, stale)
            await slow.rollback()

        db.expire_all()
        assert db.get(Coupon, coupon.id).used == 1
