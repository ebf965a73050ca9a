"""Pytest fixtures for the market API tests."""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

_TMP_DIR = tempfile.mkdtemp(prefix="market-tests-")
DB_PATH = os.path.join(_TMP_DIR, "test.db")

# must be set before market.core.config is imported
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DB_TYPE"] = "sqlite"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{DB_PATH}"

from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from market.core.db import Base  # noqa: E402
from market.core.security import create_access_token, hash_password  # noqa: E402
from market.models import (  # noqa: E402
    Cart, Category, Coupon, CouponType, DiscountType, Product, ProductVariant, User, VariantStatus
)

PASSWORD = "secret123"
_PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture(scope="session")
def sync_engine():
    engine = create_engine(f"sqlite:///{DB_PATH}")

    @event.listens_for(engine, "connect")
    def _fk_on(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def reset_db(sync_engine):
    """Fresh schema for every test."""
    Base.metadata.drop_all(sync_engine)
    Base.metadata.create_all(sync_engine)
    yield


@pytest.fixture
def db(sync_engine):
    """Synchronous session for seeding and inspecting rows."""
    with Session(sync_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from main import app

    return TestClient(app)


def make_user(db, username, role="user"):
    user = User(
        name=username.title(),
        username=username,
        email=f"{username}@example.com",
        password_hash=_PASSWORD_HASH,
        role=role,
        is_active=True,
        token_version=0,
    )
    db.add(user)
    db.commit()
    return user


def auth_headers(user):
    token = create_access_token(
        {"sub": user.username, "user_id": user.id, "role": user.role},
        token_version=user.token_version,
    )
    return {"Authorization": f"Bearer {token}"}


def make_variant(db, product, sku, price, discount="0", discount_type=DiscountType.PERCENT,
                 min_order=1, status=VariantStatus.ON):
    variant = ProductVariant(
        product_id=product.id,
        sku=sku,
        name=f"Variant {sku}",
        price=Decimal(price),
        discount=Decimal(discount),
        discount_type=discount_type,
        min_order=min_order,
        status=status,
    )
    db.add(variant)
    db.commit()
    return variant


def add_cart_line(db, user, variant, quantity, checked=True, note=None):
    line = Cart(
        user_id=user.id,
        product_id=variant.product_id,
        variant_id=variant.id,
        quantity=quantity,
        checked=checked,
        note=note,
    )
    db.add(line)
    db.commit()
    return line


def make_coupon(db, code, type=CouponType.PERCENT, value="20", max_value=None, min_purchase=None,
                usage_limit=None, used=0, starts_at=None, expires_at=None, status=True):
    now = datetime.now(timezone.utc)
    coupon = Coupon(
        code=code,
        type=type,
        value=Decimal(value),
        max_value=Decimal(max_value) if max_value is not None else None,
        min_purchase=Decimal(min_purchase) if min_purchase is not None else None,
        usage_limit=usage_limit,
        used=used,
        starts_at=starts_at or now - timedelta(days=1),
        expires_at=expires_at or now + timedelta(days=1),
        status=status,
    )
    db.add(coupon)
    db.commit()
    return coupon


@pytest.fixture
def catalog(db):
    """One category, one product and a 100.00 variant carrying a 10% discount."""
    category = Category(name="Streaming", slug="streaming", sort=0, status=True)
    db.add(category)
    db.commit()

    product = Product(category_id=category.id, name="Video Premium", slug="video-premium", status=True)
    db.add(product)
    db.commit()

    variant = make_variant(db, product, "VID-1M", "100.00", discount="10")
    return {"category": category, "product": product, "variant": variant}


@pytest.fixture
def admin(db):
    return make_user(db, "admin", role="admin")


@pytest.fixture
def buyer(db):
    return make_user(db, "buyer")


@pytest.fixture
def other_buyer(db):
    return make_user(db, "other")
