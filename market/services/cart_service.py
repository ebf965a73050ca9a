# market/services/cart_service.py
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.errors import (
    BelowMinimumOrder, NotFound, Unavailable, UnavailableVariant, ValidationError
)
from market.models.cart_models import Cart
from market.models.catalog_models import Product, ProductVariant, VariantStatus
from market.schemas.cart_schemas import CartAdd, CartUpdate
from market.utils.decimal_utils import to_decimal
from market.utils.pricing import effective_unit_price


@dataclass
class CheckoutLine:
    """A checked cart line priced against the live variant row."""

    cart_id: int
    product_id: int
    variant: ProductVariant
    quantity: int
    unit_price: Decimal
    note: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return to_decimal(self.unit_price * self.quantity)


# --------------------------
# CART AGGREGATOR
# --------------------------
async def load_checkout_set(db: AsyncSession, user_id: int, lock: bool = False) -> List[CheckoutLine]:
    """
    Return the user's checked cart lines joined with current variant pricing.

    Raises UnavailableVariant when a variant is not "on" and BelowMinimumOrder
    when a line's quantity is under the variant's min_order. An empty list is
    returned as-is; deciding what an empty cart means is up to the caller.
    With ``lock`` the cart rows stay locked until the caller's transaction ends.
    """
    query = (
        select(Cart, ProductVariant)
        .join(ProductVariant, Cart.variant_id == ProductVariant.id)
        .where(Cart.user_id == user_id, Cart.checked == True)  # noqa: E712
        .order_by(Cart.id.asc())
    )
    if lock:
        query = query.with_for_update(of=Cart)

    result = await db.execute(query)
    lines = []
    for cart, variant in result.all():
        if variant.status != VariantStatus.ON:
            raise UnavailableVariant(variant.id)
        if cart.quantity < variant.min_order:
            raise BelowMinimumOrder(variant.id, variant.min_order)
        lines.append(CheckoutLine(
            cart_id=cart.id,
            product_id=variant.product_id,
            variant=variant,
            quantity=cart.quantity,
            unit_price=effective_unit_price(variant.price, variant.discount, variant.discount_type),
            note=cart.note,
        ))
    return lines


# --------------------------
# CART VIEW
# --------------------------
async def get_cart(db: AsyncSession, user_id: int) -> dict:
    result = await db.execute(
        select(Cart).where(Cart.user_id == user_id).order_by(Cart.created_at.desc(), Cart.id.desc())
    )
    total_items = 0
    total_price = Decimal("0.00")
    items = []
    for line in result.scalars().all():
        variant = line.variant
        item_price = effective_unit_price(variant.price, variant.discount, variant.discount_type)
        item_total = to_decimal(item_price * line.quantity)
        if line.checked:
            total_items += line.quantity
            total_price += item_total
        items.append({
            "id": line.id,
            "product_id": line.product_id,
            "variant_id": line.variant_id,
            "quantity": line.quantity,
            "checked": line.checked,
            "note": line.note,
            "product_name": line.product.name if line.product else None,
            "product_slug": line.product.slug if line.product else None,
            "variant_name": variant.name,
            "sku": variant.sku,
            "variant_status": variant.status.value,
            "price": to_decimal(variant.price),
            "item_price": item_price,
            "item_total": item_total,
        })
    return {
        "items": items,
        "summary": {"total_items": total_items, "total_price": to_decimal(total_price)},
    }


# --------------------------
# CART WRITES
# --------------------------
async def add_to_cart(db: AsyncSession, user_id: int, data: CartAdd) -> Tuple[Cart, bool]:
    """Add a line, or merge the quantity into the existing line. Returns (line, created)."""
    product = await db.get(Product, data.product_id)
    if not product:
        raise NotFound("Product not found")
    if not product.status:
        raise Unavailable("Product is not available")

    variant = await db.get(ProductVariant, data.variant_id)
    if not variant:
        raise NotFound("Product variant not found")
    if variant.product_id != data.product_id:
        raise ValidationError("Variant does not belong to this product")
    if variant.status != VariantStatus.ON:
        raise Unavailable("Product variant is not available")
    if data.quantity < variant.min_order:
        raise ValidationError(f"Minimum order is {variant.min_order}")

    note = data.note.strip() if data.note else None
    line = await _find_line(db, user_id, data.product_id, data.variant_id)
    if line is None:
        line = Cart(
            user_id=user_id,
            product_id=data.product_id,
            variant_id=data.variant_id,
            quantity=data.quantity,
            checked=True,
            note=note,
        )
        db.add(line)
        try:
            await db.commit()
            await db.refresh(line)
            return line, True
        except IntegrityError:
            # a concurrent request inserted the same line first
            await db.rollback()
            line = await _find_line(db, user_id, data.product_id, data.variant_id)
            if line is None:
                raise

    values = {"quantity": Cart.quantity + data.quantity}
    if note is not None:
        values["note"] = note
    await db.execute(update(Cart).where(Cart.id == line.id).values(**values))
    await db.commit()
    await db.refresh(line)
    return line, False


async def _find_line(db: AsyncSession, user_id: int, product_id: int, variant_id: int) -> Optional[Cart]:
    result = await db.execute(
        select(Cart).where(
            Cart.user_id == user_id,
            Cart.product_id == product_id,
            Cart.variant_id == variant_id,
        )
    )
    return result.scalars().first()


async def update_cart_item(db: AsyncSession, user_id: int, cart_id: int, data: CartUpdate) -> Cart:
    result = await db.execute(select(Cart).where(Cart.id == cart_id, Cart.user_id == user_id))
    line = result.scalars().first()
    if not line:
        raise NotFound("Cart item not found")

    # only note may be cleared with an explicit null
    changes = {
        key: value
        for key, value in data.model_dump(exclude_unset=True).items()
        if value is not None or key == "note"
    }
    if not changes:
        raise ValidationError("No fields to update")
    if "quantity" in changes and changes["quantity"] < line.variant.min_order:
        raise ValidationError(f"Minimum order is {line.variant.min_order}")
    if "note" in changes:
        changes["note"] = changes["note"].strip() if changes["note"] else None

    for key, value in changes.items():
        setattr(line, key, value)
    await db.commit()
    await db.refresh(line)
    return line


async def delete_cart_item(db: AsyncSession, user_id: int, cart_id: int) -> None:
    result = await db.execute(delete(Cart).where(Cart.id == cart_id, Cart.user_id == user_id))
    if result.rowcount == 0:
        raise NotFound("Cart item not found")
    await db.commit()


async def clear_cart(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(delete(Cart).where(Cart.user_id == user_id))
    await db.commit()
    return result.rowcount


async def toggle_check_all(db: AsyncSession, user_id: int, checked: bool) -> int:
    result = await db.execute(update(Cart).where(Cart.user_id == user_id).values(checked=checked))
    await db.commit()
    return result.rowcount
