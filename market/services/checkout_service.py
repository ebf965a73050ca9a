# market/services/checkout_service.py
import logging
import secrets
import time
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.config import INVOICE_PREFIX
from market.core.errors import Conflict, CouponNotFound, EmptyCart, InternalError
from market.models.cart_models import Cart
from market.models.transaction_models import OrderItem, OrderItemStatus, Transaction, TransactionStatus
from market.models.user_models import User
from market.services.cart_service import load_checkout_set
from market.services.coupon_service import claim_coupon_use, evaluate
from market.utils.activity_helpers import log_user_activity
from market.utils.decimal_utils import to_decimal

logger = logging.getLogger(__name__)

INVOICE_ATTEMPTS = 5


async def _generate_invoice_number(db: AsyncSession) -> str:
    """INV-<epoch millis>-<8 hex chars>, re-rolled while the number is taken."""
    for _ in range(INVOICE_ATTEMPTS):
        invoice = f"{INVOICE_PREFIX}-{int(time.time() * 1000)}-{secrets.token_hex(4)}"
        taken = await db.execute(select(Transaction.id).where(Transaction.invoice == invoice))
        if taken.first() is None:
            return invoice
    raise InternalError("Could not allocate a unique invoice number")


async def checkout(
    db: AsyncSession,
    user: User,
    buyer: str,
    contact: str,
    coupon_code: Optional[str] = None,
    note: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> dict:
    """
    Turn the user's checked cart lines into a pending transaction.

    Everything runs in the session's current database transaction: the
    transaction row, its order items, the coupon usage increment and the
    removal of the purchased cart lines are committed together or not at all.

    An unknown or expired coupon code is ignored and the order goes through at
    full price. The submitted code is still recorded on the transaction. A
    coupon that is exhausted, or whose minimum purchase is not met, fails the
    whole checkout.
    """
    user_id = user.id
    try:
        lines = await load_checkout_set(db, user_id, lock=True)
        if not lines:
            raise EmptyCart()

        total_quantity = sum(line.quantity for line in lines)
        total_price = to_decimal(sum((line.line_total for line in lines), Decimal("0.00")))

        coupon = None
        discount = Decimal("0.00")
        if coupon_code:
            try:
                evaluation = await evaluate(db, coupon_code, total_price, lock=True)
            except CouponNotFound:
                logger.info("Checkout for user %s ignores unknown coupon %r", user_id, coupon_code)
            else:
                coupon = evaluation.coupon
                discount = evaluation.discount_amount

        # may go negative with a flat coupon larger than the order
        final_amount = to_decimal(total_price - discount)

        transaction = Transaction(
            invoice=await _generate_invoice_number(db),
            buyer=buyer,
            contact=contact,
            quantity=total_quantity,
            price=total_price,
            fees=Decimal("0.00"),
            amount=final_amount,
            coupon_code=coupon.code if coupon else coupon_code,
            note=note,
            status=TransactionStatus.PENDING,
            ip_address=ip_address,
        )
        db.add(transaction)
        await db.flush()

        db.add_all([
            OrderItem(
                transaction_id=transaction.id,
                user_id=user_id,
                variant_id=line.variant.id,
                quantity=line.quantity,
                price=line.unit_price,
                status=OrderItemStatus.PENDING,
                note=line.note,
            )
            for line in lines
        ])

        if coupon is not None:
            await claim_coupon_use(db, coupon)

        cart_ids = [line.cart_id for line in lines]
        removed = await db.execute(
            delete(Cart).where(Cart.user_id == user_id, Cart.id.in_(cart_ids))
        )
        if removed.rowcount != len(cart_ids):
            raise Conflict("Cart changed during checkout, please try again")

        await log_user_activity(
            db,
            user_id=user_id,
            username=user.username,
            message=(
                f"Checked out {transaction.invoice}: {total_quantity} items, "
                f"total {total_price}, discount {discount}, amount {final_amount}"
            ),
        )
        await db.commit()

    except HTTPException as exc:
        await db.rollback()
        logger.info("Checkout failed for user %s: %s", user_id, exc.detail)
        raise
    except Exception:
        await db.rollback()
        logger.exception("Checkout crashed for user %s", user_id)
        raise

    logger.info("Checkout %s created for user %s (amount %s)", transaction.invoice, user_id, final_amount)
    return {
        "transaction_id": transaction.id,
        "invoice": transaction.invoice,
        "total_quantity": total_quantity,
        "total_price": total_price,
        "discount": discount,
        "final_amount": final_amount,
    }
