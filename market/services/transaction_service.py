# market/services/transaction_service.py
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import exists, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.errors import Conflict, Forbidden, InvalidTransition, NotFound, ValidationError
from market.models.catalog_models import Product
from market.models.transaction_models import OrderItem, Transaction, TransactionStatus
from market.models.user_models import User
from market.services.catalog_service import count_rows
from market.services.order_item_service import order_item_to_dict
from market.utils.activity_helpers import log_user_activity

logger = logging.getLogger(__name__)

PENDING = TransactionStatus.PENDING
PAID = TransactionStatus.PAID
PROCESSED = TransactionStatus.PROCESSED
COMPLETED = TransactionStatus.COMPLETED
CANCELLED = TransactionStatus.CANCELLED

TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED})

# (current status, actor role) -> statuses that may be requested
TRANSITIONS: Dict[Tuple[TransactionStatus, str], FrozenSet[TransactionStatus]] = {
    (PENDING, "admin"): frozenset({PAID, PROCESSED, COMPLETED, CANCELLED}),
    (PAID, "admin"): frozenset({PROCESSED, COMPLETED, CANCELLED}),
    (PROCESSED, "admin"): frozenset({COMPLETED, CANCELLED}),
    (PENDING, "owner"): frozenset({CANCELLED}),
}

TRANSACTION_SORT_FIELDS = {
    "created_at": Transaction.created_at,
    "updated_at": Transaction.updated_at,
    "amount": Transaction.amount,
    "quantity": Transaction.quantity,
    "status": Transaction.status,
}


def can_transition(current: TransactionStatus, requested: TransactionStatus, role: str) -> bool:
    return requested in TRANSITIONS.get((current, role), frozenset())


async def _is_owner(db: AsyncSession, transaction_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(exists().where(OrderItem.transaction_id == transaction_id, OrderItem.user_id == user_id))
    )
    return bool(result.scalar())


def transaction_to_dict(transaction: Transaction, with_items: bool = False) -> dict:
    data = {
        "id": transaction.id,
        "invoice": transaction.invoice,
        "buyer": transaction.buyer,
        "contact": transaction.contact,
        "quantity": transaction.quantity,
        "price": transaction.price,
        "fees": transaction.fees,
        "amount": transaction.amount,
        "coupon_code": transaction.coupon_code,
        "note": transaction.note,
        "status": transaction.status,
        "created_at": transaction.created_at,
        "updated_at": transaction.updated_at,
        "activity_at": transaction.activity_at,
    }
    if with_items:
        data["items"] = [order_item_to_dict(item) for item in transaction.items]
    return data


# --------------------------
# STATUS CHANGES
# --------------------------
async def set_status(
    db: AsyncSession,
    transaction_id: int,
    new_status: TransactionStatus,
    actor_role: str,
    actor_user_id: int,
    actor_username: Optional[str] = None,
) -> dict:
    """
    Move a transaction to ``new_status``.

    Admins drive every transition; the buyer who owns a pending transaction
    may only cancel it. Requesting the current status again changes nothing
    but the activity timestamp. Entering ``completed`` adds each order item's
    quantity to its product's ``sold`` counter, once per transaction: the
    status write is conditional on the status read here, so a concurrent
    completion of the same transaction finds nothing to update.
    """
    new_status = TransactionStatus(new_status)
    is_admin = actor_role == "admin"

    try:
        result = await db.execute(
            select(Transaction).where(Transaction.id == transaction_id).with_for_update()
        )
        transaction = result.scalars().first()
        if not transaction:
            raise NotFound("Transaction not found")

        current = TransactionStatus(transaction.status)
        if not is_admin:
            if not await _is_owner(db, transaction_id, actor_user_id):
                raise Forbidden("You can only change your own transactions")
            if current != PENDING or new_status != CANCELLED:
                raise Forbidden("Only pending transactions can be cancelled by the buyer")

        if new_status == CANCELLED and current == COMPLETED:
            raise InvalidTransition(current.value, new_status.value, "Completed transactions cannot be cancelled")

        now = datetime.now(timezone.utc)
        if new_status == current:
            await db.execute(
                update(Transaction)
                .where(Transaction.id == transaction_id)
                .values(activity_at=now)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            return {"id": transaction_id, "previous_status": current, "status": current, "changed": False}

        if current in TERMINAL_STATUSES:
            raise InvalidTransition(current.value, new_status.value, f"Transaction is already {current.value}")
        if not can_transition(current, new_status, "admin" if is_admin else "owner"):
            raise InvalidTransition(current.value, new_status.value)

        written = await db.execute(
            update(Transaction)
            .where(Transaction.id == transaction_id, Transaction.status == current)
            .values(status=new_status, activity_at=now)
            .execution_options(synchronize_session=False)
        )
        if written.rowcount != 1:
            raise Conflict("Transaction status changed concurrently, please retry")

        if new_status == COMPLETED:
            sold: Dict[int, int] = defaultdict(int)
            for item in transaction.items:
                sold[item.variant.product_id] += item.quantity
            for product_id, quantity in sold.items():
                await db.execute(
                    update(Product)
                    .where(Product.id == product_id)
                    .values(sold=Product.sold + quantity)
                    .execution_options(synchronize_session=False)
                )

        await log_user_activity(
            db,
            user_id=actor_user_id,
            username=actor_username,
            message=f"Transaction {transaction.invoice} status changed from {current.value} to {new_status.value}",
        )
        await db.commit()

    except HTTPException:
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        logger.exception("Status change failed for transaction %s", transaction_id)
        raise

    logger.info("Transaction %s moved %s -> %s", transaction_id, current.value, new_status.value)
    return {"id": transaction_id, "previous_status": current, "status": new_status, "changed": True}


async def cancel_transaction(db: AsyncSession, transaction_id: int, current_user: User) -> dict:
    return await set_status(
        db,
        transaction_id,
        CANCELLED,
        actor_role=current_user.role,
        actor_user_id=current_user.id,
        actor_username=current_user.username,
    )


# --------------------------
# READS
# --------------------------
async def list_transactions(
    db: AsyncSession,
    status: Optional[TransactionStatus] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    sort: str = "created_at",
    order: str = "desc",
    user_id: Optional[int] = None,
) -> Tuple[List[dict], int]:
    if sort not in TRANSACTION_SORT_FIELDS:
        raise ValidationError(f"Invalid sort field. Allowed: {', '.join(TRANSACTION_SORT_FIELDS)}")
    if order.lower() not in ("asc", "desc"):
        raise ValidationError("Invalid order. Allowed: ASC, DESC")

    query = select(Transaction)
    if user_id is not None:
        query = query.where(
            exists().where(OrderItem.transaction_id == Transaction.id, OrderItem.user_id == user_id)
        )
    if status is not None:
        query = query.where(Transaction.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            Transaction.invoice.ilike(pattern),
            Transaction.buyer.ilike(pattern),
            Transaction.contact.ilike(pattern),
        ))

    total = await count_rows(db, query)

    column = TRANSACTION_SORT_FIELDS[sort]
    query = query.order_by(column.desc() if order.lower() == "desc" else column.asc(), Transaction.id.desc())
    result = await db.execute(query.limit(limit).offset((page - 1) * limit))
    return [transaction_to_dict(t) for t in result.scalars().all()], total


async def list_user_transactions(
    db: AsyncSession,
    user_id: int,
    status: Optional[TransactionStatus] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[dict], int]:
    return await list_transactions(db, status=status, page=page, limit=limit, user_id=user_id)


async def _readable_transaction(db: AsyncSession, condition, current_user: User) -> dict:
    result = await db.execute(select(Transaction).where(condition).execution_options(populate_existing=True))
    transaction = result.scalars().first()
    if not transaction:
        raise NotFound("Transaction not found")
    if not current_user.is_admin and not await _is_owner(db, transaction.id, current_user.id):
        raise Forbidden("You can only view your own transactions")
    return transaction_to_dict(transaction, with_items=True)


async def get_transaction(db: AsyncSession, transaction_id: int, current_user: User) -> dict:
    return await _readable_transaction(db, Transaction.id == transaction_id, current_user)


async def get_transaction_by_invoice(db: AsyncSession, invoice: str, current_user: User) -> dict:
    return await _readable_transaction(db, Transaction.invoice == invoice.strip(), current_user)
