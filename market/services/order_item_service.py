# market/services/order_item_service.py
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.errors import Forbidden, NotFound
from market.models.transaction_models import OrderItem, OrderItemStatus
from market.models.user_models import User
from market.services.catalog_service import count_rows
from market.utils.activity_helpers import log_user_activity


def order_item_to_dict(item: OrderItem) -> dict:
    variant = item.variant
    return {
        "id": item.id,
        "transaction_id": item.transaction_id,
        "user_id": item.user_id,
        "variant_id": item.variant_id,
        "quantity": item.quantity,
        "price": item.price,
        "status": item.status,
        "note": item.note,
        "variant_name": variant.name if variant else None,
        "sku": variant.sku if variant else None,
        "product_name": variant.product.name if variant and variant.product else None,
        "invoice": item.transaction.invoice if item.transaction else None,
        "created_at": item.created_at,
    }


async def list_order_items(
    db: AsyncSession,
    user_id: Optional[int] = None,
    status: Optional[OrderItemStatus] = None,
    transaction_id: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[dict], int]:
    query = select(OrderItem)
    if user_id is not None:
        query = query.where(OrderItem.user_id == user_id)
    if status is not None:
        query = query.where(OrderItem.status == status)
    if transaction_id is not None:
        query = query.where(OrderItem.transaction_id == transaction_id)

    total = await count_rows(db, query)
    result = await db.execute(
        query.order_by(OrderItem.created_at.desc(), OrderItem.id.desc()).limit(limit).offset((page - 1) * limit)
    )
    return [order_item_to_dict(item) for item in result.scalars().all()], total


async def get_order_item(db: AsyncSession, item_id: int, current_user: User) -> dict:
    item = await db.get(OrderItem, item_id)
    if not item:
        raise NotFound("Order item not found")
    if not current_user.is_admin and item.user_id != current_user.id:
        raise Forbidden("You can only view your own order items")
    return order_item_to_dict(item)


async def update_order_item_status(
    db: AsyncSession, item_id: int, status: OrderItemStatus, current_user: User
) -> dict:
    item = await db.get(OrderItem, item_id)
    if not item:
        raise NotFound("Order item not found")

    previous = item.status
    item.status = status
    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Order item {item.id} status changed from {OrderItemStatus(previous).value} to {status.value}",
    )
    await db.commit()
    await db.refresh(item)
    return order_item_to_dict(item)
