# market/routers/order_items_router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.db import get_db
from market.models.transaction_models import OrderItemStatus
from market.schemas.response_schemas import ApiResponse, ok, paginate
from market.schemas.transaction_schemas import OrderItemOut, OrderItemStatusUpdate
from market.services import order_item_service
from market.utils.check_roles import require_role
from market.utils.get_user import get_current_user

router = APIRouter(prefix="/order-items", tags=["Order Items"])


@router.get("", response_model=ApiResponse[List[OrderItemOut]])
@require_role(["admin"])
async def list_order_items(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    user_id: Optional[int] = Query(None),
    transaction_id: Optional[int] = Query(None),
    status_filter: Optional[OrderItemStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    items, total = await order_item_service.list_order_items(
        db, user_id=user_id, status=status_filter, transaction_id=transaction_id, page=page, limit=limit
    )
    return paginate(items, page, limit, total, "Order items fetched successfully")


@router.get("/mine", response_model=ApiResponse[List[OrderItemOut]])
async def my_order_items(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    status_filter: Optional[OrderItemStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    items, total = await order_item_service.list_order_items(
        db, user_id=current_user.id, status=status_filter, page=page, limit=limit
    )
    return paginate(items, page, limit, total, "Order items fetched successfully")


@router.get("/{item_id}", response_model=ApiResponse[OrderItemOut])
async def get_order_item(
    item_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    item = await order_item_service.get_order_item(db, item_id, current_user)
    return ok(item, "Order item fetched successfully")


@router.put("/{item_id}/status", response_model=ApiResponse[OrderItemOut])
@require_role(["admin"])
async def update_order_item_status(
    item_id: int,
    data: OrderItemStatusUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    item = await order_item_service.update_order_item_status(db, item_id, data.status, _user)
    return ok(item, "Order item status updated")
