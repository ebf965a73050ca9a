# market/routers/transactions_router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.db import get_db
from market.models.transaction_models import TransactionStatus
from market.schemas.response_schemas import ApiResponse, ok, paginate
from market.schemas.transaction_schemas import (
    CheckoutOut, CheckoutRequest, StatusChangeOut, StatusUpdate, TransactionDetailOut, TransactionOut
)
from market.services import transaction_service
from market.services.checkout_service import checkout as run_checkout
from market.utils.check_roles import require_role
from market.utils.get_user import get_current_user

router = APIRouter(prefix="/transactions", tags=["Transactions"])


# --------------------------
# CHECKOUT
# --------------------------
@router.post("/checkout", response_model=ApiResponse[CheckoutOut], status_code=status.HTTP_201_CREATED)
async def checkout(
    request: Request,
    data: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    """
    Convert the checked cart lines into a pending transaction.
    """
    result = await run_checkout(
        db,
        current_user,
        buyer=data.buyer,
        contact=data.contact,
        coupon_code=data.coupon_code,
        note=data.note,
        ip_address=request.client.host if request.client else None,
    )
    return ok(result, "Checkout successful", status.HTTP_201_CREATED)


# --------------------------
# READS
# --------------------------
@router.get("", response_model=ApiResponse[List[TransactionOut]])
@require_role(["admin"])
async def list_transactions(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: str = Query("created_at"),
    order: str = Query("desc"),
):
    transactions, total = await transaction_service.list_transactions(
        db, status=status_filter, search=search, page=page, limit=limit, sort=sort, order=order
    )
    return paginate(transactions, page, limit, total, "Transactions fetched successfully")


@router.get("/my-transactions", response_model=ApiResponse[List[TransactionOut]])
async def my_transactions(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    transactions, total = await transaction_service.list_user_transactions(
        db, current_user.id, status=status_filter, page=page, limit=limit
    )
    return paginate(transactions, page, limit, total, "Transactions fetched successfully")


@router.get("/invoice/{invoice}", response_model=ApiResponse[TransactionDetailOut])
async def get_by_invoice(
    invoice: str,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    transaction = await transaction_service.get_transaction_by_invoice(db, invoice, current_user)
    return ok(transaction, "Transaction fetched successfully")


@router.get("/{transaction_id}", response_model=ApiResponse[TransactionDetailOut])
async def get_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    transaction = await transaction_service.get_transaction(db, transaction_id, current_user)
    return ok(transaction, "Transaction fetched successfully")


# --------------------------
# STATUS
# --------------------------
@router.put("/{transaction_id}/status", response_model=ApiResponse[StatusChangeOut])
@require_role(["admin"])
async def update_status(
    transaction_id: int,
    data: StatusUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    result = await transaction_service.set_status(
        db,
        transaction_id,
        data.status,
        actor_role=_user.role,
        actor_user_id=_user.id,
        actor_username=_user.username,
    )
    message = "Transaction status updated" if result["changed"] else "Transaction status unchanged"
    return ok(result, message)


@router.post("/{transaction_id}/cancel", response_model=ApiResponse[StatusChangeOut])
async def cancel_transaction(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    """Buyers may cancel their own pending transactions; admins any open one."""
    result = await transaction_service.cancel_transaction(db, transaction_id, current_user)
    return ok(result, "Transaction cancelled")
