# market/routers/coupons_router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.db import get_db
from market.schemas.coupon_schemas import (
    CouponCreate, CouponOut, CouponUpdate, CouponValidateOut, CouponValidateRequest
)
from market.schemas.response_schemas import ApiResponse, ok, paginate
from market.services import coupon_service
from market.utils.check_roles import require_role
from market.utils.get_user import get_current_user

router = APIRouter(prefix="/coupons", tags=["Coupons"])


@router.get("/active", response_model=ApiResponse[List[CouponOut]])
async def active_coupons(db: AsyncSession = Depends(get_db)):
    coupons = await coupon_service.get_active_coupons(db)
    return ok([CouponOut.model_validate(c) for c in coupons], "Active coupons fetched successfully")


@router.post("/validate", response_model=ApiResponse[CouponValidateOut])
async def validate_coupon(
    data: CouponValidateRequest,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    """
    Strict check of a coupon against a cart total. Unlike checkout, an
    unknown or expired code is reported as 404 instead of being ignored.
    """
    result = await coupon_service.validate_coupon(db, data.code, data.total_price)
    return ok(
        CouponValidateOut(
            coupon=CouponOut.model_validate(result["coupon"]),
            discount_amount=result["discount_amount"],
            final_price=result["final_price"],
        ),
        "Coupon is valid",
    )


@router.get("", response_model=ApiResponse[List[CouponOut]])
@require_role(["admin"])
async def list_coupons(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    status_filter: Optional[bool] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    coupons, total = await coupon_service.list_coupons(db, status=status_filter, page=page, limit=limit)
    return paginate([CouponOut.model_validate(c) for c in coupons], page, limit, total, "Coupons fetched successfully")


@router.get("/{coupon_id}", response_model=ApiResponse[CouponOut])
@require_role(["admin"])
async def get_coupon(coupon_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    coupon = await coupon_service.get_coupon(db, coupon_id)
    return ok(CouponOut.model_validate(coupon), "Coupon fetched successfully")


@router.post("", response_model=ApiResponse[CouponOut], status_code=status.HTTP_201_CREATED)
@require_role(["admin"])
async def create_coupon(
    data: CouponCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    coupon = await coupon_service.create_coupon(db, data, _user)
    return ok(CouponOut.model_validate(coupon), "Coupon created successfully", status.HTTP_201_CREATED)


@router.put("/{coupon_id}", response_model=ApiResponse[CouponOut])
@require_role(["admin"])
async def update_coupon(
    coupon_id: int,
    data: CouponUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    coupon = await coupon_service.update_coupon(db, coupon_id, data, _user)
    return ok(CouponOut.model_validate(coupon), "Coupon updated successfully")


@router.delete("/{coupon_id}", response_model=ApiResponse[None])
@require_role(["admin"])
async def delete_coupon(coupon_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    await coupon_service.delete_coupon(db, coupon_id, _user)
    return ok(None, "Coupon deleted successfully")
