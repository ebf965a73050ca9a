# market/routers/data_stocks_router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.db import get_db
from market.models.data_stock_models import DataStockStatus
from market.schemas.data_stock_schemas import (
    BulkCreateOut, DataStockBulkCreate, DataStockCreate, DataStockOut, DataStockUpdate, StockCountOut
)
from market.schemas.response_schemas import ApiResponse, ok, paginate
from market.services import data_stock_service
from market.utils.check_roles import require_role
from market.utils.get_user import get_current_user

router = APIRouter(prefix="/data-stocks", tags=["Data Stocks"])


@router.get("", response_model=ApiResponse[List[DataStockOut]])
@require_role(["admin"])
async def list_data_stocks(
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
    variant_id: Optional[int] = Query(None),
    status_filter: Optional[DataStockStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    stocks, total = await data_stock_service.list_data_stocks(
        db, variant_id=variant_id, status=status_filter, page=page, limit=limit
    )
    return paginate([DataStockOut.model_validate(s) for s in stocks], page, limit, total, "Data stocks fetched successfully")


@router.get("/variant/{variant_id}/count", response_model=ApiResponse[StockCountOut])
@require_role(["admin"])
async def count_variant_stock(variant_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    counts = await data_stock_service.count_variant_stock(db, variant_id)
    return ok(counts, "Stock count fetched successfully")


@router.get("/{stock_id}", response_model=ApiResponse[DataStockOut])
@require_role(["admin"])
async def get_data_stock(stock_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    stock = await data_stock_service.get_data_stock(db, stock_id)
    return ok(DataStockOut.model_validate(stock), "Data stock fetched successfully")


@router.post("", response_model=ApiResponse[DataStockOut], status_code=status.HTTP_201_CREATED)
@require_role(["admin"])
async def create_data_stock(
    data: DataStockCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    stock = await data_stock_service.create_data_stock(db, data, _user)
    return ok(DataStockOut.model_validate(stock), "Data stock created successfully", status.HTTP_201_CREATED)


@router.post("/bulk", response_model=ApiResponse[BulkCreateOut], status_code=status.HTTP_201_CREATED)
@require_role(["admin"])
async def bulk_create_data_stocks(
    data: DataStockBulkCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    result = await data_stock_service.bulk_create_data_stocks(db, data, _user)
    return ok(result, f"{result['count']} data stocks created", status.HTTP_201_CREATED)


@router.put("/{stock_id}", response_model=ApiResponse[DataStockOut])
@require_role(["admin"])
async def update_data_stock(
    stock_id: int,
    data: DataStockUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    stock = await data_stock_service.update_data_stock(db, stock_id, data, _user)
    return ok(DataStockOut.model_validate(stock), "Data stock updated successfully")


@router.delete("/{stock_id}", response_model=ApiResponse[None])
@require_role(["admin"])
async def delete_data_stock(stock_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    await data_stock_service.delete_data_stock(db, stock_id, _user)
    return ok(None, "Data stock deleted successfully")
