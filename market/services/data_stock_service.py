# market/services/data_stock_service.py
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.errors import NotFound
from market.models.catalog_models import ProductVariant
from market.models.data_stock_models import DataStock, DataStockStatus
from market.models.transaction_models import Transaction
from market.schemas.data_stock_schemas import DataStockBulkCreate, DataStockCreate, DataStockUpdate
from market.services.catalog_service import count_rows
from market.utils.activity_helpers import log_user_activity


async def _ensure_variant(db: AsyncSession, variant_id: int) -> ProductVariant:
    variant = await db.get(ProductVariant, variant_id)
    if not variant:
        raise NotFound("Product variant not found")
    return variant


async def list_data_stocks(
    db: AsyncSession,
    variant_id: Optional[int] = None,
    status: Optional[DataStockStatus] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[DataStock], int]:
    query = select(DataStock)
    if variant_id is not None:
        query = query.where(DataStock.variant_id == variant_id)
    if status is not None:
        query = query.where(DataStock.status == status)
    total = await count_rows(db, query)
    result = await db.execute(
        query.order_by(DataStock.created_at.desc(), DataStock.id.desc()).limit(limit).offset((page - 1) * limit)
    )
    return result.scalars().all(), total


async def get_data_stock(db: AsyncSession, stock_id: int) -> DataStock:
    stock = await db.get(DataStock, stock_id)
    if not stock:
        raise NotFound("Data stock not found")
    return stock


async def create_data_stock(db: AsyncSession, data: DataStockCreate, current_user) -> DataStock:
    await _ensure_variant(db, data.variant_id)
    stock = DataStock(**data.model_dump())
    db.add(stock)
    await db.flush()
    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Added data stock {stock.id} to variant {stock.variant_id}",
    )
    await db.commit()
    await db.refresh(stock)
    return stock


async def bulk_create_data_stocks(db: AsyncSession, data: DataStockBulkCreate, current_user) -> dict:
    await _ensure_variant(db, data.variant_id)
    stocks = [DataStock(variant_id=data.variant_id, **item.model_dump()) for item in data.stocks]
    db.add_all(stocks)
    await db.flush()
    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Added {len(stocks)} data stocks to variant {data.variant_id}",
    )
    await db.commit()
    return {"count": len(stocks), "ids": [stock.id for stock in stocks]}


async def update_data_stock(db: AsyncSession, stock_id: int, data: DataStockUpdate, current_user) -> DataStock:
    stock = await get_data_stock(db, stock_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("variant_id") is not None and changes["variant_id"] != stock.variant_id:
        await _ensure_variant(db, changes["variant_id"])
    else:
        changes.pop("variant_id", None)
    if changes.get("transaction_id") is not None and not await db.get(Transaction, changes["transaction_id"]):
        raise NotFound("Transaction not found")
    if "status" in changes and changes["status"] is None:
        changes.pop("status")

    for key, value in changes.items():
        setattr(stock, key, value)

    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Updated data stock {stock.id}",
    )
    await db.commit()
    await db.refresh(stock)
    return stock


async def delete_data_stock(db: AsyncSession, stock_id: int, current_user) -> None:
    stock = await get_data_stock(db, stock_id)
    await db.delete(stock)
    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Deleted data stock {stock_id} of variant {stock.variant_id}",
    )
    await db.commit()


async def count_variant_stock(db: AsyncSession, variant_id: int) -> dict:
    await _ensure_variant(db, variant_id)
    result = await db.execute(
        select(DataStock.status, func.count())
        .where(DataStock.variant_id == variant_id)
        .group_by(DataStock.status)
    )
    counts = {DataStockStatus(status): count for status, count in result.all()}
    return {
        "total_stock": sum(counts.values()),
        "active_stock": counts.get(DataStockStatus.ACTIVE, 0),
        "sold_stock": counts.get(DataStockStatus.SOLD, 0),
        "invalid_stock": counts.get(DataStockStatus.INVALID, 0),
        "locked_stock": counts.get(DataStockStatus.LOCKED, 0),
    }
