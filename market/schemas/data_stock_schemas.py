# market/schemas/data_stock_schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from market.models.data_stock_models import DataStockStatus


class DataStockCreate(BaseModel):
    variant_id: int
    status: DataStockStatus = DataStockStatus.ACTIVE
    expired_license: Optional[str] = None
    note: Optional[str] = None
    expired_at: Optional[datetime] = None


class DataStockItem(BaseModel):
    status: DataStockStatus = DataStockStatus.ACTIVE
    expired_license: Optional[str] = None
    note: Optional[str] = None
    expired_at: Optional[datetime] = None


class DataStockBulkCreate(BaseModel):
    variant_id: int
    stocks: List[DataStockItem] = Field(..., min_length=1)


class DataStockUpdate(BaseModel):
    variant_id: Optional[int] = None
    transaction_id: Optional[int] = None
    status: Optional[DataStockStatus] = None
    expired_license: Optional[str] = None
    note: Optional[str] = None
    expired_at: Optional[datetime] = None


class DataStockOut(BaseModel):
    id: int
    variant_id: int
    transaction_id: Optional[int] = None
    status: DataStockStatus
    expired_license: Optional[str] = None
    note: Optional[str] = None
    expired_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BulkCreateOut(BaseModel):
    count: int
    ids: List[int]


class StockCountOut(BaseModel):
    total_stock: int
    active_stock: int
    sold_stock: int
    invalid_stock: int
    locked_stock: int
