# market/routers/categories_router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.db import get_db
from market.schemas.catalog_schemas import CategoryCreate, CategoryOut, CategoryUpdate
from market.schemas.response_schemas import ApiResponse, ok
from market.services import catalog_service
from market.utils.check_roles import require_role
from market.utils.get_user import get_current_user

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=ApiResponse[List[CategoryOut]])
async def list_categories(
    db: AsyncSession = Depends(get_db),
    status_filter: Optional[bool] = Query(None, alias="status"),
):
    categories = await catalog_service.list_categories(db, status=status_filter)
    return ok([CategoryOut.model_validate(c) for c in categories], "Categories fetched successfully")


@router.get("/{category_id}", response_model=ApiResponse[CategoryOut])
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)):
    category = await catalog_service.get_category(db, category_id)
    return ok(CategoryOut.model_validate(category), "Category fetched successfully")


@router.post("", response_model=ApiResponse[CategoryOut], status_code=status.HTTP_201_CREATED)
@require_role(["admin"])
async def create_category(
    data: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    category = await catalog_service.create_category(db, data, _user)
    return ok(CategoryOut.model_validate(category), "Category created successfully", status.HTTP_201_CREATED)


@router.put("/{category_id}", response_model=ApiResponse[CategoryOut])
@require_role(["admin"])
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    category = await catalog_service.update_category(db, category_id, data, _user)
    return ok(CategoryOut.model_validate(category), "Category updated successfully")


@router.delete("/{category_id}", response_model=ApiResponse[None])
@require_role(["admin"])
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    await catalog_service.delete_category(db, category_id, _user)
    return ok(None, "Category deleted successfully")
