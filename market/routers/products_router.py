# market/routers/products_router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.db import get_db
from market.schemas.catalog_schemas import ProductCreate, ProductDetailOut, ProductOut, ProductUpdate
from market.schemas.response_schemas import ApiResponse, ok, paginate
from market.services import catalog_service
from market.utils.check_roles import require_role
from market.utils.get_user import get_current_user

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("", response_model=ApiResponse[List[ProductOut]])
async def list_products(
    db: AsyncSession = Depends(get_db),
    category_id: Optional[int] = Query(None),
    status_filter: Optional[bool] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: str = Query("created_at"),
    order: str = Query("desc"),
):
    """
    Browse the catalog with filtering, sorting and pagination.
    """
    products, total = await catalog_service.list_products(
        db,
        category_id=category_id,
        status=status_filter,
        search=search,
        page=page,
        limit=limit,
        sort=sort,
        order=order,
    )
    return paginate(
        [ProductOut.model_validate(p) for p in products], page, limit, total, "Products fetched successfully"
    )


@router.get("/slug/{slug}", response_model=ApiResponse[ProductDetailOut])
async def get_product_by_slug(slug: str, db: AsyncSession = Depends(get_db)):
    product = await catalog_service.get_product_by_slug(db, slug)
    return ok(ProductDetailOut.model_validate(product), "Product fetched successfully")


@router.get("/{product_id}", response_model=ApiResponse[ProductDetailOut])
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    product = await catalog_service.get_product(db, product_id)
    return ok(ProductDetailOut.model_validate(product), "Product fetched successfully")


@router.post("", response_model=ApiResponse[ProductOut], status_code=status.HTTP_201_CREATED)
@require_role(["admin"])
async def create_product(
    data: ProductCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    product = await catalog_service.create_product(db, data, _user)
    return ok(ProductOut.model_validate(product), "Product created successfully", status.HTTP_201_CREATED)


@router.put("/{product_id}", response_model=ApiResponse[ProductOut])
@require_role(["admin"])
async def update_product(
    product_id: int,
    data: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    product = await catalog_service.update_product(db, product_id, data, _user)
    return ok(ProductOut.model_validate(product), "Product updated successfully")


@router.delete("/{product_id}", response_model=ApiResponse[None])
@require_role(["admin"])
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    await catalog_service.delete_product(db, product_id, _user)
    return ok(None, "Product deleted successfully")
