# market/routers/variants_router.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.db import get_db
from market.schemas.catalog_schemas import VariantCreate, VariantOut, VariantUpdate
from market.schemas.response_schemas import ApiResponse, ok
from market.services import catalog_service
from market.utils.check_roles import require_role
from market.utils.get_user import get_current_user

router = APIRouter(prefix="/variants", tags=["Product Variants"])


@router.get("/product/{product_id}", response_model=ApiResponse[List[VariantOut]])
async def list_product_variants(product_id: int, db: AsyncSession = Depends(get_db)):
    variants = await catalog_service.list_variants_by_product(db, product_id)
    return ok([VariantOut.model_validate(v) for v in variants], "Variants fetched successfully")


@router.get("/sku/{sku}", response_model=ApiResponse[VariantOut])
async def get_variant_by_sku(sku: str, db: AsyncSession = Depends(get_db)):
    variant = await catalog_service.get_variant_by_sku(db, sku)
    return ok(VariantOut.model_validate(variant), "Variant fetched successfully")


@router.get("/{variant_id}", response_model=ApiResponse[VariantOut])
async def get_variant(variant_id: int, db: AsyncSession = Depends(get_db)):
    variant = await catalog_service.get_variant(db, variant_id)
    return ok(VariantOut.model_validate(variant), "Variant fetched successfully")


@router.post("", response_model=ApiResponse[VariantOut], status_code=status.HTTP_201_CREATED)
@require_role(["admin"])
async def create_variant(
    data: VariantCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    variant = await catalog_service.create_variant(db, data, _user)
    return ok(VariantOut.model_validate(variant), "Variant created successfully", status.HTTP_201_CREATED)


@router.put("/{variant_id}", response_model=ApiResponse[VariantOut])
@require_role(["admin"])
async def update_variant(
    variant_id: int,
    data: VariantUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    variant = await catalog_service.update_variant(db, variant_id, data, _user)
    return ok(VariantOut.model_validate(variant), "Variant updated successfully")


@router.delete("/{variant_id}", response_model=ApiResponse[None])
@require_role(["admin"])
async def delete_variant(
    variant_id: int,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    await catalog_service.delete_variant(db, variant_id, _user)
    return ok(None, "Variant deleted successfully")
