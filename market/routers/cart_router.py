# market/routers/cart_router.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.db import get_db
from market.schemas.cart_schemas import CartAdd, CartOut, CartToggle, CartUpdate, CartWriteOut
from market.schemas.response_schemas import ApiResponse, ok
from market.services import cart_service
from market.utils.get_user import get_current_user

router = APIRouter(prefix="/cart", tags=["Cart"])


def _write_out(line) -> CartWriteOut:
    return CartWriteOut(id=line.id, quantity=line.quantity, note=line.note)


@router.get("", response_model=ApiResponse[CartOut])
async def get_cart(db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)):
    """Cart lines with current pricing; the summary only counts checked lines."""
    cart = await cart_service.get_cart(db, current_user.id)
    return ok(cart, "Cart fetched successfully")


@router.post("", response_model=ApiResponse[CartWriteOut], status_code=status.HTTP_201_CREATED)
async def add_to_cart(
    data: CartAdd,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    line, created = await cart_service.add_to_cart(db, current_user.id, data)
    message = "Product added to cart" if created else "Cart quantity updated"
    return ok(_write_out(line), message, status.HTTP_201_CREATED)


@router.post("/toggle-check-all", response_model=ApiResponse[dict])
async def toggle_check_all(
    data: CartToggle,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    updated = await cart_service.toggle_check_all(db, current_user.id, data.checked)
    return ok({"updated": updated, "checked": data.checked}, "Cart selection updated")


@router.put("/{cart_id}", response_model=ApiResponse[CartWriteOut])
async def update_cart_item(
    cart_id: int,
    data: CartUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    line = await cart_service.update_cart_item(db, current_user.id, cart_id, data)
    return ok(_write_out(line), "Cart item updated")


@router.delete("/{cart_id}", response_model=ApiResponse[None])
async def delete_cart_item(
    cart_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    await cart_service.delete_cart_item(db, current_user.id, cart_id)
    return ok(None, "Cart item removed")


@router.delete("", response_model=ApiResponse[dict])
async def clear_cart(db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)):
    removed = await cart_service.clear_cart(db, current_user.id)
    return ok({"removed": removed}, "Cart cleared")
