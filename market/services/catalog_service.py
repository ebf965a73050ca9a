# market/services/catalog_service.py
from typing import Optional, Tuple, List

from sqlalchemy import select, update, func, or_, exists
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.errors import Conflict, NotFound, ValidationError
from market.models.catalog_models import Category, Product, ProductVariant
from market.models.data_stock_models import DataStock
from market.models.transaction_models import OrderItem
from market.schemas.catalog_schemas import (
    CategoryCreate, CategoryUpdate, ProductCreate, ProductUpdate, VariantCreate, VariantUpdate
)
from market.utils.activity_helpers import log_user_activity

PRODUCT_SORT_FIELDS = {
    "created_at": Product.created_at,
    "name": Product.name,
    "view": Product.view,
    "sold": Product.sold,
    "sort": Product.sort,
}

# explicit nulls on these are ignored on update
CATEGORY_REQUIRED = ("name", "slug", "sort", "status")
PRODUCT_REQUIRED = ("category_id", "name", "slug", "sort", "status")
VARIANT_REQUIRED = ("product_id", "sku", "name", "price", "discount_type", "discount", "min_order", "status", "sort")


async def count_rows(db: AsyncSession, query) -> int:
    result = await db.execute(select(func.count()).select_from(query.order_by(None).subquery()))
    return result.scalar_one()


def _set_fields(data, required) -> dict:
    changes = data.model_dump(exclude_unset=True)
    return {key: value for key, value in changes.items() if value is not None or key not in required}


# ---------------------------------------------------
# CATEGORIES
# ---------------------------------------------------
async def list_categories(db: AsyncSession, status: Optional[bool] = None) -> List[Category]:
    query = select(Category)
    if status is not None:
        query = query.where(Category.status == status)
    result = await db.execute(query.order_by(Category.sort.asc(), Category.id.asc()))
    return result.scalars().all()


async def get_category(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if not category:
        raise NotFound("Category not found")
    return category


async def _ensure_category_slug_free(db: AsyncSession, slug: str, exclude_id: Optional[int] = None):
    query = select(Category.id).where(Category.slug == slug)
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    if (await db.execute(query)).first():
        raise Conflict("Category with this slug already exists")


async def create_category(db: AsyncSession, data: CategoryCreate, current_user) -> Category:
    await _ensure_category_slug_free(db, data.slug)
    category = Category(**data.model_dump())
    db.add(category)
    await db.flush()
    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Created category '{category.name}' (ID: {category.id})",
    )
    await db.commit()
    await db.refresh(category)
    return category


async def update_category(db: AsyncSession, category_id: int, data: CategoryUpdate, current_user) -> Category:
    category = await get_category(db, category_id)
    changes = _set_fields(data, CATEGORY_REQUIRED)
    if changes.get("slug") and changes["slug"] != category.slug:
        await _ensure_category_slug_free(db, changes["slug"], exclude_id=category_id)
    for key, value in changes.items():
        setattr(category, key, value)
    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Updated category '{category.name}' (ID: {category.id})",
    )
    await db.commit()
    await db.refresh(category)
    return category


async def delete_category(db: AsyncSession, category_id: int, current_user) -> None:
    category = await get_category(db, category_id)
    in_use = await db.execute(select(exists().where(Product.category_id == category_id)))
    if in_use.scalar():
        raise ValidationError("Cannot delete category with existing products")
    await db.delete(category)
    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Deleted category '{category.name}' (ID: {category_id})",
    )
    await db.commit()


# ---------------------------------------------------
# PRODUCTS
# ---------------------------------------------------
async def list_products(
    db: AsyncSession,
    category_id: Optional[int] = None,
    status: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    sort: str = "created_at",
    order: str = "desc",
) -> Tuple[List[Product], int]:
    if sort not in PRODUCT_SORT_FIELDS:
        raise ValidationError(f"Invalid sort field. Allowed: {', '.join(PRODUCT_SORT_FIELDS)}")
    if order.lower() not in ("asc", "desc"):
        raise ValidationError("Invalid order. Allowed: ASC, DESC")

    query = select(Product)
    if category_id:
        query = query.where(Product.category_id == category_id)
    if status is not None:
        query = query.where(Product.status == status)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))

    total = await count_rows(db, query)

    column = PRODUCT_SORT_FIELDS[sort]
    query = query.order_by(column.desc() if order.lower() == "desc" else column.asc(), Product.id.asc())
    result = await db.execute(query.limit(limit).offset((page - 1) * limit))
    return result.scalars().all(), total


async def _view_product(db: AsyncSession, condition) -> Product:
    # every detail read counts as a view
    result = await db.execute(update(Product).where(condition).values(view=Product.view + 1))
    if result.rowcount == 0:
        raise NotFound("Product not found")
    await db.commit()
    result = await db.execute(select(Product).where(condition).execution_options(populate_existing=True))
    return result.scalars().first()


async def get_product(db: AsyncSession, product_id: int) -> Product:
    return await _view_product(db, Product.id == product_id)


async def get_product_by_slug(db: AsyncSession, slug: str) -> Product:
    return await _view_product(db, Product.slug == slug.strip().lower())


async def _ensure_product_slug_free(db: AsyncSession, slug: str, exclude_id: Optional[int] = None):
    query = select(Product.id).where(Product.slug == slug)
    if exclude_id is not None:
        query = query.where(Product.id != exclude_id)
    if (await db.execute(query)).first():
        raise Conflict("Product with this slug already exists")


async def create_product(db: AsyncSession, data: ProductCreate, current_user) -> Product:
    await get_category(db, data.category_id)
    await _ensure_product_slug_free(db, data.slug)

    product = Product(**data.model_dump(), view=0, sold=0)
    db.add(product)
    await db.flush()

    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"{current_user.role.capitalize()} created product '{product.name}' (ID: {product.id})",
    )
    await db.commit()
    await db.refresh(product)
    return product


async def update_product(db: AsyncSession, product_id: int, data: ProductUpdate, current_user) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")

    changes = []
    for key, value in _set_fields(data, PRODUCT_REQUIRED).items():
        old_val = getattr(product, key)
        if old_val == value:
            continue
        if key == "category_id":
            await get_category(db, value)
        if key == "slug":
            await _ensure_product_slug_free(db, value, exclude_id=product_id)
        changes.append(f"{key}: {old_val} -> {value}")
        setattr(product, key, value)

    if changes:
        await log_user_activity(
            db,
            user_id=current_user.id,
            username=current_user.username,
            message=f"{current_user.role.capitalize()} updated product '{product.name}' "
                    f"(ID: {product.id}): {', '.join(changes)}",
        )
    await db.commit()
    await db.refresh(product)
    return product


async def delete_product(db: AsyncSession, product_id: int, current_user) -> None:
    product = await db.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")

    variant_ids = select(ProductVariant.id).where(ProductVariant.product_id == product_id)
    ordered = await db.execute(select(exists().where(OrderItem.variant_id.in_(variant_ids))))
    if ordered.scalar():
        raise Conflict("Cannot delete product with existing orders")
    stocked = await db.execute(select(exists().where(DataStock.variant_id.in_(variant_ids))))
    if stocked.scalar():
        raise ValidationError("Cannot delete product with existing stocks")

    await db.delete(product)
    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"{current_user.role.capitalize()} deleted product '{product.name}' (ID: {product_id})",
    )
    await db.commit()


# ---------------------------------------------------
# VARIANTS
# ---------------------------------------------------
async def list_variants_by_product(db: AsyncSession, product_id: int) -> List[ProductVariant]:
    if not await db.get(Product, product_id):
        raise NotFound("Product not found")
    result = await db.execute(
        select(ProductVariant)
        .where(ProductVariant.product_id == product_id)
        .order_by(ProductVariant.sort.asc(), ProductVariant.id.asc())
    )
    return result.scalars().all()


async def get_variant(db: AsyncSession, variant_id: int) -> ProductVariant:
    variant = await db.get(ProductVariant, variant_id)
    if not variant:
        raise NotFound("Product variant not found")
    return variant


async def get_variant_by_sku(db: AsyncSession, sku: str) -> ProductVariant:
    result = await db.execute(select(ProductVariant).where(ProductVariant.sku == sku.strip().upper()))
    variant = result.scalars().first()
    if not variant:
        raise NotFound("Product variant not found")
    return variant


async def _ensure_sku_free(db: AsyncSession, sku: str, exclude_id: Optional[int] = None):
    query = select(ProductVariant.id).where(ProductVariant.sku == sku)
    if exclude_id is not None:
        query = query.where(ProductVariant.id != exclude_id)
    if (await db.execute(query)).first():
        raise Conflict("Variant with this SKU already exists")


async def create_variant(db: AsyncSession, data: VariantCreate, current_user) -> ProductVariant:
    if not await db.get(Product, data.product_id):
        raise NotFound("Product not found")
    await _ensure_sku_free(db, data.sku)

    variant = ProductVariant(**data.model_dump())
    db.add(variant)
    await db.flush()

    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Created variant {variant.sku} (ID: {variant.id}) for product {variant.product_id}",
    )
    await db.commit()
    await db.refresh(variant)
    return variant


async def update_variant(db: AsyncSession, variant_id: int, data: VariantUpdate, current_user) -> ProductVariant:
    variant = await get_variant(db, variant_id)
    changes = _set_fields(data, VARIANT_REQUIRED)

    if "product_id" in changes and changes["product_id"] != variant.product_id:
        if not await db.get(Product, changes["product_id"]):
            raise NotFound("Product not found")
    if changes.get("sku") and changes["sku"] != variant.sku:
        await _ensure_sku_free(db, changes["sku"], exclude_id=variant_id)

    for key, value in changes.items():
        setattr(variant, key, value)

    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Updated variant {variant.sku} (ID: {variant.id})",
    )
    await db.commit()
    await db.refresh(variant)
    return variant


async def delete_variant(db: AsyncSession, variant_id: int, current_user) -> None:
    variant = await get_variant(db, variant_id)

    stocks = await db.execute(select(func.count()).where(DataStock.variant_id == variant_id))
    if stocks.scalar_one() > 0:
        raise ValidationError("Cannot delete variant with existing stocks")
    ordered = await db.execute(select(exists().where(OrderItem.variant_id == variant_id)))
    if ordered.scalar():
        raise Conflict("Cannot delete variant with existing orders")

    await db.delete(variant)
    await log_user_activity(
        db,
        user_id=current_user.id,
        username=current_user.username,
        message=f"Deleted variant {variant.sku} (ID: {variant_id})",
    )
    await db.commit()
