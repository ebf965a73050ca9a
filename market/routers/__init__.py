# market/routers/__init__.py

from .auth_router import router as auth_router
from .cart_router import router as cart_router
from .categories_router import router as categories_router
from .coupons_router import router as coupons_router
from .data_stocks_router import router as data_stocks_router
from .order_items_router import router as order_items_router
from .products_router import router as products_router
from .transactions_router import router as transactions_router
from .variants_router import router as variants_router

__all__ = [
    "auth_router",
    "cart_router",
    "categories_router",
    "coupons_router",
    "data_stocks_router",
    "order_items_router",
    "products_router",
    "transactions_router",
    "variants_router",
]
