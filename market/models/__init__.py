# market/models/__init__.py
from market.models.user_models import User
from market.models.activity_models import UserActivity
from market.models.catalog_models import Category, Product, ProductVariant, VariantStatus, DiscountType
from market.models.cart_models import Cart
from market.models.coupon_models import Coupon, CouponType
from market.models.transaction_models import Transaction, OrderItem, TransactionStatus, OrderItemStatus
from market.models.data_stock_models import DataStock, DataStockStatus
