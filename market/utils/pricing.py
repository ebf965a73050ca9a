# market/utils/pricing.py
from decimal import Decimal

from market.models.catalog_models import DiscountType
from market.utils.decimal_utils import to_decimal


def effective_unit_price(price, discount, discount_type) -> Decimal:
    """
    Variant price after its own discount.

    Percent discounts take ``price * discount / 100`` off, nominal ones take the
    flat amount off. The result is not clamped, so a nominal discount larger
    than the price yields a negative unit price.
    """
    price = to_decimal(price)
    discount = to_decimal(discount)
    if discount <= 0:
        return price
    if DiscountType(discount_type) == DiscountType.PERCENT:
        return to_decimal(price - price * discount / Decimal("100"))
    return to_decimal(price - discount)
