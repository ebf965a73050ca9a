"""API error taxonomy.

Every error is an ``HTTPException`` so services can raise it wherever they
would raise one; the handlers in ``main.py`` turn it into the response
envelope. ``errors`` carries a field-keyed map for validation failures.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class ApiError(HTTPException):
    """Base class for all application errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(status_code=self.status_code, detail=self.message)


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class Unauthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class Unavailable(ApiError):
    """A referenced resource exists but is not in a usable state."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource is not available"


class InternalError(ApiError):
    pass


# -----------------------
# Checkout / coupon errors
# -----------------------
class EmptyCart(ValidationError):
    default_message = "No items in cart selected for checkout"


class UnavailableVariant(Unavailable):
    def __init__(self, variant_id: int):
        self.variant_id = variant_id
        super().__init__(f"Product variant {variant_id} is not available")


class BelowMinimumOrder(ValidationError):
    def __init__(self, variant_id: int, min_order: int):
        self.variant_id = variant_id
        self.min_order = min_order
        super().__init__(f"Minimum order for variant {variant_id} is {min_order}")


class CouponNotFound(NotFound):
    default_message = "Coupon not found or expired"


class CouponLimitReached(ValidationError):
    default_message = "Coupon usage limit reached"


class MinimumPurchaseNotMet(ValidationError):
    def __init__(self, min_purchase):
        self.min_purchase = min_purchase
        super().__init__(f"Minimum purchase for this coupon is {min_purchase}")


class InvalidTransition(ValidationError):
    def __init__(self, current: str, requested: str, message: Optional[str] = None):
        self.current = current
        self.requested = requested
        super().__init__(message or f"Cannot move transaction from {current} to {requested}")
