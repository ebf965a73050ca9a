# market/utils/check_roles.py
from typing import Callable
from functools import wraps

from market.core.errors import Forbidden, Unauthorized


def require_role(roles: list[str]):
    """Decorator to validate user role; expects user to be passed by route."""
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, _user, **kwargs):
            if _user is None:
                raise Unauthorized("Unauthorized. Please login first.")
            if _user.role.lower() not in [r.lower() for r in roles]:
                raise Forbidden(
                    f"Access denied. Required role: {' or '.join(roles)}. Your role: {_user.role}"
                )
            return await func(*args, _user=_user, **kwargs)
        return wrapper
    return decorator
