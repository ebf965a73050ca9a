# market/middleware/activity_logger.py
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from market.core.db import AsyncSessionLocal
from market.utils.activity_helpers import log_user_activity

logger = logging.getLogger(__name__)

WRITE_METHODS = ("POST", "PUT", "PATCH", "DELETE")


class ActivityLoggerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        # set by get_current_user while the request was handled
        user_id = getattr(request.state, "user_id", None)
        username = getattr(request.state, "username", None)
        if user_id is None or request.method not in WRITE_METHODS:
            return response

        message = f"{request.method} {request.url.path} -> {response.status_code}"
        try:
            async with AsyncSessionLocal() as db:
                await log_user_activity(
                    db, user_id=user_id, username=username, message=message, commit=True
                )
        except Exception:
            logger.exception("Failed to record activity for user %s", user_id)

        return response
