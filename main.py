# main.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from market.core.config import CORS_ORIGINS, LOG_LEVEL
from market.core.db import init_models
from market.core.errors import ApiError
from market.middleware.activity_logger import ActivityLoggerMiddleware
from market.schemas.response_schemas import ErrorResponse
from market.routers import (
    auth_router,
    cart_router,
    categories_router,
    coupons_router,
    data_stocks_router,
    order_items_router,
    products_router,
    transactions_router,
    variants_router,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("market")

app = FastAPI(
    title="Digital Market API",
    description="FastAPI + SQLAlchemy backend for a digital goods marketplace",
    version="0.1.0",
)

# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ActivityLoggerMiddleware)


def _error_body(status_code: int, message: str, errors=None) -> dict:
    body = ErrorResponse(status_code=status_code, message=message, errors=errors or None)
    return body.model_dump(by_alias=True, exclude_none=True)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.status_code, exc.message, exc.errors))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        # drop the "body"/"query" prefix so keys read as field names
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "header")]
        errors.setdefault(".".join(location) or "request", error.get("msg"))
    return JSONResponse(status_code=400, content=_error_body(400, "Validation failed", errors))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_error_body(500, "Internal Server Error"))


# Health check endpoint
@app.get("/", tags=["Health"])
async def health_check():
    return {"success": True, "statusCode": 200, "message": "Backend is running", "data": {"status": "ok"}}


# Register routers
app.include_router(auth_router)
app.include_router(categories_router)
app.include_router(products_router)
app.include_router(variants_router)
app.include_router(cart_router)
app.include_router(coupons_router)
app.include_router(transactions_router)
app.include_router(order_items_router)
app.include_router(data_stocks_router)


@app.on_event("startup")
async def on_startup():
    await init_models()
    logger.info("Database tables ready")
