# market/schemas/response_schemas.py
from decimal import Decimal
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, Field, PlainSerializer
from typing_extensions import Annotated

T = TypeVar("T")

# Money travels as a JSON number
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    status_code: int = Field(default=200, serialization_alias="statusCode")
    message: str
    data: Optional[T] = None
    pagination: Optional[Pagination] = None


class ErrorResponse(BaseModel):
    success: bool = False
    status_code: int = Field(serialization_alias="statusCode")
    message: str
    errors: Optional[Dict[str, Any]] = None


def ok(data: Any = None, message: str = "Success", status_code: int = 200, pagination: Optional[dict] = None) -> dict:
    body = {"success": True, "status_code": status_code, "message": message, "data": data}
    if pagination is not None:
        body["pagination"] = pagination
    return body


def paginate(data: Any, page: int, limit: int, total: int, message: str = "Success") -> dict:
    total_pages = (total + limit - 1) // limit if limit else 0
    return ok(
        data,
        message,
        pagination={"page": page, "limit": limit, "total": total, "totalPages": total_pages},
    )
