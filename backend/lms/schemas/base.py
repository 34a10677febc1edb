"""
Schemas shared by every resource: model config, timestamps, money,
the paginated envelope and the error body.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, PlainSerializer

T = TypeVar("T")

# Amounts travel as strings with two decimals ("15.00"), never as floats
Money = Annotated[
    Decimal,
    PlainSerializer(lambda value: f"{value:.2f}", return_type=str, when_used="json"),
]


class BaseSchema(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )


class TimestampSchema(BaseSchema):
    created_at: datetime
    updated_at: datetime


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Page of results for the list endpoints (items, users, loans, fines,
    reservations, activities).

    page is 1-based; pages is 0 when nothing matches.
    """
    items: List[T]
    total: int
    page: int
    page_size: int
    pages: int

    @classmethod
    def create(
        cls,
        items: List[T],
        total: int,
        page: int,
        page_size: int,
    ) -> "PaginatedResponse[T]":
        pages = (total + page_size - 1) // page_size if page_size > 0 else 0
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            pages=pages,
        )


class ErrorDetail(BaseModel):
    """One invalid field of a 422 response."""
    field: str | None = None
    message: str


class ErrorResponse(BaseModel):
    """
    Error body returned by every failing endpoint.

    Example:
        {"error": "conflict", "message": "Fine is already PAID", "details": null}
    """
    error: str
    message: str
    details: List[ErrorDetail] | None = None


class MessageResponse(BaseModel):
    message: str
