"""
Shared schema building blocks: camelCase base model, response envelope and pagination.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Generic, List, Optional, TypeVar
import math

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys; accepts snake_case on input too."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope: {success, data, message}."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class MessageResponse(CamelModel):
    """Envelope for operations that only report a message."""

    success: bool = True
    message: str


class Pagination(CamelModel):
    """Pagination metadata for list responses."""

    page: int = Field(..., description="Requested page number (1-based)")
    limit: int = Field(..., description="Requested page size")
    total: int = Field(..., description="Total number of matching items")
    pages: int = Field(..., description="Total number of pages")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit))


class PaginatedResponse(CamelModel, Generic[T]):
    """Envelope for paginated lists: {success, data: [...], pagination}."""

    success: bool = True
    data: List[T]
    pagination: Pagination
