"""Generic response models for consistent API responses."""

from datetime import datetime, timezone
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from car_rental.config.settings import settings

T = TypeVar("T")


class ResponseMetadata(BaseModel):
    """Metadata included in all API responses."""

    app_name: str = Field(default=settings.APP_NAME)
    app_version: str = Field(default=settings.APP_VERSION)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SuccessResponse(BaseModel, Generic[T]):
    """Generic success response with data and metadata."""

    success: bool = Field(default=True)
    message: str = Field(default="Operation completed successfully")
    data: T
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


class ErrorResponse(BaseModel):
    """Standard error response structure.

    ``error`` is a stable machine-readable code (e.g. ``account_locked``);
    ``detail`` is the human-readable message shown to the user.
    """

    success: bool = Field(default=False)
    error: str
    detail: Optional[str] = None
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": False,
                "error": "account_locked",
                "detail": "Account is locked. Please try again in 5 minutes.",
                "metadata": {
                    "app_name": "Car Rental Backend",
                    "app_version": "1.0.0",
                    "timestamp": "2025-11-03T15:58:36Z",
                },
            }
        }
    }


class PaginationMeta(BaseModel):
    """Pagination metadata."""

    page: int = Field(ge=1, description="Current page number")
    limit: int = Field(ge=1, le=1000, description="Items per page")
    total: int = Field(ge=0, description="Items on this page")
    has_next: bool = Field(description="Whether there may be a next page")
    has_prev: bool = Field(description="Whether there is a previous page")


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated response with data and pagination metadata."""

    success: bool = Field(default=True)
    message: str = Field(default="Items retrieved successfully")
    data: List[T]
    pagination: PaginationMeta
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


# Helper functions to create responses
def success_response(
    data: T,
    message: str = "Operation completed successfully",
    **kwargs: Any
) -> SuccessResponse[T]:
    """Create a success response."""
    return SuccessResponse(
        success=True,
        message=message,
        data=data,
        metadata=ResponseMetadata(**kwargs) if kwargs else ResponseMetadata()
    )


def error_response(
    error: str,
    detail: Optional[str] = None,
    **kwargs: Any
) -> ErrorResponse:
    """Create an error response."""
    return ErrorResponse(
        success=False,
        error=error,
        detail=detail,
        metadata=ResponseMetadata(**kwargs) if kwargs else ResponseMetadata()
    )


def paginated_response(
    data: List[T],
    page: int,
    limit: int,
    message: str = "Items retrieved successfully",
    **kwargs: Any
) -> PaginatedResponse[T]:
    """Create a paginated response for a page fetched with ``limit + 1`` lookahead."""
    has_next = len(data) > limit
    items = data[:limit]

    return PaginatedResponse(
        success=True,
        message=message,
        data=items,
        pagination=PaginationMeta(
            page=page,
            limit=limit,
            total=len(items),
            has_next=has_next,
            has_prev=page > 1
        ),
        metadata=ResponseMetadata(**kwargs) if kwargs else ResponseMetadata()
    )
