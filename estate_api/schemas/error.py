"""
Error response schemas for API documentation.
Mirrors the envelope produced by ErrorHandlerService.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Any, Dict


class FieldError(BaseModel):
    """A single field-level validation failure."""

    field: str = Field(..., description="Dotted path of the offending field", examples=["location.city"])
    message: str = Field(..., description="Human-readable error message", examples=["Field required"])


class ErrorResponse(BaseModel):
    """Envelope returned for every failed request."""

    success: bool = Field(False, description="Always false for errors")
    message: str = Field(..., description="Human-readable error message")
    code: Optional[str] = Field(None, description="Error code identifier", examples=["VALIDATION_ERROR"])
    errors: Optional[List[FieldError]] = Field(None, description="Field errors for validation failures")


def _error_doc(description: str, message: str, code: str, errors: Optional[list] = None) -> Dict[str, Any]:
    example: Dict[str, Any] = {"success": False, "message": message, "code": code}
    if errors:
        example["errors"] = errors
    return {
        "model": ErrorResponse,
        "description": description,
        "content": {"application/json": {"example": example}},
    }


COMMON_ERROR_RESPONSES = {
    400: _error_doc(
        "Validation Error",
        "Validation failed",
        "VALIDATION_ERROR",
        [{"field": "limit", "message": "Input should be less than or equal to 50"}]
    ),
    401: _error_doc("Unauthorized", "Not authorized, no token", "UNAUTHORIZED"),
    403: _error_doc("Forbidden", "Not authorized to update this property", "FORBIDDEN"),
    404: _error_doc("Not Found", "Property not found", "NOT_FOUND"),
    500: _error_doc("Internal Server Error", "Server error", "INTERNAL_SERVER_ERROR"),
}


def get_error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """
    Get error response documentation for the given status codes.

    Args:
        status_codes: HTTP status codes to include

    Returns:
        Mapping usable as the ``responses`` argument of a route
    """
    return {code: COMMON_ERROR_RESPONSES[code] for code in status_codes if code in COMMON_ERROR_RESPONSES}


def get_crud_error_responses() -> Dict[int, Dict[str, Any]]:
    """Error responses for authenticated, ownership-checked endpoints."""
    return get_error_responses(400, 401, 403, 404, 500)
