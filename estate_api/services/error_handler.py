"""
Error handling service for consistent error response formatting and logging.
Every error leaves the API in the {success: false, message, errors?} envelope.
"""

from typing import Dict, Any, Optional, List, Union
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from pydantic import ValidationError as PydanticValidationError
from estate_api.utils.exceptions import APIException, ValidationError
import logging
import uuid

logger = logging.getLogger(__name__)

# Location prefixes FastAPI adds in front of the field path
_LOCATION_PREFIXES = {"body", "query", "path", "form", "header", "cookie"}

GENERIC_SERVER_ERROR = "Server error"


class ErrorHandlerService:
    """
    Service for handling and formatting errors consistently across the application.
    Internal details are logged but never returned to the client.
    """

    @staticmethod
    def format_error_response(
        message: str,
        error_code: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """
        Format error response in the API envelope.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            errors: Optional list of field errors

        Returns:
            Formatted error response dictionary
        """
        response: Dict[str, Any] = {
            "success": False,
            "message": message,
        }

        if error_code:
            response["code"] = error_code

        if errors:
            response["errors"] = errors

        return response

    @staticmethod
    def handle_api_exception(
        exception: APIException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Handle custom API exceptions."""
        request_id = ErrorHandlerService._generate_request_id()

        logger.warning(
            f"API Exception [{request_id}]: {exception.error_code} - {exception.detail}",
            extra={
                "error_code": exception.error_code,
                "status_code": exception.status_code,
                "request_id": request_id,
                "path": request.url.path if request else None
            }
        )

        field_errors = exception.field_errors if isinstance(exception, ValidationError) else None

        return JSONResponse(
            status_code=exception.status_code,
            content=ErrorHandlerService.format_error_response(
                message=exception.detail,
                error_code=exception.error_code or "API_ERROR",
                errors=field_errors
            ),
            headers=exception.headers
        )

    @staticmethod
    def handle_validation_error(
        exception: Union[RequestValidationError, PydanticValidationError],
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Handle request and Pydantic validation errors.

        Validation failures are reported as 400 with one {field, message}
        entry per failing field.
        """
        request_id = ErrorHandlerService._generate_request_id()
        field_errors = ErrorHandlerService.extract_field_errors(exception.errors())

        logger.warning(
            f"Validation Error [{request_id}]: {len(field_errors)} field errors",
            extra={
                "error_count": len(field_errors),
                "request_id": request_id,
                "path": request.url.path if request else None,
                "validation_errors": field_errors
            }
        )

        return JSONResponse(
            status_code=400,
            content=ErrorHandlerService.format_error_response(
                message="Validation failed",
                error_code="VALIDATION_ERROR",
                errors=field_errors
            )
        )

    @staticmethod
    def handle_database_error(
        exception: SQLAlchemyError,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Handle database errors without exposing driver messages."""
        request_id = ErrorHandlerService._generate_request_id()

        if isinstance(exception, IntegrityError):
            error_code = "INTEGRITY_ERROR"
            message = "Data integrity constraint violation"
            status_code = 409
        else:
            error_code = "DATABASE_ERROR"
            message = GENERIC_SERVER_ERROR
            status_code = 500

        logger.error(
            f"Database Error [{request_id}]: {error_code} - {str(exception)}",
            extra={
                "error_code": error_code,
                "request_id": request_id,
                "path": request.url.path if request else None,
                "exception_type": type(exception).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=status_code,
            content=ErrorHandlerService.format_error_response(
                message=message,
                error_code=error_code
            )
        )

    @staticmethod
    def handle_http_exception(
        exception: StarletteHTTPException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Handle framework HTTP exceptions such as unknown routes."""
        request_id = ErrorHandlerService._generate_request_id()

        logger.warning(
            f"HTTP Exception [{request_id}]: {exception.status_code} - {exception.detail}",
            extra={
                "status_code": exception.status_code,
                "request_id": request_id,
                "path": request.url.path if request else None
            }
        )

        return JSONResponse(
            status_code=exception.status_code,
            content=ErrorHandlerService.format_error_response(
                message=str(exception.detail),
                error_code=f"HTTP_{exception.status_code}"
            ),
            headers=getattr(exception, "headers", None)
        )

    @staticmethod
    def handle_unexpected_error(
        exception: Exception,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Handle unexpected errors with a generic response."""
        request_id = ErrorHandlerService._generate_request_id()

        logger.error(
            f"Unexpected Error [{request_id}]: {type(exception).__name__} - {str(exception)}",
            extra={
                "request_id": request_id,
                "path": request.url.path if request else None,
                "exception_type": type(exception).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content=ErrorHandlerService.format_error_response(
                message=GENERIC_SERVER_ERROR,
                error_code="INTERNAL_SERVER_ERROR"
            )
        )

    @staticmethod
    def extract_field_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
        """
        Convert pydantic error dicts to {field, message} pairs.

        Args:
            errors: Output of ``exception.errors()``

        Returns:
            List of field errors with dotted field paths
        """
        field_errors = []
        for error in errors:
            loc = list(error.get("loc", ()))
            if loc and loc[0] in _LOCATION_PREFIXES:
                loc = loc[1:]
            field = ".".join(str(part) for part in loc) or "request"

            message = error.get("msg", "Invalid value")
            # Pydantic prefixes messages raised from validators
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]

            field_errors.append({"field": field, "message": message})
        return field_errors

    @staticmethod
    def _generate_request_id() -> str:
        """Generate a short request ID for error tracking."""
        return str(uuid.uuid4())[:8]
