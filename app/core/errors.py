"""
Standardized Error Handling for DocProof API.

Provides consistent error responses across all endpoints.
All errors return JSON with standard structure.
"""

import logging
import traceback
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# =============================================================================
# Error Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response format."""
    success: bool = False
    error: str  # Error code (e.g., "validation_error", "conflict")
    message: str  # Human-readable message
    details: list[dict[str, Any]] | None = None  # Additional details
    request_id: str | None = None  # For tracking


# =============================================================================
# Custom Exceptions
# =============================================================================

class DocProofError(Exception):
    """Base exception for DocProof-specific errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "docproof_error",
        status_code: int = 500,
        details: list[dict] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(DocProofError):
    """Missing or malformed input. Never retried, never audited."""

    def __init__(self, message: str, details: list[dict] | None = None):
        super().__init__(
            message=message,
            error_code="validation_error",
            status_code=400,
            details=details,
        )


class ConflictError(DocProofError):
    """Fingerprint already registered."""

    def __init__(self, document_id: str, status: str):
        self.document_id = document_id
        self.status = status
        super().__init__(
            message=f"Document already registered with ID: {document_id}. Status: {status}",
            error_code="conflict",
            status_code=409,
            details=[{"document_id": document_id, "status": status}],
        )


class NotFoundError(DocProofError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} '{identifier}' not found"
        super().__init__(
            message=message,
            error_code="not_found",
            status_code=404,
        )


class StoreError(DocProofError):
    """Persistence failure. The client only ever sees a generic message."""

    def __init__(self, operation: str = "Storage operation"):
        self.operation = operation
        super().__init__(
            message="Storage operation failed",
            error_code="store_error",
            status_code=500,
        )


# =============================================================================
# Exception Handlers
# =============================================================================

def get_request_id(request: Request) -> Optional[str]:
    """Extract request ID from request."""
    return getattr(request.state, "request_id", None) or request.headers.get("X-Request-Id")


async def docproof_error_handler(request: Request, exc: DocProofError) -> JSONResponse:
    """Handle DocProof-specific exceptions."""
    if isinstance(exc, StoreError):
        logger.error(
            "StoreError during %s on %s",
            exc.operation,
            request.url.path,
            exc_info=exc.__cause__ or exc,
            extra={"error_code": exc.error_code, "path": request.url.path},
        )
    else:
        logger.warning(
            "DocProofError: %s - %s",
            exc.error_code,
            exc.message,
            extra={"error_code": exc.error_code, "path": request.url.path},
        )

    body = ErrorResponse(
        error=exc.error_code,
        message=exc.message,
        details=exc.details,
        request_id=get_request_id(request),
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle standard HTTP exceptions."""
    error_codes = {
        400: "bad_request",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        422: "validation_error",
        500: "internal_error",
        503: "service_unavailable",
    }

    error_code = error_codes.get(exc.status_code, "error")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": error_code,
            "message": str(exc.detail) if exc.detail else f"HTTP {exc.status_code}",
            "request_id": get_request_id(request),
        },
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    details = []
    for error in exc.errors():
        details.append({
            "loc": [str(part) for part in error.get("loc", [])],
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        })

    logger.info(
        "Validation error on %s: %d issues",
        request.url.path,
        len(details),
    )

    body = ErrorResponse(
        error="validation_error",
        message="Request validation failed",
        details=details,
        request_id=get_request_id(request),
    )
    return JSONResponse(status_code=422, content=body.model_dump())


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "Unhandled exception on %s: %s",
        request.url.path,
        str(exc),
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc(),
        }
    )

    # Don't expose internal details
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "request_id": get_request_id(request),
        },
    )


# =============================================================================
# Setup Function
# =============================================================================

def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI app.

    Call during app initialization:
        setup_exception_handlers(app)
    """
    app.add_exception_handler(DocProofError, docproof_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)


__all__ = [
    "DocProofError",
    "ErrorResponse",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "StoreError",
    "setup_exception_handlers",
]
