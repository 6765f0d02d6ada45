"""
DocProof SDK - Custom Exceptions

Provides typed exceptions for API error handling.
"""

from typing import Optional, Dict, Any


class DocProofError(Exception):
    """Base exception for all DocProof SDK errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        self.request_id = request_id

    @property
    def error_code(self) -> Optional[str]:
        """Machine-readable error code from the response body."""
        return self.response_data.get("error")

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code:
            parts.append(f"(HTTP {self.status_code})")
        if self.request_id:
            parts.append(f"[Request ID: {self.request_id}]")
        return " ".join(parts)


class ValidationError(DocProofError):
    """Raised when the API rejects a request as malformed (400 or 422)."""

    def __init__(
        self,
        message: str = "Validation error",
        errors: Optional[list] = None,
        status_code: int = 400,
        **kwargs,
    ):
        super().__init__(message, status_code=status_code, **kwargs)
        self.errors = errors or []


class ConflictError(DocProofError):
    """Raised when a fingerprint is already registered."""

    def __init__(
        self,
        message: str = "Document already registered",
        document_id: Optional[str] = None,
        document_status: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, status_code=409, **kwargs)
        self.document_id = document_id
        self.document_status = document_status


class NotFoundError(DocProofError):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None,
        **kwargs,
    ):
        message = f"{resource_type} not found"
        if resource_id:
            message = f"{resource_type} '{resource_id}' not found"
        super().__init__(message, status_code=404, **kwargs)
        self.resource_type = resource_type
        self.resource_id = resource_id


class ServerError(DocProofError):
    """Raised when a server error occurs."""

    def __init__(
        self,
        message: str = "Internal server error",
        status_code: int = 500,
        **kwargs,
    ):
        super().__init__(message, status_code=status_code, **kwargs)
