"""
DocProof SDK - Base HTTP Client

Provides the core HTTP functionality for all SDK clients.
"""

import httpx
from typing import Optional, Dict, Any
import json

from .exceptions import (
    DocProofError,
    ConflictError,
    NotFoundError,
    ValidationError,
    ServerError,
)


class BaseClient:
    """Base HTTP client with error handling."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the base client.

        Args:
            base_url: The DocProof API base URL
            timeout: Request timeout in seconds
            transport: Optional transport for the sync client (e.g. httpx.MockTransport)
            async_transport: Optional transport for the async client
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._async_transport = async_transport
        self._client: Optional[httpx.Client] = None
        self._async_client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.Client:
        """Get or create sync HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    @property
    def async_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._async_client is None:
            self._async_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._async_transport,
            )
        return self._async_client

    def _raise_for_error(self, response: httpx.Response) -> None:
        """
        Raise the typed exception matching an error response.

        Raises:
            DocProofError: On API errors
        """
        if response.status_code < 400:
            return

        request_id = response.headers.get("x-request-id")

        try:
            data = response.json()
        except json.JSONDecodeError:
            data = {"message": response.text}

        error_msg = data.get("message") or data.get("detail") or data.get("error") or "Unknown error"

        if response.status_code in (400, 422):
            raise ValidationError(
                message=error_msg,
                errors=data.get("details") or [],
                status_code=response.status_code,
                response_data=data,
                request_id=request_id,
            )

        if response.status_code == 409:
            conflict = (data.get("details") or [{}])[0]
            raise ConflictError(
                message=error_msg,
                document_id=conflict.get("document_id"),
                document_status=conflict.get("status"),
                response_data=data,
                request_id=request_id,
            )

        if response.status_code == 404:
            raise NotFoundError(
                resource_type="Resource",
                response_data=data,
                request_id=request_id,
            )

        if response.status_code >= 500:
            raise ServerError(
                message=error_msg,
                status_code=response.status_code,
                response_data=data,
                request_id=request_id,
            )

        raise DocProofError(
            message=error_msg,
            status_code=response.status_code,
            response_data=data,
            request_id=request_id,
        )

    def _handle_response(self, response: httpx.Response) -> Dict[str, Any]:
        """
        Handle HTTP response and raise appropriate exceptions.

        Returns:
            Parsed JSON response data
        """
        self._raise_for_error(response)
        if response.headers.get("content-type", "").startswith("application/json"):
            return response.json()
        return {"content": response.text, "status_code": response.status_code}

    def get(self, path: str, params: Optional[Dict] = None) -> Dict[str, Any]:
        """Make a GET request."""
        response = self.client.get(path, params=params)
        return self._handle_response(response)

    def get_raw(self, path: str, params: Optional[Dict] = None) -> httpx.Response:
        """Make a GET request and return the response itself (for downloads)."""
        response = self.client.get(path, params=params)
        self._raise_for_error(response)
        return response

    def post(self, path: str, json: Optional[Dict] = None) -> Dict[str, Any]:
        """Make a POST request."""
        response = self.client.post(path, json=json)
        return self._handle_response(response)

    # Async methods
    async def aget(self, path: str, params: Optional[Dict] = None) -> Dict[str, Any]:
        """Make an async GET request."""
        response = await self.async_client.get(path, params=params)
        return self._handle_response(response)

    async def aget_raw(self, path: str, params: Optional[Dict] = None) -> httpx.Response:
        """Make an async GET request and return the response itself."""
        response = await self.async_client.get(path, params=params)
        self._raise_for_error(response)
        return response

    async def apost(self, path: str, json: Optional[Dict] = None) -> Dict[str, Any]:
        """Make an async POST request."""
        response = await self.async_client.post(path, json=json)
        return self._handle_response(response)

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    async def aclose(self) -> None:
        """Close the async HTTP client."""
        if self._async_client:
            await self._async_client.aclose()
            self._async_client = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()
