"""
DocProof SDK - Main Client

Unified client for the DocProof registry API.
"""

from typing import Dict, Any

from .documents import DocumentClient


class DocProofClient(DocumentClient):
    """
    Main DocProof SDK client.

    Example:
        ```python
        from sdk import DocProofClient

        with DocProofClient("http://localhost:8000") as client:
            registration = client.register_file("lease.pdf", uploader_address="0xabc")

            # Later, possibly on another machine
            report = client.verify_file("lease.pdf", verifier_address="0xdef")
            if report.is_tampered:
                print(report.message)
        ```
    """

    def health_check(self) -> Dict[str, Any]:
        """
        Check API liveness.

        Returns:
            Health status information
        """
        return self.get("/healthz")

    async def ahealth_check(self) -> Dict[str, Any]:
        """Check API liveness (async)."""
        return await self.aget("/healthz")

    def readiness(self) -> Dict[str, Any]:
        """
        Readiness report. A 503 (database unreachable) raises ServerError.
        """
        return self.get("/readyz")

    def __repr__(self) -> str:
        return f"DocProofClient(base_url={self.base_url!r})"
