"""
DocProof Python SDK

Client for the DocProof document fingerprint registry.

Usage:
    from sdk import DocProofClient

    client = DocProofClient(base_url="http://localhost:8000")

    # Register a document (hashed locally)
    registration = client.register_file("contract.pdf", uploader_address="0xabc")

    # Verify it later
    report = client.verify_file("contract.pdf")
    print(report.status)
"""

from .client import DocProofClient
from .documents import (
    DocumentClient,
    DocumentPage,
    Registration,
    VerificationReport,
    compute_sha256,
)
from .exceptions import (
    DocProofError,
    ConflictError,
    NotFoundError,
    ValidationError,
    ServerError,
)

__version__ = "1.0.0"
__all__ = [
    "DocProofClient",
    "DocumentClient",
    "DocumentPage",
    "Registration",
    "VerificationReport",
    "compute_sha256",
    "DocProofError",
    "ConflictError",
    "NotFoundError",
    "ValidationError",
    "ServerError",
]
