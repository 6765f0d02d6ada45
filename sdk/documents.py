"""
DocProof SDK - Document Client

Registers document fingerprints and verifies files against the registry.
Hashes are computed locally; file contents never leave the machine.
"""

import hashlib
import mimetypes
from typing import Optional, Dict, Any, List, BinaryIO, Union
from dataclasses import dataclass, field
from pathlib import Path

from .base import BaseClient

CHUNK_SIZE = 1024 * 1024


def compute_sha256(file: Union[str, Path, BinaryIO, bytes]) -> str:
    """
    SHA-256 hex digest of a file, path or byte string.
    File-like objects are read from their current position in chunks.
    """
    digest = hashlib.sha256()
    if isinstance(file, bytes):
        digest.update(file)
    elif isinstance(file, (str, Path)):
        with open(file, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                digest.update(chunk)
    else:
        for chunk in iter(lambda: file.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def guess_mime_type(filename: str) -> str:
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or "application/octet-stream"


@dataclass
class Registration:
    """Result of a successful registration."""
    document_id: str
    message: str


@dataclass
class VerificationReport:
    """Result of a verification request."""
    status: str
    message: str
    document: Optional[Dict[str, Any]] = None
    blockchain: Optional[Dict[str, Any]] = None

    @property
    def is_verified(self) -> bool:
        return self.status == "verified"

    @property
    def is_tampered(self) -> bool:
        return self.status == "tampered"

    @property
    def is_pending(self) -> bool:
        """Registered but not yet confirmed."""
        return self.status == "not_found" and self.document is not None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "VerificationReport":
        return cls(
            status=data.get("status", "not_found"),
            message=data.get("message", ""),
            document=data.get("document"),
            blockchain=data.get("blockchain"),
        )


@dataclass
class DocumentPage:
    """One page of the document listing."""
    documents: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    limit: int = 50
    offset: int = 0
    has_more: bool = False

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "DocumentPage":
        pagination = data.get("pagination", {})
        return cls(
            documents=data.get("documents", []),
            total=pagination.get("total", 0),
            limit=pagination.get("limit", 50),
            offset=pagination.get("offset", 0),
            has_more=pagination.get("hasMore", False),
        )


class DocumentClient(BaseClient):
    """Client for registry operations."""

    @staticmethod
    def _register_payload(
        filename: str,
        file_hash: str,
        file_size: int,
        mime_type: Optional[str],
        uploader_address: Optional[str],
        tags: Optional[List[str]],
    ) -> Dict[str, Any]:
        payload = {
            "filename": filename,
            "file_hash": file_hash,
            "file_size": file_size,
            "mime_type": mime_type or guess_mime_type(filename),
            "uploader_address": uploader_address,
        }
        if tags:
            payload["tags"] = list(tags)
        return payload

    def register(
        self,
        filename: str,
        file_hash: str,
        file_size: int,
        mime_type: Optional[str] = None,
        uploader_address: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Registration:
        """
        Register a precomputed fingerprint.

        Raises:
            ValidationError: Missing fields, bad hash format or oversized file
            ConflictError: Fingerprint already registered
        """
        response = self.post(
            "/api/documents/register",
            json=self._register_payload(filename, file_hash, file_size, mime_type, uploader_address, tags),
        )
        return Registration(document_id=response["document_id"], message=response.get("message", ""))

    def register_file(
        self,
        file: Union[str, Path],
        uploader_address: Optional[str] = None,
        tags: Optional[List[str]] = None,
        mime_type: Optional[str] = None,
    ) -> Registration:
        """Hash a local file and register it."""
        path = Path(file)
        return self.register(
            filename=path.name,
            file_hash=compute_sha256(path),
            file_size=path.stat().st_size,
            mime_type=mime_type,
            uploader_address=uploader_address,
            tags=tags,
        )

    def verify(self, file_hash: str, verifier_address: Optional[str] = None) -> VerificationReport:
        """Verify a fingerprint. Supplying verifier_address records the attempt."""
        payload = {"file_hash": file_hash}
        if verifier_address:
            payload["verifier_address"] = verifier_address
        response = self.post("/api/documents/verify", json=payload)
        return VerificationReport.from_response(response)

    def verify_file(
        self, file: Union[str, Path, BinaryIO], verifier_address: Optional[str] = None
    ) -> VerificationReport:
        """Hash a local file and verify it."""
        return self.verify(compute_sha256(file), verifier_address)

    def get_document(self, document_id: str) -> Dict[str, Any]:
        response = self.get(f"/api/documents/{document_id}")
        return response.get("document", {})

    def list_documents(
        self,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> DocumentPage:
        """List registered documents, newest first."""
        params: Dict[str, Any] = {"limit": limit, "offset": offset}
        if status:
            params["status"] = status
        return DocumentPage.from_response(self.get("/api/documents", params=params))

    def export_proofs(
        self,
        format: str = "csv",
        status: str = "confirmed",
        destination: Optional[Union[str, Path]] = None,
    ) -> bytes:
        """
        Download proofs as CSV or JSON.
        When destination is given the file is also written there.
        """
        response = self.get_raw("/api/documents/export", params={"format": format, "status": status})
        if destination is not None:
            Path(destination).write_bytes(response.content)
        return response.content

    def verification_history(
        self,
        file_hash: Optional[str] = None,
        document_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"limit": limit}
        if file_hash:
            params["file_hash"] = file_hash
        if document_id:
            params["document_id"] = document_id
        return self.get("/api/verifications", params=params).get("verifications", [])

    # Async methods
    async def aregister(
        self,
        filename: str,
        file_hash: str,
        file_size: int,
        mime_type: Optional[str] = None,
        uploader_address: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Registration:
        """Register a precomputed fingerprint (async)."""
        response = await self.apost(
            "/api/documents/register",
            json=self._register_payload(filename, file_hash, file_size, mime_type, uploader_address, tags),
        )
        return Registration(document_id=response["document_id"], message=response.get("message", ""))

    async def averify(
        self, file_hash: str, verifier_address: Optional[str] = None
    ) -> VerificationReport:
        """Verify a fingerprint (async)."""
        payload = {"file_hash": file_hash}
        if verifier_address:
            payload["verifier_address"] = verifier_address
        response = await self.apost("/api/documents/verify", json=payload)
        return VerificationReport.from_response(response)

    async def alist_documents(
        self,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> DocumentPage:
        """List registered documents (async)."""
        params: Dict[str, Any] = {"limit": limit, "offset": offset}
        if status:
            params["status"] = status
        return DocumentPage.from_response(await self.aget("/api/documents", params=params))
