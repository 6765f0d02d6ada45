"""
Registration Service

Validates a registration request, inserts the document together with its
pending ledger entry, and hands the new document id to the confirmation
scheduler.

Validation runs in a fixed order, each step a distinct rejection:
1. filename, file_hash and file_size present
2. file_hash is a hex digest of the configured algorithm's length
3. file_size within the configured maximum
4. file_hash not already registered (ConflictError)

Validation and conflict failures are returned in RegistrationResult.error;
StoreError propagates.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Union

from app.core.config import Settings, get_settings
from app.core.errors import ConflictError, ValidationError
from app.models.models import (
    Document,
    DocumentStatus,
    LedgerEntry,
    LedgerStatus,
)
from app.services.fingerprint_store import (
    FingerprintStore,
    get_fingerprint_store,
    normalize_hash,
)
from app.services.ledger_simulator import (
    ConfirmationScheduler,
    get_confirmation_scheduler,
)

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
ANONYMOUS_UPLOADER = "anonymous"
PENDING_MESSAGE = "Document registered successfully. Pending blockchain confirmation..."


@dataclass
class RegistrationRequest:
    filename: Optional[str]
    file_hash: Optional[str]
    file_size: Optional[int]
    mime_type: Optional[str] = None
    uploader_address: Optional[str] = None
    tags: list[str] = field(default_factory=list)


@dataclass
class RegistrationResult:
    """Outcome of a registration attempt."""
    success: bool
    message: str
    document_id: Optional[str] = None
    error: Optional[Union[ValidationError, ConflictError]] = None

    @classmethod
    def failed(cls, error: Union[ValidationError, ConflictError]) -> "RegistrationResult":
        return cls(success=False, message=error.message, error=error)

    def to_dict(self) -> dict:
        data = {"success": self.success, "message": self.message}
        if self.document_id:
            data["document_id"] = self.document_id
        if self.error is not None:
            data["error"] = self.error.message
        return data


def is_valid_hash(file_hash: str, hex_length: int) -> bool:
    """True if file_hash is exactly hex_length hex characters (any case)."""
    return re.fullmatch(rf"[0-9a-fA-F]{{{hex_length}}}", file_hash) is not None


def clean_tags(tags: Optional[list[str]]) -> list[str]:
    """Strip tags, drop empties and duplicates, keep order."""
    cleaned: list[str] = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


class RegistrationService:
    """Registers document fingerprints."""

    def __init__(
        self,
        store: FingerprintStore,
        scheduler: ConfirmationScheduler,
        settings: Optional[Settings] = None,
    ):
        self._store = store
        self._scheduler = scheduler
        self._settings = settings or get_settings()

    def validate(self, request: RegistrationRequest) -> Optional[ValidationError]:
        """First failing validation rule, or None."""
        if not request.filename or not request.file_hash or not request.file_size:
            return ValidationError("Missing required fields: filename, file_hash, file_size")

        hex_length = self._settings.hash_hex_length
        if not is_valid_hash(request.file_hash, hex_length):
            algorithm = self._settings.hash_algorithm.upper()
            return ValidationError(
                f"Invalid hash format. Expected {algorithm} hex ({hex_length} chars)"
            )

        if request.file_size < 0:
            return ValidationError("File size must be a positive number of bytes")
        if request.file_size > self._settings.max_file_size_bytes:
            return ValidationError(
                f"File size exceeds {self._settings.max_file_size_mb}MB limit",
                details=[{
                    "file_size": request.file_size,
                    "max_file_size": self._settings.max_file_size_bytes,
                }],
            )

        return None

    async def register(
        self,
        filename: Optional[str],
        file_hash: Optional[str],
        file_size: Optional[int],
        mime_type: Optional[str] = None,
        uploader_address: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> RegistrationResult:
        """
        Register a document fingerprint.

        On success the document and its ledger entry are both pending and a
        confirmation job is scheduled; the call does not wait for it.
        """
        request = RegistrationRequest(
            filename=filename,
            file_hash=file_hash,
            file_size=file_size,
            mime_type=mime_type,
            uploader_address=uploader_address,
            tags=list(tags or []),
        )
        error = self.validate(request)
        if error is not None:
            logger.info("Registration rejected: %s", error.message)
            return RegistrationResult.failed(error)

        file_hash = normalize_hash(file_hash)
        uploader = (request.uploader_address or "").strip() or ANONYMOUS_UPLOADER

        document = Document(
            filename=request.filename,
            file_hash=file_hash,
            file_size=request.file_size,
            mime_type=(request.mime_type or "").strip() or DEFAULT_MIME_TYPE,
            uploader_address=uploader,
            tags=clean_tags(request.tags),
            status=DocumentStatus.PENDING.value,
        )
        entry = LedgerEntry(
            document_hash=file_hash,
            owner_address=uploader,
            status=LedgerStatus.PENDING.value,
        )

        try:
            document_id = await self._store.insert_document_with_ledger_entry(document, entry)
        except ConflictError as conflict:
            logger.info(
                "Registration conflict: hash already registered as %s",
                conflict.document_id,
                extra={"document_id": conflict.document_id},
            )
            return RegistrationResult.failed(conflict)

        self._scheduler.schedule(document_id, self._settings.confirmation_delay_seconds)

        logger.info(
            "Registered %s as %s (pending confirmation)",
            request.filename,
            document_id,
            extra={"document_id": document_id},
        )
        return RegistrationResult(success=True, message=PENDING_MESSAGE, document_id=document_id)


def get_registration_service() -> RegistrationService:
    """FastAPI dependency: registration service over the shared store and scheduler."""
    return RegistrationService(get_fingerprint_store(), get_confirmation_scheduler())
