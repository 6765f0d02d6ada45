"""
Verification Service

Classifies a submitted fingerprint against the registry:

    no document                     -> not_found (document and blockchain absent)
    document, ledger pending/absent -> not_found (document attached, no blockchain)
    confirmed, hashes match         -> verified
    confirmed, hashes differ        -> tampered

Attempts are written to the audit trail only when the caller identifies
itself with a verifier address, and never for the pending sub-case.
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Any, Optional

from app.core.audit import AuditTrail, LedgerMatchDetail, NotFoundDetail
from app.core.errors import ValidationError
from app.models.models import VerificationOutcome
from app.services.fingerprint_store import (
    FingerprintSnapshot,
    FingerprintStore,
    get_fingerprint_store,
    normalize_hash,
)

logger = logging.getLogger(__name__)

MSG_NOT_REGISTERED = "Document not found in registry"
MSG_NOT_CONFIRMED = "Document found but not yet confirmed on blockchain"
MSG_VERIFIED = "Document verified successfully"
MSG_TAMPERED = "WARNING: Document hash does not match. File may have been tampered with."


@dataclass
class VerificationResult:
    """Outcome of a verification request."""
    success: bool
    message: str
    status: Optional[VerificationOutcome] = None
    document: Optional[dict[str, Any]] = None
    blockchain: Optional[dict[str, Any]] = None
    error: Optional[ValidationError] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.status is not None:
            data["status"] = self.status.value
        if self.document is not None:
            data["document"] = self.document
        if self.blockchain is not None:
            data["blockchain"] = self.blockchain
        return data


def hashes_match(submitted: str, stored: Optional[str]) -> bool:
    """Constant-time comparison of two hex fingerprints, case-insensitive."""
    if not stored:
        return False
    return hmac.compare_digest(
        normalize_hash(submitted).encode("ascii", "replace"),
        normalize_hash(stored).encode("ascii", "replace"),
    )


def classify(snapshot: FingerprintSnapshot, file_hash: str) -> VerificationOutcome:
    """
    Outcome for a confirmed snapshot.

    Both the document's hash and the ledger's recorded hash must equal the
    submitted one; the ledger copy is written once at registration.
    """
    entry = snapshot.ledger_entry
    if hashes_match(file_hash, snapshot.document.file_hash) and hashes_match(
        file_hash, entry.document_hash if entry else None
    ):
        return VerificationOutcome.VERIFIED
    return VerificationOutcome.TAMPERED


class VerificationService:
    """Verifies fingerprints and records attributed attempts."""

    def __init__(self, store: FingerprintStore, audit_trail: Optional[AuditTrail] = None):
        self._store = store
        self._audit = audit_trail or AuditTrail(store)

    async def verify(
        self, file_hash: Optional[str], verifier_address: Optional[str] = None
    ) -> VerificationResult:
        if not file_hash or not file_hash.strip():
            error = ValidationError("file_hash is required")
            return VerificationResult(success=False, message=error.message, error=error)

        file_hash = normalize_hash(file_hash)
        verifier = (verifier_address or "").strip() or None

        snapshot = await self._store.find_snapshot(file_hash)

        if snapshot is None:
            if verifier:
                await self._audit.record_verification(
                    file_hash=file_hash,
                    outcome=VerificationOutcome.NOT_FOUND,
                    verifier_address=verifier,
                    detail=NotFoundDetail(message=MSG_NOT_REGISTERED),
                )
            logger.info("Verification: hash not registered")
            return VerificationResult(
                success=True,
                status=VerificationOutcome.NOT_FOUND,
                message=MSG_NOT_REGISTERED,
            )

        document = snapshot.document
        if not snapshot.is_confirmed:
            logger.info(
                "Verification: document %s not yet confirmed",
                document.id,
                extra={"document_id": document.id},
            )
            return VerificationResult(
                success=True,
                status=VerificationOutcome.NOT_FOUND,
                document=document.to_summary(),
                message=MSG_NOT_CONFIRMED,
            )

        entry = snapshot.ledger_entry
        outcome = classify(snapshot, file_hash)

        if verifier:
            await self._audit.record_verification(
                file_hash=file_hash,
                outcome=outcome,
                verifier_address=verifier,
                document_id=document.id,
                detail=LedgerMatchDetail(
                    kind=outcome.value,
                    transaction_hash=entry.transaction_hash,
                    block_number=entry.block_number,
                ),
            )

        if outcome is VerificationOutcome.TAMPERED:
            logger.warning(
                "Verification: hash mismatch for document %s",
                document.id,
                extra={"document_id": document.id},
            )
        else:
            logger.info(
                "Verification: document %s verified",
                document.id,
                extra={"document_id": document.id},
            )

        return VerificationResult(
            success=True,
            status=outcome,
            document=document.to_summary(),
            blockchain=entry.to_dict(),
            message=MSG_VERIFIED if outcome is VerificationOutcome.VERIFIED else MSG_TAMPERED,
        )


def get_verification_service() -> VerificationService:
    """FastAPI dependency: verification service over the shared store."""
    return VerificationService(get_fingerprint_store())
