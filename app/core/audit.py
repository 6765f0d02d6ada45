"""
Audit Trail for DocProof.

Append-only history of verification attempts. Written only by the
verification service; read by reporting endpoints.

Usage:
    from app.core.audit import AuditTrail, LedgerMatchDetail

    trail = AuditTrail(store)
    await trail.record_verification(
        file_hash=file_hash,
        outcome=VerificationOutcome.VERIFIED,
        verifier_address="0xabc...",
        document_id=document.id,
        detail=LedgerMatchDetail(
            kind="verified",
            transaction_hash=entry.transaction_hash,
            block_number=entry.block_number,
        ),
    )
"""

import logging
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from app.models.models import VerificationOutcome, VerificationRecord
from app.services.fingerprint_store import FingerprintStore, normalize_hash

logger = logging.getLogger(__name__)


# =============================================================================
# Detail Payloads (tagged by outcome)
# =============================================================================

class LedgerMatchDetail(BaseModel):
    """Context for an outcome decided against a confirmed ledger entry."""
    kind: Literal["verified", "tampered"]
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None


class NotFoundDetail(BaseModel):
    """Context for a hash with no matching document."""
    kind: Literal["not_found"] = "not_found"
    message: str


VerificationDetail = Annotated[
    Union[LedgerMatchDetail, NotFoundDetail],
    Field(discriminator="kind"),
]

_detail_adapter = TypeAdapter(VerificationDetail)


def parse_detail(raw: dict[str, Any]) -> Union[LedgerMatchDetail, NotFoundDetail]:
    """Rebuild the typed detail payload from its stored JSON form."""
    return _detail_adapter.validate_python(raw)


# =============================================================================
# Audit Trail
# =============================================================================

class AuditTrail:
    """Append-only log of verification attempts, persisted in the store."""

    def __init__(self, store: FingerprintStore):
        self._store = store

    async def record_verification(
        self,
        file_hash: str,
        outcome: VerificationOutcome,
        verifier_address: str,
        detail: Union[LedgerMatchDetail, NotFoundDetail],
        document_id: Optional[str] = None,
    ) -> VerificationRecord:
        """Append one verification record."""
        outcome = VerificationOutcome(outcome)
        if detail.kind != outcome.value:
            raise ValueError(f"Detail of kind {detail.kind!r} cannot describe outcome {outcome.value!r}")

        record = VerificationRecord(
            document_id=document_id,
            verified_hash=normalize_hash(file_hash),
            status=outcome.value,
            verifier_address=verifier_address,
            details=detail.model_dump(),
        )
        record = await self._store.append_verification_record(record)

        logger.info(
            "AUDIT: verification.%s | verifier=%s | document=%s",
            outcome.value,
            verifier_address,
            document_id or "-",
            extra={"document_id": document_id, "audit_record_id": record.id},
        )
        return record

    async def history(
        self,
        file_hash: Optional[str] = None,
        document_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """Query verification records, newest first."""
        records = await self._store.list_verification_records(
            file_hash=file_hash,
            document_id=document_id,
            limit=limit,
        )
        return [record.to_dict() for record in records]
