"""
DocProof - Audit Trail Tests
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.core.audit import (
    AuditTrail,
    LedgerMatchDetail,
    NotFoundDetail,
    parse_detail,
)
from app.models.models import VerificationOutcome


def test_parse_detail_dispatches_on_kind():
    tampered = parse_detail({"kind": "tampered", "transaction_hash": "0xabc", "block_number": 7})
    assert isinstance(tampered, LedgerMatchDetail)
    assert tampered.block_number == 7

    missing = parse_detail({"kind": "not_found", "message": "Document not found in registry"})
    assert isinstance(missing, NotFoundDetail)


def test_parse_detail_rejects_unknown_kind():
    with pytest.raises(PydanticValidationError):
        parse_detail({"kind": "maybe"})


@pytest.mark.anyio
async def test_record_and_read_history(memory_store):
    trail = AuditTrail(memory_store)

    record = await trail.record_verification(
        file_hash="AB" * 32,
        outcome=VerificationOutcome.NOT_FOUND,
        verifier_address="0xverifier",
        detail=NotFoundDetail(message="Document not found in registry"),
    )

    assert record.id
    assert record.verified_hash == "ab" * 32
    history = await trail.history(file_hash="ab" * 32)
    assert len(history) == 1
    assert history[0]["status"] == "not_found"
    assert history[0]["details"] == {"kind": "not_found", "message": "Document not found in registry"}
    assert history[0]["verification_timestamp"]


@pytest.mark.anyio
async def test_detail_must_match_outcome(memory_store):
    trail = AuditTrail(memory_store)

    with pytest.raises(ValueError):
        await trail.record_verification(
            file_hash="ab" * 32,
            outcome=VerificationOutcome.VERIFIED,
            verifier_address="0xverifier",
            detail=NotFoundDetail(message="nope"),
        )
    assert await memory_store.list_verification_records() == []
