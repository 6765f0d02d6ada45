"""
DocProof - Fingerprint Store Tests

Both implementations are exercised through the same contract.
"""

import asyncio
from contextlib import asynccontextmanager

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import ConflictError, StoreError
from app.models.models import (
    Document,
    DocumentStatus,
    LedgerEntry,
    VerificationRecord,
)
from app.services.fingerprint_store import (
    LedgerConfirmation,
    SQLAlchemyFingerprintStore,
    normalize_hash,
)


def make_pair(file_hash, filename="file.bin", uploader="0xowner"):
    document = Document(
        filename=filename,
        file_hash=file_hash,
        file_size=100,
        mime_type="application/octet-stream",
        uploader_address=uploader,
        tags=["t"],
    )
    entry = LedgerEntry(document_hash=file_hash, owner_address=uploader)
    return document, entry


CONFIRMATION = LedgerConfirmation(
    transaction_hash="0x" + "f" * 64,
    block_number=1_700_000_000,
    block_timestamp=1_700_000_000,
)


def test_normalize_hash():
    assert normalize_hash("  ABCdef \n") == "abcdef"


@pytest.mark.anyio
async def test_insert_and_find(store):
    document_id = await store.insert_document_with_ledger_entry(*make_pair("a1" * 32))

    found = await store.find_by_hash("A1" * 32)
    assert found.id == document_id
    assert found.status == DocumentStatus.PENDING.value

    snapshot = await store.find_snapshot("a1" * 32)
    assert snapshot.document.id == document_id
    assert snapshot.ledger_entry.document_id == document_id
    assert not snapshot.is_confirmed


@pytest.mark.anyio
async def test_find_missing_returns_none(store):
    assert await store.find_by_hash("0" * 64) is None
    assert await store.find_snapshot("0" * 64) is None
    assert await store.get_snapshot("missing") is None
    assert await store.find_ledger_entry("missing") is None


@pytest.mark.anyio
async def test_insert_duplicate_hash_raises_conflict(store):
    document_id = await store.insert_document_with_ledger_entry(*make_pair("b2" * 32))

    with pytest.raises(ConflictError) as exc_info:
        await store.insert_document_with_ledger_entry(*make_pair("b2" * 32, filename="dup.bin"))

    assert exc_info.value.document_id == document_id
    assert exc_info.value.status == "pending"
    _, total = await store.list_documents()
    assert total == 1


@pytest.mark.anyio
async def test_failed_ledger_insert_leaves_nothing_behind(sql_store):
    document, entry = make_pair("e5" * 32)
    entry.owner_address = None

    with pytest.raises(StoreError):
        await sql_store.insert_document_with_ledger_entry(document, entry)

    assert await sql_store.find_by_hash("e5" * 32) is None
    assert await sql_store.pending_document_ids() == []
    _, total = await sql_store.list_documents()
    assert total == 0


@pytest.mark.anyio
async def test_concurrent_inserts_single_winner(store):
    results = await asyncio.gather(
        *[store.insert_document_with_ledger_entry(*make_pair("c3" * 32)) for _ in range(8)],
        return_exceptions=True,
    )
    ids = [r for r in results if isinstance(r, str)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(ids) == 1
    assert len(conflicts) == 7


@pytest.mark.anyio
async def test_confirm_updates_both_records(store):
    document_id = await store.insert_document_with_ledger_entry(*make_pair("d4" * 32))

    assert await store.confirm_ledger_entry(document_id, CONFIRMATION)

    snapshot = await store.get_snapshot(document_id)
    assert snapshot.is_confirmed
    assert snapshot.document.status == "confirmed"
    assert snapshot.ledger_entry.transaction_hash == CONFIRMATION.transaction_hash
    assert snapshot.ledger_entry.block_number == CONFIRMATION.block_number
    assert await store.pending_document_ids() == []


@pytest.mark.anyio
async def test_confirm_is_guarded_by_pending_status(store):
    document_id = await store.insert_document_with_ledger_entry(*make_pair("e5" * 32))
    await store.confirm_ledger_entry(document_id, CONFIRMATION)

    again = LedgerConfirmation(transaction_hash="0x" + "1" * 64, block_number=1, block_timestamp=1)
    assert not await store.confirm_ledger_entry(document_id, again)
    assert not await store.update_ledger_entry(document_id, block_number=5)

    entry = await store.find_ledger_entry(document_id)
    assert entry.transaction_hash == CONFIRMATION.transaction_hash
    assert entry.block_number == CONFIRMATION.block_number


@pytest.mark.anyio
async def test_update_ledger_entry_and_document_status(store):
    document_id = await store.insert_document_with_ledger_entry(*make_pair("f6" * 32))

    assert await store.update_ledger_entry(document_id, owner_address="0xnew")
    assert (await store.find_ledger_entry(document_id)).owner_address == "0xnew"

    assert await store.update_document_status(document_id, DocumentStatus.NOT_FOUND)
    assert (await store.get_snapshot(document_id)).document.status == "not_found"
    assert not await store.update_document_status("missing", DocumentStatus.CONFIRMED)


@pytest.mark.anyio
async def test_list_documents_filters_and_paginates(store):
    ids = []
    for i in range(5):
        ids.append(await store.insert_document_with_ledger_entry(*make_pair(f"{i}" * 64)))
        await asyncio.sleep(0.01)
    await store.confirm_ledger_entry(ids[0], CONFIRMATION)

    page, total = await store.list_documents(limit=2, offset=0)
    assert total == 5
    assert [s.document.id for s in page] == [ids[4], ids[3]]

    page, total = await store.list_documents(limit=2, offset=4)
    assert total == 5
    assert [s.document.id for s in page] == [ids[0]]

    confirmed, total = await store.list_documents(status=DocumentStatus.CONFIRMED)
    assert total == 1
    assert confirmed[0].document.id == ids[0]
    assert confirmed[0].to_dict()["blockchain_records"][0]["status"] == "confirmed"

    pending, total = await store.list_documents(status=DocumentStatus.PENDING)
    assert total == 4


@pytest.mark.anyio
async def test_verification_records_newest_first(store):
    document_id = await store.insert_document_with_ledger_entry(*make_pair("9a" * 32))
    for outcome in ("verified", "tampered"):
        await store.append_verification_record(
            VerificationRecord(
                document_id=document_id,
                verified_hash="9a" * 32,
                status=outcome,
                verifier_address="0xv",
                details={"kind": outcome},
            )
        )
        await asyncio.sleep(0.01)
    await store.append_verification_record(
        VerificationRecord(
            verified_hash="0" * 64,
            status="not_found",
            verifier_address="0xv",
            details={"kind": "not_found", "message": "x"},
        )
    )

    by_document = await store.list_verification_records(document_id=document_id)
    assert [r.status for r in by_document] == ["tampered", "verified"]

    by_hash = await store.list_verification_records(file_hash="0" * 64)
    assert len(by_hash) == 1
    assert by_hash[0].document_id is None

    assert len(await store.list_verification_records(limit=1)) == 1


@pytest.mark.anyio
async def test_sql_errors_become_store_errors():
    @asynccontextmanager
    async def broken_session():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))
        yield  # pragma: no cover

    store = SQLAlchemyFingerprintStore(session_scope=broken_session)

    with pytest.raises(StoreError) as exc_info:
        await store.find_snapshot("a" * 64)
    assert exc_info.value.operation == "find_snapshot"
    assert exc_info.value.message == "Storage operation failed"

    with pytest.raises(StoreError):
        await store.insert_document_with_ledger_entry(*make_pair("a" * 64))
