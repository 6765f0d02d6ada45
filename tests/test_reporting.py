"""
DocProof - Reporting Service Tests

Listing, export rendering and lookups over the in-memory store.
"""

import csv
import io
import json
from datetime import datetime, timezone

import pytest

from app.core.errors import NotFoundError
from app.models.models import Document, DocumentStatus, LedgerEntry
from app.services.ledger_simulator import confirm_document
from app.services.reporting import (
    CSV_HEADERS,
    ExportFormat,
    ReportingService,
    export_filename,
    parse_status,
)


async def seed(store, file_hash, filename, confirm=False):
    document_id = await store.insert_document_with_ledger_entry(
        Document(
            filename=filename,
            file_hash=file_hash,
            file_size=12,
            mime_type="text/plain",
            uploader_address="0xowner",
            tags=[],
        ),
        LedgerEntry(document_hash=file_hash, owner_address="0xowner"),
    )
    if confirm:
        await confirm_document(store, document_id)
    return document_id


@pytest.fixture
def service(memory_store, settings):
    return ReportingService(memory_store, settings)


def test_parse_status():
    assert parse_status("confirmed") is DocumentStatus.CONFIRMED
    assert parse_status("PENDING") is DocumentStatus.PENDING
    assert parse_status("bogus") is None
    assert parse_status(None) is None


def test_export_filename():
    day = datetime(2024, 3, 9, tzinfo=timezone.utc)
    assert export_filename(ExportFormat.CSV, day) == "document-proofs-2024-03-09.csv"
    assert export_filename(ExportFormat.JSON, day) == "document-proofs-2024-03-09.json"


@pytest.mark.anyio
async def test_list_documents_pagination(service, memory_store):
    for i in range(3):
        await seed(memory_store, f"{i}" * 64, f"f{i}.txt")

    page = await service.list_documents(limit=2)
    assert page["success"] is True
    assert len(page["documents"]) == 2
    assert page["pagination"] == {"total": 3, "limit": 2, "offset": 0, "hasMore": True}

    last = await service.list_documents(limit=2, offset=2)
    assert last["pagination"]["hasMore"] is False
    assert len(last["documents"]) == 1


@pytest.mark.anyio
async def test_list_documents_ignores_unknown_status(service, memory_store):
    await seed(memory_store, "1" * 64, "a.txt")
    page = await service.list_documents(status="archived")
    assert page["pagination"]["total"] == 1


@pytest.mark.anyio
async def test_list_documents_clamps_limit(service, memory_store, settings):
    page = await service.list_documents(limit=10_000)
    assert page["pagination"]["limit"] == settings.max_page_size


@pytest.mark.anyio
async def test_export_csv_contains_confirmed_only(service, memory_store):
    confirmed_id = await seed(memory_store, "1" * 64, 'quote "me".txt', confirm=True)
    await seed(memory_store, "2" * 64, "pending.txt")

    export = await service.export_proofs(ExportFormat.CSV)

    assert export.media_type == "text/csv"
    assert export.filename.startswith("document-proofs-")
    rows = list(csv.reader(io.StringIO(export.content)))
    assert rows[0] == CSV_HEADERS
    assert len(rows) == 2
    row = dict(zip(CSV_HEADERS, rows[1]))
    assert row["Filename"] == 'quote "me".txt'
    assert row["SHA-256 Hash"] == "1" * 64
    assert row["Owner Address"] == "0xowner"
    assert row["Transaction Hash"].startswith("0x")
    assert row["Status"] == "confirmed"

    entry = await memory_store.find_ledger_entry(confirmed_id)
    assert row["Block Number"] == str(entry.block_number)


@pytest.mark.anyio
async def test_export_json_with_status_filter(service, memory_store):
    await seed(memory_store, "1" * 64, "done.txt", confirm=True)
    await seed(memory_store, "2" * 64, "waiting.txt")

    export = await service.export_proofs(ExportFormat.JSON, status="pending")

    assert export.media_type == "application/json"
    payload = json.loads(export.content)
    assert [doc["filename"] for doc in payload] == ["waiting.txt"]
    assert payload[0]["blockchain_records"][0]["status"] == "pending"


@pytest.mark.anyio
async def test_get_document(service, memory_store):
    document_id = await seed(memory_store, "3" * 64, "c.txt")
    document = await service.get_document(document_id)
    assert document["id"] == document_id
    assert document["blockchain_records"][0]["transaction_hash"] is None

    with pytest.raises(NotFoundError):
        await service.get_document("missing")
