"""
DocProof - SDK Tests
The client is exercised against httpx.MockTransport; no server is started.
"""

import io
import json

import httpx
import pytest

from sdk import (
    ConflictError,
    DocProofClient,
    DocProofError,
    NotFoundError,
    ServerError,
    ValidationError,
    compute_sha256,
)

# sha256(b"hello world")
HELLO_HASH = "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"


def make_client(handler) -> DocProofClient:
    transport = httpx.MockTransport(handler)
    return DocProofClient("http://docproof.test", transport=transport, async_transport=transport)


def error_body(error, message, details=None):
    return {"success": False, "error": error, "message": message, "details": details, "request_id": "r1"}


# =============================================================================
# Hashing
# =============================================================================

def test_compute_sha256_bytes_path_and_stream(tmp_path):
    path = tmp_path / "hello.txt"
    path.write_bytes(b"hello world")

    assert compute_sha256(b"hello world") == HELLO_HASH
    assert compute_sha256(path) == HELLO_HASH
    assert compute_sha256(str(path)) == HELLO_HASH
    assert compute_sha256(io.BytesIO(b"hello world")) == HELLO_HASH


# =============================================================================
# Registration
# =============================================================================

def test_register_file_sends_hash_and_metadata(tmp_path):
    path = tmp_path / "report.pdf"
    path.write_bytes(b"hello world")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            201,
            json={"success": True, "document_id": "doc-1", "message": "Document registered successfully."},
        )

    with make_client(handler) as client:
        registration = client.register_file(path, uploader_address="0xowner", tags=["q1"])

    assert registration.document_id == "doc-1"
    assert seen["path"] == "/api/documents/register"
    assert seen["body"] == {
        "filename": "report.pdf",
        "file_hash": HELLO_HASH,
        "file_size": 11,
        "mime_type": "application/pdf",
        "uploader_address": "0xowner",
        "tags": ["q1"],
    }


def test_register_validation_error():
    def handler(request):
        return httpx.Response(
            400, json=error_body("validation_error", "Invalid hash format. Expected SHA256 hex (64 chars)")
        )

    with make_client(handler) as client:
        with pytest.raises(ValidationError) as exc_info:
            client.register("a.txt", "nope", 1)

    assert exc_info.value.status_code == 400
    assert exc_info.value.error_code == "validation_error"
    assert "Invalid hash format" in str(exc_info.value)
    assert exc_info.value.request_id is None


def test_register_conflict_carries_existing_document():
    def handler(request):
        return httpx.Response(
            409,
            json=error_body(
                "conflict",
                "Document already registered with ID: doc-9. Status: confirmed",
                [{"document_id": "doc-9", "status": "confirmed"}],
            ),
            headers={"X-Request-Id": "abc123"},
        )

    with make_client(handler) as client:
        with pytest.raises(ConflictError) as exc_info:
            client.register("a.txt", HELLO_HASH, 11)

    error = exc_info.value
    assert error.document_id == "doc-9"
    assert error.document_status == "confirmed"
    assert error.request_id == "abc123"
    assert isinstance(error, DocProofError)


# =============================================================================
# Verification
# =============================================================================

def test_verify_file_reports_status():
    def handler(request):
        body = json.loads(request.content)
        assert body == {"file_hash": HELLO_HASH, "verifier_address": "0xv"}
        return httpx.Response(200, json={
            "success": True,
            "status": "tampered",
            "message": "WARNING: Document hash does not match. File may have been tampered with.",
            "document": {"id": "doc-1", "filename": "a.txt", "file_size": 11, "mime_type": "text/plain"},
            "blockchain": {"transaction_hash": "0x" + "1" * 64, "block_number": 1, "owner_address": "0xo",
                           "block_timestamp": 1, "status": "confirmed"},
        })

    with make_client(handler) as client:
        report = client.verify_file(io.BytesIO(b"hello world"), verifier_address="0xv")

    assert report.is_tampered
    assert not report.is_verified
    assert report.blockchain["status"] == "confirmed"


def test_verify_pending_document():
    def handler(request):
        return httpx.Response(200, json={
            "success": True,
            "status": "not_found",
            "message": "Document found but not yet confirmed on blockchain",
            "document": {"id": "doc-1", "filename": "a.txt", "file_size": 11, "mime_type": "text/plain"},
        })

    with make_client(handler) as client:
        report = client.verify(HELLO_HASH)

    assert report.is_pending
    assert report.blockchain is None


@pytest.mark.anyio
async def test_async_verify():
    def handler(request):
        return httpx.Response(200, json={"success": True, "status": "verified", "message": "ok"})

    async with make_client(handler) as client:
        report = await client.averify(HELLO_HASH)

    assert report.is_verified


# =============================================================================
# Listing & Export
# =============================================================================

def test_list_documents_parses_pagination():
    def handler(request):
        assert request.url.params["status"] == "confirmed"
        assert request.url.params["limit"] == "10"
        return httpx.Response(200, json={
            "success": True,
            "documents": [{"id": "doc-1"}],
            "pagination": {"total": 11, "limit": 10, "offset": 0, "hasMore": True},
        })

    with make_client(handler) as client:
        page = client.list_documents(status="confirmed", limit=10)

    assert page.total == 11
    assert page.has_more
    assert page.documents == [{"id": "doc-1"}]


def test_export_proofs_writes_destination(tmp_path):
    csv_body = b"Filename,SHA-256 Hash\nlease.pdf,abc\n"

    def handler(request):
        assert request.url.params["format"] == "csv"
        return httpx.Response(
            200,
            content=csv_body,
            headers={
                "Content-Type": "text/csv",
                "Content-Disposition": 'attachment; filename="document-proofs-2024-01-01.csv"',
            },
        )

    destination = tmp_path / "proofs.csv"
    with make_client(handler) as client:
        content = client.export_proofs(destination=destination)

    assert content == csv_body
    assert destination.read_bytes() == csv_body


# =============================================================================
# Error Mapping
# =============================================================================

def test_not_found_maps_to_not_found_error():
    def handler(request):
        return httpx.Response(404, json=error_body("not_found", "Document 'x' not found"))

    with make_client(handler) as client:
        with pytest.raises(NotFoundError):
            client.get_document("x")


@pytest.mark.parametrize("status_code", [500, 503])
def test_server_errors_map_to_server_error(status_code):
    def handler(request):
        return httpx.Response(status_code, json=error_body("store_error", "Storage operation failed"))

    with make_client(handler) as client:
        with pytest.raises(ServerError) as exc_info:
            client.verify(HELLO_HASH)

    assert exc_info.value.status_code == status_code
    assert exc_info.value.message == "Storage operation failed"


def test_non_json_error_body():
    def handler(request):
        return httpx.Response(502, text="Bad Gateway")

    with make_client(handler) as client:
        with pytest.raises(ServerError) as exc_info:
            client.health_check()

    assert exc_info.value.message == "Bad Gateway"
