"""
Reporting Service

Read-only projections over documents and their ledger entries: paginated
listing, proof export (CSV or JSON) and per-document lookup. Nothing here
writes to the store.
"""

import csv
import io
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from app.core.audit import AuditTrail
from app.core.config import Settings, get_settings
from app.core.errors import NotFoundError
from app.models.models import DocumentStatus
from app.services.fingerprint_store import (
    FingerprintSnapshot,
    FingerprintStore,
    get_fingerprint_store,
)

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Filename",
    "SHA-256 Hash",
    "File Size (bytes)",
    "MIME Type",
    "Owner Address",
    "Transaction Hash",
    "Block Number",
    "Block Timestamp",
    "Status",
    "Registered At",
]

# Export reads the whole matching set; this caps a single page of it
EXPORT_BATCH_SIZE = 500


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"


@dataclass
class ExportFile:
    """A rendered export ready to be sent as an attachment."""
    filename: str
    media_type: str
    content: str


def parse_status(value: Optional[str]) -> Optional[DocumentStatus]:
    """Known status filter, or None. Unknown values mean "no filter"."""
    if not value:
        return None
    try:
        return DocumentStatus(value.strip().lower())
    except ValueError:
        logger.debug("Ignoring unknown status filter %r", value)
        return None


def _csv_row(snapshot: FingerprintSnapshot) -> list[Any]:
    document = snapshot.document
    ledger = snapshot.ledger_entry.to_dict() if snapshot.ledger_entry else {}
    return [
        document.filename,
        document.file_hash,
        document.file_size,
        document.mime_type,
        ledger.get("owner_address") or document.uploader_address,
        ledger.get("transaction_hash") or "",
        ledger.get("block_number") or "",
        ledger.get("block_timestamp") or "",
        ledger.get("status") or "pending",
        document.created_at.isoformat() if document.created_at else "",
    ]


def render_csv(snapshots: list[FingerprintSnapshot]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for snapshot in snapshots:
        writer.writerow(_csv_row(snapshot))
    return buffer.getvalue()


def render_json(snapshots: list[FingerprintSnapshot]) -> str:
    return json.dumps([snapshot.to_dict() for snapshot in snapshots], indent=2)


def export_filename(export_format: ExportFormat, today: Optional[datetime] = None) -> str:
    today = today or datetime.now(timezone.utc)
    return f"document-proofs-{today.strftime('%Y-%m-%d')}.{export_format.value}"


class ReportingService:
    """Listing, export and lookup of registered documents."""

    def __init__(self, store: FingerprintStore, settings: Optional[Settings] = None):
        self._store = store
        self._settings = settings or get_settings()

    async def list_documents(
        self,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> dict[str, Any]:
        """Page of documents, newest first, with pagination metadata."""
        limit = limit or self._settings.default_page_size
        limit = max(1, min(limit, self._settings.max_page_size))
        offset = max(0, offset)

        snapshots, total = await self._store.list_documents(
            status=parse_status(status),
            limit=limit,
            offset=offset,
        )
        return {
            "success": True,
            "documents": [snapshot.to_dict() for snapshot in snapshots],
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "hasMore": offset + limit < total,
            },
        }

    async def _all_documents(self, status: Optional[DocumentStatus]) -> list[FingerprintSnapshot]:
        snapshots: list[FingerprintSnapshot] = []
        offset = 0
        while True:
            page, total = await self._store.list_documents(
                status=status, limit=EXPORT_BATCH_SIZE, offset=offset
            )
            snapshots.extend(page)
            offset += len(page)
            if not page or offset >= total:
                return snapshots

    async def export_proofs(
        self,
        export_format: ExportFormat = ExportFormat.CSV,
        status: Optional[str] = DocumentStatus.CONFIRMED.value,
    ) -> ExportFile:
        """
        Render proofs for every matching document.

        Defaults to confirmed documents only. An unknown status value falls
        back to the confirmed set.
        """
        export_format = ExportFormat(export_format)
        status_filter = parse_status(status) or DocumentStatus.CONFIRMED
        snapshots = await self._all_documents(status_filter)

        if export_format is ExportFormat.CSV:
            content, media_type = render_csv(snapshots), "text/csv"
        else:
            content, media_type = render_json(snapshots), "application/json"

        logger.info(
            "Exported %d %s proofs as %s",
            len(snapshots),
            status_filter.value,
            export_format.value,
        )
        return ExportFile(
            filename=export_filename(export_format),
            media_type=media_type,
            content=content,
        )

    async def get_document(self, document_id: str) -> dict[str, Any]:
        snapshot = await self._store.get_snapshot(document_id)
        if snapshot is None:
            raise NotFoundError("Document", document_id)
        return snapshot.to_dict()

    async def verification_history(
        self,
        file_hash: Optional[str] = None,
        document_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        limit = max(1, min(limit, self._settings.max_page_size))
        return await AuditTrail(self._store).history(
            file_hash=file_hash,
            document_id=document_id,
            limit=limit,
        )


def get_reporting_service() -> ReportingService:
    """FastAPI dependency: reporting service over the shared store."""
    return ReportingService(get_fingerprint_store())
