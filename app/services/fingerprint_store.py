"""
Fingerprint Store

Durable mapping from content hash to document record, plus the ledger
entries and verification history that hang off it.

Guarantees relied on by the registration and verification services:
- A hash is registered at most once (single-writer lock + UNIQUE constraint).
- A document and its pending ledger entry are inserted as one unit.
- Confirmation updates the ledger entry and the document in one
  transaction, and only while the entry is still pending.
- A snapshot (document + ledger entry) is read in a single statement, so a
  reader never sees one confirmed and the other pending.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Callable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.errors import ConflictError, StoreError
from app.models.models import (
    Document,
    DocumentStatus,
    LedgerEntry,
    LedgerStatus,
    VerificationRecord,
    new_id,
    utcnow,
)

logger = logging.getLogger(__name__)


def normalize_hash(file_hash: str) -> str:
    """Canonical form of a hex fingerprint: stripped, lowercase."""
    return file_hash.strip().lower()


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class LedgerConfirmation:
    """Synthetic settlement data assigned to a ledger entry on confirmation."""
    transaction_hash: str
    block_number: int
    block_timestamp: int

    def to_dict(self) -> dict:
        return {
            "transaction_hash": self.transaction_hash,
            "block_number": self.block_number,
            "block_timestamp": self.block_timestamp,
        }


@dataclass(frozen=True)
class FingerprintSnapshot:
    """A document and its ledger entry, read together."""
    document: Document
    ledger_entry: Optional[LedgerEntry]

    @property
    def is_confirmed(self) -> bool:
        return self.ledger_entry is not None and self.ledger_entry.is_confirmed

    def to_dict(self) -> dict:
        data = self.document.to_dict()
        data["blockchain_records"] = [self.ledger_entry.to_dict()] if self.ledger_entry else []
        return data


# =============================================================================
# STORE CONTRACT
# =============================================================================

class FingerprintStore(ABC):
    """Narrow storage interface consumed by the core services."""

    @abstractmethod
    async def find_by_hash(self, file_hash: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def find_snapshot(self, file_hash: str) -> Optional[FingerprintSnapshot]:
        """Document with the given hash and its ledger entry, read atomically."""

    @abstractmethod
    async def get_snapshot(self, document_id: str) -> Optional[FingerprintSnapshot]:
        ...

    @abstractmethod
    async def insert_document_with_ledger_entry(
        self, document: Document, entry: LedgerEntry
    ) -> str:
        """
        Insert a document and its ledger entry as one unit.

        Returns the new document id. Raises ConflictError if the hash is
        already registered; nothing is written in that case.
        """

    @abstractmethod
    async def find_ledger_entry(self, document_id: str) -> Optional[LedgerEntry]:
        ...

    @abstractmethod
    async def update_ledger_entry(self, document_id: str, **values: Any) -> bool:
        """Update a still-pending ledger entry. Returns False if none matched."""

    @abstractmethod
    async def update_document_status(self, document_id: str, status: DocumentStatus) -> bool:
        ...

    @abstractmethod
    async def confirm_ledger_entry(
        self, document_id: str, confirmation: LedgerConfirmation
    ) -> bool:
        """
        Confirm the ledger entry, then the document, in one transaction.
        Returns False (and changes nothing) if the entry is not pending.
        """

    @abstractmethod
    async def append_verification_record(self, record: VerificationRecord) -> VerificationRecord:
        ...

    @abstractmethod
    async def list_documents(
        self,
        status: Optional[DocumentStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[FingerprintSnapshot], int]:
        """Newest first. Returns (page, total matching)."""

    @abstractmethod
    async def list_verification_records(
        self,
        file_hash: Optional[str] = None,
        document_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[VerificationRecord]:
        """Newest first."""

    @abstractmethod
    async def pending_document_ids(self) -> list[str]:
        """Ids of documents whose ledger entry is still pending."""


# =============================================================================
# SQLALCHEMY IMPLEMENTATION
# =============================================================================

SessionScope = Callable[[], Any]


class SQLAlchemyFingerprintStore(FingerprintStore):
    """
    Fingerprint store backed by the async SQLAlchemy engine.

    All mutations go through one asyncio.Lock (single writer per process);
    the UNIQUE constraint on documents.file_hash covers writers in other
    processes.
    """

    def __init__(self, session_scope: SessionScope = get_db_session):
        self._session_scope = session_scope
        self._write_lock = asyncio.Lock()

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self._session_scope() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("Store operation %s failed: %s", operation, exc)
            raise StoreError(operation) from exc

    @staticmethod
    def _snapshot_query():
        return (
            select(Document, LedgerEntry)
            .outerjoin(LedgerEntry, LedgerEntry.document_id == Document.id)
        )

    async def find_by_hash(self, file_hash: str) -> Optional[Document]:
        async with self._session("find_by_hash") as session:
            result = await session.execute(
                select(Document).where(Document.file_hash == normalize_hash(file_hash))
            )
            return result.scalar_one_or_none()

    async def find_snapshot(self, file_hash: str) -> Optional[FingerprintSnapshot]:
        async with self._session("find_snapshot") as session:
            result = await session.execute(
                self._snapshot_query()
                .where(Document.file_hash == normalize_hash(file_hash))
                .order_by(LedgerEntry.created_at)
                .limit(1)
            )
            row = result.first()
        if row is None:
            return None
        return FingerprintSnapshot(document=row[0], ledger_entry=row[1])

    async def get_snapshot(self, document_id: str) -> Optional[FingerprintSnapshot]:
        async with self._session("get_snapshot") as session:
            result = await session.execute(
                self._snapshot_query()
                .where(Document.id == document_id)
                .order_by(LedgerEntry.created_at)
                .limit(1)
            )
            row = result.first()
        if row is None:
            return None
        return FingerprintSnapshot(document=row[0], ledger_entry=row[1])

    async def insert_document_with_ledger_entry(
        self, document: Document, entry: LedgerEntry
    ) -> str:
        file_hash = normalize_hash(document.file_hash)
        document.file_hash = file_hash
        entry.document_hash = normalize_hash(entry.document_hash)
        document.id = document.id or new_id()
        entry.id = entry.id or new_id()
        entry.document_id = document.id

        async with self._write_lock:
            existing = await self.find_by_hash(file_hash)
            if existing is not None:
                raise ConflictError(existing.id, existing.status)

            try:
                async with self._session_scope() as session:
                    session.add(document)
                    await session.flush()
                    session.add(entry)
            except IntegrityError as exc:
                # Lost a race against a writer outside this process
                existing = await self.find_by_hash(file_hash)
                if existing is None:
                    logger.error("Insert rejected by constraint: %s", exc)
                    raise StoreError("insert_document_with_ledger_entry") from exc
                raise ConflictError(existing.id, existing.status) from exc
            except SQLAlchemyError as exc:
                logger.error("Store operation insert_document_with_ledger_entry failed: %s", exc)
                raise StoreError("insert_document_with_ledger_entry") from exc

        logger.debug("Inserted document %s", document.id, extra={"document_id": document.id})
        return document.id

    async def find_ledger_entry(self, document_id: str) -> Optional[LedgerEntry]:
        async with self._session("find_ledger_entry") as session:
            result = await session.execute(
                select(LedgerEntry)
                .where(LedgerEntry.document_id == document_id)
                .order_by(LedgerEntry.created_at)
                .limit(1)
            )
            return result.scalar_one_or_none()

    @staticmethod
    async def _update_pending_ledger(session: AsyncSession, document_id: str, values: dict) -> int:
        result = await session.execute(
            update(LedgerEntry)
            .where(
                LedgerEntry.document_id == document_id,
                LedgerEntry.status == LedgerStatus.PENDING.value,
            )
            .values(**values)
        )
        return result.rowcount

    @staticmethod
    async def _set_document_status(session: AsyncSession, document_id: str, status: DocumentStatus) -> int:
        result = await session.execute(
            update(Document)
            .where(Document.id == document_id)
            .values(status=DocumentStatus(status).value, updated_at=utcnow())
        )
        return result.rowcount

    async def update_ledger_entry(self, document_id: str, **values: Any) -> bool:
        if "status" in values:
            values["status"] = LedgerStatus(values["status"]).value
        async with self._write_lock:
            async with self._session("update_ledger_entry") as session:
                updated = await self._update_pending_ledger(session, document_id, values)
        return updated > 0

    async def update_document_status(self, document_id: str, status: DocumentStatus) -> bool:
        async with self._write_lock:
            async with self._session("update_document_status") as session:
                updated = await self._set_document_status(session, document_id, status)
        return updated > 0

    async def confirm_ledger_entry(
        self, document_id: str, confirmation: LedgerConfirmation
    ) -> bool:
        async with self._write_lock:
            async with self._session("confirm_ledger_entry") as session:
                updated = await self._update_pending_ledger(
                    session,
                    document_id,
                    {**confirmation.to_dict(), "status": LedgerStatus.CONFIRMED.value},
                )
                if updated == 0:
                    return False
                await self._set_document_status(session, document_id, DocumentStatus.CONFIRMED)
        return True

    async def append_verification_record(self, record: VerificationRecord) -> VerificationRecord:
        record.id = record.id or new_id()
        record.verification_timestamp = record.verification_timestamp or utcnow()
        async with self._write_lock:
            async with self._session("append_verification_record") as session:
                session.add(record)
        return record

    async def list_documents(
        self,
        status: Optional[DocumentStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[FingerprintSnapshot], int]:
        page_query = self._snapshot_query()
        count_query = select(func.count()).select_from(Document)
        if status is not None:
            page_query = page_query.where(Document.status == DocumentStatus(status).value)
            count_query = count_query.where(Document.status == DocumentStatus(status).value)

        async with self._session("list_documents") as session:
            total = (await session.execute(count_query)).scalar_one()
            result = await session.execute(
                page_query
                .order_by(Document.created_at.desc(), Document.id)
                .limit(limit)
                .offset(offset)
            )
            rows = result.all()

        return [FingerprintSnapshot(document=row[0], ledger_entry=row[1]) for row in rows], total

    async def list_verification_records(
        self,
        file_hash: Optional[str] = None,
        document_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[VerificationRecord]:
        query = select(VerificationRecord)
        if file_hash:
            query = query.where(VerificationRecord.verified_hash == normalize_hash(file_hash))
        if document_id:
            query = query.where(VerificationRecord.document_id == document_id)

        async with self._session("list_verification_records") as session:
            result = await session.execute(
                query.order_by(VerificationRecord.verification_timestamp.desc()).limit(limit)
            )
            return list(result.scalars().all())

    async def pending_document_ids(self) -> list[str]:
        async with self._session("pending_document_ids") as session:
            result = await session.execute(
                select(LedgerEntry.document_id)
                .where(LedgerEntry.status == LedgerStatus.PENDING.value)
                .order_by(LedgerEntry.created_at)
            )
            return list(result.scalars().all())


# =============================================================================
# IN-MEMORY IMPLEMENTATION
# =============================================================================

class InMemoryFingerprintStore(FingerprintStore):
    """
    Dict-indexed store for tests and for embedding the core without a
    database. Same locking and ordering guarantees as the SQL store.
    """

    def __init__(self):
        self._documents: dict[str, Document] = {}
        self._hash_index: dict[str, str] = {}  # file_hash -> document_id
        self._ledger: dict[str, LedgerEntry] = {}  # document_id -> entry
        self._history: list[VerificationRecord] = []
        self._write_lock = asyncio.Lock()

    def _snapshot(self, document_id: Optional[str]) -> Optional[FingerprintSnapshot]:
        document = self._documents.get(document_id) if document_id else None
        if document is None:
            return None
        return FingerprintSnapshot(document=document, ledger_entry=self._ledger.get(document_id))

    async def find_by_hash(self, file_hash: str) -> Optional[Document]:
        document_id = self._hash_index.get(normalize_hash(file_hash))
        return self._documents.get(document_id) if document_id else None

    async def find_snapshot(self, file_hash: str) -> Optional[FingerprintSnapshot]:
        return self._snapshot(self._hash_index.get(normalize_hash(file_hash)))

    async def get_snapshot(self, document_id: str) -> Optional[FingerprintSnapshot]:
        return self._snapshot(document_id)

    async def insert_document_with_ledger_entry(
        self, document: Document, entry: LedgerEntry
    ) -> str:
        file_hash = normalize_hash(document.file_hash)
        async with self._write_lock:
            existing = await self.find_by_hash(file_hash)
            if existing is not None:
                raise ConflictError(existing.id, existing.status)

            now = utcnow()
            document.id = document.id or new_id()
            document.file_hash = file_hash
            document.status = document.status or DocumentStatus.PENDING.value
            document.tags = list(document.tags or [])
            document.created_at = document.created_at or now
            document.updated_at = document.updated_at or now

            entry.id = entry.id or new_id()
            entry.document_id = document.id
            entry.document_hash = normalize_hash(entry.document_hash)
            entry.status = entry.status or LedgerStatus.PENDING.value
            entry.created_at = entry.created_at or now

            self._documents[document.id] = document
            self._hash_index[file_hash] = document.id
            self._ledger[document.id] = entry

        return document.id

    async def find_ledger_entry(self, document_id: str) -> Optional[LedgerEntry]:
        return self._ledger.get(document_id)

    def _update_pending_ledger(self, document_id: str, values: dict) -> bool:
        entry = self._ledger.get(document_id)
        if entry is None or entry.status != LedgerStatus.PENDING.value:
            return False
        for key, value in values.items():
            setattr(entry, key, value)
        return True

    def _set_document_status(self, document_id: str, status: DocumentStatus) -> bool:
        document = self._documents.get(document_id)
        if document is None:
            return False
        document.status = DocumentStatus(status).value
        document.updated_at = utcnow()
        return True

    async def update_ledger_entry(self, document_id: str, **values: Any) -> bool:
        if "status" in values:
            values["status"] = LedgerStatus(values["status"]).value
        async with self._write_lock:
            return self._update_pending_ledger(document_id, values)

    async def update_document_status(self, document_id: str, status: DocumentStatus) -> bool:
        async with self._write_lock:
            return self._set_document_status(document_id, status)

    async def confirm_ledger_entry(
        self, document_id: str, confirmation: LedgerConfirmation
    ) -> bool:
        async with self._write_lock:
            updated = self._update_pending_ledger(
                document_id,
                {**confirmation.to_dict(), "status": LedgerStatus.CONFIRMED.value},
            )
            if updated:
                self._set_document_status(document_id, DocumentStatus.CONFIRMED)
            return updated

    async def append_verification_record(self, record: VerificationRecord) -> VerificationRecord:
        async with self._write_lock:
            record.id = record.id or new_id()
            record.verification_timestamp = record.verification_timestamp or utcnow()
            record.details = dict(record.details or {})
            self._history.append(record)
        return record

    async def list_documents(
        self,
        status: Optional[DocumentStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[FingerprintSnapshot], int]:
        documents = [
            doc for doc in self._documents.values()
            if status is None or doc.status == DocumentStatus(status).value
        ]
        documents.sort(key=lambda doc: doc.created_at, reverse=True)
        page = documents[offset:offset + limit]
        return [self._snapshot(doc.id) for doc in page], len(documents)

    async def list_verification_records(
        self,
        file_hash: Optional[str] = None,
        document_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[VerificationRecord]:
        records = [
            record for record in reversed(self._history)
            if (not file_hash or record.verified_hash == normalize_hash(file_hash))
            and (not document_id or record.document_id == document_id)
        ]
        return records[:limit]

    async def pending_document_ids(self) -> list[str]:
        return [
            document_id for document_id, entry in self._ledger.items()
            if entry.status == LedgerStatus.PENDING.value
        ]


# =============================================================================
# SINGLETON ACCESS
# =============================================================================

_store_instance: Optional[FingerprintStore] = None


def get_fingerprint_store() -> FingerprintStore:
    """Get the fingerprint store singleton."""
    global _store_instance
    if _store_instance is None:
        _store_instance = SQLAlchemyFingerprintStore()
    return _store_instance
