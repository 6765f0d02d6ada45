"""
DocProof Database Models
SQLAlchemy ORM models for registered documents, their ledger entries
and the verification history.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


# =============================================================================
# Enums
# =============================================================================

class DocumentStatus(str, Enum):
    """Document lifecycle status."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    NOT_FOUND = "not_found"


class LedgerStatus(str, Enum):
    """Ledger entry status. Only ever moves pending -> confirmed."""
    PENDING = "pending"
    CONFIRMED = "confirmed"


class VerificationOutcome(str, Enum):
    """Classification of a verification request."""
    VERIFIED = "verified"
    TAMPERED = "tampered"
    NOT_FOUND = "not_found"


def _in_clause(column: str, enum_cls: type[Enum]) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"


# =============================================================================
# Documents
# =============================================================================

class Document(Base):
    """
    A registered document, identified by its content fingerprint.

    The fingerprint (file_hash) is unique across the registry; a document is
    created exactly once per distinct hash.
    """
    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint(_in_clause("status", DocumentStatus), name="ck_documents_status"),
        CheckConstraint("file_size > 0", name="ck_documents_file_size"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    # File info
    filename: Mapped[str] = mapped_column(String(255))
    file_hash: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    file_size: Mapped[int] = mapped_column(BigInteger)
    mime_type: Mapped[str] = mapped_column(String(100))

    # Ownership and labels
    uploader_address: Mapped[str] = mapped_column(String(255))
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)

    # Status
    status: Mapped[str] = mapped_column(String(20), default=DocumentStatus.PENDING.value)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    ledger_entries: Mapped[list["LedgerEntry"]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_summary(self) -> dict[str, Any]:
        """Document metadata as returned by verification."""
        return {
            "id": self.id,
            "filename": self.filename,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "file_hash": self.file_hash,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "uploader_address": self.uploader_address,
            "tags": list(self.tags or []),
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# =============================================================================
# Ledger (Blockchain) Records
# =============================================================================

class LedgerEntry(Base):
    """
    Stand-in for an on-chain confirmation of a document fingerprint.

    document_hash is copied at registration and never changes.
    transaction_hash is assigned once, on confirmation.
    """
    __tablename__ = "blockchain_records"
    __table_args__ = (
        CheckConstraint(_in_clause("status", LedgerStatus), name="ck_blockchain_records_status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("documents.id", ondelete="CASCADE"), index=True
    )

    document_hash: Mapped[str] = mapped_column(String(128), index=True)
    transaction_hash: Mapped[Optional[str]] = mapped_column(String(66), unique=True, nullable=True)
    block_number: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    owner_address: Mapped[str] = mapped_column(String(255))
    block_timestamp: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    status: Mapped[str] = mapped_column(String(20), default=LedgerStatus.PENDING.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    # Relationships
    document: Mapped["Document"] = relationship(back_populates="ledger_entries")

    @property
    def is_confirmed(self) -> bool:
        return self.status == LedgerStatus.CONFIRMED.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_hash": self.transaction_hash,
            "block_number": self.block_number,
            "owner_address": self.owner_address,
            "block_timestamp": self.block_timestamp,
            "status": self.status,
        }


# =============================================================================
# Verification History (Audit Trail)
# =============================================================================

class VerificationRecord(Base):
    """
    Immutable audit entry for one verification attempt.
    document_id is empty when no matching document existed.
    """
    __tablename__ = "verification_history"
    __table_args__ = (
        CheckConstraint(_in_clause("status", VerificationOutcome), name="ck_verification_history_status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    document_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=True, index=True
    )
    verified_hash: Mapped[str] = mapped_column(String(128))
    status: Mapped[str] = mapped_column(String(20))
    verification_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    verifier_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "verified_hash": self.verified_hash,
            "status": self.status,
            "verification_timestamp": (
                self.verification_timestamp.isoformat() if self.verification_timestamp else None
            ),
            "verifier_address": self.verifier_address,
            "details": dict(self.details or {}),
        }
