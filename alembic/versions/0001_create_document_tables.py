"""create document tables

Revision ID: 0001
Revises:
Create Date: 2025-11-05 15:25:48

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("file_hash", sa.String(length=128), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("mime_type", sa.String(length=100), nullable=False),
        sa.Column("uploader_address", sa.String(length=255), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'not_found')", name="ck_documents_status"
        ),
        sa.CheckConstraint("file_size > 0", name="ck_documents_file_size"),
    )
    op.create_index("ix_documents_file_hash", "documents", ["file_hash"], unique=True)
    op.create_index("ix_documents_created_at", "documents", ["created_at"])

    op.create_table(
        "blockchain_records",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "document_id",
            sa.String(length=36),
            sa.ForeignKey("documents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("document_hash", sa.String(length=128), nullable=False),
        sa.Column("transaction_hash", sa.String(length=66), nullable=True, unique=True),
        sa.Column("block_number", sa.BigInteger(), nullable=True),
        sa.Column("owner_address", sa.String(length=255), nullable=False),
        sa.Column("block_timestamp", sa.BigInteger(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed')", name="ck_blockchain_records_status"
        ),
    )
    op.create_index("ix_blockchain_records_document_id", "blockchain_records", ["document_id"])
    op.create_index("ix_blockchain_records_document_hash", "blockchain_records", ["document_hash"])

    op.create_table(
        "verification_history",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "document_id",
            sa.String(length=36),
            sa.ForeignKey("documents.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("verified_hash", sa.String(length=128), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("verification_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("verifier_address", sa.String(length=255), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.CheckConstraint(
            "status IN ('verified', 'tampered', 'not_found')",
            name="ck_verification_history_status",
        ),
    )
    op.create_index(
        "ix_verification_history_document_id", "verification_history", ["document_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_verification_history_document_id", table_name="verification_history")
    op.drop_table("verification_history")
    op.drop_index("ix_blockchain_records_document_hash", table_name="blockchain_records")
    op.drop_index("ix_blockchain_records_document_id", table_name="blockchain_records")
    op.drop_table("blockchain_records")
    op.drop_index("ix_documents_created_at", table_name="documents")
    op.drop_index("ix_documents_file_hash", table_name="documents")
    op.drop_table("documents")
