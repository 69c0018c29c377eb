"""create tenants, documents, chunks, index state, jobs and commands

Revision ID: 8a41c2e7b9d3
Revises: 5ec65f6f012e
Create Date: 2026-09-14 10:31:05.772940

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "8a41c2e7b9d3"
down_revision: Union[str, Sequence[str], None] = "5ec65f6f012e"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EMBEDDING_DIMENSIONS = 384


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def _tenant_column() -> sa.Column:
    return sa.Column(
        "tenant_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def _document_column(index: bool = True) -> sa.Column:
    return sa.Column(
        "document_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=index,
    )


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "tenants",
        _id_column(),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_table(
        "documents",
        _id_column(),
        _tenant_column(),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("search_vector", postgresql.TSVECTOR(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "idx_documents_search_vector",
        "documents",
        ["search_vector"],
        postgresql_using="gin",
    )
    op.create_table(
        "document_chunks",
        _id_column(),
        _tenant_column(),
        _document_column(index=False),
        sa.Column("idx", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("embedding", Vector(EMBEDDING_DIMENSIONS), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("document_id", "idx", name="uq_document_chunks_document_idx"),
    )
    op.execute("""
        CREATE INDEX idx_document_chunks_embedding_hnsw
        ON document_chunks
        USING hnsw (embedding vector_cosine_ops)
        WITH (m = 16, ef_construction = 64)
        """)
    op.create_table(
        "document_index_states",
        sa.Column(
            "document_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("documents.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("last_checksum", sa.String(64), nullable=False),
        sa.Column("last_indexed_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_table(
        "index_jobs",
        _id_column(),
        _tenant_column(),
        _document_column(),
        sa.Column("status", sa.String(10), nullable=False, server_default="queued"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("checksum", sa.String(64), nullable=True),
        sa.Column("retryable", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index(
        "idx_index_jobs_tenant_document_status",
        "index_jobs",
        ["tenant_id", "document_id", "status"],
    )
    op.create_table(
        "document_commands",
        _id_column(),
        _tenant_column(),
        _document_column(),
        sa.Column(
            "body",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        *_timestamps(),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("document_commands")
    op.drop_index("idx_index_jobs_tenant_document_status", table_name="index_jobs")
    op.drop_table("index_jobs")
    op.drop_table("document_index_states")
    op.execute("DROP INDEX IF EXISTS idx_document_chunks_embedding_hnsw")
    op.drop_table("document_chunks")
    op.drop_index("idx_documents_search_vector", table_name="documents")
    op.drop_table("documents")
    op.drop_table("tenants")
