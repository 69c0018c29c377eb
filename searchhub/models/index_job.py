"""Index job model for tracking document indexing status."""

import enum
import uuid
from typing import Optional

from sqlalchemy import Boolean, Enum, ForeignKey, Index, String, Text, true
from sqlalchemy.orm import Mapped, mapped_column

from searchhub.models.base import BaseModel, TenantScopedMixin


class IndexJobStatus(enum.Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    INDEXED = "indexed"
    FAILED = "failed"


class IndexJob(TenantScopedMixin, BaseModel):
    __tablename__ = "index_jobs"

    document_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[IndexJobStatus] = mapped_column(
        Enum(
            IndexJobStatus,
            native_enum=False,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=IndexJobStatus.QUEUED,
    )
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    checksum: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="Fingerprint of the content this attempt worked on, once known.",
    )
    retryable: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    __table_args__ = (
        Index("idx_index_jobs_tenant_document_status", "tenant_id", "document_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<IndexJob(id={self.id}, document_id={self.document_id}, status='{self.status.value}')>"
