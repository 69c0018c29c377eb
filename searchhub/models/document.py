"""Document model holding the raw text that gets indexed."""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Index, String, Text
from sqlalchemy.dialects.postgresql import TSVECTOR
from sqlalchemy.orm import Mapped, mapped_column, relationship

from searchhub.models.base import BaseModel, TenantScopedMixin

if TYPE_CHECKING:
    from searchhub.models.document_chunk import DocumentChunk
    from searchhub.models.tenant import Tenant


class Document(TenantScopedMixin, BaseModel):
    __tablename__ = "documents"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    search_vector: Mapped[Optional[str]] = mapped_column(
        TSVECTOR,
        nullable=True,
        comment="Weighted title/body vector, maintained by trigger and by re-indexing.",
    )

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="documents")
    chunks: Mapped[list["DocumentChunk"]] = relationship(
        "DocumentChunk",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentChunk.idx",
    )

    __table_args__ = (
        Index("idx_documents_search_vector", "search_vector", postgresql_using="gin"),
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, tenant_id={self.tenant_id})>"
