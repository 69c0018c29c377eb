"""Checksum of the content a document was last indexed from."""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from searchhub.models.base import Base


class DocumentIndexState(Base):
    __tablename__ = "document_index_states"

    document_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True
    )
    last_checksum: Mapped[str] = mapped_column(String(64), nullable=False)
    last_indexed_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False
    )

    def __repr__(self) -> str:
        return f"<DocumentIndexState(document_id={self.document_id}, checksum='{self.last_checksum[:12]}')>"
