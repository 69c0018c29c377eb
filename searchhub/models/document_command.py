"""Inline editor commands (reminders) attached to a document."""

import uuid

from sqlalchemy import ForeignKey
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from searchhub.models.base import BaseModel, TenantScopedMixin


class DocumentCommand(TenantScopedMixin, BaseModel):
    __tablename__ = "document_commands"

    document_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    body: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        comment="Command payload, e.g. {kind: 'remind', status: 'scheduled', whenText}.",
    )

    def __repr__(self) -> str:
        return f"<DocumentCommand(id={self.id}, document_id={self.document_id})>"
