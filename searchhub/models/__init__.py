"""Exports all models for easy access."""

from .base import Base, BaseModel
from .document import Document
from .document_chunk import DocumentChunk
from .document_command import DocumentCommand
from .document_index_state import DocumentIndexState
from .index_job import IndexJob, IndexJobStatus
from .tenant import Tenant

__all__ = [
    "Base",
    "BaseModel",
    "Tenant",
    "Document",
    "DocumentChunk",
    "DocumentCommand",
    "DocumentIndexState",
    "IndexJob",
    "IndexJobStatus",
]
