"""Row shapes returned by the store that are not ORM entities."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from searchhub.models.index_job import IndexJobStatus


@dataclass(frozen=True)
class SearchCandidate:
    """One chunk returned by nearest-neighbour retrieval."""

    document_id: uuid.UUID
    idx: int
    content: str
    distance: float
    total_chunks: Optional[int] = None
    rerank_score: Optional[float] = None

    @property
    def similarity(self) -> float:
        return 1.0 - self.distance

    @property
    def relevance(self) -> float:
        """The rerank score once reranked, cosine similarity before."""
        return self.rerank_score if self.rerank_score is not None else self.similarity


@dataclass(frozen=True)
class LexicalHit:
    document_id: uuid.UUID
    title: str
    snippet: Optional[str]
    score: float


@dataclass(frozen=True)
class LexicalSearchResult:
    items: list[LexicalHit]
    total: int


@dataclass(frozen=True)
class AdjacentChunk:
    idx: int
    content: str


@dataclass(frozen=True)
class DocumentDetail:
    document_id: uuid.UUID
    title: str
    content: Optional[str]


@dataclass(frozen=True)
class IndexCandidate:
    """A document with the index bookkeeping the reconciler needs."""

    document_id: uuid.UUID
    tenant_id: uuid.UUID
    content: Optional[str]
    last_checksum: Optional[str] = None
    job_status: Optional[IndexJobStatus] = None
    job_checksum: Optional[str] = None
    job_retryable: bool = True
    job_updated_at: Optional[datetime] = None
