"""
Weighted Reciprocal Rank Fusion of the lexical and semantic result lists.

Each list contributes ``weight / (k + rank)`` for every document it ranks,
with ranks starting at 1. Scores from the two lists are summed, so a document
found by both never scores below its single-list contribution.
"""

import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from searchhub.repositories.types import LexicalHit, SearchCandidate


@dataclass
class FusedHit:
    document_id: uuid.UUID
    score: float = 0.0
    lexical: Optional[LexicalHit] = None
    semantic: Optional[SearchCandidate] = None

    @property
    def relevance(self) -> Optional[float]:
        return self.semantic.relevance if self.semantic is not None else None


def fuse(
    lexical: Sequence[LexicalHit],
    semantic: Sequence[SearchCandidate],
    *,
    k: int = 60,
    lexical_weight: float = 1.0,
    semantic_weight: float = 1.0,
) -> list[FusedHit]:
    """
    Merge two ranked lists into one list of unique documents.

    Both inputs must already be in rank order. A document repeated within one
    list is credited only at its first (best) position.

    Returns:
        Hits sorted by fused score descending, ties broken by higher semantic
        relevance and then by document id.
    """
    if k <= 0:
        raise ValueError(f"k must be positive, got {k}")

    fused: dict[uuid.UUID, FusedHit] = {}

    rank = 0
    for hit in lexical:
        entry = fused.setdefault(hit.document_id, FusedHit(hit.document_id))
        if entry.lexical is not None:
            continue
        rank += 1
        entry.lexical = hit
        entry.score += lexical_weight / (k + rank)

    rank = 0
    for candidate in semantic:
        entry = fused.setdefault(candidate.document_id, FusedHit(candidate.document_id))
        if entry.semantic is not None:
            continue
        rank += 1
        entry.semantic = candidate
        entry.score += semantic_weight / (k + rank)

    return sorted(
        fused.values(),
        key=lambda h: (
            -h.score,
            -(h.relevance if h.relevance is not None else -1.0),
            str(h.document_id),
        ),
    )
