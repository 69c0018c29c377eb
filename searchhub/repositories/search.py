"""
Full-text and vector retrieval queries for hybrid search.

Lexical retrieval is raw SQL because it combines ``ts_rank_cd``,
``ts_headline`` over the chunk text and a windowed total count in one round
trip. Vector retrieval goes through pgvector's SQLAlchemy comparator.
"""

import uuid
from typing import Sequence

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from searchhub.config.db import tenant_session
from searchhub.models.document import Document
from searchhub.models.document_chunk import DocumentChunk
from searchhub.repositories.types import (
    AdjacentChunk,
    DocumentDetail,
    LexicalHit,
    LexicalSearchResult,
    SearchCandidate,
)

HEADLINE_OPTIONS = "StartSel=<mark>,StopSel=</mark>,MaxFragments=1,MaxWords=30,MinWords=1"

LEXICAL_SEARCH_SQL = text(
    """
    WITH matched AS (
        SELECT d.id, d.title, d.content,
               ts_rank_cd(d.search_vector, q.query, 32) AS score,
               COUNT(*) OVER () AS total
        FROM documents d, to_tsquery('english', :tsquery) AS q(query)
        WHERE d.tenant_id = :tenant_id
          AND d.search_vector @@ q.query
        ORDER BY score DESC, d.id
        LIMIT :limit OFFSET :offset
    )
    SELECT m.id, m.title, m.score, m.total,
           COALESCE(
               NULLIF(
                   ts_headline('english', body.text, to_tsquery('english', :tsquery), :headline_options),
                   ''
               ),
               NULLIF(LEFT(body.text, :fallback_chars), '')
           ) AS snippet
    FROM matched m
    LEFT JOIN LATERAL (
        SELECT COALESCE(string_agg(dc.content, ' ' ORDER BY dc.idx), m.content, '') AS text
        FROM document_chunks dc
        WHERE dc.document_id = m.id
    ) body ON true
    ORDER BY m.score DESC, m.id
    """
)


class SearchRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def lexical_search(
        self,
        tenant_id: uuid.UUID,
        tsquery: str,
        *,
        limit: int,
        offset: int = 0,
        fallback_chars: int = 280,
    ) -> LexicalSearchResult:
        """
        Rank the tenant's documents against a ``to_tsquery`` expression.

        The headline is built from the chunk text in idx order, falling back
        to the first ``fallback_chars`` characters when no headline comes out.
        """
        params = {
            "tenant_id": tenant_id,
            "tsquery": tsquery,
            "limit": limit,
            "offset": offset,
            "headline_options": HEADLINE_OPTIONS,
            "fallback_chars": fallback_chars,
        }
        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            rows = (await session.execute(LEXICAL_SEARCH_SQL, params)).all()

        items = [
            LexicalHit(
                document_id=row.id,
                title=row.title,
                snippet=row.snippet,
                score=float(row.score),
            )
            for row in rows
        ]
        total = int(rows[0].total) if rows else 0
        return LexicalSearchResult(items=items, total=total)

    async def find_nearest_chunks(
        self, tenant_id: uuid.UUID, vector: Sequence[float], limit: int
    ) -> list[SearchCandidate]:
        """Top ``limit`` chunks by cosine distance, each with its document's chunk count."""
        distance = DocumentChunk.embedding.cosine_distance(list(vector)).label("distance")
        siblings = aliased(DocumentChunk)
        total_chunks = (
            select(func.count(siblings.id))
            .where(siblings.document_id == DocumentChunk.document_id)
            .correlate(DocumentChunk)
            .scalar_subquery()
            .label("total_chunks")
        )
        stmt = (
            select(
                DocumentChunk.document_id,
                DocumentChunk.idx,
                DocumentChunk.content,
                distance,
                total_chunks,
            )
            .where(DocumentChunk.tenant_id == tenant_id)
            .order_by(distance)
            .limit(limit)
        )
        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            rows = (await session.execute(stmt)).all()

        return [
            SearchCandidate(
                document_id=row.document_id,
                idx=row.idx,
                content=row.content,
                distance=float(row.distance),
                total_chunks=int(row.total_chunks),
            )
            for row in rows
        ]

    async def get_adjacent_chunks(
        self, tenant_id: uuid.UUID, document_id: uuid.UUID, center_idx: int, window: int
    ) -> list[AdjacentChunk]:
        """Chunks with ``idx`` in ``[center - window, center + window]``, in order."""
        stmt = (
            select(DocumentChunk.idx, DocumentChunk.content)
            .where(
                DocumentChunk.tenant_id == tenant_id,
                DocumentChunk.document_id == document_id,
                DocumentChunk.idx.between(max(0, center_idx - window), center_idx + window),
            )
            .order_by(DocumentChunk.idx)
        )
        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            rows = (await session.execute(stmt)).all()
        return [AdjacentChunk(idx=row.idx, content=row.content) for row in rows]

    async def get_document_details(
        self, tenant_id: uuid.UUID, document_ids: Sequence[uuid.UUID]
    ) -> list[DocumentDetail]:
        if not document_ids:
            return []
        stmt = select(Document.id, Document.title, Document.content).where(
            Document.tenant_id == tenant_id, Document.id.in_(list(document_ids))
        )
        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            rows = (await session.execute(stmt)).all()
        return [
            DocumentDetail(document_id=row.id, title=row.title, content=row.content)
            for row in rows
        ]
