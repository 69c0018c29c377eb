import uuid
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import delete, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from searchhub.config.db import tenant_session
from searchhub.models.document import Document
from searchhub.models.document_chunk import DocumentChunk
from searchhub.models.document_index_state import DocumentIndexState
from searchhub.services.chunking import TextChunk

# Title carries weight A; the chunk text in idx order (or the raw content
# when there are no chunks) carries weight B.
REFRESH_SEARCH_VECTOR_SQL = text(
    """
    UPDATE documents AS d
    SET search_vector =
        setweight(to_tsvector('english', coalesce(d.title, '')), 'A') ||
        setweight(
            to_tsvector(
                'english',
                coalesce(
                    (
                        SELECT string_agg(dc.content, ' ' ORDER BY dc.idx)
                        FROM document_chunks dc
                        WHERE dc.document_id = d.id
                    ),
                    d.content,
                    ''
                )
            ),
            'B'
        )
    WHERE d.id = :document_id AND d.tenant_id = :tenant_id
    """
)


class ChunkRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def replace_chunks_with_embeddings(
        self,
        tenant_id: uuid.UUID,
        document_id: uuid.UUID,
        chunks: Sequence[TextChunk],
        vectors: Sequence[Sequence[float]],
        checksum: str,
    ) -> None:
        """
        Swap the document's chunk set and record the checksum, atomically.

        Readers see either the old chunk set or the new one. The document row
        is locked first so concurrent replacements of the same document
        serialize instead of colliding on ``(document_id, idx)``.
        """
        if len(chunks) != len(vectors):
            raise ValueError(
                f"Chunk/vector count mismatch: {len(chunks)} chunks, {len(vectors)} vectors"
            )

        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            await session.execute(
                select(Document.id)
                .where(Document.id == document_id, Document.tenant_id == tenant_id)
                .with_for_update()
            )
            await session.execute(
                delete(DocumentChunk).where(
                    DocumentChunk.tenant_id == tenant_id,
                    DocumentChunk.document_id == document_id,
                )
            )
            session.add_all(
                [
                    DocumentChunk(
                        tenant_id=tenant_id,
                        document_id=document_id,
                        idx=chunk.idx,
                        content=chunk.text,
                        embedding=list(vector),
                    )
                    for chunk, vector in zip(chunks, vectors)
                ]
            )
            await session.flush()

            await session.execute(
                REFRESH_SEARCH_VECTOR_SQL,
                {"document_id": document_id, "tenant_id": tenant_id},
            )

            now = datetime.now(timezone.utc)
            upsert = pg_insert(DocumentIndexState).values(
                document_id=document_id, last_checksum=checksum, last_indexed_at=now
            )
            await session.execute(
                upsert.on_conflict_do_update(
                    index_elements=[DocumentIndexState.document_id],
                    set_={"last_checksum": checksum, "last_indexed_at": now},
                )
            )
            await session.commit()
