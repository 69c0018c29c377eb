import uuid
from typing import Optional

from sqlalchemy import select, true
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from searchhub.config.db import tenant_session
from searchhub.models.document import Document
from searchhub.models.document_index_state import DocumentIndexState
from searchhub.models.index_job import IndexJob
from searchhub.repositories.types import IndexCandidate


class DocumentRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, tenant_id: uuid.UUID, document_id: uuid.UUID) -> Optional[Document]:
        stmt = select(Document).where(
            Document.tenant_id == tenant_id, Document.id == document_id
        )
        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            return (await session.execute(stmt)).scalars().first()

    async def iter_index_candidates(
        self, after_id: Optional[uuid.UUID], limit: int
    ) -> list[IndexCandidate]:
        """
        Return one keyset page of documents, ordered by id, joined with their
        index state and most recent index job.

        Spans every tenant, so it runs outside a tenant context.
        """
        latest_job = (
            select(
                IndexJob.status,
                IndexJob.checksum,
                IndexJob.retryable,
                IndexJob.updated_at,
            )
            .where(IndexJob.document_id == Document.id)
            .order_by(IndexJob.created_at.desc(), IndexJob.id.desc())
            .limit(1)
            .lateral("latest_job")
        )
        stmt = (
            select(
                Document.id,
                Document.tenant_id,
                Document.content,
                DocumentIndexState.last_checksum,
                latest_job.c.status,
                latest_job.c.checksum,
                latest_job.c.retryable,
                latest_job.c.updated_at,
            )
            .outerjoin(DocumentIndexState, DocumentIndexState.document_id == Document.id)
            .outerjoin(latest_job, true())
            .order_by(Document.id)
            .limit(limit)
        )
        if after_id is not None:
            stmt = stmt.where(Document.id > after_id)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()

        return [
            IndexCandidate(
                document_id=row[0],
                tenant_id=row[1],
                content=row[2],
                last_checksum=row[3],
                job_status=row[4],
                job_checksum=row[5],
                job_retryable=True if row[6] is None else row[6],
                job_updated_at=row[7],
            )
            for row in rows
        ]
