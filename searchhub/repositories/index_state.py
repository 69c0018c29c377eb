import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from searchhub.config.db import tenant_session
from searchhub.models.document_index_state import DocumentIndexState


class IndexStateRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(
        self, tenant_id: uuid.UUID, document_id: uuid.UUID
    ) -> Optional[DocumentIndexState]:
        stmt = select(DocumentIndexState).where(
            DocumentIndexState.document_id == document_id
        )
        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            return (await session.execute(stmt)).scalars().first()

    async def touch(self, tenant_id: uuid.UUID, document_id: uuid.UUID) -> int:
        """Record that the stored checksum was confirmed current just now."""
        stmt = (
            update(DocumentIndexState)
            .where(DocumentIndexState.document_id == document_id)
            .values(last_indexed_at=datetime.now(timezone.utc))
        )
        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount
