import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import literal, select, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from searchhub.config.db import tenant_session
from searchhub.models.document_command import DocumentCommand

SCHEDULED = "scheduled"
NOTIFIED = "notified"


class DocumentCommandRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(
        self, tenant_id: uuid.UUID, command_id: uuid.UUID
    ) -> Optional[DocumentCommand]:
        stmt = select(DocumentCommand).where(
            DocumentCommand.tenant_id == tenant_id, DocumentCommand.id == command_id
        )
        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            return (await session.execute(stmt)).scalars().first()

    async def mark_notified(
        self, tenant_id: uuid.UUID, command_id: uuid.UUID, notified_at: datetime
    ) -> int:
        """
        Merge ``status="notified"`` and ``notifiedAt`` into the command body,
        only while it is still scheduled. Returns the number of rows changed.
        """
        patch = {"status": NOTIFIED, "notifiedAt": notified_at.isoformat()}
        stmt = (
            update(DocumentCommand)
            .where(
                DocumentCommand.tenant_id == tenant_id,
                DocumentCommand.id == command_id,
                DocumentCommand.body["status"].astext == SCHEDULED,
            )
            .values(body=DocumentCommand.body.op("||")(literal(patch, type_=JSONB)))
            .execution_options(synchronize_session=False)
        )
        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount or 0
