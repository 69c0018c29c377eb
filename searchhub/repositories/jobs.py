"""Index job rows and their guarded status transitions."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from searchhub.config.db import tenant_session
from searchhub.models.index_job import IndexJob, IndexJobStatus


class IndexJobRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def enqueue_index(self, tenant_id: uuid.UUID, document_id: uuid.UUID) -> IndexJob:
        """
        Record a queued job for the document.

        A latest row that is still queued is reused so repeated enqueues do
        not pile up pending rows; otherwise a new row is written and older
        rows stay as history.
        """
        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            latest = await self._latest(session, tenant_id, document_id)
            if latest is not None and latest.status == IndexJobStatus.QUEUED:
                return latest

            job = IndexJob(
                tenant_id=tenant_id,
                document_id=document_id,
                status=IndexJobStatus.QUEUED,
            )
            session.add(job)
            await session.flush()
            await session.refresh(job)
            await session.commit()
            return job

    async def start_processing(self, tenant_id: uuid.UUID, document_id: uuid.UUID) -> int:
        """queued -> processing. Returns the number of rows changed."""
        return await self._transition(
            tenant_id,
            document_id,
            (IndexJobStatus.QUEUED,),
            {"status": IndexJobStatus.PROCESSING, "error": None},
        )

    async def requeue_failed(self, tenant_id: uuid.UUID, document_id: uuid.UUID) -> int:
        """failed -> queued, used when the queue retries a failed attempt."""
        return await self._transition(
            tenant_id,
            document_id,
            (IndexJobStatus.FAILED,),
            {"status": IndexJobStatus.QUEUED},
        )

    async def mark_indexed(self, tenant_id: uuid.UUID, document_id: uuid.UUID) -> int:
        """processing -> indexed."""
        return await self._transition(
            tenant_id,
            document_id,
            (IndexJobStatus.PROCESSING,),
            {"status": IndexJobStatus.INDEXED, "error": None},
        )

    async def mark_failed(
        self,
        tenant_id: uuid.UUID,
        document_id: uuid.UUID,
        error: str,
        *,
        checksum: Optional[str] = None,
        retryable: bool = True,
    ) -> int:
        """queued|processing -> failed, recording the error text."""
        return await self._transition(
            tenant_id,
            document_id,
            (IndexJobStatus.QUEUED, IndexJobStatus.PROCESSING),
            {
                "status": IndexJobStatus.FAILED,
                "error": error,
                "checksum": checksum,
                "retryable": retryable,
            },
        )

    async def find_latest(
        self, tenant_id: uuid.UUID, document_id: uuid.UUID
    ) -> Optional[IndexJob]:
        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            return await self._latest(session, tenant_id, document_id)

    async def active_status_counts(self, tenant_id: uuid.UUID) -> dict[str, int]:
        """Counts of jobs representing pending work or problems."""
        stmt = (
            select(IndexJob.status, func.count())
            .where(
                IndexJob.tenant_id == tenant_id,
                IndexJob.status.in_(
                    (IndexJobStatus.QUEUED, IndexJobStatus.PROCESSING, IndexJobStatus.FAILED)
                ),
            )
            .group_by(IndexJob.status)
        )
        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            rows = (await session.execute(stmt)).all()
        return {status.value: count for status, count in rows}

    async def delete_old_indexed(self, older_than_days: int) -> int:
        """
        Delete successful job rows across all tenants.

        The index state keeps the permanent record, and failed rows are kept
        for inspection. Runs on the maintenance role, outside any tenant context.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
        stmt = delete(IndexJob).where(
            IndexJob.status == IndexJobStatus.INDEXED,
            IndexJob.updated_at < cutoff,
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount or 0

    async def _transition(
        self,
        tenant_id: uuid.UUID,
        document_id: uuid.UUID,
        expected: Iterable[IndexJobStatus],
        values: dict,
    ) -> int:
        # Compare-and-swap on the latest job's status: zero rows means another
        # delivery got there first. Older rows are history and never move.
        newest = aliased(IndexJob)
        latest_id = (
            select(newest.id)
            .where(newest.tenant_id == tenant_id, newest.document_id == document_id)
            .order_by(newest.created_at.desc(), newest.id.desc())
            .limit(1)
            .scalar_subquery()
        )
        stmt = (
            update(IndexJob)
            .where(
                IndexJob.id == latest_id,
                IndexJob.tenant_id == tenant_id,
                IndexJob.status.in_(tuple(expected)),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        async with tenant_session(self._session_factory, str(tenant_id)) as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount or 0

    @staticmethod
    async def _latest(
        session: AsyncSession, tenant_id: uuid.UUID, document_id: uuid.UUID
    ) -> Optional[IndexJob]:
        stmt = (
            select(IndexJob)
            .where(IndexJob.tenant_id == tenant_id, IndexJob.document_id == document_id)
            .order_by(IndexJob.created_at.desc(), IndexJob.id.desc())
            .limit(1)
        )
        return (await session.execute(stmt)).scalars().first()
