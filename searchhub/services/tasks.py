"""
Celery tasks for indexing, reminders and index maintenance.

Each task validates its payload, then runs the async service inside a fresh
event loop with an unpooled engine that is disposed when the task ends.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError

from searchhub.config.db import create_engine_from_settings, create_session_factory
from searchhub.errors import InvalidJobPayloadError, TransientError
from searchhub.repositories import DocumentStore
from searchhub.schemas.jobs import (
    CLEANUP_OLD_JOBS,
    INDEX_DOCUMENT,
    SEND_REMINDER,
    SYNC_STALE_DOCUMENTS,
    CleanupOldJobsJob,
    IndexDocumentJob,
    SendReminderJob,
    SyncStaleDocumentsJob,
    parse_job_payload,
)
from searchhub.services.embeddings import default_embedding_client
from searchhub.services.indexing import IndexingService
from searchhub.services.queue import JobQueue
from searchhub.services.reconciler import StaleDocumentReconciler, cleanup_old_jobs
from searchhub.services.reminders import ReminderService
from searchhub.settings import settings
from searchhub.utils.logging_config import logger
from searchhub.worker import celery_app

RETRYABLE_ERRORS = (TransientError, OperationalError, InterfaceError)

RETRY_OPTIONS = {
    "autoretry_for": RETRYABLE_ERRORS,
    "retry_kwargs": {"max_retries": settings.INDEX_JOB_MAX_RETRIES},
    "retry_backoff": settings.INDEX_JOB_BACKOFF_SECONDS,
    "retry_backoff_max": settings.INDEX_JOB_BACKOFF_MAX_SECONDS,
    "retry_jitter": True,
}

P = TypeVar("P")


@asynccontextmanager
async def worker_store() -> AsyncIterator[DocumentStore]:
    engine = create_engine_from_settings(settings, pooled=False)
    try:
        yield DocumentStore(create_session_factory(engine))
    finally:
        await engine.dispose()


def _expect(payload: dict, variant: type[P]) -> P:
    job = parse_job_payload(payload)
    if not isinstance(job, variant):
        raise InvalidJobPayloadError(
            f"Expected a {variant.__name__} payload, got kind '{job.kind}'"
        )
    return job


@celery_app.task(bind=True, name=INDEX_DOCUMENT, **RETRY_OPTIONS)
def index_document(self, payload: dict) -> dict:
    """
    Index one document.

    A retried attempt first moves the failed job row back to queued so the
    state machine can claim it again.
    """
    job = _expect(payload, IndexDocumentJob)
    is_retry = self.request.retries > 0

    async def _run() -> dict:
        async with worker_store() as store:
            if is_retry:
                await store.jobs.requeue_failed(job.tenant_id, job.document_id)
            service = IndexingService(
                store,
                default_embedding_client(),
                chunk_size=settings.CHUNK_SIZE,
                overlap=settings.CHUNK_OVERLAP,
                max_chunks=settings.WORKER_MAX_CHUNK_LIMIT,
            )
            result = await service.process(
                job.tenant_id, job.document_id, reindex=job.reindex
            )
        return {
            "document_id": str(result.document_id),
            "reason": result.reason.value if result.reason else None,
            "chunks": result.chunks,
        }

    logger.info(
        f"Starting indexing for document_id: {job.document_id} "
        f"(attempt {self.request.retries + 1})"
    )
    return asyncio.run(_run())


@celery_app.task(bind=True, name=SEND_REMINDER, **RETRY_OPTIONS)
def send_reminder(self, payload: dict) -> dict:
    job = _expect(payload, SendReminderJob)

    async def _run() -> dict:
        async with worker_store() as store:
            result = await ReminderService(store).process(
                job.tenant_id, job.document_command_id
            )
        return {
            "command_id": str(result.command_id),
            "reason": result.reason.value if result.reason else None,
        }

    return asyncio.run(_run())


@celery_app.task(name=SYNC_STALE_DOCUMENTS)
def sync_stale_documents(payload: dict) -> dict:
    _expect(payload, SyncStaleDocumentsJob)

    async def _run() -> dict:
        async with worker_store() as store:
            reconciler = StaleDocumentReconciler(
                store,
                JobQueue(celery_app),
                batch_size=settings.SYNC_BATCH_SIZE,
                max_documents=settings.SYNC_MAX_DOCUMENTS,
                in_flight_grace=timedelta(seconds=settings.SYNC_IN_FLIGHT_GRACE_SECONDS),
            )
            result = await reconciler.sync()
        return {"queued": result.queued, "errors": result.errors, "scanned": result.scanned}

    return asyncio.run(_run())


@celery_app.task(name=CLEANUP_OLD_JOBS)
def cleanup_old_index_jobs(payload: dict) -> dict:
    _expect(payload, CleanupOldJobsJob)

    async def _run() -> dict:
        async with worker_store() as store:
            deleted = await cleanup_old_jobs(store, settings.JOB_RETENTION_DAYS)
        return {"deleted": deleted}

    return asyncio.run(_run())
