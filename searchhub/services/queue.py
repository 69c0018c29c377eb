"""
Job queue facade over Celery.

Payloads are validated into their tagged variant before anything reaches
the broker, and each variant is dispatched to the task named after its kind;
queue routing comes from the Celery app configuration.
"""

import uuid
from typing import Any, Optional, Protocol, Union

from celery import Celery

from searchhub.models.index_job import IndexJob
from searchhub.repositories import DocumentStore
from searchhub.schemas.jobs import IndexDocumentJob, JobPayload, parse_job_payload
from searchhub.utils.logging_config import logger


class Enqueuer(Protocol):
    def enqueue(
        self, payload: Union[JobPayload, dict[str, Any]], *, countdown: Optional[float] = None
    ) -> str: ...


class JobQueue:
    def __init__(self, app: Celery):
        self.app = app

    def enqueue(
        self, payload: Union[JobPayload, dict[str, Any]], *, countdown: Optional[float] = None
    ) -> str:
        """
        Send a job to its task and return the Celery task id.

        Raises:
            InvalidJobPayloadError: ``payload`` is not a known job variant.
        """
        job = parse_job_payload(payload)
        options: dict[str, Any] = {}
        if countdown is not None:
            options["countdown"] = countdown

        result = self.app.send_task(
            job.kind, kwargs={"payload": job.model_dump(mode="json")}, **options
        )
        logger.info(f"queue.enqueued kind={job.kind} task_id={result.id}")
        return result.id


async def schedule_index(
    store: DocumentStore,
    queue: Enqueuer,
    tenant_id: uuid.UUID,
    document_id: uuid.UUID,
    *,
    reindex: bool = False,
) -> IndexJob:
    """Record a queued job row, then hand the work to the queue."""
    job = await store.jobs.enqueue_index(tenant_id, document_id)
    queue.enqueue(
        IndexDocumentJob(tenant_id=tenant_id, document_id=document_id, reindex=reindex)
    )
    return job
