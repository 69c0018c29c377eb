"""
Periodic sweep that keeps every document's index in line with its content.

Documents are walked in id order, one keyset page at a time; a document is
re-enqueued when it has never been indexed, when its content fingerprint no
longer matches the indexed checksum, when its last job failed in a way a
retry could fix, or when its job has been stuck in flight past the grace
window.
"""

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from searchhub.models.index_job import IndexJobStatus
from searchhub.repositories import DocumentStore
from searchhub.repositories.types import IndexCandidate
from searchhub.services.fingerprint import fingerprint
from searchhub.services.queue import Enqueuer, schedule_index
from searchhub.utils.logging_config import logger

_IN_FLIGHT = (IndexJobStatus.QUEUED, IndexJobStatus.PROCESSING)


class StaleReason(str, enum.Enum):
    NEVER_INDEXED = "never-indexed"
    CHECKSUM_CHANGED = "checksum-changed"
    RETRYABLE_FAILURE = "retryable-failure"
    FAILED_CONTENT_CHANGED = "failed-content-changed"
    STUCK = "stuck"


@dataclass(frozen=True)
class SyncResult:
    queued: int = 0
    errors: int = 0
    scanned: int = 0


class StaleDocumentReconciler:
    def __init__(
        self,
        store: DocumentStore,
        queue: Enqueuer,
        *,
        batch_size: int = 100,
        max_documents: int = 1000,
        in_flight_grace: timedelta = timedelta(minutes=15),
    ):
        self.store = store
        self.queue = queue
        self.batch_size = max(1, batch_size)
        self.max_documents = max_documents
        self.in_flight_grace = in_flight_grace

    async def sync(self) -> SyncResult:
        queued = errors = scanned = 0
        after_id: Optional[uuid.UUID] = None
        now = datetime.now(timezone.utc)

        while queued < self.max_documents:
            page = await self.store.documents.iter_index_candidates(after_id, self.batch_size)
            for candidate in page:
                scanned += 1
                reason = self.stale_reason(candidate, now)
                if reason is None:
                    continue
                try:
                    await schedule_index(
                        self.store, self.queue, candidate.tenant_id, candidate.document_id
                    )
                except Exception:
                    errors += 1
                    logger.exception(
                        f"sync.enqueue_failed document_id={candidate.document_id}"
                    )
                    continue
                queued += 1
                logger.debug(
                    f"sync.enqueued document_id={candidate.document_id} reason={reason.value}"
                )
                if queued >= self.max_documents:
                    logger.warning(
                        f"sync.capped: reached max_documents={self.max_documents}, "
                        "remaining documents wait for the next sweep"
                    )
                    break

            if len(page) < self.batch_size:
                break
            after_id = page[-1].document_id

        logger.info(f"sync.completed queued={queued} errors={errors} scanned={scanned}")
        return SyncResult(queued=queued, errors=errors, scanned=scanned)

    def stale_reason(self, candidate: IndexCandidate, now: datetime) -> Optional[StaleReason]:
        """Why the document needs an index job, or None when it does not."""
        if candidate.job_status in _IN_FLIGHT:
            updated_at = candidate.job_updated_at
            if updated_at is not None and now - updated_at < self.in_flight_grace:
                return None
            return StaleReason.STUCK

        content = (candidate.content or "").strip()
        if not content:
            return None
        checksum = fingerprint(content)

        if candidate.job_status == IndexJobStatus.FAILED:
            if candidate.job_retryable:
                return StaleReason.RETRYABLE_FAILURE
            if candidate.job_checksum != checksum:
                return StaleReason.FAILED_CONTENT_CHANGED
            logger.info(
                f"sync.skipped.permanent_failure document_id={candidate.document_id}"
            )
            return None

        if candidate.last_checksum is None:
            return StaleReason.NEVER_INDEXED
        if candidate.last_checksum != checksum:
            return StaleReason.CHECKSUM_CHANGED
        return None


async def cleanup_old_jobs(store: DocumentStore, retention_days: int) -> int:
    """Delete indexed job rows older than the retention window."""
    deleted = await store.jobs.delete_old_indexed(retention_days)
    logger.info(f"cleanup.completed deleted={deleted} retention_days={retention_days}")
    return deleted
