"""
Index job state machine.

Drives one document's job through queued -> processing -> indexed|failed.
Every transition is a conditional update in the store; a transition that
matches no rows means a duplicate or replayed delivery already moved the job
and is logged rather than treated as an error.
"""

import enum
import uuid
from dataclasses import dataclass
from typing import Optional

from searchhub.errors import ChunkLimitExceededError, DocumentNotFoundError, is_retryable
from searchhub.repositories import DocumentStore
from searchhub.services.chunking import chunk_text
from searchhub.services.embeddings import EmbeddingClient
from searchhub.services.fingerprint import fingerprint
from searchhub.utils.logging_config import logger


class IndexReason(str, enum.Enum):
    EMPTY_CONTENT = "empty-content"
    ALREADY_INDEXED = "already-indexed"
    NO_CHUNKS = "no-chunks"


@dataclass(frozen=True)
class IndexResult:
    document_id: uuid.UUID
    ok: bool = True
    reason: Optional[IndexReason] = None
    chunks: int = 0


class IndexingService:
    def __init__(
        self,
        store: DocumentStore,
        embedder: EmbeddingClient,
        *,
        chunk_size: int = 1000,
        overlap: int = 100,
        max_chunks: int = 5000,
    ):
        self.store = store
        self.embedder = embedder
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.max_chunks = max_chunks

    async def process(
        self, tenant_id: uuid.UUID, document_id: uuid.UUID, *, reindex: bool = False
    ) -> IndexResult:
        """
        Index one document. Safe to call any number of times for the same pair.

        Args:
            tenant_id: Owner of the document.
            document_id: The document to index.
            reindex: Rebuild chunks even when the stored checksum matches.

        Raises:
            DocumentNotFoundError: The document no longer exists.
            ChunkLimitExceededError: The content produces too many chunks.
            EmbeddingError: The embedding provider failed.

            Every error is recorded on the job as ``failed`` before it is re-raised.
        """
        started = await self.store.jobs.start_processing(tenant_id, document_id)
        if not started:
            logger.info(
                f"job.start.noop document_id={document_id}: no queued job, continuing"
            )

        checksum: Optional[str] = None
        try:
            document = await self.store.documents.get(tenant_id, document_id)
            if document is None:
                raise DocumentNotFoundError(str(tenant_id), str(document_id))

            content = (document.content or "").strip()
            if not content:
                await self._finish(tenant_id, document_id)
                logger.info(f"job.skipped.empty_content document_id={document_id}")
                return IndexResult(document_id=document_id, reason=IndexReason.EMPTY_CONTENT)

            checksum = fingerprint(content)
            if not reindex:
                state = await self.store.index_state.get(tenant_id, document_id)
                if state is not None and state.last_checksum == checksum:
                    await self.store.index_state.touch(tenant_id, document_id)
                    await self._finish(tenant_id, document_id)
                    logger.info(f"job.skipped.already_indexed document_id={document_id}")
                    return IndexResult(
                        document_id=document_id, reason=IndexReason.ALREADY_INDEXED
                    )

            chunks = chunk_text(content, self.chunk_size, self.overlap)
            if not chunks:
                await self._finish(tenant_id, document_id)
                return IndexResult(document_id=document_id, reason=IndexReason.NO_CHUNKS)

            if len(chunks) > self.max_chunks:
                raise ChunkLimitExceededError(len(chunks), self.max_chunks)

            vectors = await self.embedder.embed(
                [chunk.text for chunk in chunks], input_type="document"
            )
            await self.store.chunks.replace_chunks_with_embeddings(
                tenant_id, document_id, chunks, vectors, checksum
            )
            await self._finish(tenant_id, document_id)
            logger.info(
                f"job.indexed document_id={document_id} chunks={len(chunks)} checksum={checksum[:12]}"
            )
            return IndexResult(document_id=document_id, chunks=len(chunks))

        except Exception as e:
            await self._record_failure(tenant_id, document_id, e, checksum)
            raise

    async def _finish(self, tenant_id: uuid.UUID, document_id: uuid.UUID) -> None:
        updated = await self.store.jobs.mark_indexed(tenant_id, document_id)
        if not updated:
            logger.warning(
                f"job.indexed.noop document_id={document_id}: job already advanced by another delivery"
            )

    async def _record_failure(
        self,
        tenant_id: uuid.UUID,
        document_id: uuid.UUID,
        error: Exception,
        checksum: Optional[str],
    ) -> None:
        retryable = is_retryable(error)
        logger.error(
            f"job.failed document_id={document_id} retryable={retryable}: {error}",
            exc_info=retryable,
        )
        try:
            updated = await self.store.jobs.mark_failed(
                tenant_id,
                document_id,
                str(error) or error.__class__.__name__,
                checksum=checksum,
                retryable=retryable,
            )
        except Exception:
            # Keep raising the processing error, not the bookkeeping one.
            logger.exception(f"job.failed.record_error document_id={document_id}")
            return
        if not updated:
            logger.warning(f"job.failed.noop document_id={document_id}: no active job row")
