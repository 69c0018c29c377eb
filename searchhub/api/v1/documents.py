"""API endpoints for document indexing."""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from kombu.exceptions import OperationalError as BrokerError

from searchhub.api.deps import get_job_queue, get_store, get_tenant_id
from searchhub.repositories import DocumentStore
from searchhub.schemas.documents import IndexJobSummary, IndexStatusResponse, ReindexResponse
from searchhub.services.fingerprint import fingerprint
from searchhub.services.queue import JobQueue, schedule_index
from searchhub.utils.logging_config import logger

router = APIRouter()


@router.post(
    "/{document_id}/reindex",
    status_code=202,
    response_model=ReindexResponse,
    summary="Queue a document for re-indexing",
    description="Rebuilds the document's chunks and embeddings even if its content is unchanged.",
)
async def reindex_document(
    document_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    store: DocumentStore = Depends(get_store),
    queue: JobQueue = Depends(get_job_queue),
) -> ReindexResponse:
    document = await store.documents.get(tenant_id, document_id)
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found.")

    try:
        job = await schedule_index(store, queue, tenant_id, document_id, reindex=True)
    except BrokerError as e:
        # The job row stays queued; the reconciler picks it up once it is stuck.
        logger.error(f"Failed to queue reindex for document_id: {document_id}: {e}")
        raise HTTPException(status_code=503, detail="Failed to queue the document.") from e

    return ReindexResponse(document_id=document_id, job_id=job.id, status=job.status.value)


@router.get(
    "/{document_id}/index-status",
    response_model=IndexStatusResponse,
    summary="Get a document's index status",
)
async def get_index_status(
    document_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    store: DocumentStore = Depends(get_store),
) -> IndexStatusResponse:
    document = await store.documents.get(tenant_id, document_id)
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found.")

    job = await store.jobs.find_latest(tenant_id, document_id)
    state = await store.index_state.get(tenant_id, document_id)

    content = (document.content or "").strip()
    if state is not None:
        up_to_date = state.last_checksum == fingerprint(content)
    else:
        # Empty documents have nothing to index.
        up_to_date = not content

    return IndexStatusResponse(
        document_id=document_id,
        status=job.status.value if job else None,
        error=job.error if job else None,
        last_checksum=state.last_checksum if state else None,
        last_indexed_at=state.last_indexed_at if state else None,
        up_to_date=up_to_date,
    )


@router.get(
    "/index-jobs/summary",
    response_model=IndexJobSummary,
    summary="Count the tenant's pending and failed index jobs",
)
async def get_index_job_summary(
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    store: DocumentStore = Depends(get_store),
) -> IndexJobSummary:
    counts = await store.jobs.active_status_counts(tenant_id)
    return IndexJobSummary(**counts)
