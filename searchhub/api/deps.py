"""Dependencies for API endpoints."""

import uuid

from fastapi import HTTPException, Request, status

from searchhub.repositories import DocumentStore
from searchhub.services.queue import JobQueue
from searchhub.services.search import HybridSearchService


def get_tenant_id(request: Request) -> uuid.UUID:
    """
    The tenant resolved by the tenant middleware.
    """
    tenant_id = getattr(request.state, "tenant_id", None)
    if tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Tenant not resolved."
        )
    return tenant_id


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_job_queue(request: Request) -> JobQueue:
    return request.app.state.job_queue


def get_search_service(request: Request) -> HybridSearchService:
    return request.app.state.search_service
