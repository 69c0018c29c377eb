"""API endpoint for hybrid document search."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError

from searchhub.api.deps import get_search_service, get_tenant_id
from searchhub.schemas.search import SearchQuery, SearchResponse
from searchhub.services.search import HybridSearchService
from searchhub.utils.logging_config import logger

router = APIRouter()


@router.get(
    "",
    response_model=SearchResponse,
    response_model_by_alias=True,
    summary="Search documents",
    description="Ranks the tenant's documents by combined full-text and semantic relevance.",
)
async def search_documents(
    q: str = Query(..., min_length=1, max_length=500),
    limit: int = Query(10, ge=1, le=50),
    offset: int = Query(0, ge=0),
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: HybridSearchService = Depends(get_search_service),
) -> SearchResponse:
    query = SearchQuery(tenant_id=tenant_id, q=q, limit=limit, offset=offset)
    try:
        return await service.search(query)
    except SQLAlchemyError as e:
        logger.error(f"search.failed tenant_id={tenant_id}: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail="Search is temporarily unavailable.") from e
