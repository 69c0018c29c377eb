from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from searchhub.api.v1 import documents as documents_router
from searchhub.api.v1 import search as search_router
from searchhub.config.db import (
    check_db_connection,
    create_engine_from_settings,
    create_session_factory,
)
from searchhub.config.redis import check_redis_connection
from searchhub.middleware.rls import rls_tenant_middleware
from searchhub.repositories import DocumentStore
from searchhub.services.embeddings import default_embedding_client
from searchhub.services.queue import JobQueue
from searchhub.services.reranking import default_reranker
from searchhub.services.search import HybridSearchService, SearchOptions
from searchhub.settings import settings
from searchhub.utils.circuit_breaker import create_breaker
from searchhub.utils.logging_config import logger
from searchhub.worker import celery_app


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handle application startup and shutdown events.
    """
    await check_redis_connection(settings)

    engine = create_engine_from_settings(settings)
    await check_db_connection(engine)

    store = DocumentStore(create_session_factory(engine))
    breaker = create_breaker(
        "models",
        failure_threshold=settings.BREAKER_FAILURE_THRESHOLD,
        reset_timeout=settings.BREAKER_RESET_TIMEOUT_SECONDS,
    )
    app.state.engine = engine
    app.state.store = store
    app.state.job_queue = JobQueue(celery_app)
    app.state.search_service = HybridSearchService(
        store,
        default_embedding_client(),
        default_reranker(),
        breaker,
        SearchOptions.from_settings(settings),
    )
    logger.info("SEARCH SERVICE IS READY")

    yield

    await engine.dispose()


app = FastAPI(
    lifespan=lifespan,
    title="SearchHub",
    description="Hybrid full-text and semantic search over tenant documents",
)

app.middleware("http")(rls_tenant_middleware)

# Include routers
app.include_router(
    documents_router.router, prefix="/api/v1/documents", tags=["Documents"]
)
app.include_router(search_router.router, prefix="/api/v1/search", tags=["Search"])


@app.get("/")
def read_root() -> dict[str, str]:
    return {"message": "Hello from SearchHub API!"}


@app.get("/health")
async def health() -> dict[str, str]:
    try:
        await check_db_connection(app.state.engine)
        await check_redis_connection(settings)
    except Exception as e:
        raise HTTPException(status_code=503, detail="Unhealthy") from e
    return {"status": "ok"}
