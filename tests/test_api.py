import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from searchhub.api.deps import get_job_queue, get_search_service, get_store
from searchhub.main import app
from searchhub.models.index_job import IndexJobStatus
from searchhub.repositories.types import LexicalHit, LexicalSearchResult
from searchhub.services.fingerprint import fingerprint
from searchhub.services.search import HybridSearchService
from searchhub.utils.circuit_breaker import create_breaker
from tests.fakes import FakeDocument, FakeEmbedder, FakeIndexState, FakeJob, FakeReranker

TENANT = uuid.uuid4()
HEADERS = {"X-Tenant-ID": str(TENANT)}


@pytest.fixture
def client(store, queue):
    service = HybridSearchService(
        store, FakeEmbedder(), FakeReranker(), create_breaker("models")
    )
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_job_queue] = lambda: queue
    app.dependency_overrides[get_search_service] = lambda: service
    # No context manager: the lifespan would connect to Postgres and Redis.
    yield TestClient(app)
    app.dependency_overrides.clear()


def add_document(store, content="Quarterly budget review", tenant_id=TENANT):
    return store.documents.add(FakeDocument(tenant_id=tenant_id, title="Budget", content=content))


def test_missing_tenant_header_is_rejected(client):
    response = client.get("/api/v1/search", params={"q": "budget"})

    assert response.status_code == 401


def test_malformed_tenant_header_is_rejected(client):
    response = client.get(
        "/api/v1/search", params={"q": "budget"}, headers={"X-Tenant-ID": "tenant-1"}
    )

    assert response.status_code == 422


def test_root_is_public(client):
    assert client.get("/").status_code == 200


def test_search_returns_fused_results(client, store):
    document = add_document(store)
    store.search.lexical_result = LexicalSearchResult(
        items=[
            LexicalHit(
                document_id=document.id,
                title="Budget",
                snippet="<mark>Quarterly</mark> budget review",
                score=0.3,
            )
        ],
        total=1,
    )

    response = client.get("/api/v1/search", params={"q": "quarterly budget"}, headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["items"][0]["id"] == str(document.id)
    assert body["items"][0]["snippet"] == "<mark>Quarterly</mark> budget review"
    assert store.search.lexical_calls[0]["tenant_id"] == TENANT


def test_search_validates_paging(client):
    response = client.get(
        "/api/v1/search", params={"q": "budget", "limit": 51}, headers=HEADERS
    )

    assert response.status_code == 422


def test_search_store_failure_is_unavailable(client):
    class BrokenSearch:
        async def search(self, query):
            raise SQLAlchemyError("database is down")

    app.dependency_overrides[get_search_service] = lambda: BrokenSearch()

    response = client.get("/api/v1/search", params={"q": "budget"}, headers=HEADERS)

    assert response.status_code == 503


def test_reindex_queues_a_forced_job(client, store, queue):
    document = add_document(store)

    response = client.post(f"/api/v1/documents/{document.id}/reindex", headers=HEADERS)

    assert response.status_code == 202
    body = response.json()
    assert body["document_id"] == str(document.id)
    assert body["status"] == "queued"
    assert queue.enqueued[0].reindex is True
    assert store.jobs.latest(document.id).id == uuid.UUID(body["job_id"])


def test_reindex_of_another_tenants_document_is_not_found(client, store, queue):
    document = add_document(store, tenant_id=uuid.uuid4())

    response = client.post(f"/api/v1/documents/{document.id}/reindex", headers=HEADERS)

    assert response.status_code == 404
    assert queue.enqueued == []


def test_index_status_reports_staleness(client, store):
    document = add_document(store)
    store.jobs.add(FakeJob(TENANT, document.id, status=IndexJobStatus.INDEXED))
    store.index_state.rows[document.id] = FakeIndexState(
        document_id=document.id,
        last_checksum=fingerprint("Quarterly budget review"),
        last_indexed_at=store.jobs.latest(document.id).updated_at,
    )

    fresh = client.get(f"/api/v1/documents/{document.id}/index-status", headers=HEADERS).json()
    document.content = "Quarterly budget review, revised"
    stale = client.get(f"/api/v1/documents/{document.id}/index-status", headers=HEADERS).json()

    assert fresh["status"] == "indexed"
    assert fresh["up_to_date"] is True
    assert stale["up_to_date"] is False


def test_index_status_of_unindexed_document(client, store):
    document = add_document(store)

    body = client.get(f"/api/v1/documents/{document.id}/index-status", headers=HEADERS).json()

    assert body["status"] is None
    assert body["last_checksum"] is None
    assert body["up_to_date"] is False


def test_index_job_summary_counts_active_jobs(client, store):
    for status in (IndexJobStatus.QUEUED, IndexJobStatus.FAILED, IndexJobStatus.FAILED):
        store.jobs.add(FakeJob(TENANT, uuid.uuid4(), status=status))
    store.jobs.add(FakeJob(TENANT, uuid.uuid4(), status=IndexJobStatus.INDEXED))
    store.jobs.add(FakeJob(uuid.uuid4(), uuid.uuid4(), status=IndexJobStatus.QUEUED))

    response = client.get("/api/v1/documents/index-jobs/summary", headers=HEADERS)

    assert response.json() == {"queued": 1, "processing": 0, "failed": 2}
