import uuid
from datetime import datetime, timedelta, timezone

import pytest

from searchhub.models.index_job import IndexJobStatus
from searchhub.repositories.types import IndexCandidate
from searchhub.services.fingerprint import fingerprint
from searchhub.services.reconciler import (
    StaleDocumentReconciler,
    StaleReason,
    cleanup_old_jobs,
)
from tests.fakes import FakeDocument, FakeIndexState, FakeJob, FakeQueue, FakeStore

TENANT = uuid.uuid4()
NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def add_documents(store, count, content="some content"):
    return [
        store.documents.add(FakeDocument(tenant_id=TENANT, title=f"Doc {i}", content=content))
        for i in range(count)
    ]


def mark_indexed(store, document):
    store.index_state.rows[document.id] = FakeIndexState(
        document_id=document.id,
        last_checksum=fingerprint(document.content.strip()),
        last_indexed_at=NOW,
    )
    store.jobs.add(
        FakeJob(tenant_id=TENANT, document_id=document.id, status=IndexJobStatus.INDEXED)
    )


def candidate(**overrides):
    values = {
        "document_id": uuid.uuid4(),
        "tenant_id": TENANT,
        "content": "body",
        "last_checksum": fingerprint("body"),
        "job_status": IndexJobStatus.INDEXED,
        "job_checksum": None,
        "job_retryable": True,
        "job_updated_at": NOW - timedelta(hours=1),
    }
    values.update(overrides)
    return IndexCandidate(**values)


@pytest.mark.asyncio
async def test_unindexed_documents_are_all_queued():
    store = FakeStore()
    queue = FakeQueue()
    documents = add_documents(store, 4)

    result = await StaleDocumentReconciler(store, queue).sync()

    assert (result.queued, result.errors, result.scanned) == (4, 0, 4)
    assert {job.document_id for job in queue.enqueued} == {d.id for d in documents}
    assert all(store.jobs.latest(d.id).status == IndexJobStatus.QUEUED for d in documents)


@pytest.mark.asyncio
async def test_one_enqueue_failure_does_not_stop_the_sweep():
    store = FakeStore()
    documents = add_documents(store, 5)
    queue = FakeQueue(fail_for=[documents[2].id])

    result = await StaleDocumentReconciler(store, queue).sync()

    assert result.queued == 4
    assert result.errors == 1


@pytest.mark.asyncio
async def test_up_to_date_documents_are_skipped():
    store = FakeStore()
    queue = FakeQueue()
    fresh, changed = add_documents(store, 2)
    mark_indexed(store, fresh)
    mark_indexed(store, changed)
    changed.content = "edited content"

    result = await StaleDocumentReconciler(store, queue).sync()

    assert result.queued == 1
    assert [job.document_id for job in queue.enqueued] == [changed.id]


@pytest.mark.asyncio
async def test_sweep_stops_at_max_documents():
    store = FakeStore()
    queue = FakeQueue()
    add_documents(store, 5)

    result = await StaleDocumentReconciler(store, queue, batch_size=2, max_documents=3).sync()

    assert result.queued == 3
    assert len(queue.enqueued) == 3


@pytest.mark.asyncio
async def test_documents_are_paged_by_id():
    store = FakeStore()
    documents = sorted(add_documents(store, 5), key=lambda d: d.id)

    await StaleDocumentReconciler(store, FakeQueue(), batch_size=2).sync()

    assert store.documents.pages_requested == [
        (None, 2),
        (documents[1].id, 2),
        (documents[3].id, 2),
    ]


@pytest.mark.asyncio
async def test_recent_in_flight_job_is_not_requeued():
    store = FakeStore()
    queue = FakeQueue()
    (document,) = add_documents(store, 1)
    store.jobs.add(
        FakeJob(
            tenant_id=TENANT,
            document_id=document.id,
            status=IndexJobStatus.PROCESSING,
            updated_at=datetime.now(timezone.utc),
        )
    )

    result = await StaleDocumentReconciler(store, queue).sync()

    assert result.queued == 0
    assert queue.enqueued == []


@pytest.mark.asyncio
async def test_stuck_job_is_requeued():
    store = FakeStore()
    queue = FakeQueue()
    (document,) = add_documents(store, 1)
    store.jobs.add(
        FakeJob(
            tenant_id=TENANT,
            document_id=document.id,
            status=IndexJobStatus.PROCESSING,
            updated_at=datetime.now(timezone.utc) - timedelta(hours=2),
        )
    )

    result = await StaleDocumentReconciler(store, queue).sync()

    assert result.queued == 1
    assert store.jobs.latest(document.id).status == IndexJobStatus.QUEUED


@pytest.mark.asyncio
async def test_permanent_failure_waits_for_a_content_change():
    store = FakeStore()
    queue = FakeQueue()
    (document,) = add_documents(store, 1)
    store.jobs.add(
        FakeJob(
            tenant_id=TENANT,
            document_id=document.id,
            status=IndexJobStatus.FAILED,
            checksum=fingerprint(document.content),
            retryable=False,
        )
    )
    reconciler = StaleDocumentReconciler(store, queue)

    assert (await reconciler.sync()).queued == 0

    document.content = "fixed content"
    assert (await reconciler.sync()).queued == 1


def test_stale_reason_rules():
    reconciler = StaleDocumentReconciler(FakeStore(), FakeQueue())

    assert reconciler.stale_reason(candidate(), NOW) is None
    assert reconciler.stale_reason(candidate(last_checksum=None, job_status=None), NOW) == (
        StaleReason.NEVER_INDEXED
    )
    assert reconciler.stale_reason(candidate(content="changed"), NOW) == (
        StaleReason.CHECKSUM_CHANGED
    )
    assert reconciler.stale_reason(
        candidate(content="  ", last_checksum=None, job_status=None), NOW
    ) is None
    assert reconciler.stale_reason(
        candidate(job_status=IndexJobStatus.FAILED, job_retryable=True), NOW
    ) == StaleReason.RETRYABLE_FAILURE
    assert reconciler.stale_reason(
        candidate(
            job_status=IndexJobStatus.FAILED, job_retryable=False, job_checksum="older"
        ),
        NOW,
    ) == StaleReason.FAILED_CONTENT_CHANGED
    assert reconciler.stale_reason(
        candidate(job_status=IndexJobStatus.QUEUED, job_updated_at=NOW - timedelta(minutes=1)),
        NOW,
    ) is None
    assert reconciler.stale_reason(
        candidate(job_status=IndexJobStatus.QUEUED, job_updated_at=NOW - timedelta(hours=1)),
        NOW,
    ) == StaleReason.STUCK


@pytest.mark.asyncio
async def test_cleanup_deletes_only_old_indexed_jobs():
    store = FakeStore()
    old = datetime.now(timezone.utc) - timedelta(days=40)
    recent = datetime.now(timezone.utc) - timedelta(days=2)
    document_id = uuid.uuid4()
    store.jobs.add(FakeJob(TENANT, document_id, status=IndexJobStatus.INDEXED, updated_at=old))
    store.jobs.add(FakeJob(TENANT, document_id, status=IndexJobStatus.INDEXED, updated_at=recent))
    store.jobs.add(FakeJob(TENANT, document_id, status=IndexJobStatus.FAILED, updated_at=old))

    deleted = await cleanup_old_jobs(store, retention_days=30)

    assert deleted == 1
    assert [job.status for job in store.jobs.rows] == [
        IndexJobStatus.INDEXED,
        IndexJobStatus.FAILED,
    ]
