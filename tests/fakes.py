"""In-memory stand-ins for the document store, job queue and embedding client."""

import itertools
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from searchhub.errors import EmbeddingError, RerankError
from searchhub.models.index_job import IndexJobStatus
from searchhub.repositories.types import (
    AdjacentChunk,
    DocumentDetail,
    IndexCandidate,
    LexicalSearchResult,
    SearchCandidate,
)
from searchhub.schemas.jobs import IndexDocumentJob, parse_job_payload

_clock = itertools.count()


def _now() -> datetime:
    # Strictly increasing timestamps keep "latest job" ordering deterministic.
    return datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(microseconds=next(_clock))


@dataclass
class FakeDocument:
    tenant_id: uuid.UUID
    title: str
    content: Optional[str]
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class FakeJob:
    tenant_id: uuid.UUID
    document_id: uuid.UUID
    status: IndexJobStatus = IndexJobStatus.QUEUED
    error: Optional[str] = None
    checksum: Optional[str] = None
    retryable: bool = True
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


@dataclass
class FakeIndexState:
    document_id: uuid.UUID
    last_checksum: str
    last_indexed_at: datetime


@dataclass
class FakeCommand:
    tenant_id: uuid.UUID
    document_id: uuid.UUID
    body: dict
    id: uuid.UUID = field(default_factory=uuid.uuid4)


class FakeJobs:
    def __init__(self, store: "FakeStore"):
        self.store = store
        self.rows: list[FakeJob] = []

    def add(self, job: FakeJob) -> FakeJob:
        self.rows.append(job)
        return job

    def latest(self, document_id: uuid.UUID) -> Optional[FakeJob]:
        rows = [j for j in self.rows if j.document_id == document_id]
        return max(rows, key=lambda j: j.created_at) if rows else None

    async def enqueue_index(self, tenant_id, document_id):
        latest = self.latest(document_id)
        if latest is not None and latest.status == IndexJobStatus.QUEUED:
            return latest
        return self.add(FakeJob(tenant_id=tenant_id, document_id=document_id))

    async def start_processing(self, tenant_id, document_id):
        return self._transition(
            tenant_id, document_id, (IndexJobStatus.QUEUED,), status=IndexJobStatus.PROCESSING
        )

    async def requeue_failed(self, tenant_id, document_id):
        return self._transition(
            tenant_id, document_id, (IndexJobStatus.FAILED,), status=IndexJobStatus.QUEUED
        )

    async def mark_indexed(self, tenant_id, document_id):
        return self._transition(
            tenant_id,
            document_id,
            (IndexJobStatus.PROCESSING,),
            status=IndexJobStatus.INDEXED,
            error=None,
        )

    async def mark_failed(self, tenant_id, document_id, error, *, checksum=None, retryable=True):
        return self._transition(
            tenant_id,
            document_id,
            (IndexJobStatus.QUEUED, IndexJobStatus.PROCESSING),
            status=IndexJobStatus.FAILED,
            error=error,
            checksum=checksum,
            retryable=retryable,
        )

    async def find_latest(self, tenant_id, document_id):
        job = self.latest(document_id)
        return job if job is not None and job.tenant_id == tenant_id else None

    async def active_status_counts(self, tenant_id):
        counts: dict[str, int] = {}
        for job in self.rows:
            if job.tenant_id == tenant_id and job.status != IndexJobStatus.INDEXED:
                counts[job.status.value] = counts.get(job.status.value, 0) + 1
        return counts

    async def delete_old_indexed(self, older_than_days):
        cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
        keep = [
            j for j in self.rows
            if not (j.status == IndexJobStatus.INDEXED and j.updated_at < cutoff)
        ]
        deleted = len(self.rows) - len(keep)
        self.rows = keep
        return deleted

    def _transition(self, tenant_id, document_id, expected, **values) -> int:
        job = self.latest(document_id)
        if job is None or job.tenant_id != tenant_id or job.status not in expected:
            return 0
        for key, value in values.items():
            setattr(job, key, value)
        job.updated_at = _now()
        return 1


class FakeDocuments:
    def __init__(self, store: "FakeStore"):
        self.store = store
        self.rows: dict[uuid.UUID, FakeDocument] = {}
        self.pages_requested: list[tuple[Optional[uuid.UUID], int]] = []

    def add(self, document: FakeDocument) -> FakeDocument:
        self.rows[document.id] = document
        return document

    async def get(self, tenant_id, document_id):
        document = self.rows.get(document_id)
        return document if document is not None and document.tenant_id == tenant_id else None

    async def iter_index_candidates(self, after_id, limit):
        self.pages_requested.append((after_id, limit))
        ordered = sorted(self.rows.values(), key=lambda d: d.id)
        if after_id is not None:
            ordered = [d for d in ordered if d.id > after_id]
        page = []
        for document in ordered[:limit]:
            state = self.store.index_state.rows.get(document.id)
            job = self.store.jobs.latest(document.id)
            page.append(
                IndexCandidate(
                    document_id=document.id,
                    tenant_id=document.tenant_id,
                    content=document.content,
                    last_checksum=state.last_checksum if state else None,
                    job_status=job.status if job else None,
                    job_checksum=job.checksum if job else None,
                    job_retryable=job.retryable if job else True,
                    job_updated_at=job.updated_at if job else None,
                )
            )
        return page


class FakeIndexStates:
    def __init__(self):
        self.rows: dict[uuid.UUID, FakeIndexState] = {}

    async def get(self, tenant_id, document_id):
        return self.rows.get(document_id)

    async def touch(self, tenant_id, document_id):
        state = self.rows.get(document_id)
        if state is None:
            return 0
        state.last_indexed_at = _now()
        return 1


class FakeChunks:
    def __init__(self, store: "FakeStore"):
        self.store = store
        self.rows: dict[uuid.UUID, list[tuple[int, str, list[float]]]] = {}
        self.replace_calls = 0

    async def replace_chunks_with_embeddings(self, tenant_id, document_id, chunks, vectors, checksum):
        if len(chunks) != len(vectors):
            raise ValueError("Chunk/vector count mismatch")
        self.replace_calls += 1
        self.rows[document_id] = [
            (chunk.idx, chunk.text, list(vector)) for chunk, vector in zip(chunks, vectors)
        ]
        self.store.index_state.rows[document_id] = FakeIndexState(
            document_id=document_id, last_checksum=checksum, last_indexed_at=_now()
        )


class FakeSearch:
    def __init__(self, store: "FakeStore"):
        self.store = store
        self.lexical_result = LexicalSearchResult(items=[], total=0)
        self.nearest: list[SearchCandidate] = []
        self.lexical_calls: list[dict] = []
        self.nearest_calls: list[dict] = []
        self.adjacent_calls: list[tuple] = []
        self.adjacent_error: Optional[Exception] = None

    async def lexical_search(self, tenant_id, tsquery, *, limit, offset=0, fallback_chars=280):
        self.lexical_calls.append(
            {"tenant_id": tenant_id, "tsquery": tsquery, "limit": limit, "offset": offset}
        )
        items = self.lexical_result.items[offset : offset + limit]
        return LexicalSearchResult(items=items, total=self.lexical_result.total)

    async def find_nearest_chunks(self, tenant_id, vector, limit):
        self.nearest_calls.append({"tenant_id": tenant_id, "vector": vector, "limit": limit})
        return self.nearest[:limit]

    async def get_adjacent_chunks(self, tenant_id, document_id, center_idx, window):
        self.adjacent_calls.append((document_id, center_idx, window))
        if self.adjacent_error is not None:
            raise self.adjacent_error
        rows = self.store.chunks.rows.get(document_id, [])
        return [
            AdjacentChunk(idx=idx, content=content)
            for idx, content, _ in sorted(rows)
            if center_idx - window <= idx <= center_idx + window
        ]

    async def get_document_details(self, tenant_id, document_ids):
        details = []
        for document_id in document_ids:
            document = self.store.documents.rows.get(document_id)
            if document is not None and document.tenant_id == tenant_id:
                details.append(
                    DocumentDetail(
                        document_id=document.id, title=document.title, content=document.content
                    )
                )
        return details


class FakeCommands:
    def __init__(self):
        self.rows: dict[uuid.UUID, FakeCommand] = {}

    def add(self, command: FakeCommand) -> FakeCommand:
        self.rows[command.id] = command
        return command

    async def get(self, tenant_id, command_id):
        command = self.rows.get(command_id)
        return command if command is not None and command.tenant_id == tenant_id else None

    async def mark_notified(self, tenant_id, command_id, notified_at):
        command = await self.get(tenant_id, command_id)
        if command is None or command.body.get("status") != "scheduled":
            return 0
        command.body = {**command.body, "status": "notified", "notifiedAt": notified_at.isoformat()}
        return 1


class FakeStore:
    def __init__(self):
        self.jobs = FakeJobs(self)
        self.documents = FakeDocuments(self)
        self.index_state = FakeIndexStates()
        self.chunks = FakeChunks(self)
        self.search = FakeSearch(self)
        self.commands = FakeCommands()


class FakeEmbedder:
    def __init__(self, dimensions: int = 4, fail: bool = False):
        self.dimensions = dimensions
        self.fail = fail
        self.calls: list[tuple[list[str], str]] = []

    async def embed(self, texts: Sequence[str], *, input_type: str = "document"):
        self.calls.append((list(texts), input_type))
        if self.fail:
            raise EmbeddingError("provider unavailable")
        return [[float(len(text))] + [0.0] * (self.dimensions - 1) for text in texts]


class FakeReranker:
    """Scores by content; unknown content gets ``default``."""

    def __init__(self, scores: Optional[dict] = None, default: float = 0.9, fail: bool = False):
        self.scores = scores or {}
        self.default = default
        self.fail = fail
        self.calls: list[tuple[str, list[str]]] = []

    async def rerank(self, query: str, documents: Sequence[str]):
        self.calls.append((query, list(documents)))
        if self.fail:
            raise RerankError("rerank model unavailable")
        return [self.scores.get(document, self.default) for document in documents]


class FakeQueue:
    def __init__(self, fail_for: Sequence[uuid.UUID] = ()):
        self.fail_for = set(fail_for)
        self.enqueued: list = []

    def enqueue(self, payload, *, countdown=None):
        job = parse_job_payload(payload)
        if isinstance(job, IndexDocumentJob) and job.document_id in self.fail_for:
            raise ConnectionError("broker unavailable")
        self.enqueued.append(job)
        return f"task-{len(self.enqueued)}"
