"""Error taxonomy for indexing and search."""


class SearchHubError(Exception):
    """Base class for errors raised by the indexing and search core."""


class TransientError(SearchHubError):
    """A failure that may succeed on a later attempt (provider or network)."""


class EmbeddingError(TransientError):
    """The embedding provider failed or returned an unusable response."""


class PermanentIndexingError(SearchHubError):
    """Retrying without a content change would fail the same way."""


class DocumentNotFoundError(PermanentIndexingError):
    def __init__(self, tenant_id: str, document_id: str):
        super().__init__(f"Document {document_id} not found for tenant {tenant_id}")
        self.tenant_id = tenant_id
        self.document_id = document_id


class ChunkLimitExceededError(PermanentIndexingError):
    def __init__(self, chunk_count: int, limit: int):
        super().__init__(
            f"Chunk limit exceeded: chunk count {chunk_count} exceeds limit {limit}"
        )
        self.chunk_count = chunk_count
        self.limit = limit


class InvalidJobPayloadError(SearchHubError):
    """A job payload failed validation at the queue boundary."""


def is_retryable(error: BaseException) -> bool:
    """Permanent and payload errors are not worth another attempt."""
    return not isinstance(error, (PermanentIndexingError, InvalidJobPayloadError))


class CircuitOpenError(TransientError):
    """A call was refused because the guarded dependency is failing."""


class RerankError(TransientError):
    """The rerank model failed or returned an unusable response."""
