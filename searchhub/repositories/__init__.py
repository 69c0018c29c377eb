from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from searchhub.repositories.chunks import ChunkRepository
from searchhub.repositories.commands import DocumentCommandRepository
from searchhub.repositories.documents import DocumentRepository
from searchhub.repositories.index_state import IndexStateRepository
from searchhub.repositories.jobs import IndexJobRepository
from searchhub.repositories.search import SearchRepository


class DocumentStore:
    """Groups the repositories that share one session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.documents = DocumentRepository(session_factory)
        self.chunks = ChunkRepository(session_factory)
        self.index_state = IndexStateRepository(session_factory)
        self.jobs = IndexJobRepository(session_factory)
        self.search = SearchRepository(session_factory)
        self.commands = DocumentCommandRepository(session_factory)


__all__ = ["DocumentStore"]
