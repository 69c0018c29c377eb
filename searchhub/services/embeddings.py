"""
Embedding client used for chunk indexing and query embedding.
"""

import asyncio
import threading
from functools import lru_cache
from typing import Literal, Optional, Protocol, Sequence

from langchain_community.embeddings.fastembed import FastEmbedEmbeddings

from searchhub.errors import EmbeddingError
from searchhub.settings import settings
from searchhub.utils.logging_config import logger

InputType = Literal["document", "query"]


class EmbeddingClient(Protocol):
    async def embed(
        self, texts: Sequence[str], *, input_type: InputType = "document"
    ) -> list[list[float]]:
        """Return one vector per input string, in input order."""
        ...


class FastEmbedEmbeddingClient:
    """
    Local FastEmbed model, loaded in a worker thread on first use and shared
    by the process.
    """

    def __init__(self, model_name: str, dimensions: int):
        self.model_name = model_name
        self.dimensions = dimensions
        self._model: Optional[FastEmbedEmbeddings] = None
        self._lock = threading.Lock()

    def get_model(self) -> FastEmbedEmbeddings:
        if self._model is None:
            with self._lock:
                if self._model is None:  # Double-check after acquiring lock
                    logger.info(f"Initializing embedding model ({self.model_name})...")
                    try:
                        self._model = FastEmbedEmbeddings(model_name=self.model_name)
                        logger.info("Embedding model initialized successfully.")
                    except (RuntimeError, ValueError, OSError) as e:
                        logger.error(f"Failed to initialize embedding model: {e}")
                        raise EmbeddingError(str(e)) from e
        return self._model

    async def embed(
        self, texts: Sequence[str], *, input_type: InputType = "document"
    ) -> list[list[float]]:
        if not texts:
            return []
        model = await asyncio.to_thread(self.get_model)
        try:
            if input_type == "query" and len(texts) == 1:
                vectors = [await model.aembed_query(texts[0])]
            else:
                vectors = await model.aembed_documents(list(texts))
        except Exception as e:
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        return validate_vectors(vectors, expected=len(texts), dimensions=self.dimensions)


def validate_vectors(
    vectors: Sequence[Sequence[float]], *, expected: int, dimensions: int
) -> list[list[float]]:
    """Check the provider returned one correctly sized vector per input."""
    if len(vectors) != expected:
        raise EmbeddingError(
            f"Embedding provider returned {len(vectors)} vectors for {expected} inputs"
        )
    result: list[list[float]] = []
    for i, vector in enumerate(vectors):
        if len(vector) != dimensions:
            raise EmbeddingError(
                f"Vector {i} has {len(vector)} dimensions, expected {dimensions}"
            )
        result.append([float(v) for v in vector])
    return result


@lru_cache(maxsize=1)
def default_embedding_client() -> FastEmbedEmbeddingClient:
    """The process-wide client; the model itself still loads on first use."""
    return FastEmbedEmbeddingClient(settings.EMBEDDING_MODEL, settings.EMBEDDING_DIMENSIONS)
