"""
Cross-encoder reranking of semantic candidates.

Scores are squashed into (0, 1) with a sigmoid so the similarity thresholds
apply to them directly.
"""

import asyncio
import math
import threading
from functools import lru_cache
from typing import Optional, Protocol, Sequence

from fastembed.rerank.cross_encoder import TextCrossEncoder

from searchhub.errors import RerankError
from searchhub.settings import settings
from searchhub.utils.logging_config import logger


class Reranker(Protocol):
    async def rerank(self, query: str, documents: Sequence[str]) -> list[float]:
        """Return one relevance score in (0, 1) per document, in input order."""
        ...


def sigmoid(score: float) -> float:
    if score >= 0:
        return 1.0 / (1.0 + math.exp(-score))
    z = math.exp(score)
    return z / (1.0 + z)


class FastEmbedReranker:
    """Local FastEmbed cross-encoder, loaded off the event loop on first use."""

    def __init__(self, model_name: str):
        self.model_name = model_name
        self._model: Optional[TextCrossEncoder] = None
        self._lock = threading.Lock()

    def get_model(self) -> TextCrossEncoder:
        if self._model is None:
            with self._lock:
                if self._model is None:
                    logger.info(f"Initializing rerank model ({self.model_name})...")
                    try:
                        self._model = TextCrossEncoder(model_name=self.model_name)
                    except (RuntimeError, ValueError, OSError) as e:
                        logger.error(f"Failed to initialize rerank model: {e}")
                        raise RerankError(str(e)) from e
        return self._model

    def _score(self, query: str, documents: list[str]) -> list[float]:
        return [float(s) for s in self.get_model().rerank(query, documents)]

    async def rerank(self, query: str, documents: Sequence[str]) -> list[float]:
        if not documents:
            return []
        try:
            raw = await asyncio.to_thread(self._score, query, list(documents))
        except RerankError:
            raise
        except Exception as e:
            raise RerankError(f"Rerank request failed: {e}") from e
        if len(raw) != len(documents):
            raise RerankError(
                f"Rerank model returned {len(raw)} scores for {len(documents)} documents"
            )
        return [sigmoid(s) for s in raw]


@lru_cache(maxsize=1)
def default_reranker() -> FastEmbedReranker:
    return FastEmbedReranker(settings.RERANK_MODEL)
