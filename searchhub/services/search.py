"""
Hybrid search: full-text and vector retrieval fused into one ranking.

Lexical and semantic retrieval both fetch the top ``offset + limit`` documents
(capped at the fusion window) from position 0, the two lists are fused with
weighted RRF, and pagination is applied to the fused list. Semantic
candidates are reranked by a cross-encoder before the relevance thresholds
apply. Documents that matched only semantically get a snippet rebuilt from
their best chunk and its neighbours, cut around the best chunk.
"""

import asyncio
import re
import uuid
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from aiobreaker import CircuitBreaker, CircuitBreakerError
from sqlalchemy.exc import SQLAlchemyError

from searchhub.errors import CircuitOpenError, SearchHubError
from searchhub.repositories import DocumentStore
from searchhub.repositories.types import LexicalSearchResult, SearchCandidate
from searchhub.schemas.search import SearchQuery, SearchResponse, SearchResultItem
from searchhub.services.chunking import stitch_chunks
from searchhub.services.embeddings import EmbeddingClient
from searchhub.services.fusion import FusedHit, fuse
from searchhub.services.reranking import Reranker
from searchhub.settings import Settings
from searchhub.utils.logging_config import logger

_NON_WORD = re.compile(r"[^\w\s]")
UNTITLED = "Untitled document"

T = TypeVar("T")


@dataclass(frozen=True)
class SearchOptions:
    max_window: int = 50
    min_token_length: int = 4
    prefix_min_length: int = 4
    snippet_fallback_chars: int = 280
    snippet_max_chars: int = 220
    rrf_k: int = 60
    lexical_weight: float = 1.0
    semantic_weight: float = 1.0
    semantic_min_similarity: float = 0.35
    weak_match_floor: float = 0.55
    context_window: int = 1
    chunk_overlap: int = 100
    provider_timeout: float = 10.0

    @classmethod
    def from_settings(cls, s: Settings) -> "SearchOptions":
        return cls(
            max_window=s.SEARCH_MAX_WINDOW,
            min_token_length=s.SEARCH_MIN_TOKEN_LENGTH,
            prefix_min_length=s.SEARCH_PREFIX_MIN_LENGTH,
            snippet_fallback_chars=s.SEARCH_SNIPPET_FALLBACK_CHARS,
            snippet_max_chars=s.SEARCH_SNIPPET_MAX_CHARS,
            rrf_k=s.SEARCH_RRF_K,
            lexical_weight=s.SEARCH_LEXICAL_WEIGHT,
            semantic_weight=s.SEARCH_SEMANTIC_WEIGHT,
            semantic_min_similarity=s.SEARCH_SEMANTIC_MIN_SIMILARITY,
            weak_match_floor=s.SEARCH_WEAK_MATCH_FLOOR,
            context_window=s.SEARCH_CONTEXT_WINDOW,
            chunk_overlap=s.CHUNK_OVERLAP,
            provider_timeout=s.BREAKER_CALL_TIMEOUT_SECONDS,
        )


def tokenize(query: str) -> list[str]:
    """Lower-case, replace punctuation with spaces and split on whitespace."""
    return _NON_WORD.sub(" ", query.lower()).split()


def build_tsquery(tokens: Sequence[str], prefix_min_length: int = 4) -> str:
    """
    AND together the tokens as a ``to_tsquery`` expression.

    Tokens of at least ``prefix_min_length`` characters match as prefixes;
    shorter ones only match exactly.
    """
    terms = [f"{t}:*" if len(t) >= prefix_min_length else t for t in tokens if t]
    return " & ".join(terms)


def truncate_snippet(text: str, max_length: int = 220) -> str:
    """Shorten to ``max_length`` at a word boundary, never inside an HTML tag."""
    if len(text) <= max_length:
        return text
    cutoff = text.rfind(" ", 0, max_length + 1)
    if cutoff == -1 or cutoff < max_length * 0.6:
        cutoff = max_length
    candidate = text[:cutoff].rstrip()
    last_open = candidate.rfind("<")
    if last_open > candidate.rfind(">"):
        candidate = candidate[:last_open].rstrip()
    return f"{candidate}..."


def truncate_around(text: str, anchor: int, max_length: int = 220) -> str:
    """
    Cut ``text`` to a ``max_length`` window that starts at ``anchor``.

    The window slides back when fewer than ``max_length`` characters follow
    the anchor, and moves forward to the next word start so it never opens
    mid-word. Cut ends are marked with ``...``.
    """
    if len(text) <= max_length:
        return text
    start = max(0, min(anchor, len(text) - max_length))
    if start > 0 and not text[start - 1].isspace():
        space = text.find(" ", start, start + 20)
        if space != -1:
            start = space + 1
    if start == 0:
        return truncate_snippet(text, max_length)
    return f"...{truncate_snippet(text[start:].lstrip(), max_length)}"


def best_per_document(candidates: Sequence[SearchCandidate]) -> list[SearchCandidate]:
    """Keep the most relevant chunk of each document, most relevant documents first."""
    best: dict[uuid.UUID, SearchCandidate] = {}
    for candidate in candidates:
        current = best.get(candidate.document_id)
        if current is None or candidate.relevance > current.relevance:
            best[candidate.document_id] = candidate
    return sorted(
        best.values(), key=lambda c: (-c.relevance, c.distance, str(c.document_id))
    )


class HybridSearchService:
    def __init__(
        self,
        store: DocumentStore,
        embedder: EmbeddingClient,
        reranker: Reranker,
        breaker: CircuitBreaker,
        options: Optional[SearchOptions] = None,
    ):
        self.store = store
        self.embedder = embedder
        self.reranker = reranker
        self.breaker = breaker
        self.options = options or SearchOptions()

    async def search(self, query: SearchQuery) -> SearchResponse:
        opts = self.options
        page = query.offset // query.limit + 1
        empty = SearchResponse(items=[], total=0, page=page, page_size=query.limit)

        tokens = tokenize(query.q)
        if not any(len(t) >= opts.min_token_length for t in tokens):
            logger.debug(f"search.query.filtered tenant_id={query.tenant_id}")
            return empty

        tsquery = build_tsquery(tokens, opts.prefix_min_length)
        if query.offset + query.limit > opts.max_window:
            # Past the fusion window only the store can page.
            lexical = await self._lexical(query.tenant_id, tsquery, query.limit, query.offset)
            return self._lexical_response(lexical, 0, query.limit, page, degraded=False)

        window = query.offset + query.limit
        lexical = await self._lexical(query.tenant_id, tsquery, window, 0)
        semantic = await self._semantic(query.tenant_id, query.q, window)
        if semantic is None:
            return self._lexical_response(
                lexical, query.offset, query.limit, page, degraded=True
            )

        semantic = [c for c in semantic if c.relevance >= opts.semantic_min_similarity]
        if not lexical.items and semantic and semantic[0].relevance < opts.weak_match_floor:
            logger.debug(
                f"search.semantic.weak tenant_id={query.tenant_id} "
                f"top_relevance={semantic[0].relevance:.3f}"
            )
            return empty.model_copy(update={"no_strong_matches": True})

        fused = fuse(
            lexical.items,
            semantic,
            k=opts.rrf_k,
            lexical_weight=opts.lexical_weight,
            semantic_weight=opts.semantic_weight,
        )
        page_hits = fused[query.offset : query.offset + query.limit]
        items = await self._render(query.tenant_id, page_hits)
        return SearchResponse(
            items=items,
            total=max(lexical.total, len(fused)),
            page=page,
            page_size=query.limit,
        )

    async def _lexical(
        self, tenant_id: uuid.UUID, tsquery: str, limit: int, offset: int
    ) -> LexicalSearchResult:
        return await self.store.search.lexical_search(
            tenant_id,
            tsquery,
            limit=limit,
            offset=offset,
            fallback_chars=self.options.snippet_fallback_chars,
        )

    async def _semantic(
        self, tenant_id: uuid.UUID, q: str, window: int
    ) -> Optional[list[SearchCandidate]]:
        """
        Best reranked chunk per document, or None when semantic retrieval is
        unavailable.
        """
        recall = min(window * 3, self.options.max_window)
        try:
            vectors = await self._guarded(
                lambda: self.embedder.embed([q], input_type="query")
            )
            candidates = await self.store.search.find_nearest_chunks(
                tenant_id, vectors[0], recall
            )
            if not candidates:
                return []
            scores = await self._guarded(
                lambda: self.reranker.rerank(q, [c.content for c in candidates])
            )
        except CircuitOpenError as e:
            logger.info(f"search.semantic.skipped: {e}")
            return None
        except (SearchHubError, SQLAlchemyError, asyncio.TimeoutError) as e:
            logger.warning(f"search.semantic.failed, falling back to lexical: {e}")
            return None

        reranked = [replace(c, rerank_score=s) for c, s in zip(candidates, scores)]
        return best_per_document(reranked)[:window]

    async def _guarded(self, func: Callable[[], Awaitable[T]]) -> T:
        """Run a model provider call through the breaker under the call timeout."""
        timeout = self.options.provider_timeout
        try:
            return await self.breaker.call_async(
                lambda: asyncio.wait_for(func(), timeout=timeout)
            )
        except CircuitBreakerError as e:
            raise CircuitOpenError(f"Circuit '{self.breaker.name}' is open") from e

    def _lexical_response(
        self,
        lexical: LexicalSearchResult,
        offset: int,
        limit: int,
        page: int,
        *,
        degraded: bool,
    ) -> SearchResponse:
        items = [
            SearchResultItem(
                id=hit.document_id,
                title=hit.title,
                snippet=self._truncate(hit.snippet),
                score=round(hit.score, 6),
            )
            for hit in lexical.items[offset : offset + limit]
        ]
        return SearchResponse(
            items=items,
            total=lexical.total,
            page=page,
            page_size=limit,
            degraded=degraded,
        )

    async def _render(
        self, tenant_id: uuid.UUID, hits: Sequence[FusedHit]
    ) -> list[SearchResultItem]:
        semantic_only = [h for h in hits if h.lexical is None and h.semantic is not None]
        details = await self.store.search.get_document_details(
            tenant_id, [h.document_id for h in semantic_only]
        )
        titles = {d.document_id: d.title for d in details}
        contexts = await asyncio.gather(
            *(self._context_snippet(tenant_id, h.semantic) for h in semantic_only)
        )
        snippets = {h.document_id: s for h, s in zip(semantic_only, contexts)}

        items = []
        for hit in hits:
            if hit.lexical is not None:
                title = hit.lexical.title
                snippet = self._truncate(hit.lexical.snippet)
            else:
                title = titles.get(hit.document_id, UNTITLED)
                snippet = snippets.get(hit.document_id) or None
            items.append(
                SearchResultItem(
                    id=hit.document_id,
                    title=title,
                    snippet=snippet,
                    score=round(hit.score, 6),
                )
            )
        return items

    async def _context_snippet(self, tenant_id: uuid.UUID, candidate: SearchCandidate) -> str:
        """
        The best chunk stitched together with its neighbours, in document
        order, cut to the snippet length starting from the best chunk.
        """
        max_chars = self.options.snippet_max_chars
        window = self.options.context_window
        if window <= 0 or (candidate.total_chunks is not None and candidate.total_chunks <= 1):
            return truncate_snippet(candidate.content, max_chars)
        try:
            neighbours = await self.store.search.get_adjacent_chunks(
                tenant_id, candidate.document_id, candidate.idx, window
            )
        except SQLAlchemyError as e:
            logger.warning(
                f"search.context.failed document_id={candidate.document_id}, "
                f"using the lone chunk: {e}"
            )
            return truncate_snippet(candidate.content, max_chars)
        if not neighbours:
            return truncate_snippet(candidate.content, max_chars)

        overlap = self.options.chunk_overlap
        leading = [n.content for n in neighbours if n.idx < candidate.idx]
        trailing = [n.content for n in neighbours if n.idx > candidate.idx]
        # Stitching only trims the head of each later chunk, so the best chunk
        # ends the stitched prefix intact.
        through_best = stitch_chunks(leading + [candidate.content], max_overlap=overlap)
        anchor = len(through_best) - len(candidate.content)
        stitched = stitch_chunks(
            leading + [candidate.content] + trailing, max_overlap=overlap
        )
        return truncate_around(stitched, anchor, max_chars)

    def _truncate(self, snippet: Optional[str]) -> Optional[str]:
        if not snippet:
            return None
        return truncate_snippet(snippet, self.options.snippet_max_chars)
