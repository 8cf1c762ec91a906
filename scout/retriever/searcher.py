"""
Retrieval Engine

Exhaustive similarity search over the product catalog:
embed query -> filter catalog -> embed eligible items -> score -> threshold
-> sort -> top-k.

Item embeddings are recomputed on every call unless a CatalogEmbeddingIndex
is attached; the index is the precompute/cache hook for deployments where
per-call item embedding is too slow.
"""

import hashlib
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..common.embedding_service import EmbeddingService
from ..common.errors import EmbeddingUnavailable, InvalidArgument
from ..common.metrics import MetricsSink, NullMetrics
from ..common.schemas import CatalogItem, RetrievalFilter
from ..common.schemas.catalog import flatten_specs
from .catalog_store import CatalogStore
from .filters import CatalogFilter
from .similarity import batch_cosine_similarity

logger = logging.getLogger("scout.retriever.searcher")


@dataclass
class RetrievalResult:
    """A single ranked catalog hit"""
    item: CatalogItem
    similarity: float
    rank: int

    @property
    def item_id(self) -> str:
        return self.item.id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item": self.item.model_dump(),
            "summary": self.item.summary,
            "similarity": self.similarity,
            "rank": self.rank,
        }


def _text_fingerprint(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class CatalogEmbeddingIndex:
    """
    Precomputed item embeddings, keyed by item id.

    An entry is only reused while the item's search_text is unchanged.
    """

    def __init__(self) -> None:
        self._vectors: Dict[str, tuple] = {}

    def __len__(self) -> int:
        return len(self._vectors)

    def get(self, item: CatalogItem) -> Optional[List[float]]:
        entry = self._vectors.get(item.id)
        if entry is None:
            return None
        fingerprint, vector = entry
        if fingerprint != _text_fingerprint(item.search_text):
            return None
        return vector

    def put(self, item: CatalogItem, vector: List[float]) -> None:
        self._vectors[item.id] = (_text_fingerprint(item.search_text), list(vector))

    async def precompute(
        self,
        items: List[CatalogItem],
        embedding_service: EmbeddingService,
        timeout: float = 60.0,
    ) -> int:
        """Embed every item not already indexed; returns how many were embedded."""
        missing = [item for item in items if self.get(item) is None]
        if not missing:
            return 0
        vectors = await embedding_service.aembed([i.search_text for i in missing], timeout=timeout)
        for item, vector in zip(missing, vectors):
            self.put(item, vector)
        logger.info("Precomputed embeddings for %d catalog items", len(missing))
        return len(missing)


class RetrievalEngine:
    """
    Top-K similarity search over catalog items.

    Hard failures:
    - InvalidArgument: blank query or top_k <= 0 (before any external call)
    - EmbeddingUnavailable: query or item embedding failed; nothing partial
      is returned
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        catalog_store: CatalogStore,
        *,
        embedding_timeout: float = 10.0,
        index: Optional[CatalogEmbeddingIndex] = None,
        metrics: Optional[MetricsSink] = None,
    ):
        """
        Initialize retrieval engine.

        Args:
            embedding_service: For embedding queries and catalog items
            catalog_store: Read-only item source
            embedding_timeout: Deadline for each embedding call (seconds)
            index: Optional precomputed item embeddings
            metrics: Metrics sink (defaults to a no-op sink)
        """
        self._embedding = embedding_service
        self._store = catalog_store
        self._timeout = embedding_timeout
        self._index = index
        self._metrics = metrics or NullMetrics()

    @property
    def index(self) -> Optional[CatalogEmbeddingIndex]:
        return self._index

    async def precompute_catalog(self) -> int:
        """Warm the embedding index with every catalog item."""
        if self._index is None:
            self._index = CatalogEmbeddingIndex()
        try:
            return await self._index.precompute(
                self._store.list_items(None), self._embedding, timeout=self._timeout * 6
            )
        except EmbeddingUnavailable:
            raise
        except Exception as e:
            raise EmbeddingUnavailable(f"catalog precompute failed: {e}") from e

    async def retrieve(
        self,
        query: str,
        retrieval_filter: Optional[RetrievalFilter] = None,
        top_k: int = 5,
        min_similarity: float = 0.5,
    ) -> List[RetrievalResult]:
        """
        Find the catalog items most similar to the query.

        Args:
            query: Natural-language query
            retrieval_filter: Structural constraints (None = unconstrained)
            top_k: Maximum number of results (must be positive)
            min_similarity: Results scoring below this are dropped

        Returns:
            Results sorted by descending similarity, ties by item id ascending
        """
        if not query or not query.strip():
            raise InvalidArgument("query must be a non-empty string")
        if top_k <= 0:
            raise InvalidArgument(f"top_k must be positive, got {top_k}")
        if min_similarity is None or math.isnan(min_similarity):
            raise InvalidArgument("min_similarity must be a number")

        self._metrics.incr("retrieval.requests")

        query_vector = await self._embed_query(query.strip())

        eligible = CatalogFilter.apply(self._store.list_items(retrieval_filter), retrieval_filter)
        if not eligible:
            logger.info("No catalog items eligible for filter %s", retrieval_filter)
            self._metrics.observe("retrieval.results", 0)
            return []

        item_vectors = await self._item_vectors(eligible)
        scores = batch_cosine_similarity(query_vector, item_vectors)

        scored = [
            (item, score)
            for item, score in zip(eligible, scores)
            if score >= min_similarity
        ]
        scored.sort(key=lambda pair: (-pair[1], pair[0].id))

        results = [
            RetrievalResult(item=item, similarity=score, rank=rank)
            for rank, (item, score) in enumerate(scored[:top_k], 1)
        ]
        self._metrics.observe("retrieval.results", len(results))
        logger.debug(
            "Retrieved %d/%d items for %r (threshold %.2f)",
            len(results), len(eligible), query, min_similarity,
        )
        return results

    async def _embed_query(self, query: str) -> List[float]:
        try:
            return await self._embedding.aembed_single(query, timeout=self._timeout)
        except EmbeddingUnavailable:
            raise
        except Exception as e:
            raise EmbeddingUnavailable(f"query embedding failed: {e}") from e

    async def _item_vectors(self, items: List[CatalogItem]) -> List[List[float]]:
        vectors: List[Optional[List[float]]] = [None] * len(items)
        missing = []
        for pos, item in enumerate(items):
            cached = self._index.get(item) if self._index is not None else None
            if cached is None:
                missing.append(pos)
            else:
                vectors[pos] = cached

        if missing:
            try:
                fresh = await self._embedding.aembed(
                    [items[pos].search_text for pos in missing], timeout=self._timeout
                )
            except EmbeddingUnavailable:
                raise
            except Exception as e:
                raise EmbeddingUnavailable(f"catalog embedding failed: {e}") from e
            if len(fresh) != len(missing):
                raise EmbeddingUnavailable("embedding provider returned an incomplete batch")
            for pos, vector in zip(missing, fresh):
                vectors[pos] = vector

        return vectors


def format_results_context(results: List[RetrievalResult], max_specs: int = 6) -> str:
    """Render retrieval results as a numbered, citable context block."""
    blocks = []
    for i, r in enumerate(results, 1):
        item = r.item
        lines = [f"[{i}] {item.name} (id: {item.id}) - RM{item.price:g}"]
        details = [d for d in (item.brand, item.category, item.tier) if d]
        if details:
            lines.append(f"- {' | '.join(details)}")
        spec_lines = flatten_specs(item.specs)
        if spec_lines:
            lines.append(f"- Specs: {'; '.join(spec_lines[:max_specs])}")
        if item.rating is not None:
            lines.append(f"- Rating: {item.rating:g}/5")
        lines.append(f"- Similarity Score: {r.similarity * 100:.1f}%")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
