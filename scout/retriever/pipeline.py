"""
Research Pipeline

Public entry points for Scout:
- retrieve(): single-pass similarity search
- answer(): single-pass search plus one grounded completion
- research(): decompose -> research sub-questions in parallel -> synthesize

build_pipeline() wires every component from a ScoutConfig.
"""

import copy
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..common.config import ScoutConfig
from ..common.embedding_service import EmbeddingService
from ..common.errors import CompletionUnavailable, InvalidArgument
from ..common.llm_client import LLMClient
from ..common.metrics import MetricsSink, NullMetrics
from ..common.result_cache import ResultCache, make_cache_key
from ..common.schemas import RetrievalFilter
from .catalog_store import CatalogStore, JsonCatalogStore
from .decomposer import Decomposition, QueryDecomposer
from .orchestrator import ResearchOrchestrator
from .researcher import ResearchFinding, SubQuestion, SubQuestionResearcher
from .searcher import CatalogEmbeddingIndex, RetrievalEngine, RetrievalResult, format_results_context
from .synthesizer import SynthesisResult, Synthesizer

logger = logging.getLogger("scout.retriever.pipeline")


@dataclass
class ResearchMetadata:
    duration_ms: int
    step_count: int
    distinct_items_cited: int
    confidence: int
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "durationMs": self.duration_ms,
            "steps": self.step_count,
            "distinctItemsCited": self.distinct_items_cited,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
        }


@dataclass
class DeepResearchResult:
    """Full output of one deep research run"""
    query: str
    decomposition: Decomposition
    findings: List[ResearchFinding]
    synthesis: SynthesisResult
    metadata: ResearchMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "decomposition": self.decomposition.to_dict(),
            "findings": [f.to_dict() for f in self.findings],
            "synthesis": self.synthesis.to_dict(),
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class GroundedAnswer:
    """Single-pass retrieval plus an optional generated response"""
    query: str
    results: List[RetrievalResult] = field(default_factory=list)
    response: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "results": [r.to_dict() for r in self.results],
            "totalMatches": len(self.results),
            "response": self.response,
        }


ANSWER_PROMPT = """You are a friendly product advisor. A user asked: "{query}"

These are the most relevant items from the catalog (sorted by relevance):

{context}

INSTRUCTIONS:
1. Answer the user's question based on the items above only
2. Recommend the most suitable options and explain why
3. Cite item names when making recommendations
4. If comparing, highlight key differences
5. Keep it concise but helpful (2-3 paragraphs max)

YOUR RESPONSE:"""


class ResearchPipeline:
    """
    Facade over retrieval and deep research.

    Only InvalidArgument and EmbeddingUnavailable escape retrieve()/answer();
    research() only raises InvalidArgument.
    """

    def __init__(
        self,
        config: ScoutConfig,
        *,
        engine: RetrievalEngine,
        llm_client: LLMClient,
        decomposer: QueryDecomposer,
        orchestrator: ResearchOrchestrator,
        synthesizer: Synthesizer,
        cache: Optional[ResultCache] = None,
        metrics: Optional[MetricsSink] = None,
    ):
        self.config = config
        self.engine = engine
        self.llm_client = llm_client
        self.decomposer = decomposer
        self.orchestrator = orchestrator
        self.synthesizer = synthesizer
        self.cache = cache
        self.metrics = metrics or NullMetrics()

    async def warm_up(self) -> int:
        """Precompute catalog embeddings when enabled; returns items embedded."""
        if not self.config.retriever.precompute_catalog_embeddings:
            return 0
        return await self.engine.precompute_catalog()

    async def retrieve(
        self,
        query: str,
        retrieval_filter: Optional[RetrievalFilter] = None,
        top_k: Optional[int] = None,
        min_similarity: Optional[float] = None,
    ) -> List[RetrievalResult]:
        """Single-pass retrieval with defaults from the retriever config."""
        return await self.engine.retrieve(
            query,
            retrieval_filter,
            top_k=self.config.retriever.top_k if top_k is None else top_k,
            min_similarity=(
                self.config.retriever.min_similarity if min_similarity is None else min_similarity
            ),
        )

    async def answer(
        self,
        query: str,
        retrieval_filter: Optional[RetrievalFilter] = None,
        top_k: Optional[int] = None,
        min_similarity: Optional[float] = None,
    ) -> GroundedAnswer:
        """Retrieve, then generate one response grounded in the results."""
        results = await self.retrieve(
            query, retrieval_filter, top_k=top_k, min_similarity=min_similarity
        )
        result = GroundedAnswer(query=query, results=results)

        if not results:
            logger.info("No results to ground a response for %r", query)
            return result
        if not self.llm_client.is_available:
            logger.warning("Completion service not available, returning results only")
            return result

        prompt = ANSWER_PROMPT.format(query=query, context=format_results_context(results))
        try:
            response = await self.llm_client.agenerate(
                prompt,
                max_tokens=1024,
                timeout=self.config.research.completion_timeout,
            )
        except CompletionUnavailable as e:
            logger.warning("Response generation failed: %s", e)
            return result

        result.response = response.strip() or None
        return result

    async def research(
        self,
        query: str,
        retrieval_filter: Optional[RetrievalFilter] = None,
        max_sub_questions: Optional[int] = None,
    ) -> DeepResearchResult:
        """
        Run deep research on a query.

        Args:
            query: The user's complex question
            retrieval_filter: Constraints applied to every sub-question's retrieval
            max_sub_questions: Decomposition bound (defaults to config)

        Returns:
            DeepResearchResult (a private copy of the cached result when an
            identical request completed within the TTL window)
        """
        if not query or not query.strip():
            raise InvalidArgument("query must be a non-empty string")
        if max_sub_questions is None:
            max_sub_questions = self.config.research.max_sub_questions
        if max_sub_questions < 1:
            raise InvalidArgument(f"max_sub_questions must be >= 1, got {max_sub_questions}")

        query = query.strip()

        if self.cache is None:
            return await self._run_research(query, retrieval_filter, max_sub_questions)

        key = make_cache_key(
            query,
            retrieval_filter.to_dict() if retrieval_filter else None,
            max_sub_questions=max_sub_questions,
        )
        computed = False

        async def compute() -> DeepResearchResult:
            nonlocal computed
            computed = True
            return await self._run_research(query, retrieval_filter, max_sub_questions)

        result = await self.cache.get_or_compute(key, compute)
        self.metrics.incr("cache.miss" if computed else "cache.hit")
        # the cached entry is shared; callers get their own copy
        return copy.deepcopy(result)

    async def _run_research(
        self,
        query: str,
        retrieval_filter: Optional[RetrievalFilter],
        max_sub_questions: int,
    ) -> DeepResearchResult:
        start = time.perf_counter()
        logger.info("Starting research for %r", query)

        decomposition = await self.decomposer.decompose(query, max_sub_questions)
        sub_questions = [
            SubQuestion(text=text, index=i) for i, text in enumerate(decomposition.sub_questions)
        ]
        findings = await self.orchestrator.research_all(sub_questions, retrieval_filter)
        synthesis = await self.synthesizer.synthesize(query, findings)

        duration_ms = int((time.perf_counter() - start) * 1000)
        self.metrics.observe("research.duration_ms", duration_ms)
        logger.info("Research completed in %d ms (%d findings)", duration_ms, len(findings))

        return DeepResearchResult(
            query=query,
            decomposition=decomposition,
            findings=findings,
            synthesis=synthesis,
            metadata=ResearchMetadata(
                duration_ms=duration_ms,
                step_count=len(findings) + 2,
                distinct_items_cited=synthesis.distinct_items_cited,
                confidence=synthesis.confidence,
                timestamp=datetime.now(timezone.utc).isoformat(),
            ),
        )


def build_pipeline(
    config: ScoutConfig,
    *,
    llm_client: Optional[LLMClient] = None,
    embedding_service: Optional[EmbeddingService] = None,
    catalog_store: Optional[CatalogStore] = None,
    metrics: Optional[MetricsSink] = None,
) -> ResearchPipeline:
    """Wire a ResearchPipeline from configuration; explicit arguments win."""
    metrics = metrics or NullMetrics()

    if embedding_service is None:
        embedding_service = EmbeddingService(
            provider=config.embedding.provider,
            model=config.embedding.model,
            api_key=config.embedding_api_key or None,
        )
    if llm_client is None:
        llm_client = LLMClient.from_config(config.llm)
    if catalog_store is None:
        catalog_store = JsonCatalogStore(config.catalog.path)

    engine = RetrievalEngine(
        embedding_service,
        catalog_store,
        embedding_timeout=config.embedding.timeout,
        index=CatalogEmbeddingIndex() if config.retriever.precompute_catalog_embeddings else None,
        metrics=metrics,
    )
    research = config.research
    researcher = SubQuestionResearcher(
        engine,
        llm_client,
        top_k=research.sub_question_top_k,
        min_similarity=research.sub_question_min_similarity,
        timeout=research.completion_timeout,
        metrics=metrics,
    )
    cache = None
    if config.cache.enabled:
        cache = ResultCache(ttl_seconds=config.cache.ttl_seconds, max_entries=config.cache.max_entries)

    return ResearchPipeline(
        config,
        engine=engine,
        llm_client=llm_client,
        decomposer=QueryDecomposer(llm_client, timeout=research.completion_timeout, metrics=metrics),
        orchestrator=ResearchOrchestrator(
            researcher,
            max_concurrency=research.max_concurrency,
            task_timeout=research.task_timeout,
        ),
        synthesizer=Synthesizer(llm_client, timeout=research.completion_timeout, metrics=metrics),
        cache=cache,
        metrics=metrics,
    )
