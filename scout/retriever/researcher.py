"""
Sub-Question Researcher

Answers one sub-question: retrieve a few catalog items, then ask the
completion service for a short answer grounded in those items only.

Failures are contained: research() always returns a ResearchFinding, with
failed=True and no sources when anything goes wrong.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..common.errors import CompletionUnavailable, ScoutError
from ..common.llm_client import LLMClient
from ..common.metrics import MetricsSink, NullMetrics
from ..common.schemas import RetrievalFilter
from .searcher import RetrievalEngine, format_results_context

logger = logging.getLogger("scout.retriever.researcher")

UNABLE_TO_RESEARCH = "Unable to research this sub-question at the moment."


@dataclass(frozen=True)
class SubQuestion:
    """A sub-question and its position in the decomposition"""
    text: str
    index: int


@dataclass(frozen=True)
class SourceRef:
    """A catalog item cited by a finding"""
    item_id: str
    name: str
    similarity: float

    def to_dict(self) -> Dict[str, Any]:
        return {"itemId": self.item_id, "name": self.name, "similarity": self.similarity}


@dataclass
class ResearchFinding:
    """Answer to one sub-question"""
    sub_question: SubQuestion
    answer: str
    sources: List[SourceRef] = field(default_factory=list)
    failed: bool = False
    error: Optional[str] = None

    @property
    def question(self) -> str:
        return self.sub_question.text

    @classmethod
    def failure(cls, sub_question: SubQuestion, error: str) -> "ResearchFinding":
        return cls(
            sub_question=sub_question,
            answer=UNABLE_TO_RESEARCH,
            sources=[],
            failed=True,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "question": self.sub_question.text,
            "index": self.sub_question.index,
            "answer": self.answer,
            "sources": [s.to_dict() for s in self.sources],
            "failed": self.failed,
        }
        if self.error:
            data["error"] = self.error
        return data


RESEARCH_PROMPT = """Answer this specific question based on product catalog data:

QUESTION: {question}

RELEVANT ITEMS:
{items}

INSTRUCTIONS:
- Provide a concise, factual answer (2-3 sentences)
- Use ONLY the items listed above; do not mention any other product
- Cite item names when relevant
- Focus on answering the specific question asked

YOUR ANSWER:"""


class SubQuestionResearcher:
    """Researches one sub-question against the catalog."""

    def __init__(
        self,
        engine: RetrievalEngine,
        llm_client: LLMClient,
        *,
        top_k: int = 3,
        min_similarity: float = 0.5,
        timeout: float = 30.0,
        max_tokens: int = 300,
        metrics: Optional[MetricsSink] = None,
    ):
        """
        Initialize researcher.

        Args:
            engine: Retrieval engine used for grounding
            llm_client: Completion service for the short answer
            top_k: Items retrieved per sub-question
            min_similarity: Retrieval threshold per sub-question
            timeout: Deadline for the completion call (seconds)
        """
        self._engine = engine
        self._llm = llm_client
        self._top_k = top_k
        self._min_similarity = min_similarity
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._metrics = metrics or NullMetrics()

    async def research(
        self,
        sub_question: SubQuestion,
        retrieval_filter: Optional[RetrievalFilter] = None,
    ) -> ResearchFinding:
        """
        Research one sub-question.

        Never raises (cancellation excepted); failures come back as
        ResearchFinding(failed=True).
        """
        logger.debug("Researching sub-question %d: %s", sub_question.index, sub_question.text)

        try:
            results = await self._engine.retrieve(
                sub_question.text,
                retrieval_filter,
                top_k=self._top_k,
                min_similarity=self._min_similarity,
            )
        except ScoutError as e:
            return self._failed(sub_question, f"retrieval failed: {e}")
        except Exception as e:
            logger.error("Unexpected retrieval error for sub-question %d", sub_question.index, exc_info=True)
            return self._failed(sub_question, f"retrieval failed: {e}")

        if not results:
            return self._failed(sub_question, "no relevant catalog items found")

        prompt = RESEARCH_PROMPT.format(
            question=sub_question.text,
            items=format_results_context(results),
        )
        try:
            answer = await self._llm.agenerate(prompt, max_tokens=self._max_tokens, timeout=self._timeout)
        except CompletionUnavailable as e:
            return self._failed(sub_question, str(e))

        answer = (answer or "").strip()
        if not answer:
            return self._failed(sub_question, "completion returned an empty answer")

        return ResearchFinding(
            sub_question=sub_question,
            answer=answer,
            sources=[
                SourceRef(item_id=r.item.id, name=r.item.name, similarity=r.similarity)
                for r in results
            ],
        )

    def _failed(self, sub_question: SubQuestion, error: str) -> ResearchFinding:
        logger.warning("Sub-question %d failed: %s", sub_question.index, error)
        self._metrics.incr("research.subquestion.failed")
        return ResearchFinding.failure(sub_question, error)
