"""
Query Decomposer

Splits a complex product-research question into 1..N specific,
independently answerable sub-questions using the completion service.

Decomposition never fails a request: any completion or parse problem falls
back to researching the original query directly.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..common.errors import CompletionUnavailable, InvalidArgument
from ..common.llm_client import LLMClient
from ..common.llm_utils import ParseFailed, parse_structured
from ..common.metrics import MetricsSink, NullMetrics

logger = logging.getLogger("scout.retriever.decomposer")

FALLBACK_RATIONALE = "Direct research without decomposition"


@dataclass
class Decomposition:
    """Sub-questions produced for one query"""
    sub_questions: List[str]
    rationale: str
    used_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subQuestions": list(self.sub_questions),
            "reasoning": self.rationale,
            "usedFallback": self.used_fallback,
        }


DECOMPOSE_PROMPT = """You are a research assistant helping to break down complex product questions.

USER QUERY: "{query}"

TASK: Decompose this query into 2-{max_sub_questions} specific sub-questions that need to be answered to fully address the user's question.

RULES:
- Each sub-question should be specific and answerable on its own
- Sub-questions should build on each other logically
- Focus on actionable information (specs, prices, comparisons)
- Keep sub-questions concise (1 sentence each)

FORMAT YOUR RESPONSE AS JSON:
{{
  "subQuestions": [
    "Sub-question 1?",
    "Sub-question 2?"
  ],
  "reasoning": "Brief explanation of how these sub-questions address the main query"
}}

RESPOND WITH ONLY THE JSON:"""


class QueryDecomposer:
    """
    Decomposes queries into sub-questions via the completion service.

    Accepted payload shapes (after parse_structured):
        {"subQuestions": [str, ...], "reasoning": str}
        {"sub_questions": [str, ...], "rationale": str}
    """

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        timeout: float = 30.0,
        max_tokens: int = 512,
        metrics: Optional[MetricsSink] = None,
    ):
        self._llm = llm_client
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._metrics = metrics or NullMetrics()

    async def decompose(self, query: str, max_sub_questions: int = 4) -> Decomposition:
        """
        Decompose a query into sub-questions.

        Args:
            query: The user's (possibly multi-faceted) question
            max_sub_questions: Upper bound on returned sub-questions

        Returns:
            Decomposition with 1..max_sub_questions sub-questions
        """
        if not query or not query.strip():
            raise InvalidArgument("query must be a non-empty string")
        if max_sub_questions < 1:
            raise InvalidArgument(f"max_sub_questions must be >= 1, got {max_sub_questions}")

        query = query.strip()

        if not self._llm.is_available:
            return self._fallback(query, "completion service not available")

        prompt = DECOMPOSE_PROMPT.format(query=query, max_sub_questions=max(2, max_sub_questions))
        try:
            raw = await self._llm.agenerate(prompt, max_tokens=self._max_tokens, timeout=self._timeout)
        except CompletionUnavailable as e:
            return self._fallback(query, str(e))

        parsed = parse_structured(raw)
        if isinstance(parsed, ParseFailed):
            return self._fallback(query, "response contained no JSON payload")

        sub_questions, rationale = self._extract(parsed.value)
        if not sub_questions:
            return self._fallback(query, "payload had no usable sub-questions")

        if len(sub_questions) > max_sub_questions:
            logger.debug("Truncating %d sub-questions to %d", len(sub_questions), max_sub_questions)
            sub_questions = sub_questions[:max_sub_questions]

        logger.info("Decomposed query into %d sub-questions", len(sub_questions))
        return Decomposition(sub_questions=sub_questions, rationale=rationale)

    @staticmethod
    def _extract(value: Any) -> tuple:
        if not isinstance(value, dict):
            return [], ""

        raw_questions = value.get("subQuestions", value.get("sub_questions"))
        if not isinstance(raw_questions, list):
            return [], ""

        questions = []
        for q in raw_questions:
            if isinstance(q, str) and q.strip():
                questions.append(q.strip())

        rationale = value.get("reasoning", value.get("rationale", ""))
        if not isinstance(rationale, str):
            rationale = ""
        return questions, rationale.strip()

    def _fallback(self, query: str, reason: str) -> Decomposition:
        logger.warning("Query decomposition degraded (%s); researching query directly", reason)
        self._metrics.incr("decomposition.fallback")
        return Decomposition(sub_questions=[query], rationale=FALLBACK_RATIONALE, used_fallback=True)
