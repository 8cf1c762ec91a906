"""
Synthesizer

Combines sub-question findings into one final answer with a confidence
score (1-10). When the completion service cannot be used, the findings are
concatenated into a readable fallback answer instead.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..common.errors import CompletionUnavailable
from ..common.llm_client import LLMClient
from ..common.metrics import MetricsSink, NullMetrics
from .researcher import ResearchFinding

logger = logging.getLogger("scout.retriever.synthesizer")

DEFAULT_CONFIDENCE = 8
FALLBACK_CONFIDENCE = 5
NO_FINDINGS_ANSWER = "No research findings were available for this query."

_CONFIDENCE_RE = re.compile(r"confidence[:\s]+(\d+)", re.IGNORECASE)


@dataclass
class SynthesisResult:
    """Final answer built from all findings"""
    answer: str
    confidence: int  # 1 to 10
    sub_question_count: int
    distinct_items_cited: int
    total_sources_used: int
    used_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "confidence": self.confidence,
            "basedOn": {
                "subQuestions": self.sub_question_count,
                "distinctItemsCited": self.distinct_items_cited,
                "sourcesUsed": self.total_sources_used,
            },
            "fallback": self.used_fallback,
        }


SYNTHESIS_PROMPT = """You are a friendly product advisor. Synthesize research findings into a comprehensive answer.

ORIGINAL QUERY: "{query}"

RESEARCH FINDINGS:
{findings}

ITEMS MENTIONED:
{items}

INSTRUCTIONS:
1. Provide a comprehensive answer to the original query
2. Synthesize insights from all sub-questions
3. Make clear recommendations with reasoning
4. Cite specific item names when recommending
5. Include price ranges and key specs
6. Structure:
   - Brief intro (1 sentence)
   - Key findings (2-3 paragraphs)
   - Clear recommendation (1 paragraph)
   - End with a line "Confidence: N/10"

YOUR COMPREHENSIVE ANSWER:"""


def parse_confidence(text: str, default: int = DEFAULT_CONFIDENCE) -> int:
    """Extract 'Confidence: N' from text, clamped to [1, 10]."""
    match = _CONFIDENCE_RE.search(text or "")
    if not match:
        return default
    return max(1, min(10, int(match.group(1))))


def format_findings_context(findings: List[ResearchFinding]) -> str:
    blocks = []
    for i, finding in enumerate(findings, 1):
        names = ", ".join(s.name for s in finding.sources) or "None"
        blocks.append(
            f"SUB-QUESTION {i}: {finding.question}\n"
            f"ANSWER: {finding.answer}\n"
            f"SOURCES: {names}"
        )
    return "\n\n".join(blocks)


class Synthesizer:
    """Produces the final research answer."""

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        timeout: float = 30.0,
        max_tokens: int = 1024,
        metrics: Optional[MetricsSink] = None,
    ):
        self._llm = llm_client
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._metrics = metrics or NullMetrics()

    async def synthesize(self, original_query: str, findings: List[ResearchFinding]) -> SynthesisResult:
        """
        Synthesize findings into a final answer.

        Never raises (cancellation excepted). Always returns a non-empty
        answer with confidence in [1, 10].
        """
        cited_ids = {s.item_id for f in findings for s in f.sources}
        total_sources = sum(len(f.sources) for f in findings)

        def fallback(reason: str) -> SynthesisResult:
            logger.warning("Synthesis degraded (%s); concatenating findings", reason)
            self._metrics.incr("synthesis.fallback")
            return SynthesisResult(
                answer=self._fallback_answer(findings),
                confidence=FALLBACK_CONFIDENCE,
                sub_question_count=len(findings),
                distinct_items_cited=len(cited_ids),
                total_sources_used=total_sources,
                used_fallback=True,
            )

        if not findings:
            return fallback("no findings")
        if not self._llm.is_available:
            return fallback("completion service not available")

        # Names in first-seen order, de-duplicated by item id
        seen = set()
        names = []
        for f in findings:
            for s in f.sources:
                if s.item_id not in seen:
                    seen.add(s.item_id)
                    names.append(s.name)

        prompt = SYNTHESIS_PROMPT.format(
            query=original_query,
            findings=format_findings_context(findings),
            items=", ".join(names) or "None",
        )
        try:
            answer = await self._llm.agenerate(prompt, max_tokens=self._max_tokens, timeout=self._timeout)
        except CompletionUnavailable as e:
            return fallback(str(e))

        answer = (answer or "").strip()
        if not answer:
            return fallback("completion returned an empty answer")

        return SynthesisResult(
            answer=answer,
            confidence=parse_confidence(answer),
            sub_question_count=len(findings),
            distinct_items_cited=len(cited_ids),
            total_sources_used=total_sources,
        )

    @staticmethod
    def _fallback_answer(findings: List[ResearchFinding]) -> str:
        if not findings:
            return NO_FINDINGS_ANSWER
        return "\n\n".join(
            f"{i}. {f.question}\n{f.answer}" for i, f in enumerate(findings, 1)
        )
