"""
Research Orchestrator

Runs one research task per sub-question, concurrently, under a semaphore.
Each finding lands in the slot matching its sub-question's index, so the
output order always equals the input order.
"""

import asyncio
import logging
from typing import List, Optional, Sequence, Union

from ..common.schemas import RetrievalFilter
from .researcher import ResearchFinding, SubQuestion, SubQuestionResearcher

logger = logging.getLogger("scout.retriever.orchestrator")


class ResearchOrchestrator:
    """Bounded fan-out of sub-question research."""

    def __init__(
        self,
        researcher: SubQuestionResearcher,
        *,
        max_concurrency: int = 4,
        task_timeout: float = 60.0,
    ):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self._researcher = researcher
        self._max_concurrency = max_concurrency
        self._task_timeout = task_timeout

    async def research_all(
        self,
        sub_questions: Sequence[Union[str, SubQuestion]],
        retrieval_filter: Optional[RetrievalFilter] = None,
    ) -> List[ResearchFinding]:
        """
        Research every sub-question and return findings in input order.

        A task that exceeds task_timeout, or whose researcher raises, becomes
        a failed finding. Cancelling the caller cancels every in-flight task.
        """
        questions = [
            q if isinstance(q, SubQuestion) else SubQuestion(text=q, index=i)
            for i, q in enumerate(sub_questions)
        ]
        if not questions:
            return []

        semaphore = asyncio.Semaphore(self._max_concurrency)
        slots: List[Optional[ResearchFinding]] = [None] * len(questions)

        async def run(pos: int, sub_question: SubQuestion) -> None:
            async with semaphore:
                slots[pos] = await self._run_one(sub_question, retrieval_filter)

        await asyncio.gather(*(run(pos, q) for pos, q in enumerate(questions)))

        failed = sum(1 for f in slots if f.failed)
        if failed:
            logger.warning("%d/%d sub-questions failed", failed, len(slots))
        return slots

    async def _run_one(
        self,
        sub_question: SubQuestion,
        retrieval_filter: Optional[RetrievalFilter],
    ) -> ResearchFinding:
        try:
            return await asyncio.wait_for(
                self._researcher.research(sub_question, retrieval_filter),
                timeout=self._task_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Sub-question %d timed out after %.1fs", sub_question.index, self._task_timeout
            )
            return ResearchFinding.failure(sub_question, f"timed out after {self._task_timeout}s")
        except Exception as e:
            logger.error("Research task for sub-question %d crashed", sub_question.index, exc_info=True)
            return ResearchFinding.failure(sub_question, f"{type(e).__name__}: {e}")
