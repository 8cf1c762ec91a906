"""Tests for parallel sub-question research."""

import asyncio

import pytest

from scout.retriever.orchestrator import ResearchOrchestrator
from scout.retriever.researcher import UNABLE_TO_RESEARCH, ResearchFinding, SubQuestion


class ScriptedResearcher:
    """Researcher stand-in with per-question delays and failures."""

    def __init__(self, delays=None, raise_on=(), hang_on=()):
        self.delays = delays or {}
        self.raise_on = set(raise_on)
        self.hang_on = set(hang_on)
        self.in_flight = 0
        self.max_in_flight = 0
        self.cancelled = []
        self.filters = []

    async def research(self, sub_question, retrieval_filter=None):
        self.filters.append(retrieval_filter)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if sub_question.text in self.hang_on:
                await asyncio.sleep(10)
            await asyncio.sleep(self.delays.get(sub_question.text, 0))
            if sub_question.text in self.raise_on:
                raise KeyError(sub_question.text)
            return ResearchFinding(sub_question=sub_question, answer=f"answer to {sub_question.text}")
        except asyncio.CancelledError:
            self.cancelled.append(sub_question.text)
            raise
        finally:
            self.in_flight -= 1


class TestResearchAll:
    @pytest.mark.asyncio
    async def test_order_matches_input_regardless_of_completion_order(self):
        researcher = ScriptedResearcher(delays={"q0": 0.05, "q1": 0.0, "q2": 0.02})
        findings = await ResearchOrchestrator(researcher).research_all(["q0", "q1", "q2"])
        assert [f.question for f in findings] == ["q0", "q1", "q2"]
        assert [f.sub_question.index for f in findings] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_failures_do_not_shift_positions(self):
        researcher = ScriptedResearcher(raise_on={"q1", "q3"}, delays={"q0": 0.02})
        findings = await ResearchOrchestrator(researcher).research_all(["q0", "q1", "q2", "q3"])
        assert len(findings) == 4
        assert [f.failed for f in findings] == [False, True, False, True]
        assert findings[1].answer == UNABLE_TO_RESEARCH
        assert "KeyError" in findings[1].error
        assert findings[2].answer == "answer to q2"

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self):
        researcher = ScriptedResearcher(delays={f"q{i}": 0.02 for i in range(8)})
        orchestrator = ResearchOrchestrator(researcher, max_concurrency=3)
        findings = await orchestrator.research_all([f"q{i}" for i in range(8)])
        assert len(findings) == 8
        assert researcher.max_in_flight == 3

    @pytest.mark.asyncio
    async def test_runs_in_parallel(self):
        researcher = ScriptedResearcher(delays={"a": 0.1, "b": 0.1, "c": 0.1})
        loop = asyncio.get_running_loop()
        start = loop.time()
        await ResearchOrchestrator(researcher, max_concurrency=3).research_all(["a", "b", "c"])
        assert loop.time() - start < 0.25

    @pytest.mark.asyncio
    async def test_task_timeout_degrades_only_that_task(self):
        researcher = ScriptedResearcher(hang_on={"slow"})
        orchestrator = ResearchOrchestrator(researcher, task_timeout=0.05)
        findings = await orchestrator.research_all(["fast", "slow", "fast2"])
        assert [f.failed for f in findings] == [False, True, False]
        assert "timed out" in findings[1].error

    @pytest.mark.asyncio
    async def test_accepts_sub_question_objects(self):
        researcher = ScriptedResearcher()
        questions = [SubQuestion("x", 0), SubQuestion("y", 1)]
        findings = await ResearchOrchestrator(researcher).research_all(questions)
        assert [f.sub_question for f in findings] == questions

    @pytest.mark.asyncio
    async def test_filter_forwarded(self):
        researcher = ScriptedResearcher()
        sentinel = object()
        await ResearchOrchestrator(researcher).research_all(["a", "b"], sentinel)
        assert researcher.filters == [sentinel, sentinel]

    @pytest.mark.asyncio
    async def test_empty_input(self):
        assert await ResearchOrchestrator(ScriptedResearcher()).research_all([]) == []

    @pytest.mark.asyncio
    async def test_cancellation_cancels_in_flight_tasks(self):
        researcher = ScriptedResearcher(hang_on={"a", "b"})
        task = asyncio.ensure_future(ResearchOrchestrator(researcher).research_all(["a", "b"]))
        await asyncio.sleep(0.02)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert sorted(researcher.cancelled) == ["a", "b"]

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            ResearchOrchestrator(ScriptedResearcher(), max_concurrency=0)
