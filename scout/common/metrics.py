"""
Metrics sinks.

Counters and observations are reported through a sink passed in by the
caller. There is no module-level registry.
"""

from collections import defaultdict
from typing import Any, Dict, List, Optional, Protocol


class MetricsSink(Protocol):
    """Destination for pipeline counters and timings."""

    def incr(self, name: str, tags: Optional[Dict[str, Any]] = None) -> None:
        """Increment a counter metric."""
        ...

    def observe(self, name: str, value: float, tags: Optional[Dict[str, Any]] = None) -> None:
        """Record one value for a histogram/summary metric."""
        ...


class NullMetrics:
    """Discards everything."""

    def incr(self, name: str, tags: Optional[Dict[str, Any]] = None) -> None:
        pass

    def observe(self, name: str, value: float, tags: Optional[Dict[str, Any]] = None) -> None:
        pass


class InMemoryMetrics:
    """Keeps counters and observations in memory, for tests and diagnostics."""

    def __init__(self) -> None:
        self.counters: Dict[str, int] = defaultdict(int)
        self.observations: Dict[str, List[float]] = defaultdict(list)

    def incr(self, name: str, tags: Optional[Dict[str, Any]] = None) -> None:
        self.counters[name] += 1

    def observe(self, name: str, value: float, tags: Optional[Dict[str, Any]] = None) -> None:
        self.observations[name].append(float(value))

    def snapshot(self) -> Dict[str, Any]:
        return {
            "counters": dict(self.counters),
            "observations": {k: list(v) for k, v in self.observations.items()},
        }
