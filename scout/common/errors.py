"""
Scout error taxonomy.

Only InvalidArgument and EmbeddingUnavailable escape the public entry points.
Degraded paths (decomposition, sub-question research, synthesis) are reported
through result flags and log records, not exceptions.
"""


class ScoutError(Exception):
    """Base class for all Scout errors."""


class InvalidArgument(ScoutError, ValueError):
    """Caller supplied an invalid argument (empty query, non-positive top_k)."""


class DimensionMismatch(ScoutError, ValueError):
    """Two embedding vectors of different length were compared."""

    def __init__(self, left: int, right: int):
        super().__init__(f"Vector dimension mismatch: {left} vs {right}")
        self.left = left
        self.right = right


class EmbeddingUnavailable(ScoutError):
    """Embedding service failed (transport, quota, timeout or not configured)."""


class CompletionUnavailable(ScoutError, RuntimeError):
    """Completion (LLM) service failed or is not configured."""
