"""
Scout Common Module

Shared infrastructure for the retrieval and research pipelines.
"""

from .config import ScoutConfig, load_config
from .embedding_service import EmbeddingService
from .errors import (
    CompletionUnavailable,
    DimensionMismatch,
    EmbeddingUnavailable,
    InvalidArgument,
    ScoutError,
)
from .llm_client import LLMClient
from .metrics import InMemoryMetrics, MetricsSink, NullMetrics
from .result_cache import ResultCache, make_cache_key

__all__ = [
    "ScoutConfig",
    "load_config",
    "EmbeddingService",
    "LLMClient",
    "ScoutError",
    "InvalidArgument",
    "DimensionMismatch",
    "EmbeddingUnavailable",
    "CompletionUnavailable",
    "MetricsSink",
    "NullMetrics",
    "InMemoryMetrics",
    "ResultCache",
    "make_cache_key",
]
