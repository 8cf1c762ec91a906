"""
Retriever - Catalog Retrieval and Deep Research

Key Components:
- RetrievalEngine: Top-K similarity search over catalog items
- QueryDecomposer: Splits complex questions into sub-questions
- SubQuestionResearcher: Answers one sub-question from retrieved items
- ResearchOrchestrator: Bounded parallel research of all sub-questions
- Synthesizer: Combines findings into a final answer with confidence

Pipeline:
1. Decompose the query into sub-questions
2. Retrieve catalog items for each sub-question (in parallel)
3. Answer each sub-question from its items
4. Synthesize a final recommendation
"""

from .catalog_store import CatalogStore, InMemoryCatalogStore, JsonCatalogStore
from .decomposer import Decomposition, QueryDecomposer
from .filters import CatalogFilter, build_filter
from .orchestrator import ResearchOrchestrator
from .pipeline import DeepResearchResult, GroundedAnswer, ResearchPipeline, build_pipeline
from .researcher import ResearchFinding, SourceRef, SubQuestion, SubQuestionResearcher
from .searcher import CatalogEmbeddingIndex, RetrievalEngine, RetrievalResult
from .similarity import batch_cosine_similarity, cosine_similarity
from .synthesizer import SynthesisResult, Synthesizer

__all__ = [
    "CatalogStore",
    "InMemoryCatalogStore",
    "JsonCatalogStore",
    "CatalogFilter",
    "build_filter",
    "CatalogEmbeddingIndex",
    "RetrievalEngine",
    "RetrievalResult",
    "QueryDecomposer",
    "Decomposition",
    "SubQuestion",
    "SourceRef",
    "ResearchFinding",
    "SubQuestionResearcher",
    "ResearchOrchestrator",
    "Synthesizer",
    "SynthesisResult",
    "ResearchPipeline",
    "DeepResearchResult",
    "GroundedAnswer",
    "build_pipeline",
    "cosine_similarity",
    "batch_cosine_similarity",
]
