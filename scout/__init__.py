"""
Scout

Catalog research agents: similarity retrieval over a product catalog and
multi-step deep research (decompose, research in parallel, synthesize).

Philosophy:
- Answers are grounded in retrieved catalog items only
- Degrade, don't fail: completion problems fall back to simpler answers
- Every external call is bounded by a deadline

Usage:
    from scout.common import load_config, EmbeddingService, LLMClient
    from scout.common.schemas import CatalogItem, RetrievalFilter
    from scout.retriever import build_pipeline, RetrievalEngine
"""

__version__ = "0.1.0"
