"""Shared fakes and fixtures for Scout tests. Nothing here touches the network."""

import json
import threading
from typing import Callable, Dict, List, Optional, Sequence

import pytest

from scout.common.config import ScoutConfig
from scout.common.embedding_service import EmbeddingService
from scout.common.errors import CompletionUnavailable, EmbeddingUnavailable
from scout.common.llm_client import LLMClient
from scout.common.schemas import CatalogItem
from scout.retriever.catalog_store import InMemoryCatalogStore

KEYWORDS = ("student", "light", "gaming", "budget", "oled", "creator", "battery", "rtx", "price")


def keyword_vector(text: str) -> List[float]:
    """Bag-of-keywords vector with a constant tail so it is never all zero."""
    lowered = text.lower()
    return [float(lowered.count(k)) for k in KEYWORDS] + [0.1]


# embedding fake service
class FakeEmbeddingService(EmbeddingService):
    """
    Deterministic embeddings.

    rules: ordered {needle: vector}; the first needle contained in the text
    decides its vector. Unmatched texts use `default` (or keyword_vector).
    """

    def __init__(
        self,
        rules: Optional[Dict[str, Sequence[float]]] = None,
        default: Optional[Sequence[float]] = None,
        fail: bool = False,
    ):
        self.provider = "fake"
        self.model = "fake-embedding"
        self._client = object()
        self.rules = list((rules or {}).items())
        self.default = list(default) if default is not None else None
        self.fail = fail
        self.calls: List[List[str]] = []
        self._lock = threading.Lock()

    def _vector(self, text: str) -> List[float]:
        for needle, vector in self.rules:
            if needle in text:
                return list(vector)
        if self.default is not None:
            return list(self.default)
        return keyword_vector(text)

    def embed(self, texts: List[str]) -> List[List[float]]:
        with self._lock:
            self.calls.append(list(texts))
        if not self.is_available:
            raise EmbeddingUnavailable("Embedding service is not available")
        if self.fail:
            raise EmbeddingUnavailable("embedding backend down")
        return [self._vector(t) for t in texts]


DECOMPOSITION_JSON = json.dumps({
    "subQuestions": [
        "Which lightweight laptops are good for students?",
        "Which laptops under RM5000 have the best battery life?",
    ],
    "reasoning": "Portability and battery drive a student's choice",
})


def default_responder(prompt: str) -> str:
    if "Decompose this query" in prompt:
        return DECOMPOSITION_JSON
    if "Answer this specific question" in prompt:
        return "The Aero 14 is the lightest option at 1.2kg."
    if "Synthesize research findings" in prompt:
        return "Go for the Aero 14 if portability matters most.\n\nConfidence: 9/10"
    return "Based on the catalog, the Aero 14 is a solid pick."


# completion fake client
class FakeLLMClient(LLMClient):
    """LLMClient that answers from a responder callable instead of a provider."""

    def __init__(self, responder: Optional[Callable[[str], str]] = None, available: bool = True):
        self.provider = "fake"
        self.model = "fake-llm"
        self._client = object() if available else None
        self._google_models = {}
        self.responder = responder or default_responder
        self.prompts: List[str] = []
        self._lock = threading.Lock()

    def generate(self, prompt, *, system=None, max_tokens=512, timeout=30.0) -> str:
        with self._lock:
            self.prompts.append(prompt)
        if not self.is_available:
            raise CompletionUnavailable("LLM client is not available")
        return self.responder(prompt)

    def prompts_containing(self, marker: str) -> List[str]:
        return [p for p in self.prompts if marker in p]


def make_item(item_id: str, name: str, category: str, tier: str, price: float, **extra) -> CatalogItem:
    return CatalogItem(id=item_id, name=name, category=category, tier=tier, price=price, **extra)


@pytest.fixture
def catalog_items() -> List[CatalogItem]:
    return [
        make_item(
            "lap-a", "Aero 14", "ultrabook", "budget", 3299,
            brand="Nimbus", specs={"weight_kg": 1.2, "cpu": {"model": "Ryzen 7"}},
            description="Light student laptop with long battery", rating=4.5,
        ),
        make_item(
            "lap-b", "Breeze 13", "ultrabook", "mid", 4699,
            brand="Nimbus", specs={"weight_kg": 1.1, "display": {"panel": "OLED"}},
            description="OLED ultrabook, light and quiet",
        ),
        make_item(
            "lap-c", "Crusher 16", "gaming", "mid", 5999,
            brand="Titan", specs={"gpu": {"model": "RTX 4060"}},
            description="Gaming laptop with RTX graphics",
        ),
        make_item(
            "lap-d", "Dynamo 15", "gaming", "budget", 3599,
            brand="Titan", specs={"gpu": {"model": "RTX 3050"}},
            description="Budget gaming laptop",
        ),
        make_item(
            "lap-e", "Easel 14", "creator", "flagship", 9499,
            brand="Pixel", specs={"display": {"panel": "OLED touch"}},
            description="Creator laptop with OLED display",
        ),
    ]


@pytest.fixture
def catalog_store(catalog_items) -> InMemoryCatalogStore:
    return InMemoryCatalogStore(catalog_items)


# Query "q:light" points along x; items are placed at known angles from it.
RANKING_RULES = {
    "q:light": [1.0, 0.0],
    "q:zero": [0.0, 0.0],
    "Aero 14": [1.0, 0.0],
    "Breeze 13": [0.8, 0.6],
    "Crusher 16": [0.0, 1.0],
    "Dynamo 15": [0.6, 0.8],
    "Easel 14": [0.8, 0.6],
}


@pytest.fixture
def ranking_embedding() -> FakeEmbeddingService:
    return FakeEmbeddingService(rules=RANKING_RULES, default=[0.0, 1.0])


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def permissive_config() -> ScoutConfig:
    """Config whose thresholds admit every non-negative score."""
    config = ScoutConfig()
    config.retriever.min_similarity = 0.0
    config.research.sub_question_min_similarity = 0.0
    return config
