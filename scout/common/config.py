"""
Configuration Management for Scout

Loads configuration from ~/.scout/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import asdict, dataclass, field

logger = logging.getLogger("scout.common.config")

# ~/.scout holds user settings
CONFIG_DIR = Path.home() / ".scout"
CONFIG_PATH = CONFIG_DIR / "config.json"

# Package paths (relative to this file)
PACKAGE_ROOT = Path(__file__).parent.parent  # scout/
DATA_DIR = PACKAGE_ROOT / "data"
DEFAULT_CATALOG_PATH = DATA_DIR / "catalog.json"


@dataclass
class EmbeddingConfig:
    """Embedding service configuration"""
    provider: str = "google"  # google | openai | femb
    model: str = "models/text-embedding-004"
    timeout: float = 10.0


@dataclass
class LLMConfig:
    """Completion service configuration"""
    provider: str = "google"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash-exp"


@dataclass
class RetrieverConfig:
    """Single-pass retrieval defaults"""
    top_k: int = 5
    min_similarity: float = 0.5
    precompute_catalog_embeddings: bool = False


@dataclass
class ResearchConfig:
    """Deep research (decompose -> research -> synthesize) settings"""
    max_sub_questions: int = 4
    sub_question_top_k: int = 3
    sub_question_min_similarity: float = 0.5
    max_concurrency: int = 4
    completion_timeout: float = 30.0
    task_timeout: float = 60.0


@dataclass
class CacheConfig:
    """Result cache settings"""
    enabled: bool = True
    ttl_seconds: float = 300.0
    max_entries: int = 256


@dataclass
class CatalogConfig:
    """Catalog store location"""
    path: str = str(DEFAULT_CATALOG_PATH)


@dataclass
class ScoutConfig:
    """Main Scout configuration"""
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    retriever: RetrieverConfig = field(default_factory=RetrieverConfig)
    research: ResearchConfig = field(default_factory=ResearchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)

    @property
    def embedding_api_key(self) -> str:
        """API key for the embedding provider, shared with the LLM section"""
        if self.embedding.provider == "google":
            return self.llm.google_api_key
        if self.embedding.provider == "openai":
            return self.llm.openai_api_key
        return ""


def _parse_embedding_config(data: dict) -> EmbeddingConfig:
    embedding_data = data.get("embedding", {})
    defaults = EmbeddingConfig()
    return EmbeddingConfig(
        provider=embedding_data.get("provider", defaults.provider),
        model=embedding_data.get("model", defaults.model),
        timeout=float(embedding_data.get("timeout", defaults.timeout)),
    )


def _parse_llm_config(data: dict) -> LLMConfig:
    llm_data = data.get("llm", {})
    defaults = LLMConfig()
    return LLMConfig(
        provider=llm_data.get("provider", defaults.provider),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", defaults.anthropic_model),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", defaults.openai_model),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", defaults.google_model),
    )


def _parse_retriever_config(data: dict) -> RetrieverConfig:
    retriever_data = data.get("retriever", {})
    return RetrieverConfig(
        top_k=int(retriever_data.get("top_k", 5)),
        min_similarity=float(retriever_data.get("min_similarity", 0.5)),
        precompute_catalog_embeddings=bool(retriever_data.get("precompute_catalog_embeddings", False)),
    )


def _parse_research_config(data: dict) -> ResearchConfig:
    research_data = data.get("research", {})
    defaults = ResearchConfig()
    return ResearchConfig(
        max_sub_questions=int(research_data.get("max_sub_questions", defaults.max_sub_questions)),
        sub_question_top_k=int(research_data.get("sub_question_top_k", defaults.sub_question_top_k)),
        sub_question_min_similarity=float(
            research_data.get("sub_question_min_similarity", defaults.sub_question_min_similarity)
        ),
        max_concurrency=int(research_data.get("max_concurrency", defaults.max_concurrency)),
        completion_timeout=float(research_data.get("completion_timeout", defaults.completion_timeout)),
        task_timeout=float(research_data.get("task_timeout", defaults.task_timeout)),
    )


def _parse_cache_config(data: dict) -> CacheConfig:
    cache_data = data.get("cache", {})
    return CacheConfig(
        enabled=bool(cache_data.get("enabled", True)),
        ttl_seconds=float(cache_data.get("ttl_seconds", 300.0)),
        max_entries=int(cache_data.get("max_entries", 256)),
    )


def _parse_catalog_config(data: dict) -> CatalogConfig:
    catalog_data = data.get("catalog", {})
    return CatalogConfig(path=catalog_data.get("path", str(DEFAULT_CATALOG_PATH)))


def load_config() -> ScoutConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.scout/config.json)
    3. Default values
    """
    config = ScoutConfig()

    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.embedding = _parse_embedding_config(data)
            config.llm = _parse_llm_config(data)
            config.retriever = _parse_retriever_config(data)
            config.research = _parse_research_config(data)
            config.cache = _parse_cache_config(data)
            config.catalog = _parse_catalog_config(data)
        except (json.JSONDecodeError, IOError, TypeError, ValueError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    if os.getenv("SCOUT_EMBEDDING_PROVIDER"):
        provider = os.getenv("SCOUT_EMBEDDING_PROVIDER").lower()
        if provider != config.embedding.provider:
            # The file's model belongs to the old provider; use the new provider's default
            config.embedding.model = ""
        config.embedding.provider = provider
    if os.getenv("SCOUT_EMBEDDING_MODEL"):
        config.embedding.model = os.getenv("SCOUT_EMBEDDING_MODEL")
    if os.getenv("SCOUT_CATALOG_PATH"):
        config.catalog.path = os.getenv("SCOUT_CATALOG_PATH")
    if os.getenv("SCOUT_TOP_K"):
        config.retriever.top_k = int(os.getenv("SCOUT_TOP_K"))
    if os.getenv("SCOUT_MIN_SIMILARITY"):
        config.retriever.min_similarity = float(os.getenv("SCOUT_MIN_SIMILARITY"))
    if os.getenv("SCOUT_MAX_SUB_QUESTIONS"):
        config.research.max_sub_questions = int(os.getenv("SCOUT_MAX_SUB_QUESTIONS"))
    if os.getenv("SCOUT_CACHE_TTL"):
        config.cache.ttl_seconds = float(os.getenv("SCOUT_CACHE_TTL"))

    # LLM env var overrides (track env-sourced keys so they are never persisted)
    _env_llm_map = {
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "GOOGLE_MODEL": "google_model",
        "SCOUT_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    return config


def save_config(config: ScoutConfig) -> None:
    """Write every section to ~/.scout/config.json (mode 0600).

    Secrets that came from the environment are blanked so they never land on disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    data = {
        name: asdict(getattr(config, name))
        for name in ("embedding", "llm", "retriever", "research", "cache", "catalog")
    }
    for key in config._env_sourced_keys:
        if key.endswith("_api_key"):
            data["llm"][key] = ""

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)
    CONFIG_PATH.chmod(0o600)
