"""
Embedding Service

Turns text into fixed-length vectors through one of three providers:

- "google": Gemini embedding API (text-embedding-004)
- "openai": OpenAI embeddings API
- "femb":   fastembed, on-device (no external API calls)

Vectors from different providers/models are not comparable; a service
instance always uses exactly one of them.
"""

import asyncio
import logging
from typing import List, Optional

import numpy as np

from .errors import EmbeddingUnavailable

logger = logging.getLogger("scout.common.embedding_service")

DEFAULT_MODELS = {
    "google": "models/text-embedding-004",
    "openai": "text-embedding-3-small",
    "femb": "sentence-transformers/all-MiniLM-L6-v2",
}


class EmbeddingService:
    """
    Embedding client for Scout retrieval.

    Not a singleton: build one per configuration and pass it explicitly.
    """

    def __init__(
        self,
        provider: str = "google",
        model: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        self.provider = (provider or "google").lower()
        self.model = model or DEFAULT_MODELS.get(self.provider, "")
        self._client = None
        self._init_client(api_key)

    def _init_client(self, api_key: Optional[str]) -> None:
        """Initialize the underlying provider client"""
        try:
            if self.provider == "google":
                if not api_key:
                    logger.info("google API key not provided, embedding service unavailable")
                    return
                import google.generativeai as genai

                genai.configure(api_key=api_key)
                self._client = genai
            elif self.provider == "openai":
                if not api_key:
                    logger.info("openai API key not provided, embedding service unavailable")
                    return
                from openai import OpenAI

                self._client = OpenAI(api_key=api_key)
            elif self.provider == "femb":
                from fastembed import TextEmbedding

                self._client = TextEmbedding(model_name=self.model)
            else:
                logger.warning("Unsupported embedding provider: %s", self.provider)
                return
            logger.info("Initialized embedding service provider=%s model=%s", self.provider, self.model)
        except ImportError as e:
            logger.warning("Embedding provider %s not installed: %s", self.provider, e)
        except Exception as e:
            logger.warning("Failed to initialize embedding provider %s: %s", self.provider, e)

    @property
    def is_available(self) -> bool:
        """Check if embedding service is available"""
        return self._client is not None

    def _embed_batch(self, texts: List[str]) -> List[List[float]]:
        if self.provider == "google":
            vectors = []
            for text in texts:
                result = self._client.embed_content(model=self.model, content=text)
                vectors.append(list(result["embedding"]))
            return vectors

        if self.provider == "openai":
            response = self._client.embeddings.create(model=self.model, input=texts)
            return [list(d.embedding) for d in response.data]

        if self.provider == "femb":
            return [np.asarray(v, dtype=float).tolist() for v in self._client.embed(texts)]

        raise EmbeddingUnavailable(f"Unsupported embedding provider: {self.provider}")

    def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts.

        Args:
            texts: List of strings to embed

        Returns:
            One vector per input text, in input order

        Raises:
            EmbeddingUnavailable: on transport, quota or provider errors
        """
        if not self.is_available:
            raise EmbeddingUnavailable("Embedding service is not available")

        if not texts:
            return []

        try:
            vectors = self._embed_batch(texts)
        except EmbeddingUnavailable:
            raise
        except Exception as e:
            raise EmbeddingUnavailable(f"embedding request failed: {e}") from e

        if len(vectors) != len(texts) or any(len(v) == 0 for v in vectors):
            raise EmbeddingUnavailable("embedding provider returned an incomplete batch")
        return vectors

    def embed_single(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: String to embed

        Returns:
            Embedding vector
        """
        if not text:
            raise ValueError("Cannot embed empty text")

        return self.embed([text])[0]

    async def aembed(self, texts: List[str], timeout: float = 10.0) -> List[List[float]]:
        """Async embed() under a deadline; a timeout is an EmbeddingUnavailable."""
        try:
            return await asyncio.wait_for(asyncio.to_thread(self.embed, texts), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise EmbeddingUnavailable(f"embedding timed out after {timeout:.1f}s") from e

    async def aembed_single(self, text: str, timeout: float = 10.0) -> List[float]:
        vectors = await self.aembed([text], timeout=timeout)
        return vectors[0]
