"""Tests for the embedding service."""

import logging
import time
from unittest.mock import MagicMock, Mock

import pytest

from scout.common.embedding_service import DEFAULT_MODELS, EmbeddingService
from scout.common.errors import EmbeddingUnavailable


class TestEmbeddingServiceInit:
    @pytest.mark.parametrize("provider", ["google", "openai"])
    def test_missing_key_is_unavailable(self, caplog, provider):
        with caplog.at_level(logging.INFO, logger="scout.common.embedding_service"):
            service = EmbeddingService(provider=provider)
        assert not service.is_available
        assert "API key not provided" in caplog.text

    def test_default_model_per_provider(self):
        assert EmbeddingService(provider="openai").model == DEFAULT_MODELS["openai"]
        assert EmbeddingService(provider="google").model == "models/text-embedding-004"

    def test_unsupported_provider(self, caplog):
        with caplog.at_level(logging.WARNING, logger="scout.common.embedding_service"):
            service = EmbeddingService(provider="mystery")
        assert not service.is_available
        assert "Unsupported embedding provider" in caplog.text


def openai_service(vectors):
    service = EmbeddingService(provider="openai")
    service._client = MagicMock()
    service._client.embeddings.create.return_value = Mock(data=[Mock(embedding=v) for v in vectors])
    return service


class TestEmbed:
    def test_unavailable_raises(self):
        with pytest.raises(EmbeddingUnavailable):
            EmbeddingService(provider="google").embed(["text"])

    def test_openai_batch(self):
        service = openai_service([[0.1, 0.2], [0.3, 0.4]])
        assert service.embed(["a", "b"]) == [[0.1, 0.2], [0.3, 0.4]]
        kwargs = service._client.embeddings.create.call_args.kwargs
        assert kwargs["input"] == ["a", "b"]

    def test_google_one_call_per_text(self):
        service = EmbeddingService(provider="google")
        service._client = MagicMock()
        service._client.embed_content.side_effect = lambda model, content: {"embedding": [float(len(content))]}
        assert service.embed(["ab", "abc"]) == [[2.0], [3.0]]
        assert service._client.embed_content.call_count == 2

    def test_empty_input(self):
        assert openai_service([]).embed([]) == []

    def test_provider_error_wrapped(self):
        service = EmbeddingService(provider="openai")
        service._client = MagicMock()
        service._client.embeddings.create.side_effect = RuntimeError("429 quota")
        with pytest.raises(EmbeddingUnavailable, match="429 quota"):
            service.embed(["a"])

    def test_incomplete_batch(self):
        with pytest.raises(EmbeddingUnavailable, match="incomplete"):
            openai_service([[0.1]]).embed(["a", "b"])

    def test_empty_vector_is_incomplete(self):
        with pytest.raises(EmbeddingUnavailable):
            openai_service([[]]).embed(["a"])

    def test_embed_single_rejects_empty_text(self):
        with pytest.raises(ValueError):
            openai_service([[0.1]]).embed_single("")

    def test_embed_single(self):
        assert openai_service([[0.5, 0.5]]).embed_single("x") == [0.5, 0.5]


class TestAsyncEmbed:
    @pytest.mark.asyncio
    async def test_aembed(self):
        assert await openai_service([[1.0]]).aembed(["a"]) == [[1.0]]

    @pytest.mark.asyncio
    async def test_aembed_single(self):
        assert await openai_service([[1.0, 2.0]]).aembed_single("a") == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self):
        service = openai_service([[1.0]])
        service.embed = lambda texts: time.sleep(0.3) or [[1.0]]
        with pytest.raises(EmbeddingUnavailable, match="timed out"):
            await service.aembed(["a"], timeout=0.05)
