"""Tests for LLMClient provider abstraction."""

import logging
import time
from unittest.mock import MagicMock, Mock

import pytest

from scout.common.config import LLMConfig
from scout.common.errors import CompletionUnavailable
from scout.common.llm_client import LLMClient


class TestLLMClientInit:
    @pytest.mark.parametrize("provider", ["anthropic", "openai", "google"])
    def test_missing_key_logs_info(self, caplog, provider):
        with caplog.at_level(logging.INFO, logger="scout.common.llm_client"):
            client = LLMClient(provider=provider)
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_unsupported_provider_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="scout.common.llm_client"):
            client = LLMClient(provider="unsupported_xyz")
        assert not client.is_available
        assert "Unsupported" in caplog.text

    def test_from_config_picks_provider_model(self):
        config = LLMConfig(provider="openai", openai_model="gpt-4o")
        client = LLMClient.from_config(config)
        assert client.provider == "openai"
        assert client.model == "gpt-4o"
        assert not client.is_available


class TestLLMClientGenerate:
    def test_generate_raises_when_unavailable(self):
        client = LLMClient(provider="anthropic")
        with pytest.raises(CompletionUnavailable, match="not available"):
            client.generate("test")

    def test_unavailable_is_runtime_error(self):
        client = LLMClient(provider="openai")
        with pytest.raises(RuntimeError):
            client.generate("test")

    def test_anthropic_generate(self):
        client = LLMClient(provider="anthropic", model="claude-test")
        client._client = MagicMock()
        client._client.messages.create.return_value = Mock(content=[Mock(text="  hello  ")])

        assert client.generate("hi", system="be brief", max_tokens=50) == "hello"
        kwargs = client._client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["system"] == "be brief"
        assert kwargs["max_tokens"] == 50

    def test_openai_generate(self):
        client = LLMClient(provider="openai", model="gpt-test")
        client._client = MagicMock()
        message = Mock(content="answer")
        client._client.chat.completions.create.return_value = Mock(choices=[Mock(message=message)])

        assert client.generate("hi", system="sys") == "answer"
        messages = client._client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "sys"}
        assert messages[1] == {"role": "user", "content": "hi"}

    def test_google_generate_caches_model_per_system_prompt(self):
        client = LLMClient(provider="google", model="gemini-test")
        client._client = MagicMock()
        model = client._client.GenerativeModel.return_value
        model.generate_content.return_value = Mock(text=" gemini says hi ")

        assert client.generate("a") == "gemini says hi"
        client.generate("b")
        assert client._client.GenerativeModel.call_count == 1
        client.generate("c", system="other")
        assert client._client.GenerativeModel.call_count == 2


class TestLLMClientAgenerate:
    @pytest.mark.asyncio
    async def test_returns_text(self):
        client = LLMClient(provider="anthropic", model="m")
        client._client = MagicMock()
        client._client.messages.create.return_value = Mock(content=[Mock(text="ok")])
        assert await client.agenerate("hi") == "ok"

    @pytest.mark.asyncio
    async def test_provider_error_becomes_completion_unavailable(self):
        client = LLMClient(provider="anthropic", model="m")
        client._client = MagicMock()
        client._client.messages.create.side_effect = ConnectionError("reset by peer")
        with pytest.raises(CompletionUnavailable, match="reset by peer"):
            await client.agenerate("hi")

    @pytest.mark.asyncio
    async def test_unavailable_client(self):
        with pytest.raises(CompletionUnavailable, match="not available"):
            await LLMClient(provider="google").agenerate("hi")

    @pytest.mark.asyncio
    async def test_deadline(self):
        client = LLMClient(provider="anthropic", model="m")
        client.generate = lambda *a, **kw: time.sleep(0.3) or "late"
        with pytest.raises(CompletionUnavailable, match="timed out"):
            await client.agenerate("hi", timeout=0.05)
