"""
Provider-agnostic completion client for Scout pipelines.

Anthropic, OpenAI and Google Gemini sit behind one generate() call. The
async wrapper runs the blocking SDK call in a worker thread under a
deadline and turns every failure into CompletionUnavailable.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from .errors import CompletionUnavailable

if TYPE_CHECKING:
    from .config import LLMConfig

logger = logging.getLogger("scout.common.llm_client")

SUPPORTED_PROVIDERS = ("anthropic", "openai", "google")

_PACKAGES = {
    "anthropic": "anthropic",
    "openai": "openai",
    "google": "google-generativeai",
}


class LLMClient:
    """Text completion over one configured provider."""

    def __init__(
        self,
        provider: str = "google",
        model: str = "",
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        google_api_key: Optional[str] = None,
    ) -> None:
        self.provider = (provider or "google").lower()
        self.model = model
        self._client: Any = None
        self._google_models: Dict[str, Any] = {}

        if self.provider not in SUPPORTED_PROVIDERS:
            logger.warning("Unsupported LLM provider: %s", self.provider)
            return

        api_key = {
            "anthropic": anthropic_api_key,
            "openai": openai_api_key,
            "google": google_api_key,
        }[self.provider]
        if not api_key:
            logger.info("%s API key not provided, completion client unavailable", self.provider)
            return

        try:
            self._client = self._connect(api_key)
        except ImportError:
            logger.warning("%s package not installed", _PACKAGES[self.provider])
        except Exception as e:
            logger.warning("Could not set up %s completion client: %s", self.provider, e)

    def _connect(self, api_key: str) -> Any:
        if self.provider == "anthropic":
            import anthropic

            return anthropic.Anthropic(api_key=api_key)
        if self.provider == "openai":
            from openai import OpenAI

            return OpenAI(api_key=api_key)

        import google.generativeai as genai

        genai.configure(api_key=api_key)
        # the module itself; GenerativeModel instances are built per system prompt
        return genai

    @classmethod
    def from_config(cls, config: "LLMConfig") -> "LLMClient":
        """Client for the configured provider, using that provider's model."""
        provider = (config.provider or "google").lower()
        return cls(
            provider=provider,
            model=getattr(config, f"{provider}_model", ""),
            anthropic_api_key=config.anthropic_api_key or None,
            openai_api_key=config.openai_api_key or None,
            google_api_key=config.google_api_key or None,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 512,
        timeout: float = 30.0,
    ) -> str:
        """Blocking completion; returns the stripped response text."""
        if not self.is_available:
            raise CompletionUnavailable("LLM client is not available")

        complete = {
            "anthropic": self._complete_anthropic,
            "openai": self._complete_openai,
            "google": self._complete_google,
        }[self.provider]
        return (complete(prompt, system, max_tokens, timeout) or "").strip()

    def _complete_anthropic(self, prompt: str, system: Optional[str], max_tokens: int, timeout: float) -> str:
        extra = {"system": system} if system else {}
        response = self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
            timeout=timeout,
            **extra,
        )
        return response.content[0].text

    def _complete_openai(self, prompt: str, system: Optional[str], max_tokens: int, timeout: float) -> str:
        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        response = self._client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=messages,
            timeout=timeout,
        )
        return response.choices[0].message.content

    def _complete_google(self, prompt: str, system: Optional[str], max_tokens: int, timeout: float) -> str:
        key = hashlib.md5((system or "").encode()).hexdigest()
        model = self._google_models.get(key)
        if model is None:
            options = {"model_name": self.model}
            if system:
                options["system_instruction"] = system
            model = self._google_models[key] = self._client.GenerativeModel(**options)
        response = model.generate_content(
            prompt,
            generation_config={"max_output_tokens": max_tokens},
            request_options={"timeout": timeout},
        )
        return response.text

    async def agenerate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 512,
        timeout: float = 30.0,
    ) -> str:
        """Run generate() off the event loop under a deadline.

        Raises:
            CompletionUnavailable: on any provider error or when the deadline passes
        """
        call = asyncio.to_thread(
            self.generate, prompt, system=system, max_tokens=max_tokens, timeout=timeout
        )
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except CompletionUnavailable:
            raise
        except asyncio.TimeoutError as e:
            raise CompletionUnavailable(f"completion timed out after {timeout:.1f}s") from e
        except Exception as e:
            raise CompletionUnavailable(f"completion failed: {e}") from e
