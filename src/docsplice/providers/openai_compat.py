"""
OpenAI-compatible refinement providers.

OpenAI itself, OpenRouter and a local LM Studio server all accept the chat
completions API, so they share one AsyncOpenAI based implementation.
"""

from __future__ import annotations

import logging
import time
from abc import abstractmethod

import httpx
import openai
from openai import AsyncOpenAI

from docsplice.config import ProviderConfig
from docsplice.errors import ProviderError, ProviderTransportError
from docsplice.providers.base import RefinementProvider

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(RefinementProvider):
    """Chat completions provider on top of AsyncOpenAI."""

    def __init__(self, config: ProviderConfig, http_client: httpx.AsyncClient | None = None):
        """
        Initialize the provider.

        Args:
            config: Provider connection settings.
            http_client: Optional httpx client handed to AsyncOpenAI.
        """
        super().__init__(config)
        self._http_client = http_client
        self._client: AsyncOpenAI | None = None

    @abstractmethod
    def api_key(self) -> str: ...

    @abstractmethod
    def api_base(self) -> str: ...

    @property
    def client(self) -> AsyncOpenAI:
        # Created lazily so a missing key is reported on first use, not on construction
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key(),
                base_url=self.api_base(),
                timeout=self.config.timeout_seconds,
                max_retries=0,
                http_client=self._http_client,
            )
        return self._client

    async def complete(self, prompt: str) -> str:
        start_time = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.config.temperature,
            )
        except openai.APITimeoutError:
            raise ProviderTransportError(
                f"{self.name}: request timed out", provider=self.name
            ) from None
        except openai.APIConnectionError as e:
            raise ProviderTransportError(f"Network error: {e}", provider=self.name) from e
        except openai.APIStatusError as e:
            error_cls = ProviderTransportError if e.status_code >= 500 else ProviderError
            raise error_cls(
                f"{self.name} error {e.status_code}: {e.message}",
                provider=self.name,
                status_code=e.status_code,
            ) from e
        except openai.APIError as e:
            raise ProviderTransportError(f"{self.name}: {e.message}", provider=self.name) from e

        logger.debug(
            "%s replied in %.0f ms", self.name, (time.perf_counter() - start_time) * 1000
        )
        if not response.choices:
            logger.warning("Empty choices in %s response", self.name)
            return ""
        content = response.choices[0].message.content or ""
        return content.strip()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()


class OpenAIProvider(OpenAICompatibleProvider):
    """OpenAI chat completions."""

    DEFAULT_MODEL = "gpt-4o-mini"
    API_BASE = "https://api.openai.com/v1"

    @property
    def name(self) -> str:
        return "openai"

    def api_key(self) -> str:
        return self._require_key(self.config.openai_api_key, "OpenAI")

    def api_base(self) -> str:
        return self.API_BASE


class OpenRouterProvider(OpenAICompatibleProvider):
    """
    OpenRouter provider.

    Uses OpenRouter's unified API to access Claude, GPT, Gemini, DeepSeek, etc.
    """

    # Model aliases for convenience
    MODELS = {
        "default": "anthropic/claude-3-haiku",
        "fast": "anthropic/claude-3-haiku",
        "quality": "anthropic/claude-sonnet-4.5",
        "deepseek": "deepseek/deepseek-chat",
        "gemini": "google/gemini-pro-1.5",
    }
    API_BASE = "https://openrouter.ai/api/v1"

    def __init__(self, config: ProviderConfig, http_client: httpx.AsyncClient | None = None):
        super().__init__(config, http_client)
        self._model_name = self.MODELS.get(config.model or "default", config.model)

    @property
    def name(self) -> str:
        return "openrouter"

    def api_key(self) -> str:
        return self._require_key(self.config.openrouter_api_key, "OpenRouter")

    def api_base(self) -> str:
        return self.API_BASE


class LMStudioProvider(OpenAICompatibleProvider):
    """Local LM Studio server exposing the OpenAI API."""

    DEFAULT_MODEL = "default"
    DEFAULT_URL = "http://localhost:1234"
    # LM Studio ignores the key but the client requires one
    PLACEHOLDER_KEY = "lm-studio"

    @property
    def name(self) -> str:
        return "lmstudio"

    def api_key(self) -> str:
        return self.PLACEHOLDER_KEY

    def api_base(self) -> str:
        url = self.base_url
        if "/v1" in url:
            return url.split("/v1", 1)[0] + "/v1"
        return f"{url}/v1"

    async def list_models(self) -> list[str]:
        try:
            page = await self.client.models.list()
        except openai.APIStatusError as e:
            raise ProviderError(
                f"{self.name} error {e.status_code}: {e.message}",
                provider=self.name,
                status_code=e.status_code,
            ) from e
        except openai.APIError as e:
            raise ProviderTransportError(f"Network error: {e.message}", provider=self.name) from e
        return [m.id for m in page.data]
