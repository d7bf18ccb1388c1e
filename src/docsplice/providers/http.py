"""
Refinement providers spoken to over plain JSON HTTP.

Ollama, Claude and Gemini each get one POST per prompt through a shared
httpx.AsyncClient.
"""

from __future__ import annotations

import logging
import time
from abc import abstractmethod
from typing import Any

import httpx

from docsplice.config import ProviderConfig
from docsplice.errors import ProviderError, ProviderTransportError
from docsplice.providers.base import RefinementProvider

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Best-effort message from an error reply ({"error": {"message": ...}} or text)."""
    try:
        data = response.json()
    except ValueError:
        return response.text.strip()[:200] or response.reason_phrase
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return response.reason_phrase


class HttpProvider(RefinementProvider):
    """Provider talking JSON over httpx."""

    def __init__(self, config: ProviderConfig, client: httpx.AsyncClient | None = None):
        super().__init__(config)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.timeout_seconds)

    @abstractmethod
    def endpoint(self) -> str:
        """URL the prompt is posted to."""
        ...

    @abstractmethod
    def build_payload(self, prompt: str) -> dict[str, Any]: ...

    @abstractmethod
    def parse_response(self, data: dict[str, Any]) -> str:
        """Extract the reply text from a decoded response body."""
        ...

    def headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def params(self) -> dict[str, str]:
        return {}

    async def complete(self, prompt: str) -> str:
        # Build before sending so a missing key fails without any request
        url = self.endpoint()
        payload = self.build_payload(prompt)
        start_time = time.perf_counter()
        data = await self._request(
            "POST", url, json=payload, headers=self.headers(), params=self.params()
        )
        logger.debug(
            "%s replied in %.0f ms", self.name, (time.perf_counter() - start_time) * 1000
        )
        return self.parse_response(data).strip()

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException:
            raise ProviderTransportError(
                f"{self.name}: request timed out", provider=self.name
            ) from None
        except httpx.HTTPError as e:
            raise ProviderTransportError(f"Network error: {e}", provider=self.name) from e

        if response.is_error:
            message = f"{self.name} error {response.status_code}: {_error_message(response)}"
            error_cls = ProviderTransportError if response.status_code >= 500 else ProviderError
            raise error_cls(message, provider=self.name, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            raise ProviderTransportError(
                f"{self.name}: failed to parse JSON response", provider=self.name
            ) from None
        if not isinstance(data, dict):
            raise ProviderTransportError(
                f"{self.name}: unexpected response shape", provider=self.name
            )
        return data

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class OllamaProvider(HttpProvider):
    """Local Ollama server, ``/api/generate`` without streaming."""

    DEFAULT_URL = "http://localhost:11434"

    @property
    def name(self) -> str:
        return "ollama"

    @property
    def server_url(self) -> str:
        url = self.base_url
        if "/api/" in url:
            url = url.split("/api/", 1)[0]
        return url

    def endpoint(self) -> str:
        if self.base_url.endswith("/api/generate"):
            return self.base_url
        return f"{self.server_url}/api/generate"

    def build_payload(self, prompt: str) -> dict[str, Any]:
        return {"model": self.model, "prompt": prompt, "stream": False}

    def parse_response(self, data: dict[str, Any]) -> str:
        return str(data.get("response") or "")

    async def list_models(self) -> list[str]:
        data = await self._request("GET", f"{self.server_url}/api/tags")
        return [m["name"] for m in data.get("models", []) if isinstance(m, dict) and "name" in m]


class ClaudeProvider(HttpProvider):
    """Anthropic messages API."""

    API_URL = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"
    DEFAULT_MODEL = "claude-3-haiku-20240307"

    @property
    def name(self) -> str:
        return "claude"

    def endpoint(self) -> str:
        return self.API_URL

    def headers(self) -> dict[str, str]:
        return {
            **super().headers(),
            "x-api-key": self._require_key(self.config.claude_api_key, "Claude"),
            "anthropic-version": self.API_VERSION,
        }

    def build_payload(self, prompt: str) -> dict[str, Any]:
        self._require_key(self.config.claude_api_key, "Claude")
        return {
            "model": self.model,
            "max_tokens": self.config.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

    def parse_response(self, data: dict[str, Any]) -> str:
        content = data.get("content") or []
        texts = [block for block in content if block.get("type") == "text"]
        if not texts:
            logger.warning("No text block in Claude response")
            return ""
        return str(texts[0].get("text") or "")


class GeminiProvider(HttpProvider):
    """Google Gemini ``generateContent``."""

    API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
    DEFAULT_MODEL = "gemini-1.5-flash"

    @property
    def name(self) -> str:
        return "gemini"

    def endpoint(self) -> str:
        return f"{self.API_URL}/{self.model}:generateContent"

    def params(self) -> dict[str, str]:
        return {"key": self._require_key(self.config.gemini_api_key, "Google Gemini")}

    def build_payload(self, prompt: str) -> dict[str, Any]:
        self._require_key(self.config.gemini_api_key, "Google Gemini")
        return {"contents": [{"parts": [{"text": prompt}]}]}

    def parse_response(self, data: dict[str, Any]) -> str:
        error = data.get("error")
        if error is not None:
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise ProviderError(
                f"Gemini API error: {message}", provider=self.name, status_code=code
            )

        candidates = data.get("candidates") or []
        if not candidates:
            # Quota exhaustion shows up as a reply without candidates
            raise ProviderTransportError(
                "Gemini returned empty response. Check your API quota.", provider=self.name
            )
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return str(parts[0].get("text") or "") if parts else ""
