"""
Base classes for refinement providers.

Defines the interface every provider implements and the helpers they share.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from docsplice.config import ProviderConfig
from docsplice.errors import ProviderError


THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"


def strip_think(text: str) -> str:
    """
    Remove ``<think>...</think>`` blocks from a model reply.

    An unterminated block swallows everything up to the end of the text.
    """
    start = text.find(THINK_OPEN)
    while start != -1:
        end = text.find(THINK_CLOSE, start)
        if end == -1:
            text = text[:start]
        else:
            text = text[:start] + text[end + len(THINK_CLOSE) :]
        start = text.find(THINK_OPEN)
    return text


class RefinementProvider(ABC):
    """
    Abstract base class for LLM providers.

    A provider turns one prompt into one reply. Implementations raise
    ProviderError for rejected requests and ProviderTransportError when the
    server could not be reached or answered with something unreadable.
    """

    DEFAULT_MODEL = ""
    DEFAULT_URL = ""

    def __init__(self, config: ProviderConfig):
        self.config = config
        self._model_name = config.model or self.DEFAULT_MODEL

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging and identification."""
        ...

    @property
    def model(self) -> str:
        """Current model name."""
        return self._model_name

    @property
    def base_url(self) -> str:
        """Configured URL without trailing slash, or the provider default."""
        return (self.config.url.strip() or self.DEFAULT_URL).rstrip("/")

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """
        Send one prompt and return the model's reply.

        Args:
            prompt: Full prompt text, sent as a single user message.

        Returns:
            Reply text, stripped of surrounding whitespace.

        Raises:
            ProviderError: Authentication, quota or structured error reply.
            ProviderTransportError: Connection failure, timeout, bad body.
        """
        ...

    async def list_models(self) -> list[str]:
        """Models offered by the provider; hosted APIs report the configured one."""
        return [self.model] if self.model else []

    async def test_connection(self) -> tuple[bool, str]:
        """
        Send a one-word prompt to check that the provider answers.

        Returns:
            Tuple of (success, reply or error message).
        """
        try:
            reply = await self.complete("Reply with the single word: OK")
        except ProviderError as e:
            return False, e.message
        return True, strip_think(reply).strip()

    async def aclose(self) -> None:
        """Release network resources held by the provider."""

    def _require_key(self, key: str, label: str) -> str:
        if not key:
            raise ProviderError(
                f"{label} API key is not configured. Set it in the configuration file "
                "or the environment.",
                provider=self.name,
            )
        return key
