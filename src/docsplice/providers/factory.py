"""
Refinement provider factory.

Creates the appropriate provider based on configuration.
"""

from __future__ import annotations

from typing import Any

from docsplice.config import ProviderConfig, ProviderKind
from docsplice.providers.base import RefinementProvider
from docsplice.providers.http import ClaudeProvider, GeminiProvider, OllamaProvider
from docsplice.providers.openai_compat import (
    LMStudioProvider,
    OpenAIProvider,
    OpenRouterProvider,
)

PROVIDERS: dict[ProviderKind, type[RefinementProvider]] = {
    ProviderKind.OLLAMA: OllamaProvider,
    ProviderKind.LMSTUDIO: LMStudioProvider,
    ProviderKind.OPENAI: OpenAIProvider,
    ProviderKind.OPENROUTER: OpenRouterProvider,
    ProviderKind.CLAUDE: ClaudeProvider,
    ProviderKind.GEMINI: GeminiProvider,
}

# Labels used by other front ends for the same providers
_ALIASES = {
    "lm-studio": "lmstudio",
    "lm studio": "lmstudio",
    "anthropic": "claude",
    "google gemini": "gemini",
    "google": "gemini",
}


def normalize_provider_kind(kind: ProviderKind | str) -> ProviderKind:
    """
    Convert a provider name to its ProviderKind.

    Raises:
        ValueError: If the name does not match any provider.
    """
    if isinstance(kind, ProviderKind):
        return kind
    name = kind.strip().lower().replace("_", "-")
    name = _ALIASES.get(name, name)
    try:
        return ProviderKind(name)
    except ValueError:
        valid = [p.value for p in ProviderKind]
        raise ValueError(f"Invalid provider type: {kind}. Valid options: {valid}") from None


def create_provider(
    config: ProviderConfig,
    kind: ProviderKind | str | None = None,
    **kwargs: Any,
) -> RefinementProvider:
    """
    Create a provider instance.

    Args:
        config: Connection settings (URL, model, API keys, timeouts).
        kind: Provider to create; defaults to ``config.provider``.
        **kwargs: Passed to the provider, e.g. ``client`` for HTTP providers
            or ``http_client`` for OpenAI-compatible ones.

    Returns:
        RefinementProvider instance.

    Raises:
        ValueError: If kind is not a known provider.

    Examples:
        provider = create_provider(settings.refinement)
        provider = create_provider(settings.refinement, "gemini")
    """
    kind = normalize_provider_kind(kind if kind is not None else config.provider)
    if kind is not config.provider:
        config = config.model_copy(update={"provider": kind})
    return PROVIDERS[kind](config, **kwargs)
