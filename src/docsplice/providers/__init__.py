"""
LLM provider abstraction layer.

Supports local servers (Ollama, LM Studio) and hosted APIs (OpenAI,
OpenRouter, Claude, Gemini).
"""

from docsplice.providers.base import RefinementProvider, strip_think
from docsplice.providers.factory import PROVIDERS, create_provider, normalize_provider_kind

__all__ = [
    "PROVIDERS",
    "RefinementProvider",
    "create_provider",
    "normalize_provider_kind",
    "strip_think",
]
