"""
Primary machine translation engines.

The pipeline only needs ``await translator.translate(text)``; which engine
answers is a configuration choice.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from docsplice.config import EngineKind, Settings, TranslationConfig
from docsplice.providers import RefinementProvider, create_provider, strip_think

logger = logging.getLogger(__name__)


def build_translation_prompt(
    source_content: str,
    source_language: str = "English",
    target_language: str = "French",
) -> str:
    """
    Build a complete translation prompt.

    Args:
        source_content: Content to translate.
        source_language: Name of the source language.
        target_language: Name of the target language.

    Returns:
        Complete prompt string for the LLM.
    """
    prompt_parts = [
        f"Translate the following {source_language} text to {target_language}.",
        "Keep the line structure: one output line for every input line, in the same order.",
        "Keep numbers, URLs and file paths unchanged.",
        f"\n## Source Text\n{source_content}",
        f"\n## Translation\nProvide only the {target_language} translation below:",
    ]
    return "\n".join(prompt_parts)


def group_lines(text: str, max_chars: int) -> list[str]:
    """Split text into runs of whole lines holding a little over `max_chars` at most."""
    groups: list[str] = []
    current: list[str] = []
    size = 0
    for line in text.split("\n"):
        current.append(line)
        size += len(line) + 1
        if size > max_chars:
            groups.append("\n".join(current))
            current = []
            size = 0
    if current:
        groups.append("\n".join(current))
    return groups


class MachineTranslator(ABC):
    """Translates one segment's text."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def translate(self, text: str) -> str:
        """
        Translate text.

        Raises:
            ProviderError: If the engine could not translate.
        """
        ...

    async def aclose(self) -> None:
        """Release resources held by the engine."""


class PassthroughTranslator(MachineTranslator):
    """Returns text unchanged, for dry runs and round-trip checks."""

    @property
    def name(self) -> str:
        return "passthrough"

    async def translate(self, text: str) -> str:
        return text


class ProviderTranslator(MachineTranslator):
    """Translates through an LLM provider, a few thousand characters per request."""

    def __init__(self, provider: RefinementProvider, config: TranslationConfig | None = None):
        self.provider = provider
        self.config = config or TranslationConfig(engine=EngineKind.PROVIDER)

    @property
    def name(self) -> str:
        return f"{self.provider.name}:{self.provider.model}"

    async def translate(self, text: str) -> str:
        if not text.strip():
            return text

        parts = []
        groups = group_lines(text, self.config.chunk_chars)
        for i, group in enumerate(groups):
            if not group.strip():
                parts.append(group)
                continue
            logger.debug("Translating part %d of %d", i + 1, len(groups))
            prompt = build_translation_prompt(
                group, self.config.source_language, self.config.target_language
            )
            reply = strip_think(await self.provider.complete(prompt)).strip()
            # An empty reply keeps the source rather than dropping the text
            parts.append(reply or group)
        return "\n".join(parts)

    async def aclose(self) -> None:
        await self.provider.aclose()


def create_translator(
    settings: Settings, engine: EngineKind | str | None = None
) -> MachineTranslator:
    """
    Create the primary translation engine.

    Args:
        settings: Application settings.
        engine: Engine to use; defaults to ``settings.translation.engine``.

    Raises:
        ValueError: If engine is not a known engine.
    """
    if engine is None:
        engine = settings.translation.engine
    if isinstance(engine, str):
        try:
            engine = EngineKind(engine.strip().lower())
        except ValueError:
            valid = [e.value for e in EngineKind]
            raise ValueError(f"Invalid engine: {engine}. Valid options: {valid}") from None

    if engine is EngineKind.PROVIDER:
        return ProviderTranslator(create_provider(settings.translation), settings.translation)
    return PassthroughTranslator()
