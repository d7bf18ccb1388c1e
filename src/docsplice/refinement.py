"""
AI refinement of machine translations.

The refinement queue pairs source and machine-translated text line by line,
cuts the pairs into chunks of a few thousand characters and asks an LLM
provider to polish each chunk, keeping a bounded number of requests in
flight. Partial results are reported after every chunk so callers can show
the document improving as it goes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from docsplice.config import RefinementConfig
from docsplice.errors import ProviderError
from docsplice.providers.base import RefinementProvider, strip_think

logger = logging.getLogger(__name__)

# Refinement requests outstanding at once
MAX_IN_FLIGHT = 1

PROMPT_TEMPLATE = (
    "### Instructions:\n"
    "1. You are a professional translator. Compare the 'Source Text' ({source_language}) "
    "and the 'Machine Translation' ({target_language}).\n"
    "2. Produce a high-quality, natural {target_language} version.\n"
    "3. DO NOT use <think> tags. DO NOT provide any reasoning, notes, or explanations.\n"
    "4. Output ONLY the final {target_language} refined text.\n\n"
    "### Context:\n{context}\n"
    "### Source Text ({source_language}):\n{source}\n\n"
    "### Machine Translation ({target_language} to improve):\n{translation}\n\n"
    "### Final Refined Translation ({target_language}):"
)

CONTEXT_TEMPLATE = "Context (previous): {tail}\n"


class RefinementState(str, Enum):
    """Lifecycle of one refinement run."""

    IDLE = "idle"
    CHUNKING = "chunking"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ChunkState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"


@dataclass
class Chunk:
    """A run of paired source and translated lines refined in one request."""

    index: int
    source: str
    machine_translation: str
    # Starts as the machine translation; replaced by a non-empty refinement
    refined_translation: str
    state: ChunkState = ChunkState.PENDING

    @property
    def completed(self) -> bool:
        return self.state is ChunkState.COMPLETED


@dataclass
class RefinementCallbacks:
    """Optional listeners for refinement events."""

    on_started: Callable[[], None] | None = None
    on_progress: Callable[[int, int], None] | None = None  # (completed, total)
    on_partial: Callable[[str], None] | None = None
    on_ready: Callable[[str], None] | None = None
    on_error: Callable[[str], None] | None = None


def pair_chunks(source: str, translated: str, chunk_chars: int = 3000) -> list[Chunk]:
    """
    Pair source and translation lines into chunks.

    Lines are paired by position; when one side has fewer lines the other
    side's extra lines still count. A chunk is closed once its source text
    exceeds `chunk_chars` characters, and at the last line.

    Args:
        source: Source-language text.
        translated: Machine translation of `source`.
        chunk_chars: Source characters that close a chunk.

    Returns:
        Chunks in order, texts stripped.
    """
    source_lines = source.split("\n")
    translated_lines = translated.split("\n")
    total = max(len(source_lines), len(translated_lines))

    chunks: list[Chunk] = []
    current_source: list[str] = []
    current_translation: list[str] = []
    source_chars = 0

    for i in range(total):
        if i < len(source_lines):
            current_source.append(source_lines[i] + "\n")
            source_chars += len(source_lines[i]) + 1
        if i < len(translated_lines):
            current_translation.append(translated_lines[i] + "\n")

        if source_chars > chunk_chars or i == total - 1:
            machine = "".join(current_translation).strip()
            chunks.append(
                Chunk(
                    index=len(chunks),
                    source="".join(current_source).strip(),
                    machine_translation=machine,
                    refined_translation=machine,
                )
            )
            current_source = []
            current_translation = []
            source_chars = 0

    return chunks


def build_prompt(
    source: str,
    translation: str,
    *,
    context: str = "",
    source_language: str = "English",
    target_language: str = "French",
) -> str:
    """
    Build the refinement prompt for one chunk.

    Args:
        source: Chunk source text.
        translation: Machine translation of the chunk.
        context: Tail of the previous chunk's source, empty for the first chunk.
        source_language: Name of the source language.
        target_language: Name of the target language.
    """
    return PROMPT_TEMPLATE.format(
        context=CONTEXT_TEMPLATE.format(tail=context) if context else "",
        source=source,
        translation=translation,
        source_language=source_language,
        target_language=target_language,
    )


class RefinementQueue:
    """
    Chunked, backpressured refinement of one text at a time.

    Starting a new run aborts the previous one. `cancel()` stops the current
    run; no callback fires for a cancelled run afterwards.
    """

    def __init__(
        self,
        provider: RefinementProvider,
        config: RefinementConfig | None = None,
        callbacks: RefinementCallbacks | None = None,
    ):
        self.provider = provider
        self.config = config or RefinementConfig(enabled=True)
        self.callbacks = callbacks or RefinementCallbacks()
        self.state = RefinementState.IDLE
        self.chunks: list[Chunk] = []
        self.completed_count = 0
        self._in_flight: dict[int, asyncio.Task[str]] = {}
        self._run_id = 0

    @property
    def partial_text(self) -> str:
        """Current text of all chunks, refined where available."""
        return "\n\n".join(chunk.refined_translation for chunk in self.chunks).strip()

    def _emit(self, name: str, *args: object) -> None:
        callback = getattr(self.callbacks, name)
        if callback:
            callback(*args)

    def _abort_in_flight(self) -> None:
        for task in self._in_flight.values():
            task.cancel()
        self._in_flight = {}

    def cancel(self) -> None:
        """Cancel the current run. Safe to call at any time, any number of times."""
        if self.state in (RefinementState.CHUNKING, RefinementState.DISPATCHING):
            logger.debug("Cancelling refinement")
            self.state = RefinementState.CANCELLED
        self._run_id += 1
        self._abort_in_flight()
        self.chunks = []
        self.completed_count = 0

    async def verify_translation(self, source: str, translated: str) -> str | None:
        """
        Refine `translated` against `source`.

        Args:
            source: Source-language text.
            translated: Machine translation to refine.

        Returns:
            The refined text, or None if refinement is disabled, the source is
            blank, the run was cancelled or the provider failed for good.
        """
        self.cancel()
        run_id = self._run_id

        if not self.config.enabled or not source.strip():
            return None

        self.state = RefinementState.CHUNKING
        self.chunks = pair_chunks(source, translated, self.config.chunk_chars)
        self.completed_count = 0
        total = len(self.chunks)
        logger.debug("Refinement created %d chunks", total)

        self.state = RefinementState.DISPATCHING
        self._emit("on_started")
        self._emit("on_progress", 0, total)

        try:
            while True:
                # Listeners may cancel the run from inside a callback
                if run_id != self._run_id:
                    return None
                self._dispatch()
                in_flight = self._in_flight
                done, _ = await asyncio.wait(
                    in_flight.values(), return_when=asyncio.FIRST_COMPLETED
                )
                if run_id != self._run_id:
                    return None

                for index in [i for i, task in in_flight.items() if task in done]:
                    task = in_flight.pop(index)
                    if not self._finish_chunk(run_id, index, task):
                        return None
                    if run_id != self._run_id:
                        return None

                self._emit("on_partial", self.partial_text)
                self._emit("on_progress", self.completed_count, total)
                if run_id != self._run_id:
                    return None

                if self.completed_count == total:
                    self.state = RefinementState.COMPLETED
                    text = self.partial_text
                    logger.debug("All %d refinement chunks completed", total)
                    self._emit("on_ready", text)
                    return text
        finally:
            if run_id == self._run_id:
                if self.state is RefinementState.DISPATCHING:
                    self.state = RefinementState.CANCELLED
                self._abort_in_flight()

    def _dispatch(self) -> None:
        """Start pending chunks until the in-flight limit is reached."""
        for chunk in self.chunks:
            if len(self._in_flight) >= MAX_IN_FLIGHT:
                break
            if chunk.state is not ChunkState.PENDING:
                continue
            logger.debug("Sending refinement chunk %d", chunk.index)
            chunk.state = ChunkState.IN_FLIGHT
            prompt = self._prompt_for(chunk.index)
            self._in_flight[chunk.index] = asyncio.create_task(self.provider.complete(prompt))

    def _prompt_for(self, index: int) -> str:
        context = ""
        if index > 0 and self.config.context_chars > 0:
            context = self.chunks[index - 1].source[-self.config.context_chars :]
        chunk = self.chunks[index]
        return build_prompt(
            chunk.source,
            chunk.machine_translation,
            context=context,
            source_language=self.config.source_language,
            target_language=self.config.target_language,
        )

    def _finish_chunk(self, run_id: int, index: int, task: asyncio.Task[str]) -> bool:
        """
        Record the outcome of one request.

        Returns:
            False if the run has to stop because the provider failed for good
            or a listener cancelled it from the error callback.
        """
        chunk = self.chunks[index]
        result = ""
        if not task.cancelled():
            try:
                result = task.result()
            except ProviderError as e:
                logger.warning("Refinement of chunk %d failed: %s", index, e.message)
                self._emit("on_error", e.message)
                if run_id != self._run_id:
                    return False
                if e.fatal:
                    self.state = RefinementState.FAILED
                    self._abort_in_flight()
                    self.chunks = []
                    return False

        result = strip_think(result).strip()
        if result:
            chunk.refined_translation = result
        chunk.state = ChunkState.COMPLETED
        self.completed_count += 1
        logger.debug("Chunk %d done. %d/%d", index, self.completed_count, len(self.chunks))
        return True
