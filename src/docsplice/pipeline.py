"""
Document translation pipeline.

Segments a document, translates the segments one after another (each
optionally refined by the AI refinement queue before the next one starts)
and reassembles the result. Cancellation is cooperative: the flag is checked
between segments and after every awaited step, and no output document is
produced for a cancelled run.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from docsplice.config import Settings
from docsplice.errors import DocSpliceError
from docsplice.formats import get_document_format
from docsplice.models import ReassemblyReport, Segment
from docsplice.processor import DocumentReassembler, DocumentSegmenter
from docsplice.refinement import RefinementCallbacks, RefinementQueue
from docsplice.translators import MachineTranslator

logger = logging.getLogger(__name__)

StatusCallback = Callable[[int, int, str], None]


@dataclass
class PipelineCallbacks:
    """Optional listeners for pipeline events."""

    on_translation_progress: StatusCallback | None = None  # (segment, total, status)
    on_refinement_progress: StatusCallback | None = None  # (percent, 100, status)
    on_error: Callable[[str], None] | None = None


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""

    success: bool
    message: str
    output_path: Path | None = None
    segments_total: int = 0
    segments_translated: int = 0
    cancelled: bool = False
    report: ReassemblyReport | None = None


class DocumentPipeline:
    """
    Sequential segment, translate, refine, reassemble pipeline.

    Example:
        pipeline = DocumentPipeline(settings, PassthroughTranslator())
        result = await pipeline.run("book.epub")
    """

    def __init__(
        self,
        settings: Settings,
        translator: MachineTranslator,
        refiner: RefinementQueue | None = None,
        callbacks: PipelineCallbacks | None = None,
    ):
        self.settings = settings
        self.translator = translator
        self.refiner = refiner
        self.callbacks = callbacks or PipelineCallbacks()
        self._cancelled = False
        self._segment_position = (0, 0)

        if refiner is not None:
            self._listener = refiner.callbacks
            refiner.callbacks = RefinementCallbacks(
                on_started=self._listener.on_started,
                on_progress=self._forward_refinement_progress,
                on_partial=self._listener.on_partial,
                on_ready=self._listener.on_ready,
                on_error=self._forward_refinement_error,
            )

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop the run at the next checkpoint and abort refinement requests."""
        logger.info("Cancellation requested")
        self._cancelled = True
        if self.refiner is not None:
            self.refiner.cancel()

    def _emit_error(self, message: str) -> None:
        if self.callbacks.on_error:
            self.callbacks.on_error(message)

    def _emit_translation_progress(self, current: int, total: int, status: str) -> None:
        if self.callbacks.on_translation_progress:
            self.callbacks.on_translation_progress(current, total, status)

    def _emit_refinement_progress(self, percent: int, status: str) -> None:
        if self.callbacks.on_refinement_progress:
            self.callbacks.on_refinement_progress(percent, 100, status)

    def _forward_refinement_progress(self, completed: int, total_chunks: int) -> None:
        if self._listener.on_progress:
            self._listener.on_progress(completed, total_chunks)
        segment, total = self._segment_position
        percent = completed * 100 // total_chunks if total_chunks > 0 else 0
        self._emit_refinement_progress(
            percent,
            f"AI improving segment {segment} of {total} "
            f"(chunk {completed}/{total_chunks})...",
        )

    def _forward_refinement_error(self, message: str) -> None:
        if self._listener.on_error:
            self._listener.on_error(message)
        self._emit_error(f"AI error: {message}")

    def _cancelled_result(self, total: int, translated: int) -> PipelineResult:
        logger.info("Translation cancelled after %d of %d segments", translated, total)
        return PipelineResult(
            success=False,
            message="Translation cancelled",
            segments_total=total,
            segments_translated=translated,
            cancelled=True,
        )

    async def run(
        self, input_path: Path | str, output_path: Path | str | None = None
    ) -> PipelineResult:
        """
        Translate one document.

        Args:
            input_path: Document to translate.
            output_path: Where to write the translation; defaults to
                ``<stem>_translated.<suffix>`` (``.docx`` for PDF input).

        Returns:
            PipelineResult describing the outcome.
        """
        self._cancelled = False
        input_path = Path(input_path)

        open_errors: list[str] = []

        def on_open_error(message: str) -> None:
            open_errors.append(message)
            self._emit_error(f"Failed to open document: {input_path} ({message})")

        segmenter = DocumentSegmenter(self.settings, on_error=on_open_error)
        segments = await asyncio.to_thread(segmenter.segment, input_path)

        if open_errors:
            return PipelineResult(success=False, message="Failed to open document")
        if not segments:
            self._emit_error("No text found in document")
            return PipelineResult(success=False, message="Document is empty")
        if self._cancelled:
            return self._cancelled_result(len(segments), 0)

        if output_path is None:
            output_path = get_document_format(input_path, self.settings).default_output_path(
                input_path
            )
        output_path = Path(output_path)

        total = len(segments)
        translated: list[Segment] = []
        for i, segment in enumerate(segments):
            if self._cancelled:
                break
            translated_segment = await self._process_segment(segment, i + 1, total)
            if translated_segment is None:
                if self._cancelled:
                    break
                return PipelineResult(
                    success=False,
                    message="Translation failed",
                    segments_total=total,
                    segments_translated=len(translated),
                )
            translated.append(translated_segment)

        if self._cancelled:
            return self._cancelled_result(total, len(translated))

        reassembler = DocumentReassembler(self.settings, on_error=self._emit_error)
        report = await asyncio.to_thread(
            reassembler.reassemble, input_path, segments, translated, output_path
        )
        if report is None:
            self._emit_error("Failed to save translated document")
            return PipelineResult(
                success=False,
                message="Save failed",
                segments_total=total,
                segments_translated=len(translated),
            )

        return PipelineResult(
            success=True,
            message=f"Successfully saved to: {output_path}",
            output_path=output_path,
            segments_total=total,
            segments_translated=len(translated),
            report=report,
        )

    async def _process_segment(self, segment: Segment, position: int, total: int) -> Segment | None:
        """
        Translate and optionally refine one segment.

        Returns:
            The translated copy, or None if translation failed or the run was
            cancelled meanwhile.
        """
        self._emit_translation_progress(
            position, total, f"Translating segment {position} of {total}..."
        )
        try:
            text = await self.translator.translate(segment.text)
        except DocSpliceError as e:
            logger.error("Translation of segment %d failed: %s", position, e.message)
            self._emit_error(e.message)
            return None
        if self._cancelled:
            return None

        translated = segment.with_text(text)
        if self.refiner is None or not self.refiner.config.enabled or not text:
            return translated

        self._segment_position = (position, total)
        self._emit_refinement_progress(0, f"AI improving segment {position} of {total}...")
        refined = await self.refiner.verify_translation(segment.text, text)
        if self._cancelled:
            return None
        if refined:
            translated = translated.with_text(refined)
        return translated
