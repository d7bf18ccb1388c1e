"""
docsplice: segment documents for translation and splice translations back in.

This package provides tools for:
- Splitting plain text, DOCX, EPUB and PDF documents into size-bounded segments
- Rebuilding the original document structure around translated segments
- Chunked AI refinement of machine translations through local or hosted LLMs
"""

__version__ = "0.1.0"

from docsplice.config import Settings, load_config
from docsplice.errors import (
    ConversionError,
    DocSpliceError,
    InputError,
    OutputError,
    ProviderError,
    ProviderTransportError,
)
from docsplice.formats import DocumentKind, get_document_format
from docsplice.models import ReassemblyReport, Segment
from docsplice.pipeline import DocumentPipeline, PipelineCallbacks, PipelineResult
from docsplice.processor import DocumentReassembler, DocumentSegmenter
from docsplice.refinement import RefinementCallbacks, RefinementQueue
from docsplice.translators import MachineTranslator, PassthroughTranslator, ProviderTranslator

__all__ = [
    # Config
    "Settings",
    "load_config",
    # Errors
    "DocSpliceError",
    "InputError",
    "ConversionError",
    "OutputError",
    "ProviderError",
    "ProviderTransportError",
    # Segmentation and reassembly
    "DocumentKind",
    "get_document_format",
    "Segment",
    "ReassemblyReport",
    "DocumentSegmenter",
    "DocumentReassembler",
    # Refinement
    "RefinementQueue",
    "RefinementCallbacks",
    # Pipeline
    "DocumentPipeline",
    "PipelineCallbacks",
    "PipelineResult",
    "MachineTranslator",
    "PassthroughTranslator",
    "ProviderTranslator",
]
