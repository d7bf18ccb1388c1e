"""
Error taxonomy for docsplice.

Components raise these exceptions; the facades (segmenter, reassembler,
refinement queue, pipeline) catch them, log them and report them once
through their error callback.
"""

from __future__ import annotations


class DocSpliceError(Exception):
    """Base class for all docsplice errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputError(DocSpliceError):
    """Missing or unsupported file, unreadable archive, or missing internal entry."""


class ConversionError(InputError):
    """The external PDF to DOCX conversion failed."""


class OutputError(DocSpliceError):
    """The output document could not be created or written."""


class ProviderError(DocSpliceError):
    """
    A refinement provider rejected a request.

    Authentication failures, exhausted quotas and structured error payloads
    abort the whole refinement run.
    """

    fatal = True

    def __init__(self, message: str, *, provider: str = "", status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ProviderTransportError(ProviderError):
    """Connection failure, timeout or unreadable body; the run continues."""

    fatal = False
