"""
PDF to DOCX conversion through LibreOffice.

PDF is not read directly: LibreOffice converts it to a word package in a
temporary directory, which is removed when the conversion context exits,
whether or not the caller succeeded.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from docsplice.config import ConversionConfig
from docsplice.errors import ConversionError

logger = logging.getLogger(__name__)

LIBREOFFICE_URL = "https://www.libreoffice.org/download/"

WINDOWS_PATHS = [
    "C:/Program Files/LibreOffice/program/soffice.exe",
    "C:/Program Files (x86)/LibreOffice/program/soffice.exe",
]
MACOS_PATHS = ["/Applications/LibreOffice.app/Contents/MacOS/soffice"]


def find_soffice(configured: str = "") -> str | None:
    """
    Locate the LibreOffice executable.

    Looks at the configured path first, then ``soffice`` / ``libreoffice`` on
    PATH, then the default install locations of the platform.
    """
    if configured:
        return configured if Path(configured).exists() or shutil.which(configured) else None

    for name in ("soffice", "libreoffice"):
        found = shutil.which(name)
        if found:
            return found

    if sys.platform == "win32":
        candidates = WINDOWS_PATHS
    elif sys.platform == "darwin":
        candidates = MACOS_PATHS
    else:
        candidates = []
    for candidate in candidates:
        if Path(candidate).exists():
            return candidate
    return None


class LibreOfficeConverter:
    """Headless LibreOffice converter."""

    def __init__(self, config: ConversionConfig | None = None):
        self.config = config or ConversionConfig()

    def is_available(self) -> bool:
        return find_soffice(self.config.soffice_path) is not None

    @contextmanager
    def convert(self, pdf_path: Path) -> Iterator[Path]:
        """
        Convert a PDF and yield the path of the resulting DOCX.

        Raises:
            ConversionError: If LibreOffice is missing, times out, fails, or
                produces no output.
        """
        soffice = find_soffice(self.config.soffice_path)
        if soffice is None:
            raise ConversionError(
                "LibreOffice not found. Please install LibreOffice to convert PDF files. "
                f"Download from: {LIBREOFFICE_URL}"
            )

        pdf_path = Path(pdf_path).resolve()
        with tempfile.TemporaryDirectory(prefix="docsplice-pdf-") as tmp:
            out_dir = Path(tmp)
            # Separate profile so a running LibreOffice instance does not swallow the job
            profile = (out_dir / "profile").as_uri()
            cmd = [
                soffice,
                f"-env:UserInstallation={profile}",
                "--headless",
                "--convert-to",
                "docx",
                "--outdir",
                str(out_dir),
                str(pdf_path),
            ]
            logger.info("Converting %s to DOCX with LibreOffice", pdf_path.name)
            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self.config.timeout_seconds,
                    check=False,
                )
            except subprocess.TimeoutExpired:
                raise ConversionError("LibreOffice PDF conversion timed out.") from None
            except OSError as e:
                raise ConversionError(f"Failed to start LibreOffice for PDF conversion: {e}") from e

            if result.returncode != 0:
                raise ConversionError(f"LibreOffice conversion failed: {result.stderr.strip()}")

            docx_path = out_dir / f"{pdf_path.stem}.docx"
            if not docx_path.exists():
                raise ConversionError("PDF conversion produced no output file.")

            logger.debug("Converted %s -> %s", pdf_path.name, docx_path)
            yield docx_path
