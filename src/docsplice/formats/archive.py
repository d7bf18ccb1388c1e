"""
Zip archive codec for container formats (DOCX, EPUB).

Entries are copied in their original order with their original ZipInfo
(name, timestamp, compression method), so unmodified entries come out with
identical content and EPUB's leading uncompressed ``mimetype`` stays first.
"""

from __future__ import annotations

import logging
import os
import zipfile
from collections.abc import Callable
from pathlib import Path

from docsplice.errors import InputError, OutputError

logger = logging.getLogger(__name__)

# Receives (entry name, original bytes); returns new bytes or None to copy unchanged
EntryTransform = Callable[[str, bytes], "bytes | None"]


def open_archive(path: Path | str) -> zipfile.ZipFile:
    """
    Open a zip container for reading.

    Raises:
        InputError: If the file is missing or is not a readable zip archive.
    """
    path = Path(path)
    try:
        return zipfile.ZipFile(path, "r")
    except FileNotFoundError:
        raise InputError(f"File not found: {path}") from None
    except (zipfile.BadZipFile, OSError) as e:
        raise InputError(f"Could not open archive {path.name}: {e}") from e


def list_entries(path: Path | str) -> list[str]:
    """Return entry names in archive order."""
    with open_archive(path) as archive:
        return archive.namelist()


def read_entry(archive: zipfile.ZipFile, name: str) -> bytes:
    """
    Read one entry from an open archive.

    Raises:
        InputError: If the entry is missing or cannot be decompressed.
    """
    try:
        return archive.read(name)
    except KeyError:
        raise InputError(f"Missing archive entry: {name}") from None
    except (zipfile.BadZipFile, OSError) as e:
        raise InputError(f"Could not read archive entry {name}: {e}") from e


def rewrite_archive(
    source: Path | str,
    destination: Path | str,
    transform: EntryTransform,
) -> int:
    """
    Copy an archive entry by entry, letting `transform` rewrite selected entries.

    The new archive is written to a temporary file next to `destination` and
    moved into place only when every entry was written, so a failure never
    leaves a file that looks like a finished document.

    Args:
        source: Original archive.
        destination: Output archive path.
        transform: Called for every file entry; a non-None return value
            replaces the entry content.

    Returns:
        Number of rewritten entries.

    Raises:
        InputError: If the source archive cannot be read.
        OutputError: If the destination cannot be created or written.
    """
    destination = Path(destination)
    rewritten = 0

    with open_archive(source) as reader:
        tmp_path = destination.with_name(f".{destination.name}.part")
        committed = False
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(tmp_path, "w") as writer:
                for info in reader.infolist():
                    data = read_entry(reader, info.filename)
                    new_data = None if info.is_dir() else transform(info.filename, data)
                    if new_data is None:
                        writer.writestr(info, data)
                    else:
                        logger.debug(
                            "Rewriting entry %s (%d -> %d bytes)",
                            info.filename,
                            len(data),
                            len(new_data),
                        )
                        writer.writestr(info, new_data)
                        rewritten += 1
            os.replace(tmp_path, destination)
            committed = True
        except OSError as e:
            raise OutputError(f"Could not write output file {destination}: {e}") from e
        finally:
            if not committed and tmp_path.exists():
                tmp_path.unlink()

    return rewritten
