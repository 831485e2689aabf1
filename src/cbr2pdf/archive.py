"""Archive extraction.

ZIP-family archives (`.cbz`, `.zip`, and `.cbr` files that are really ZIPs)
are unpacked with `zipfile` after checking every member for path traversal.
Everything else (RAR, 7z, tar...) is handed to `patoolib`, which drives the
matching system tool (unrar, 7z, bsdtar...).
"""
from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Protocol

import patoolib
from patoolib.util import PatoolError

from .exceptions import ExtractionError

logger = logging.getLogger(__name__)


class Extractor(Protocol):
    """Unpacks an archive into an existing directory and returns it."""

    def extract(self, archive: Path, directory: Path) -> Path:
        ...


def check_members(names) -> None:
    """Reject archive member names that would escape the target directory.

    >>> check_members(['001.jpg', 'sub/002.jpg'])
    >>> check_members(['../evil.txt'])
    Traceback (most recent call last):
    ...
    cbr2pdf.exceptions.ExtractionError: Unsafe path in archive: ../evil.txt
    """
    for member in names:
        parts = member.replace("\\", "/").split("/")
        if ".." in parts or member.startswith("/") or member.startswith("\\"):
            raise ExtractionError(f"Unsafe path in archive: {member}")


class ArchiveExtractor:
    """Default extractor: zipfile for ZIP archives, patoolib for the rest."""

    def extract(self, archive: Path, directory: Path) -> Path:
        archive = Path(archive)
        directory = Path(directory)
        if not archive.is_file():
            raise ExtractionError(f"No such archive: {archive}")

        if zipfile.is_zipfile(archive):
            self._extract_zip(archive, directory)
        else:
            self._extract_other(archive, directory)
        return directory

    def _extract_zip(self, archive: Path, directory: Path) -> None:
        logger.debug("extracting %s with zipfile -> %s", archive, directory)
        try:
            with zipfile.ZipFile(archive, "r") as z:
                check_members(z.namelist())
                z.extractall(directory)
        except zipfile.BadZipFile as e:
            raise ExtractionError(f"Bad zip file: {archive}") from e
        except OSError as e:
            raise ExtractionError(f"Unable to extract {archive}: {e}") from e

    def _extract_other(self, archive: Path, directory: Path) -> None:
        logger.debug("extracting %s with patool -> %s", archive, directory)
        try:
            patoolib.extract_archive(
                str(archive),
                outdir=str(directory),
                verbosity=-1,
                interactive=False,
            )
        except (PatoolError, OSError) as e:
            raise ExtractionError(f"Unable to extract {archive}: {e}") from e
