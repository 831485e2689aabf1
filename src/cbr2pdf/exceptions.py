"""Exceptions raised by cbr2pdf.

The CLI maps the three top-level families onto distinct exit codes:
configuration (253), usage (255) and conversion (254).
"""
from __future__ import annotations

from pathlib import Path


class Cbr2PdfError(Exception):
    """Base exception for all cbr2pdf errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown cbr2pdf error occurred."


class ConfigError(Cbr2PdfError):
    """Raised for a malformed environment override or metadata file."""

    @property
    def default_message(self) -> str:
        return "Invalid configuration."


class UsageError(Cbr2PdfError):
    """Raised when the command line is missing or has bad arguments."""

    @property
    def default_message(self) -> str:
        return "Invalid usage."


class ConversionError(Cbr2PdfError):
    """Base class for every failure once a conversion has been requested."""

    @property
    def default_message(self) -> str:
        return "Conversion failed."


class ValidationError(ConversionError):
    """Raised when source and destination point to the same file."""

    @property
    def default_message(self) -> str:
        return "Source file must not be equal to destination file"


class ExtractionError(ConversionError):
    """Raised when the archive cannot be unpacked."""

    @property
    def default_message(self) -> str:
        return "Unable to extract archive."


class EmptyArchiveError(ConversionError):
    """Raised when an archive holds no supported images."""

    @property
    def default_message(self) -> str:
        return "Archive contains no pages."


class RenderError(ConversionError):
    """Raised when one image cannot be decoded, resampled or encoded."""

    def __init__(self, path: Path, step: str, message: str = "") -> None:
        self.path = Path(path)
        self.step = step
        super().__init__(message or f"{step} failed for {path}")


class PageError(ConversionError):
    """Raised when a page cannot be added; carries its reading position."""

    def __init__(self, path: Path, index: int, total: int, message: str = "") -> None:
        self.path = Path(path)
        self.index = index
        self.total = total
        super().__init__(
            message or f"Failed to add image {path} (page {index} of {total})"
        )


class FinalizeError(ConversionError):
    """Raised when the document cannot be serialized or written."""

    @property
    def default_message(self) -> str:
        return "Unable to write output document."
