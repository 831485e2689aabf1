"""cbr2pdf package: convert comic-book archives into reader-sized documents.

Public API:
- convert(source: Path, destination: Path, config: ConversionConfig=None, ...)
- convert_archive(source: Path, destination: Optional[Path]=None, ...)

Pages are rendered one at a time in reading order; each page is scaled to the
reader resolution taken from the `WIDTH` / `HEIGHT` environment variables
(default 1072x1448).
"""
from pathlib import Path

from .config import ConversionConfig, DocumentMetadata, resolve_resolution
from .core import derive_destination
from .exceptions import (
    Cbr2PdfError,
    ConfigError,
    ConversionError,
    EmptyArchiveError,
    ExtractionError,
    FinalizeError,
    PageError,
    RenderError,
    ValidationError,
)
from .types_ import ConversionResult, Resolution
from .worker import convert


def convert_archive(source: Path, destination: Path | None = None, *, config: ConversionConfig | None = None) -> ConversionResult:
    """Convert `source` into a document using environment-driven defaults.

    Args:
        source: comic archive (`.cbr`, `.cbz`, ...).
        destination: output path. If omitted, defaults to the source path with
            its extension replaced by `.pdf`.
        config: explicit configuration; when None the resolution is read from
            the environment.

    Raises ConfigError on a malformed `WIDTH`/`HEIGHT` and ConversionError
    subclasses on failure.
    """
    source = Path(source)
    if destination is None:
        destination = derive_destination(source)
    if config is None:
        config = ConversionConfig(resolution=resolve_resolution())
    return convert(source, Path(destination), config)


__all__ = [
    "Cbr2PdfError",
    "ConfigError",
    "ConversionConfig",
    "ConversionError",
    "ConversionResult",
    "DocumentMetadata",
    "EmptyArchiveError",
    "ExtractionError",
    "FinalizeError",
    "PageError",
    "RenderError",
    "Resolution",
    "ValidationError",
    "convert",
    "convert_archive",
    "derive_destination",
]
