from __future__ import annotations

from pathlib import Path
from typing import NamedTuple, Optional, Tuple, TypeAlias

# (width, height) in pixels
PixelSize: TypeAlias = Tuple[int, int]
# (width, height) in document units (PDF points)
PageSize: TypeAlias = Tuple[float, float]


class Resolution(NamedTuple):
    """Target reader screen in pixels."""

    width: int
    height: int


class ImageReference(NamedTuple):
    """One page's source file and its 1-based position in reading order."""

    path: Path
    index: int


class RenderedPage(NamedTuple):
    """Scaled image bytes ready to be embedded as a single page.

    `pixel_size` is the size of the resampled image and `page_size` the
    physical page size derived from it.
    """

    data: bytes
    media_type: str
    pixel_size: PixelSize
    page_size: PageSize
    source: Optional[Path] = None


class ConversionResult(NamedTuple):
    """Result of a conversion: written file, page count and skipped sources."""

    destination: Path
    pages: int
    skipped: Tuple[Path, ...] = ()
