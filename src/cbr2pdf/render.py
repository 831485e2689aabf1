"""Page rendering: decode one image, scale it to the reader and re-encode it.

Portrait images (width < height) are scaled so their height matches the
reader height; landscape and square images so their width matches the
reader width. The other axis follows the original aspect ratio and may end
up larger or smaller than the screen.
"""
from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional, Protocol

from PIL import Image, ImageOps

from .exceptions import RenderError
from .types_ import ImageReference, PageSize, PixelSize, RenderedPage, Resolution

logger = logging.getLogger(__name__)

# pixels per document unit used to derive the physical page size
PAGE_DENSITY = 1.78

JPEG_QUALITY = 75


class ImageCodec(Protocol):
    media_type: str

    def decode(self, path: Path) -> Image.Image:
        ...

    def encode(self, image: Image.Image) -> bytes:
        ...


class Resampler(Protocol):
    def resample(self, image: Image.Image, size: PixelSize) -> Image.Image:
        ...


class PillowCodec:
    """Decode any Pillow-readable image, encode to baseline JPEG."""

    media_type = "image/jpeg"

    def __init__(self, quality: int = JPEG_QUALITY):
        self.quality = quality

    def decode(self, path: Path) -> Image.Image:
        with Image.open(path) as img:
            img.load()
            img = ImageOps.exif_transpose(img)
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            else:
                img = img.copy()
        return img

    def encode(self, image: Image.Image) -> bytes:
        buf = io.BytesIO()
        image.save(buf, format="JPEG", quality=self.quality)
        return buf.getvalue()


class LanczosResampler:
    def resample(self, image: Image.Image, size: PixelSize) -> Image.Image:
        return image.resize(size, Image.Resampling.LANCZOS)


def target_size(width: int, height: int, resolution: Resolution) -> PixelSize:
    """Return the resampled size of a `width` x `height` image.

    >>> target_size(800, 1200, Resolution(1072, 1448))
    (965, 1448)
    >>> target_size(1600, 1200, Resolution(1072, 1448))
    (1072, 804)
    >>> target_size(500, 500, Resolution(1072, 1448))
    (1072, 1072)
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"invalid image size {width}x{height}")
    if width < height:
        new_h = resolution.height
        new_w = max(1, round(width * new_h / height))
    else:
        new_w = resolution.width
        new_h = max(1, round(height * new_w / width))
    return new_w, new_h


def page_size(pixel_size: PixelSize) -> PageSize:
    """Map a pixel size to document units.

    >>> page_size((1780, 890))
    (1000.0, 500.0)
    """
    w, h = pixel_size
    return w / PAGE_DENSITY, h / PAGE_DENSITY


def render_page(
    ref: ImageReference,
    resolution: Resolution,
    codec: Optional[ImageCodec] = None,
    resampler: Optional[Resampler] = None,
) -> RenderedPage:
    """Decode, scale and re-encode the image behind `ref`.

    Raises:
        RenderError: naming the failed step (decode, resample or encode) and
                     chained to the underlying exception.
    """
    codec = codec or PillowCodec()
    resampler = resampler or LanczosResampler()
    path = ref.path

    try:
        img = codec.decode(path)
    except Exception as e:
        raise RenderError(path, "decode", f"Unable to decode {path}: {e}") from e

    try:
        size = target_size(img.width, img.height, resolution)
        logger.debug("resizing %s from %dx%d to %dx%d", path, img.width, img.height, *size)
        img = resampler.resample(img, size)
    except Exception as e:
        raise RenderError(path, "resample", f"Unable to resize {path}: {e}") from e

    try:
        data = codec.encode(img)
    except Exception as e:
        raise RenderError(path, "encode", f"Unable to encode {path}: {e}") from e

    pixel_size = (img.width, img.height)
    return RenderedPage(
        data=data,
        media_type=codec.media_type,
        pixel_size=pixel_size,
        page_size=page_size(pixel_size),
        source=path,
    )
