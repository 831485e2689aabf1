"""Output documents: one page per rendered image, written atomically.

Two writers are available. `PdfWriter` (reportlab) is the default;
`EpubWriter` (ebooklib) builds a pre-paginated EPUB and is picked when the
destination ends with `.epub`.
"""
from __future__ import annotations

import contextlib
import io
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import List, Optional, Protocol

from ebooklib import epub
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .config import DocumentMetadata
from .exceptions import FinalizeError
from .types_ import RenderedPage

logger = logging.getLogger(__name__)

CREATOR = "cbr2pdf"

_IMAGE_SUFFIX = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
}


class Document(Protocol):
    def append_page(self, page: RenderedPage) -> None:
        ...

    def finalize(self, destination: Path) -> Path:
        ...


class DocumentWriter(Protocol):
    def create(self, metadata: Optional[DocumentMetadata] = None) -> Document:
        ...


def atomic_write(destination: Path, data: bytes) -> None:
    """Write `data` to `destination` without exposing a partial file.

    The bytes go to a hidden temp file in the destination directory which is
    then renamed over `destination`. The temp file is removed on failure.
    """
    destination = Path(destination)
    fd, tmp = tempfile.mkstemp(
        prefix=f".{destination.name}.", suffix=".part", dir=destination.parent
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        umask = os.umask(0)
        os.umask(umask)
        os.chmod(tmp, 0o666 & ~umask)
        os.replace(tmp, destination)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp)
        raise


class PdfDocument:
    """In-memory PDF built with a reportlab canvas.

    Each page is sized to the rendered page and fully covered by its image.
    """

    def __init__(self, metadata: Optional[DocumentMetadata] = None):
        self.metadata = metadata or DocumentMetadata()
        self._buffer = io.BytesIO()
        self._canvas = canvas.Canvas(self._buffer)
        self._canvas.setCreator(CREATOR)
        if self.metadata.title:
            self._canvas.setTitle(self.metadata.title)
        if self.metadata.authors:
            self._canvas.setAuthor(", ".join(self.metadata.authors))
        if self.metadata.series:
            self._canvas.setSubject(self.metadata.series)
        self.page_count = 0
        self._finalized = False

    def append_page(self, page: RenderedPage) -> None:
        if self._finalized:
            raise FinalizeError("document already finalized")
        w, h = page.page_size
        self._canvas.setPageSize((w, h))
        self._canvas.drawImage(ImageReader(io.BytesIO(page.data)), 0, 0, width=w, height=h)
        self._canvas.showPage()
        self.page_count += 1

    def finalize(self, destination: Path) -> Path:
        destination = Path(destination)
        if self._finalized:
            raise FinalizeError("document already finalized")
        if not self.page_count:
            raise FinalizeError(f"refusing to write an empty document to {destination}")
        try:
            self._canvas.save()
            data = self._buffer.getvalue()
        except Exception as e:
            raise FinalizeError(f"Unable to serialize {destination}: {e}") from e
        try:
            atomic_write(destination, data)
        except OSError as e:
            raise FinalizeError(f"Unable to write {destination}: {e}") from e
        self._finalized = True
        logger.debug("wrote %d pages (%d bytes) to %s", self.page_count, len(data), destination)
        return destination


class PdfWriter:
    def create(self, metadata: Optional[DocumentMetadata] = None) -> PdfDocument:
        return PdfDocument(metadata)


class EpubDocument:
    """Pre-paginated EPUB: one XHTML page holding one image per rendered page."""

    def __init__(self, metadata: Optional[DocumentMetadata] = None):
        self.metadata = metadata or DocumentMetadata()
        self.language = self.metadata.language or "en"
        self._pages: List[epub.EpubHtml] = []
        self._finalized = False

        book = epub.EpubBook()
        book.set_identifier(f"urn:uuid:{uuid.uuid4()}")
        book.set_title(self.metadata.title or "Untitled")
        book.set_language(self.language)
        for author in self.metadata.authors:
            book.add_author(author)
        if self.metadata.publisher:
            book.add_metadata("DC", "publisher", self.metadata.publisher)
        # Series metadata (Calibre-specific)
        if self.metadata.series:
            book.add_metadata(None, "meta", "", {
                "name": "calibre:series",
                "content": self.metadata.series,
            })
        if self.metadata.series_index is not None:
            book.add_metadata(None, "meta", "", {
                "name": "calibre:series_index",
                "content": str(self.metadata.series_index),
            })
        book.add_metadata(None, "meta", "pre-paginated", {"property": "rendition:layout"})
        book.add_metadata(None, "meta", "auto", {"property": "rendition:spread"})
        self.book = book

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def append_page(self, page: RenderedPage) -> None:
        if self._finalized:
            raise FinalizeError("document already finalized")
        n = len(self._pages) + 1
        suffix = _IMAGE_SUFFIX.get(page.media_type, ".jpg")
        image_name = f"images/page_{n:04d}{suffix}"
        w, h = page.pixel_size

        image = epub.EpubImage(
            uid=f"image_{n:04d}",
            file_name=image_name,
            media_type=page.media_type,
            content=page.data,
        )
        html = epub.EpubHtml(
            uid=f"page_{n:04d}",
            title=f"Page {n}",
            file_name=f"pages/page_{n:04d}.xhtml",
            lang=self.language,
        )
        html.content = (
            f"<html><head><title>Page {n}</title>"
            f'<meta name="viewport" content="width={w}, height={h}"/></head>'
            f'<body style="margin:0;padding:0">'
            f'<img src="../{image_name}" alt="Page {n}" '
            f'style="width:{w}px;height:{h}px"/></body></html>'
        )
        self.book.add_item(image)
        self.book.add_item(html)
        self._pages.append(html)

    def finalize(self, destination: Path) -> Path:
        destination = Path(destination)
        if self._finalized:
            raise FinalizeError("document already finalized")
        if not self._pages:
            raise FinalizeError(f"refusing to write an empty document to {destination}")

        first = self._pages[0]
        self.book.toc = [epub.Link(first.file_name, self.metadata.title or "Start", "start")]
        self.book.spine = list(self._pages)
        self.book.add_item(epub.EpubNcx())
        self.book.add_item(epub.EpubNav())

        buf = io.BytesIO()
        try:
            epub.write_epub(buf, self.book, {})
            data = buf.getvalue()
        except Exception as e:
            raise FinalizeError(f"Unable to serialize {destination}: {e}") from e
        if not data:
            raise FinalizeError(f"Unable to serialize {destination}: empty output")
        try:
            atomic_write(destination, data)
        except OSError as e:
            raise FinalizeError(f"Unable to write {destination}: {e}") from e
        self._finalized = True
        logger.debug("wrote %d pages (%d bytes) to %s", len(self._pages), len(data), destination)
        return destination


class EpubWriter:
    def create(self, metadata: Optional[DocumentMetadata] = None) -> EpubDocument:
        return EpubDocument(metadata)


def writer_for(destination: Path) -> DocumentWriter:
    """Pick the document writer from the destination suffix.

    >>> type(writer_for(Path('out.pdf'))).__name__
    'PdfWriter'
    >>> type(writer_for(Path('out.EPUB'))).__name__
    'EpubWriter'
    """
    if Path(destination).suffix.lower() == ".epub":
        return EpubWriter()
    return PdfWriter()
