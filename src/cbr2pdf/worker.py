"""Conversion loop: extract, locate, render and append pages one by one."""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from .archive import ArchiveExtractor, Extractor
from .config import ConversionConfig, DocumentMetadata
from .core import find_comicinfo, locate_images, read_comicinfo
from .document import DocumentWriter, writer_for
from .exceptions import (
    ConversionError,
    EmptyArchiveError,
    ExtractionError,
    PageError,
    ValidationError,
)
from .render import ImageCodec, Resampler, render_page
from .types_ import ConversionResult

logger = logging.getLogger(__name__)


def same_path(a: Path, b: Path) -> bool:
    """Compare two paths lexically (absolute and normalised, no filesystem access)."""
    return os.path.normpath(os.path.abspath(a)) == os.path.normpath(os.path.abspath(b))


def _document_metadata(config: ConversionConfig, workspace: Path, source: Path) -> DocumentMetadata:
    metadata = config.metadata
    comicinfo = find_comicinfo(workspace)
    if comicinfo is not None:
        logger.debug("reading metadata from %s", comicinfo)
        metadata = metadata.merged_with(read_comicinfo(comicinfo))
    return metadata.merged_with(DocumentMetadata(title=source.stem))


def convert(
    source: Path,
    destination: Path,
    config: Optional[ConversionConfig] = None,
    *,
    extractor: Optional[Extractor] = None,
    codec: Optional[ImageCodec] = None,
    resampler: Optional[Resampler] = None,
    writer: Optional[DocumentWriter] = None,
) -> ConversionResult:
    """Convert the comic archive `source` into a paginated document.

    Steps run strictly in order: validate, extract into a scratch directory,
    locate images, render and append each page, finalize. The scratch
    directory is removed on every exit path once it has been created, and
    the destination is only replaced after the whole document is serialized.

    Args:
        source: archive to convert.
        destination: output file; `.epub` selects the EPUB writer unless
                     `writer` is given.
        config: resolution and policies (defaults when None).
        extractor, codec, resampler, writer: collaborators; the defaults use
            zipfile/patool, Pillow and reportlab/ebooklib.

    Returns:
        ConversionResult: destination, number of pages written and the
        sources skipped under the `skip` error policy.

    Raises:
        ValidationError: source and destination are the same path.
        ExtractionError: the archive cannot be unpacked.
        EmptyArchiveError: the archive has no usable page.
        PageError: a page failed under the `abort` policy (chained to the
                   RenderError or writer error).
        FinalizeError: the document cannot be written.
    """
    source = Path(source)
    destination = Path(destination)
    config = config or ConversionConfig()

    if same_path(source, destination):
        raise ValidationError()

    extractor = extractor or ArchiveExtractor()
    writer = writer or writer_for(destination)

    try:
        scratch = tempfile.TemporaryDirectory(prefix=f"{source.name}.", dir=config.scratch_dir)
    except OSError as e:
        raise ExtractionError(f"Unable to create scratch directory: {e}") from e

    with scratch as tmp:
        workspace = Path(tmp)
        logger.debug("extracting %s into %s", source, workspace)
        try:
            extractor.extract(source, workspace)
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Unable to extract {source}: {e}") from e

        try:
            images = locate_images(workspace, sort=config.sort)
        except OSError as e:
            raise ConversionError(f"Unable to scan {source}: {e}") from e
        if not images:
            raise EmptyArchiveError(f"{source} contains no pages")

        doc = writer.create(_document_metadata(config, workspace, source))
        total = len(images)
        skipped: List[Path] = []
        for ref in images:
            name = ref.path.relative_to(workspace)
            logger.info(f"Processing image {name} ({ref.index}/{total})...")
            try:
                page = render_page(ref, config.resolution, codec=codec, resampler=resampler)
                doc.append_page(page)
            except Exception as e:
                if config.on_error == "skip":
                    logger.warning(f"Skipping image {name} ({ref.index}/{total}): {e}")
                    skipped.append(name)
                    continue
                logger.error(f"Failed to add image {name} ({ref.index}/{total})!")
                raise PageError(
                    name, ref.index, total,
                    f"Failed to add image {name} (page {ref.index} of {total}): {e}",
                ) from e
            # one page in flight
            del page

        written = total - len(skipped)
        if not written:
            raise EmptyArchiveError(f"{source}: none of the {total} pages could be rendered")

        logger.info(f"Please wait - generating {destination}")
        doc.finalize(destination)

    return ConversionResult(destination=destination, pages=written, skipped=tuple(skipped))
