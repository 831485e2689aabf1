"""Core utilities: image discovery, page ordering and path handling."""

from __future__ import annotations

import logging
import os
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .config import DocumentMetadata
from .types_ import ImageReference

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp"})

OUTPUT_EXTENSION = ".pdf"

_DIGITS = re.compile(r"([0-9]+)")


def is_image_file(name: str) -> bool:
    """Return True when `name` carries a supported image extension.

    >>> is_image_file('001.JPG')
    True
    >>> is_image_file('ComicInfo.xml')
    False
    """
    return os.path.splitext(name)[1].lower() in IMAGE_EXTENSIONS


def lexicographic_key(path: str) -> Tuple[str, str]:
    """Case-insensitive key on the full path; exact path breaks ties.

    >>> sorted(['10.jpg', '2.jpg', '1.jpg'], key=lexicographic_key)
    ['1.jpg', '10.jpg', '2.jpg']
    """
    return (path.lower(), path)


def natural_key(path: str) -> Tuple[Tuple, str]:
    """Digit-aware, case-insensitive key; exact path breaks ties.

    >>> sorted(['10.jpg', '2.jpg', '1.jpg'], key=natural_key)
    ['1.jpg', '2.jpg', '10.jpg']
    """
    parts = _DIGITS.split(path.lower())
    key = tuple((0, int(p), p) if p.isdigit() else (1, 0, p) for p in parts)
    return (key, path)


SORT_KEYS: Dict[str, Callable[[str], tuple]] = {
    "lexicographic": lexicographic_key,
    "natural": natural_key,
}


def _raise(err: OSError) -> None:
    raise err


def locate_images(root: Path, sort: str = "lexicographic") -> List[ImageReference]:
    """Return every supported image under `root` in reading order.

    Args:
        root: directory to walk recursively.
        sort: ordering policy. `lexicographic` compares full path strings
              case-insensitively, so unpadded numbers sort as text
              ('1.jpg', '10.jpg', '2.jpg'). `natural` compares digit runs
              numerically.

    Returns:
        List[ImageReference]: possibly empty; callers decide whether an
        empty archive is an error.

    Raises:
        OSError: any traversal error aborts the walk.
        KeyError: on an unknown sort policy.
    """
    key = SORT_KEYS[sort]
    found: List[str] = []
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise):
        for name in filenames:
            full = os.path.join(dirpath, name)
            if is_image_file(name) and os.path.isfile(full):
                found.append(full)
    found.sort(key=key)
    logger.debug("found %d images under %s", len(found), root)
    return [ImageReference(path=Path(p), index=i) for i, p in enumerate(found, 1)]


def derive_destination(source: Path) -> Path:
    """Return the default output path for `source`.

    >>> str(derive_destination(Path('comics/Akira v01.cbr')))
    'comics/Akira v01.pdf'
    >>> str(derive_destination(Path('comics/akira')))
    'comics/akira.pdf'
    >>> str(derive_destination(Path('book.')))
    'book.pdf'
    >>> str(derive_destination(Path('.cbr')))
    '.pdf'
    """
    source = Path(source)
    stem, dot, _ext = source.name.rpartition(".")
    if dot:
        return source.with_name(stem + OUTPUT_EXTENSION)
    return source.with_name(source.name + OUTPUT_EXTENSION)


def find_comicinfo(root: Path) -> Optional[Path]:
    """Return the first `ComicInfo.xml` (case-insensitive) under `root`."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            if name.lower() == "comicinfo.xml":
                return Path(dirpath) / name
    return None


def read_comicinfo(path: Path) -> DocumentMetadata:
    """Read document metadata from a ComicInfo.xml file.

    Malformed files are logged and yield empty metadata: ComicInfo is an
    optional companion file, never a page.
    """
    try:
        tree = ET.parse(path)
    except (ET.ParseError, OSError) as e:
        logger.warning("ignoring unreadable %s: %s", path, e)
        return DocumentMetadata()

    root = tree.getroot()

    def _text(tag: str) -> Optional[str]:
        el = root.find(tag)
        if el is None or el.text is None:
            return None
        return el.text.strip() or None

    authors = [a.strip() for a in (_text("Writer") or "").split(",") if a.strip()]

    series_index = None
    number = _text("Number")
    if number:
        try:
            series_index = float(number)
        except ValueError:
            logger.debug("non-numeric ComicInfo Number: %s", number)

    return DocumentMetadata(
        title=_text("Title"),
        authors=authors,
        series=_text("Series"),
        series_index=series_index,
        language=_text("LanguageISO"),
        publisher=_text("Publisher"),
    )
