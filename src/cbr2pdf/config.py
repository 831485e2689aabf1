"""Runtime configuration: target resolution, conversion policies and metadata."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import List, Mapping, Optional

import yaml

from .exceptions import ConfigError
from .types_ import Resolution

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 1072
DEFAULT_HEIGHT = 1448

WIDTH_VAR = "WIDTH"
HEIGHT_VAR = "HEIGHT"

SORT_POLICIES = ("lexicographic", "natural")
ERROR_POLICIES = ("abort", "skip")

_UNSIGNED = re.compile(r"[0-9]+")


def _env_dimension(environ: Mapping[str, str], key: str, default: int) -> int:
    value = environ.get(key)
    if value is None:
        return default
    if not _UNSIGNED.fullmatch(value):
        raise ConfigError(f"{key} has invalid value: {value}")
    return int(value, 10)


def resolve_resolution(environ: Optional[Mapping[str, str]] = None) -> Resolution:
    """Resolve the reader resolution from `WIDTH` / `HEIGHT` overrides.

    Each variable is optional and must be an unsigned base-10 integer when
    present. Zero and very large values are accepted.

    >>> resolve_resolution({})
    Resolution(width=1072, height=1448)
    >>> resolve_resolution({'WIDTH': '758', 'HEIGHT': '1024'})
    Resolution(width=758, height=1024)

    Raises:
        ConfigError: when a variable is set but is not a plain integer.
    """
    if environ is None:
        environ = os.environ
    return Resolution(
        width=_env_dimension(environ, WIDTH_VAR, DEFAULT_WIDTH),
        height=_env_dimension(environ, HEIGHT_VAR, DEFAULT_HEIGHT),
    )


@dataclass(frozen=True)
class DocumentMetadata:
    """Descriptive metadata written into the output document."""

    title: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    series: Optional[str] = None
    series_index: Optional[float] = None
    language: Optional[str] = None
    publisher: Optional[str] = None

    def merged_with(self, fallback: "DocumentMetadata") -> "DocumentMetadata":
        """Return a copy where empty fields are taken from `fallback`."""
        changes = {}
        for f in fields(self):
            mine = getattr(self, f.name)
            theirs = getattr(fallback, f.name)
            if isinstance(mine, list):
                if not mine and theirs:
                    changes[f.name] = theirs
            elif mine is None and theirs is not None:
                changes[f.name] = theirs
        return replace(self, **changes)


@dataclass(frozen=True)
class ConversionConfig:
    """Immutable settings shared by every page of one conversion run.

    Attributes:
        resolution: target reader resolution in pixels.
        sort: page ordering policy, `lexicographic` (default) or `natural`.
        on_error: `abort` stops at the first bad page, `skip` leaves it out.
        metadata: document metadata; empty fields may be filled from the
            archive's ComicInfo.xml.
        scratch_dir: parent directory of the scratch workspace (system temp
            dir when None).
    """

    resolution: Resolution = Resolution(DEFAULT_WIDTH, DEFAULT_HEIGHT)
    sort: str = "lexicographic"
    on_error: str = "abort"
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    scratch_dir: Optional[Path] = None

    def __post_init__(self):
        if self.sort not in SORT_POLICIES:
            raise ConfigError(f"unknown sort policy: {self.sort}")
        if self.on_error not in ERROR_POLICIES:
            raise ConfigError(f"unknown error policy: {self.on_error}")


_METADATA_KEYS = {f.name for f in fields(DocumentMetadata)}


def load_metadata(path: Path) -> DocumentMetadata:
    """Load document metadata from a YAML mapping.

    Example file:
        title: Berserk v01
        authors: [Kentaro Miura]
        series: Berserk
        series_index: 1
        language: en

    Raises:
        ConfigError: if the file is missing, is not valid YAML, or its top
                     level is not a mapping, or a field has the wrong type.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as e:
        raise ConfigError(f"Cannot read metadata file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid metadata file {path}: {e}") from e

    if data is None:
        return DocumentMetadata()
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid metadata file {path}: top-level YAML must be a mapping")

    unknown = sorted(set(data) - _METADATA_KEYS)
    if unknown:
        logger.warning("ignoring unknown metadata keys in %s: %s", path, ", ".join(map(str, unknown)))

    authors = data.get("authors")
    if authors is None:
        authors = []
    elif isinstance(authors, str):
        authors = [authors]
    elif not isinstance(authors, list):
        raise ConfigError(f"Invalid authors in {path}: {authors!r}")

    series_index = data.get("series_index")
    if series_index is not None:
        try:
            series_index = float(series_index)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid series_index in {path}: {series_index!r}") from e

    def _text(key: str) -> Optional[str]:
        value = data.get(key)
        return None if value is None else str(value)

    return DocumentMetadata(
        title=_text("title"),
        authors=[str(a) for a in authors],
        series=_text("series"),
        series_index=series_index,
        language=_text("language"),
        publisher=_text("publisher"),
    )
