"""CLI layer: argument parsing, logging setup and exit codes.

Usage: cbr2pdf <source file> [destination file] [options]

Exit codes:
    0    success
    1    help shown
    253  invalid WIDTH/HEIGHT or metadata file
    254  conversion failed
    255  invalid usage (missing source, unknown option...)
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    ERROR_POLICIES,
    HEIGHT_VAR,
    SORT_POLICIES,
    WIDTH_VAR,
    ConversionConfig,
    DocumentMetadata,
    load_metadata,
    resolve_resolution,
)
from .core import derive_destination
from .exceptions import ConfigError, ConversionError, UsageError
from .worker import convert

logger = logging.getLogger("cbr2pdf")

PROG = "cbr2pdf"

EXIT_OK = 0
EXIT_HELP = 1
EXIT_CONFIG = 253
EXIT_CONVERSION = 254
EXIT_USAGE = 255

HELP_FLAGS = ("-h", "--help", "-?")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "WARN"]


class ColorFormatter(logging.Formatter):
    """Compact formatter: emoji + level prefix, ANSI colour when enabled."""

    COLORS = {
        'DEBUG': '\x1b[34m',    # blue
        'INFO': '\x1b[32m',     # green
        'WARNING': '\x1b[33m',  # yellow
        'ERROR': '\x1b[31m',    # red
        'CRITICAL': '\x1b[31;1m',
    }
    EMOJI = {
        'DEBUG': '🔧',
        'INFO': '✅',
        'WARNING': '⚠️',
        'ERROR': '❌',
        'CRITICAL': '💥',
    }
    RESET = '\x1b[0m'

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        emoji = self.EMOJI.get(level, '')
        if self.use_color:
            prefix = f"{self.COLORS.get(level, '')}{emoji} {level}:{self.RESET}"
        else:
            prefix = f"{emoji} {level}:"
        formatted = f"{prefix} {record.getMessage()}"
        if record.exc_info:
            formatted = f"{formatted}\n{self.formatException(record.exc_info)}"
        return formatted


def setup_logging(verbose: bool = False, loglevel: Optional[str] = None, force_color: Optional[bool] = None):
    """Configure the root logger with `ColorFormatter` on stderr.

    - verbose -> DEBUG level, otherwise INFO
    - loglevel: explicit level name, overrides verbose
    - force_color: True/False to override automatic TTY detection
    """
    root = logging.getLogger()
    root.handlers.clear()

    if loglevel:
        lvl = loglevel.upper()
        if lvl == 'WARN':
            lvl = 'WARNING'
        level = getattr(logging, lvl, logging.INFO)
    else:
        level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    if force_color is None:
        stream = handler.stream
        use_color = hasattr(stream, "isatty") and stream.isatty()
    else:
        use_color = force_color

    handler.setFormatter(ColorFormatter(use_color))
    root.setLevel(level)
    root.addHandler(handler)


def usage_text(prog: str = PROG) -> str:
    return (
        f"{prog} - an utility for converting CBR/CBZ to PDF.\n\n"
        f"Usage: {prog} <source file> [destination file] [options]\n\n"
        f"Environment:    {WIDTH_VAR}  ... X resolution of your reader (default {DEFAULT_WIDTH})\n"
        f"                {HEIGHT_VAR} ... Y resolution of your reader (default {DEFAULT_HEIGHT})\n\n"
        "Options:\n"
        "  --sort {lexicographic,natural}  page order (default lexicographic: '10.jpg' sorts before '2.jpg')\n"
        "  --on-error {abort,skip}         stop at the first bad page (default) or leave it out\n"
        "  --metadata FILE                 YAML file with title, authors, series, series_index,\n"
        "                                  language and publisher\n"
        "  --verbose                       verbose logging\n"
        "  --loglevel, -l LEVEL            explicit log level (overrides --verbose)\n"
        "  -h, --help, -?                  show this help\n\n"
        "A destination ending in .epub produces a fixed-layout EPUB instead of a PDF.\n\n"
        "Examples: \n"
        f"          {prog} my-favorite-comicbook.cbr output.pdf                             # Pocketbook Touch HD 3\n"
        f"          {WIDTH_VAR}=758 {HEIGHT_VAR}=1024 {prog} my-favorite-comicbook.cbr output.pdf       # Pocketbook Touch Lux 4\n"
    )


class ArgumentParser(argparse.ArgumentParser):
    """argparse parser raising UsageError instead of exiting with status 2."""

    def error(self, message):
        raise UsageError(message)


def build_parser() -> ArgumentParser:
    p = ArgumentParser(prog=PROG, add_help=False)
    p.add_argument(
        'source',
        nargs='?',
        type=Path,
        help='comic archive (.cbr, .cbz, ...)')
    p.add_argument(
        'destination',
        nargs='?',
        type=Path,
        help='output document (defaults to the source name with a .pdf extension)')
    p.add_argument(
        '--sort',
        choices=SORT_POLICIES,
        default='lexicographic',
        help='page ordering policy')
    p.add_argument(
        '--on-error',
        choices=ERROR_POLICIES,
        default='abort',
        help='what to do when a page cannot be rendered')
    p.add_argument(
        '--metadata',
        type=Path,
        default=None,
        help='YAML metadata file')
    p.add_argument(
        '--verbose',
        action='store_true',
        help='verbose logging')
    p.add_argument(
        '--loglevel', '-l',
        type=str,
        default=None,
        choices=LOG_LEVELS,
        help='explicit log level (overrides --verbose)')
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line entry point.

    Help flags win over everything else, then argument errors, then the
    environment and metadata configuration; only then does conversion start.

    Returns:
        int: exit code (see module docstring).
    """
    argv = sys.argv[1:] if argv is None else list(argv)

    if any(arg in HELP_FLAGS for arg in argv):
        print(usage_text())
        return EXIT_HELP

    try:
        args = build_parser().parse_args(argv)
        if args.source is None:
            raise UsageError("Missing mandatory argument: source file\nRun with --help to display usage")
    except UsageError as e:
        setup_logging()
        logger.error(f"An error has occurred: {e}")
        return EXIT_USAGE

    setup_logging(args.verbose, loglevel=args.loglevel)

    try:
        resolution = resolve_resolution()
        metadata = load_metadata(args.metadata) if args.metadata else DocumentMetadata()
        config = ConversionConfig(
            resolution=resolution,
            sort=args.sort,
            on_error=args.on_error,
            metadata=metadata,
        )
    except ConfigError as e:
        logger.error(str(e))
        return EXIT_CONFIG

    source = args.source
    destination = args.destination or derive_destination(source)
    logger.debug(
        f"{source} -> {destination} at {config.resolution.width}x{config.resolution.height}")

    try:
        result = convert(source, destination, config)
    except ConversionError as e:
        logger.error(f"Conversion failed: {e}")
        return EXIT_CONVERSION

    if result.skipped:
        logger.warning(f"{len(result.skipped)} page(s) skipped: {', '.join(map(str, result.skipped))}")
    logger.info(f"generated: {result.destination} ({result.pages} pages)")
    return EXIT_OK


if __name__ == '__main__':
    raise SystemExit(main(sys.argv[1:]))
