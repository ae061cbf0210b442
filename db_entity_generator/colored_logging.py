"""
Terminal coloring for generator log output.

WARNING and above are colored by level. INFO and DEBUG lines are colored by
the leading marker that log_success, log_progress and log_highlight write,
and log_section banners are rendered bold.
"""

import logging
import sys
from typing import Optional

ANSI_RESET = '\033[0m'
ANSI_BOLD = '\033[1m'

LEVEL_STYLES = {
    'DEBUG': '\033[36m',
    'WARNING': '\033[33m',
    'ERROR': '\033[31m',
    'CRITICAL': '\033[35m',
}

SUCCESS_MARK = '✓'
PROGRESS_MARK = '→'
HIGHLIGHT_MARK = '•'

MARK_STYLES = {
    SUCCESS_MARK: '\033[92m' + ANSI_BOLD,
    PROGRESS_MARK: '\033[94m',
    HIGHLIGHT_MARK: '\033[96m',
}

BANNER = '=' * 60


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps each record in an ANSI style picked from its level or marker."""

    def __init__(self, fmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt or "%(levelname)s: %(message)s")
        stream_is_tty = getattr(sys.stderr, 'isatty', None)
        self.use_colors = bool(use_colors and stream_is_tty and stream_is_tty())

    def style_for(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            return LEVEL_STYLES.get(record.levelname, '')
        text = record.getMessage()
        mark_style = MARK_STYLES.get(text[:1])
        if mark_style:
            return mark_style
        if text.startswith(BANNER[:20]):
            return ANSI_BOLD + MARK_STYLES[HIGHLIGHT_MARK]
        return LEVEL_STYLES.get(record.levelname, '') if record.levelno == logging.DEBUG else ''

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        style = self.style_for(record) if self.use_colors else ''
        return f"{style}{line}{ANSI_RESET}" if style else line


def setup_colored_logging(level: int = logging.INFO, use_colors: bool = True) -> None:
    """Replace the root logger's handlers with a single colored stderr handler."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(use_colors=use_colors))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)


def log_success(logger: logging.Logger, message: str) -> None:
    logger.info("%s %s", SUCCESS_MARK, message)


def log_progress(logger: logging.Logger, message: str) -> None:
    logger.info("%s %s", PROGRESS_MARK, message)


def log_highlight(logger: logging.Logger, message: str) -> None:
    logger.info("%s %s", HIGHLIGHT_MARK, message)


def log_section(logger: logging.Logger, section_name: str) -> None:
    """Write a three line banner around the upper-cased section name."""
    logger.info(BANNER)
    logger.info("  %s", section_name.upper())
    logger.info(BANNER)
