"""
Shared logging utilities for shellbuild.

Components never print directly. They log through a TagAdapter, which stamps
every record with the name of the action currently running ("execute",
"download", "format", ...). Only the CLI decides where records go, via
configure_logging().
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional, TextIO

# =============================================================================
# Constants
# =============================================================================

LOGGER_NAME = "shellbuild"

COLORS = {
    "reset": "\033[0m",
    "red": "\033[91m",
    "yellow": "\033[93m",
    "dim": "\033[2m",
}

LEVEL_COLORS = {
    logging.DEBUG: "dim",
    logging.INFO: "reset",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}


# =============================================================================
# Tagged Logging
# =============================================================================


class TagAdapter(logging.LoggerAdapter):
    """Logger adapter that carries the current action tag.

    The tag is plain instance state owned by whoever created the adapter.
    Use tagged() to switch it for the duration of a block.
    """

    def __init__(self, logger: logging.Logger, tag: str = "init"):
        super().__init__(logger, {})
        self.tag = tag

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("tag", self.tag)
        kwargs["extra"] = extra
        return msg, kwargs

    def is_suppressed(self, level: int) -> bool:
        """Return True if records at this level would be dropped."""
        return not self.isEnabledFor(level)

    @contextmanager
    def tagged(self, tag: str) -> Iterator[str]:
        """Switch to a new tag, yield the previous one, restore it on exit."""
        previous = self.tag
        self.tag = tag
        try:
            yield previous
        finally:
            self.tag = previous


def get_log(name: str = LOGGER_NAME, tag: str = "init") -> TagAdapter:
    """Return a fresh TagAdapter over the named logger."""
    return TagAdapter(logging.getLogger(name), tag)


# =============================================================================
# Console Formatting
# =============================================================================


class TagFormatter(logging.Formatter):
    """Render records as ``<level>|<tag>| message``.

    The level column is only shown when the threshold is below INFO, so a
    normal run reads ``   call| ...`` and a debug run reads
    `` debug|execute| ...``.
    """

    def __init__(self, show_level: bool = False, use_color: bool = False):
        super().__init__()
        self.show_level = show_level
        self.use_color = use_color

    def _color(self, text: str, color: str) -> str:
        if not self.use_color or color == "reset":
            return text
        return f"{COLORS[color]}{text}{COLORS['reset']}"

    def format(self, record: logging.LogRecord) -> str:
        tag = getattr(record, "tag", None) or record.name.rsplit(".", 1)[-1]
        prefix = f"{record.levelname.lower():>6}|" if self.show_level else ""
        line = f"{prefix}{tag:>7}| {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return self._color(line, LEVEL_COLORS.get(record.levelno, "reset"))


def configure_logging(
    level: int = logging.INFO,
    stream: Optional[TextIO] = None,
    use_color: Optional[bool] = None,
) -> logging.Handler:
    """Attach a single console handler to the shellbuild logger.

    Calling it again replaces the handler installed by the previous call.
    """
    if stream is None:
        stream = sys.stdout
    if use_color is None:
        use_color = hasattr(stream, "isatty") and stream.isatty()

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_shellbuild_console", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(TagFormatter(show_level=level < logging.INFO, use_color=use_color))
    handler._shellbuild_console = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler


def parse_level(name: str) -> int:
    """Translate a level name ("debug", "INFO", "15") into a logging level."""
    if name.isdigit():
        return int(name)
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name!r}")
    return level
