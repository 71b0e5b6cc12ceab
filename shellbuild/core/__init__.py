"""
shellbuild.core - Foundation layer: tagged logging and timing.
"""

from shellbuild.core.utils import (
    LOGGER_NAME,
    TagAdapter,
    TagFormatter,
    configure_logging,
    get_log,
    parse_level,
)
from shellbuild.core.timing import (
    TimingContext,
    format_duration,
    timing_summary,
)

__all__ = [
    # Logging
    "LOGGER_NAME",
    "TagAdapter",
    "TagFormatter",
    "configure_logging",
    "get_log",
    "parse_level",
    # Timing
    "TimingContext",
    "format_duration",
    "timing_summary",
]
