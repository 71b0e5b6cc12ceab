"""Wall-clock timing for tool executions."""

import time
from typing import Optional


class TimingContext:
    """Context manager that adds wall-clock duration (seconds) to a dict.

    Repeated runs under the same key accumulate, so a tool executed once per
    source root reports its total time.

        timings = {}
        with TimingContext(timings, "javac") as timer:
            run()
        timer.elapsed_ms  # 1234
    """

    def __init__(self, timings: dict[str, float], key: str) -> None:
        self.timings = timings
        self.key = key
        self.elapsed: float = 0.0
        self._start: Optional[float] = None

    def __enter__(self) -> "TimingContext":
        self._start = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._start is not None:
            self.elapsed = time.monotonic() - self._start
            self.timings[self.key] = round(self.timings.get(self.key, 0.0) + self.elapsed, 3)
        return None

    @property
    def elapsed_ms(self) -> int:
        return int(self.elapsed * 1000)


def format_duration(seconds: float) -> str:
    """Format seconds for humans.

    Examples:
        0.25 -> "250ms"
        4.5 -> "4.5s"
        65.3 -> "1m 5.3s"
    """
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes, remaining = divmod(seconds, 60)
    if minutes < 60:
        return f"{int(minutes)}m {remaining:.1f}s"

    hours, minutes = divmod(int(minutes), 60)
    return f"{hours}h {minutes}m {remaining:.1f}s"


def timing_summary(timings: dict[str, float]) -> str:
    """One line per-tool summary, slowest first.

        javac: 12.4s | java: 2.1s | total: 14.5s
    """
    if not timings:
        return "(no tools executed)"

    ordered = sorted(timings.items(), key=lambda item: item[1], reverse=True)
    parts = [f"{name}: {format_duration(seconds)}" for name, seconds in ordered]
    parts.append(f"total: {format_duration(sum(timings.values()))}")
    return " | ".join(parts)
