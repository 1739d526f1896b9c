"""Progress parsing for ffmpeg's encode output.

WHY: ffmpeg reports progress as "time=HH:MM:SS.ff" inside status lines on
stderr. Turning that into a 0.0-1.0 fraction is the same job for every
encoder implementation, so it lives here once.

HOW: parse_progress_time() extracts the encoded position from one line.
ProgressTracker divides it by the known duration, clamps to [0, 1] and
forwards it to the caller's sink.

RULES:
- Unknown duration (0) -> no intermediate progress; only complete() reports.
- Progress only moves forward: repeats and regressions from encoder seeks are dropped.
- Sink calls are serialized, so 1.0 from complete() is always the last value.
- Exceptions raised by the sink are logged and never stop the encode.
- time=N/A and negative times are ignored.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Callable, Optional

from caption_formats.timecodes import fraction_to_ms

logger = logging.getLogger(__name__)

ProgressSink = Callable[[float], None]
"""Receives a progress fraction in [0.0, 1.0]."""

_TIME_RE = re.compile(r"time=(\d+):(\d+):(\d+)(?:\.(\d+))?")


def parse_progress_time(line: str) -> Optional[int]:
    """Encoded position in ms from an ffmpeg status line, or None."""
    match = _TIME_RE.search(line)
    if match is None:
        return None
    hours, minutes, seconds, fraction = match.groups()
    ms = int(hours) * 3600000 + int(minutes) * 60000 + int(seconds) * 1000
    if fraction:
        ms += fraction_to_ms(fraction[:3])
    return ms


class ProgressTracker:
    """Turns encoder output lines into monotonic progress notifications.

    Thread-safe: feed_line() is called from the encoder's reader thread
    while complete() is called from the waiting thread.
    """

    def __init__(self, duration_ms: int, sink: Optional[ProgressSink] = None) -> None:
        self.duration_ms = max(0, duration_ms)
        self._sink = sink
        self._lock = threading.Lock()
        self._last = 0.0
        self._reported = False

    @property
    def last_progress(self) -> float:
        return self._last

    def feed_line(self, line: str) -> Optional[float]:
        """Handle one output line; returns the reported fraction, if any."""
        if self.duration_ms <= 0:
            return None
        elapsed_ms = parse_progress_time(line)
        if elapsed_ms is None:
            return None
        fraction = min(1.0, max(0.0, elapsed_ms / self.duration_ms))
        return self._report(fraction)

    def complete(self) -> None:
        """Report 1.0 after a successful encode."""
        self._report(1.0)

    def _report(self, fraction: float) -> Optional[float]:
        # The sink is called under the lock so deliveries stay in order.
        with self._lock:
            if self._reported and fraction <= self._last:
                return None
            self._last = fraction
            self._reported = True
            if self._sink is not None:
                try:
                    self._sink(fraction)
                except Exception:
                    logger.exception("Progress sink raised; continuing encode")
        return fraction
