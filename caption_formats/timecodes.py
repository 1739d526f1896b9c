"""Timestamp conversion between integer milliseconds and subtitle text formats.

WHY: SRT and ASS spell time differently (HH:MM:SS,mmm vs H:MM:SS.cc) and
imported SRT files in the wild are sloppy about fraction separators and
digit counts. Keeping the arithmetic in one place guarantees the two codecs
agree with each other.

HOW: Pure integer arithmetic with divmod. Parsing uses one regex for a
full "start --> end" line and scales the fraction by its digit count.

RULES:
- No floating point anywhere in time arithmetic.
- Hours are unbounded (no wraparound at 24h or 100h).
- ASS centiseconds are truncated, never rounded.
- Fractions of 1-3 digits: "5" -> 500ms, "32" -> 320ms, "320" -> 320ms.
"""

import re
from typing import Tuple

from .errors import ParseError

_SRT_PAIR_RE = re.compile(
    r"(\d+):(\d{1,2}):(\d{1,2})[,.](\d{1,3})\s*-->\s*(\d+):(\d{1,2}):(\d{1,2})[,.](\d{1,3})"
)


def _split_ms(ms: int) -> Tuple[int, int, int, int]:
    if ms < 0:
        raise ValueError("Timestamp must be >= 0 ms, got {}".format(ms))
    hours, rem = divmod(ms, 3600000)
    minutes, rem = divmod(rem, 60000)
    seconds, millis = divmod(rem, 1000)
    return hours, minutes, seconds, millis


def ms_to_srt_timestamp(ms: int) -> str:
    """Format milliseconds as an SRT timestamp: HH:MM:SS,mmm."""
    hours, minutes, seconds, millis = _split_ms(ms)
    return "{:02d}:{:02d}:{:02d},{:03d}".format(hours, minutes, seconds, millis)


def ms_to_ass_timestamp(ms: int) -> str:
    """Format milliseconds as an ASS timestamp: H:MM:SS.cc (truncated)."""
    hours, minutes, seconds, millis = _split_ms(ms)
    return "{}:{:02d}:{:02d}.{:02d}".format(hours, minutes, seconds, millis // 10)


def fraction_to_ms(fraction: str) -> int:
    """Scale a 1-3 digit fractional-second string to milliseconds."""
    return int(fraction) * 10 ** (3 - len(fraction))


def _to_ms(hours: str, minutes: str, seconds: str, fraction: str) -> int:
    return (
        int(hours) * 3600000
        + int(minutes) * 60000
        + int(seconds) * 1000
        + fraction_to_ms(fraction)
    )


def parse_srt_timestamp_pair(line: str) -> Tuple[int, int]:
    """Parse an SRT timing line into (start_ms, end_ms).

    WHY: Hand-edited and machine-translated SRT files use both "," and "."
    as fraction separators and sometimes drop trailing fraction digits.

    HOW: Searches the line for "H:MM:SS[,.]f --> H:MM:SS[,.]f" and
    converts each side. Trailing text after the end timestamp (position
    hints some tools append) is ignored.

    Args:
        line: The timing line, e.g. "00:00:01,000 --> 00:00:04,000".

    Returns:
        Tuple of (start_ms, end_ms).

    Raises:
        ParseError: If the line does not contain a timestamp pair.
    """
    match = _SRT_PAIR_RE.search(line)
    if match is None:
        raise ParseError("Not an SRT timestamp line: {!r}".format(line))
    groups = match.groups()
    return _to_ms(*groups[:4]), _to_ms(*groups[4:])


def format_srt_timestamp_pair(start_ms: int, end_ms: int) -> str:
    return "{} --> {}".format(ms_to_srt_timestamp(start_ms), ms_to_srt_timestamp(end_ms))
