"""Parse ffmpeg's "-i" diagnostics into duration, dimensions and rotation.

WHY: ffmpeg has no stable machine-readable output in info mode, but its
free-text stream description is consistent enough to scrape. The render
needs the display size (to size the subtitle canvas and pick the scale
axis) and the duration (to turn "time=" into a percentage).

HOW: Regexes over the captured text:
  Duration: HH:MM:SS.ff            -> duration_ms
  WIDTHxHEIGHT (video stream line) -> storage dimensions
  rotate : N  |  rotation of N     -> rotation in degrees
A 90/270 degree rotation swaps width and height so the result is always
in display orientation.

RULES:
- Never raises on bad input: missing duration -> 0 (progress becomes
  indeterminate), missing size -> 1920x1080. The *_known flags record
  which values were actually found.
- The "rotate" tag wins over the display matrix annotation when both exist.
- Rotation is normalized as abs(angle) % 360.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from caption_formats.timecodes import fraction_to_ms

DEFAULT_WIDTH = 1920
DEFAULT_HEIGHT = 1080

_DURATION_RE = re.compile(r"Duration: (\d+):(\d+):(\d+)\.(\d+)")
_SIZE_RE = re.compile(r"(\d{2,5})x(\d{2,5})")
_ROTATE_TAG_RE = re.compile(r"rotate\s*:\s*(-?\d+)")
_DISPLAY_MATRIX_RE = re.compile(r"rotation of\s*(-?\d+)")


@dataclass(frozen=True)
class VideoDimensions:
    """Display dimensions of a video (rotation already applied)."""

    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                "Video dimensions must be positive, got {}x{}".format(self.width, self.height)
            )

    @property
    def is_portrait(self) -> bool:
        return self.height > self.width

    @property
    def short_side(self) -> int:
        return min(self.width, self.height)


DEFAULT_DIMENSIONS = VideoDimensions(DEFAULT_WIDTH, DEFAULT_HEIGHT)


@dataclass(frozen=True)
class ProbeResult:
    """What the renderer learned about its input video."""

    dimensions: VideoDimensions = DEFAULT_DIMENSIONS
    duration_ms: int = 0
    rotation: int = 0
    dimensions_known: bool = False
    duration_known: bool = False

    @classmethod
    def defaults(cls) -> "ProbeResult":
        return cls()


def _parse_duration_ms(text: str) -> Optional[int]:
    match = _DURATION_RE.search(text)
    if match is None:
        return None
    hours, minutes, seconds, fraction = match.groups()
    return (
        int(hours) * 3600000
        + int(minutes) * 60000
        + int(seconds) * 1000
        + fraction_to_ms(fraction[:3])
    )


def _find_size(text: str) -> Optional[VideoDimensions]:
    # Prefer the video stream line; codec tags elsewhere can look like sizes.
    candidates = [line for line in text.splitlines() if "Video:" in line]
    candidates.append(text)
    for chunk in candidates:
        for match in _SIZE_RE.finditer(chunk):
            width, height = int(match.group(1)), int(match.group(2))
            if width > 0 and height > 0:
                return VideoDimensions(width, height)
    return None


def parse_rotation(text: str) -> int:
    """Rotation in degrees from the rotate tag or display matrix, 0 if absent."""
    match = _ROTATE_TAG_RE.search(text) or _DISPLAY_MATRIX_RE.search(text)
    if match is None:
        return 0
    return abs(int(match.group(1))) % 360


def parse_probe_output(text: str) -> ProbeResult:
    """Build a ProbeResult from ffmpeg "-i" output, substituting defaults.

    Args:
        text: Combined stderr/stdout of "ffmpeg -i <file>".

    Returns:
        ProbeResult in display orientation.
    """
    duration_ms = _parse_duration_ms(text)
    size = _find_size(text)
    rotation = parse_rotation(text)

    dimensions = size or DEFAULT_DIMENSIONS
    if size is not None and rotation in (90, 270):
        dimensions = VideoDimensions(size.height, size.width)

    return ProbeResult(
        dimensions=dimensions,
        duration_ms=duration_ms or 0,
        rotation=rotation,
        dimensions_known=size is not None,
        duration_known=duration_ms is not None,
    )
