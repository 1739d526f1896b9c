"""Video filter graph construction for subtitle burn-in.

WHY: The subtitles filter takes file paths inside ffmpeg's filter-graph
syntax, where ':' separates options and quotes delimit values. Windows
drive letters and apostrophes in user folders break the graph unless
escaped. Scaling must follow the display orientation so a portrait video
rendered at "1080p" comes out 1080 wide, not 1080 tall.

HOW: escape_filter_path() normalizes and escapes a path. build_filter_graph()
emits subtitles='<ass>'[:fontsdir='<dir>'] and appends
scale=<short>:-2 (portrait) or scale=-2:<short> (landscape) when a target
resolution is set. Subtitles are burned first, at the native size the
ASS canvas was composed for, and the result is scaled afterwards.

RULES:
- Backslashes become forward slashes.
- ' becomes '\\'' and : becomes \\: .
- -2 lets ffmpeg pick the other side, rounded to an even number.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Optional, Union

from captioner.render.probe import VideoDimensions


class Resolution(str, enum.Enum):
    """Target output resolution, named by its short side.

    RULES:
    - original: no scale stage
    - every other value scales the short side to short_side pixels
    """

    ORIGINAL = "original"
    UHD_4K = "4k"
    QHD_1440P = "1440p"
    FHD_1080P = "1080p"
    HD_720P = "720p"
    SD_480P = "480p"

    @property
    def short_side(self) -> Optional[int]:
        return _SHORT_SIDES.get(self)

    @classmethod
    def parse(cls, value: Union[str, "Resolution"]) -> "Resolution":
        """Accept a Resolution or its name in any case.

        Raises:
            ValueError: If the name is not a known resolution.
        """
        if isinstance(value, Resolution):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                "Unknown resolution '{}'. Available: {}".format(
                    value, ", ".join(r.value for r in cls)
                )
            ) from None


_SHORT_SIDES = {
    Resolution.UHD_4K: 2160,
    Resolution.QHD_1440P: 1440,
    Resolution.FHD_1080P: 1080,
    Resolution.HD_720P: 720,
    Resolution.SD_480P: 480,
}


def escape_filter_path(path: Union[str, Path]) -> str:
    """Escape a file path for use as a quoted filter-graph option value."""
    normalized = str(path).replace("\\", "/")
    return normalized.replace("'", "'\\''").replace(":", "\\:")


def build_filter_graph(
    subtitle_path: Union[str, Path],
    target_resolution: Union[str, Resolution],
    dimensions: VideoDimensions,
    fonts_dir: Optional[Union[str, Path]] = None,
) -> str:
    """Build the -vf argument: burn subtitles, then optionally scale.

    Args:
        subtitle_path: ASS document on disk.
        target_resolution: Resolution or its name.
        dimensions: Display dimensions of the input.
        fonts_dir: Extra font directory for libass (system encoder only).

    Returns:
        The filter graph string.
    """
    graph = "subtitles='{}'".format(escape_filter_path(subtitle_path))
    if fonts_dir is not None:
        graph += ":fontsdir='{}'".format(escape_filter_path(fonts_dir))

    short_side = Resolution.parse(target_resolution).short_side
    if short_side is None:
        return graph

    if dimensions.is_portrait:
        return "{},scale={}:-2".format(graph, short_side)
    return "{},scale=-2:{}".format(graph, short_side)
