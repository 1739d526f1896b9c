"""Multi-track ASS (Advanced SubStation Alpha) document composer.

WHY: Burning several languages into one video at once means several cues
are on screen simultaneously. The subtitle renderer's collision avoidance
would push them around and reflow them, so every event is pinned to an
absolute pixel position instead. ASS is the only format the encoder's
subtitles filter accepts that can express per-track fonts, colours and
positions in one file.

HOW: compose_ass() takes an explicitly ordered sequence of TrackSpec
(language, cues, style) and writes:
  [Script Info]  canvas = video size, WrapStyle 2 (no automatic wrapping)
  [V4+ Styles]   one "Lang_<code>" style per track, in track order
  [Events]       one Dialogue per cue, tracks concatenated in track order,
                 each prefixed with a {\\pos(x,y)} override
compose_ass_from_mapping() adapts a language -> cues mapping plus a style
mapping (default style for missing languages) into TrackSpecs.

RULES:
- Pixel values use round-half-up: font size = size% * H / 100,
  y = vertical% * H / 100, margin = (100 - vertical%) * H / 100 clamped to
  [10, H - 50], outline = round(outline_width). x is always W // 2.
- Colour is &HAABBGGRR in uppercase hex; ASS alpha is inverted (00 = opaque).
- Cue text is flattened to one line: newlines and \\N become single spaces.
- Braces are escaped as \\{ and \\} so user text can never open an override
  block. Commas need no escaping: Text is the last field of a Dialogue line.
- Pure function: inputs are never mutated; identical inputs give identical
  output.
"""

import math
import re
from typing import Iterable, List, Mapping, NamedTuple, Optional, Sequence

from .models import DEFAULT_STYLE, Cue, LanguageStyle
from .timecodes import ms_to_ass_timestamp

STYLE_FORMAT = (
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, "
    "OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, "
    "ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, "
    "MarginR, MarginV, Encoding"
)
EVENT_FORMAT = (
    "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text"
)

# Fixed style fields: red secondary, black outline, half-transparent shadow.
SECONDARY_COLOUR = "&H000000FF"
OUTLINE_COLOUR = "&H00000000"
BACK_COLOUR = "&H80000000"

MIN_MARGIN_V = 10
BOTTOM_RESERVE_PX = 50

_NEWLINE_RE = re.compile(r"\r\n|\r|\n|\\N")


class TrackSpec(NamedTuple):
    """One language track to compose: its code, ordered cues and style."""
    language: str
    cues: Sequence[Cue]
    style: LanguageStyle


# =============================================================================
# Value Conversion
# =============================================================================

def round_half_up(value: float) -> int:
    """Round a non-negative value to the nearest integer, halves going up."""
    return int(math.floor(value + 0.5))


def argb_to_ass_color(argb: int) -> str:
    """Convert 0xAARRGGBB to the ASS colour literal &HAABBGGRR.

    ASS alpha counts transparency, so it is the inverse of ARGB alpha:
    opaque white 0xFFFFFFFF becomes &H00FFFFFF.
    """
    alpha = 0xFF - ((argb >> 24) & 0xFF)
    red = (argb >> 16) & 0xFF
    green = (argb >> 8) & 0xFF
    blue = argb & 0xFF
    return "&H{:02X}{:02X}{:02X}{:02X}".format(alpha, blue, green, red)


def escape_ass_text(text: str) -> str:
    """Flatten cue text to a single ASS line and neutralize override braces."""
    flat = _NEWLINE_RE.sub(" ", text)
    return flat.replace("{", "\\{").replace("}", "\\}")


def font_size_px(style: LanguageStyle, video_height: int) -> int:
    return round_half_up(style.font_size_percent * video_height / 100)


def position_y_px(style: LanguageStyle, video_height: int) -> int:
    return round_half_up(style.vertical_position_percent * video_height / 100)


def margin_v_px(style: LanguageStyle, video_height: int) -> int:
    """Distance from the bottom edge, clamped to [10, height - 50].

    For very short canvases (height < 60) the upper bound collapses to 10.
    """
    margin = round_half_up((100 - style.vertical_position_percent) * video_height / 100)
    upper = max(MIN_MARGIN_V, video_height - BOTTOM_RESERVE_PX)
    return min(max(margin, MIN_MARGIN_V), upper)


# =============================================================================
# Document Composition
# =============================================================================

def _style_line(language: str, style: LanguageStyle, video_height: int) -> str:
    return (
        "Style: Lang_{lang},{font},{size},{colour},{secondary},{outline_colour},"
        "{back},0,0,0,0,100,100,0,0,1,{outline},1,2,10,10,{margin},1"
    ).format(
        lang=language,
        font=style.font_family,
        size=font_size_px(style, video_height),
        colour=argb_to_ass_color(style.color_argb),
        secondary=SECONDARY_COLOUR,
        outline_colour=OUTLINE_COLOUR,
        back=BACK_COLOUR,
        outline=round_half_up(style.outline_width),
        margin=margin_v_px(style, video_height),
    )


def _dialogue_line(language: str, cue: Cue, x: int, y: int) -> str:
    return "Dialogue: 0,{},{},Lang_{},,0,0,0,,{{\\pos({},{})}}{}".format(
        ms_to_ass_timestamp(cue.start_ms),
        ms_to_ass_timestamp(cue.end_ms),
        language,
        x,
        y,
        escape_ass_text(cue.text),
    )


def compose_ass(tracks: Iterable[TrackSpec], video_width: int, video_height: int) -> str:
    """Compose one positioned ASS document for several language tracks.

    WHY: The encoder burns a single subtitle file, so every language has to
    live in the same document with its own style and fixed position.

    HOW: Writes the script header, then one style record per track, then
    every track's cues in order with an explicit \\pos override at the
    horizontal centre and the style's vertical position.

    Args:
        tracks: Ordered (language, cues, style) triples. Order decides both
            style record order and event order.
        video_width: Canvas width in pixels (display orientation).
        video_height: Canvas height in pixels (display orientation).

    Returns:
        The ASS document text, LF line endings, trailing newline.

    Raises:
        ValueError: If the canvas dimensions are not positive.
    """
    if video_width <= 0 or video_height <= 0:
        raise ValueError(
            "Video dimensions must be positive, got {}x{}".format(video_width, video_height)
        )

    track_list = list(tracks)
    x = video_width // 2

    lines = [
        "[Script Info]",
        "Title: Captioner Multi-Language Subtitles",
        "ScriptType: v4.00+",
        "WrapStyle: 2",
        "ScaledBorderAndShadow: yes",
        "PlayResX: {}".format(video_width),
        "PlayResY: {}".format(video_height),
        "",
        "[V4+ Styles]",
        STYLE_FORMAT,
    ]  # type: List[str]

    for track in track_list:
        lines.append(_style_line(track.language, track.style, video_height))

    lines.extend(["", "[Events]", EVENT_FORMAT])

    for track in track_list:
        y = position_y_px(track.style, video_height)
        for cue in track.cues:
            lines.append(_dialogue_line(track.language, cue, x, y))

    return "\n".join(lines) + "\n"


def tracks_from_mapping(
    caption_set: Mapping[str, Sequence[Cue]],
    styles: Optional[Mapping[str, LanguageStyle]] = None,
) -> List[TrackSpec]:
    """Pair each language in a caption set with its style, in mapping order."""
    styles = styles or {}
    return [
        TrackSpec(language, cues, styles.get(language, DEFAULT_STYLE))
        for language, cues in caption_set.items()
    ]


def compose_ass_from_mapping(
    caption_set: Mapping[str, Sequence[Cue]],
    styles: Optional[Mapping[str, LanguageStyle]],
    video_width: int,
    video_height: int,
) -> str:
    """compose_ass() for a language -> cues mapping, iterated in insertion order.

    Languages without an entry in styles use DEFAULT_STYLE.
    """
    return compose_ass(tracks_from_mapping(caption_set, styles), video_width, video_height)
