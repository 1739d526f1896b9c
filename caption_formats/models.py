"""Data models for the caption library.

WHY: Every stage of the pipeline (segmentation, SRT import/export, ASS
composition) passes the same few value types around. Keeping them frozen
means a cue list produced by one stage can be shared with another without
anyone mutating it underneath.

HOW: Three frozen dataclasses. Word is the speech-to-text input unit, Cue
is one timed caption entry, LanguageStyle is the per-language look of a
track in the burned-in video. Cue validates its timing on construction;
LanguageStyle validates its ranges.

RULES:
- All times are integer milliseconds, never floats.
- Cue.end_ms > Cue.start_ms >= 0, enforced at construction (InvalidCueError).
- Word timings are NOT validated; callers own that precondition.
- to_dict()/from_dict() use the camelCase keys of the project file format.
- Python 3.9 compatible (no slots=True, no match/case, no X | Y unions).
"""

from dataclasses import dataclass
from typing import Any, Dict

from .errors import InvalidCueError

# Defaults applied when a language has no explicit style.
DEFAULT_FONT_FAMILY = "Roboto"
DEFAULT_FONT_SIZE_PERCENT = 5.0
DEFAULT_COLOR_ARGB = 0xFFFFFFFF  # opaque white
DEFAULT_VERTICAL_POSITION_PERCENT = 85.0
DEFAULT_OUTLINE_WIDTH = 4.0

MIN_VERTICAL_POSITION_PERCENT = 50.0
MAX_VERTICAL_POSITION_PERCENT = 95.0


@dataclass(frozen=True)
class Word:
    """A single timestamped word from a speech-to-text transcript.

    Attributes:
        text: The word text as recognized (punctuation may be its own word).
        start_ms: Start time in milliseconds.
        end_ms: End time in milliseconds.
    """
    text: str
    start_ms: int
    end_ms: int


@dataclass(frozen=True)
class Cue:
    """One timed caption entry belonging to a single language track.

    Attributes:
        start_ms: Start time in milliseconds (>= 0).
        end_ms: End time in milliseconds (> start_ms).
        text: Caption text; may contain newlines.
    """
    start_ms: int
    end_ms: int
    text: str

    def __post_init__(self) -> None:
        if self.start_ms < 0 or self.end_ms <= self.start_ms:
            raise InvalidCueError(self.start_ms, self.end_ms)

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    def with_changes(self, **changes: Any) -> "Cue":
        """Return a copy with the given fields replaced (validated again)."""
        values = {
            "start_ms": self.start_ms,
            "end_ms": self.end_ms,
            "text": self.text,
        }
        values.update(changes)
        return Cue(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {"startMs": self.start_ms, "endMs": self.end_ms, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cue":
        return cls(
            start_ms=int(data["startMs"]),
            end_ms=int(data["endMs"]),
            text=str(data["text"]),
        )


@dataclass(frozen=True)
class LanguageStyle:
    """Visual style for one language track in the burned-in video.

    WHY: Each language is drawn at its own vertical position with its own
    font, size and colour so that simultaneous tracks never overlap.

    RULES:
    - font_size_percent is a percentage of the video height (typ. 2-8).
    - color_argb is a 32-bit 0xAARRGGBB integer (0xFF alpha = opaque).
    - vertical_position_percent is measured from the top, in [50, 95].
    - outline_width is in pixels at the video's native height, >= 0.

    Attributes:
        font_family: Font family name passed to the subtitle renderer.
        font_size_percent: Font size as percent of video height.
        color_argb: Primary text colour.
        vertical_position_percent: Baseline position, percent from top.
        outline_width: Outline thickness.
    """
    font_family: str = DEFAULT_FONT_FAMILY
    font_size_percent: float = DEFAULT_FONT_SIZE_PERCENT
    color_argb: int = DEFAULT_COLOR_ARGB
    vertical_position_percent: float = DEFAULT_VERTICAL_POSITION_PERCENT
    outline_width: float = DEFAULT_OUTLINE_WIDTH

    def __post_init__(self) -> None:
        if self.font_size_percent <= 0:
            raise ValueError(
                "font_size_percent must be positive, got {}".format(self.font_size_percent)
            )
        if not (MIN_VERTICAL_POSITION_PERCENT <= self.vertical_position_percent
                <= MAX_VERTICAL_POSITION_PERCENT):
            raise ValueError(
                "vertical_position_percent must be in [{}, {}], got {}".format(
                    MIN_VERTICAL_POSITION_PERCENT,
                    MAX_VERTICAL_POSITION_PERCENT,
                    self.vertical_position_percent,
                )
            )
        if self.outline_width < 0:
            raise ValueError(
                "outline_width must be >= 0, got {}".format(self.outline_width)
            )
        if not (0 <= self.color_argb <= 0xFFFFFFFF):
            raise ValueError("color_argb must be a 32-bit value")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fontFamily": self.font_family,
            "fontSize": self.font_size_percent,
            "color": self.color_argb,
            "verticalPosition": self.vertical_position_percent,
            "outlineWidth": self.outline_width,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LanguageStyle":
        """Build a style from a project-file dict; missing keys use defaults."""
        return cls(
            font_family=data.get("fontFamily", DEFAULT_FONT_FAMILY),
            font_size_percent=float(data.get("fontSize", DEFAULT_FONT_SIZE_PERCENT)),
            color_argb=int(data.get("color", DEFAULT_COLOR_ARGB)),
            vertical_position_percent=float(
                data.get("verticalPosition", DEFAULT_VERTICAL_POSITION_PERCENT)
            ),
            outline_width=float(data.get("outlineWidth", DEFAULT_OUTLINE_WIDTH)),
        )


DEFAULT_STYLE = LanguageStyle()
