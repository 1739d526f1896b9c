"""Caption segmentation and subtitle codecs for burned-in video captions.

WHY: The captioner app needs to turn a speech-to-text word list into short,
readable cues, exchange those cues as SRT with other tools, and render
several translated tracks into one positioned ASS document for burn-in.
Keeping these pieces in a dependency-free library lets the CLI, the HTTP
API and the tests share one implementation without global state.

HOW: Modules, leaf first:
  timecodes  — millisecond <-> "HH:MM:SS,mmm" / "H:MM:SS.cc"
  segmenter  — greedy word -> cue segmentation with punctuation tie-breaks
  srt        — tolerant SRT parser and serializer
  ass        — multi-track ASS composer with absolute positioning
format_srt() is the one-call convenience: words in, SRT text out.

RULES:
- All times are integer milliseconds.
- Every function is pure; inputs are never mutated.
- Preset names: "social" (default), "some" (alias), "broadcast".
- Python 3.9 compatible (no slots=True, no match/case, no X | Y unions).
"""

from typing import List, Optional

from .ass import (
    TrackSpec,
    argb_to_ass_color,
    compose_ass,
    compose_ass_from_mapping,
    escape_ass_text,
)
from .errors import InvalidCueError, ParseError
from .models import DEFAULT_STYLE, Cue, LanguageStyle, Word
from .presets import (
    DEFAULT_MAX_DURATION_MS,
    DEFAULT_PRESET,
    PUNCTUATION_MARKS,
    SEGMENT_PRESETS,
    resolve_max_chars,
    resolve_preset,
)
from .segmenter import is_pure_punctuation, parse_words, segment
from .srt import parse_srt, parse_srt_blocks, serialize_srt
from .timecodes import ms_to_ass_timestamp, ms_to_srt_timestamp, parse_srt_timestamp_pair

__all__ = [
    "format_srt",
    "Word",
    "Cue",
    "LanguageStyle",
    "DEFAULT_STYLE",
    "TrackSpec",
    "ParseError",
    "InvalidCueError",
    "SEGMENT_PRESETS",
    "DEFAULT_PRESET",
    "DEFAULT_MAX_DURATION_MS",
    "PUNCTUATION_MARKS",
    "resolve_preset",
    "resolve_max_chars",
    "segment",
    "parse_words",
    "is_pure_punctuation",
    "parse_srt",
    "parse_srt_blocks",
    "serialize_srt",
    "compose_ass",
    "compose_ass_from_mapping",
    "argb_to_ass_color",
    "escape_ass_text",
    "ms_to_srt_timestamp",
    "ms_to_ass_timestamp",
    "parse_srt_timestamp_pair",
]


def format_srt(
    words: List[Word],
    preset: str = DEFAULT_PRESET,
    max_chars: Optional[int] = None,
    max_duration_ms: Optional[int] = None,
) -> str:
    """Segment timestamped words and return the result as SRT text.

    HOW: Resolves the preset, lets explicit limits override it, then runs
    segment() -> serialize_srt().

    Args:
        words: Word objects in spoken order.
        preset: Preset name ("social", "some", "broadcast").
        max_chars: Optional character ceiling overriding the preset.
        max_duration_ms: Optional duration ceiling overriding the preset.

    Returns:
        SRT text; empty string when words is empty.

    Raises:
        ValueError: If the preset is unknown or a limit is not positive.
    """
    cfg = resolve_preset(preset)
    if max_chars is not None:
        cfg["max_chars"] = max_chars
    if max_duration_ms is not None:
        cfg["max_duration_ms"] = max_duration_ms

    if not words:
        return ""

    cues = segment(words, cfg["max_chars"], cfg["max_duration_ms"])
    return serialize_srt(cues)
