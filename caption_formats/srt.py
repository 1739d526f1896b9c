"""SRT (SubRip) parsing and serialization.

WHY: SRT is the interchange format users import from other tools and export
for YouTube uploads. Files found in the wild have CRLF line endings,
missing or garbage index lines, and stray blocks, so the parser must be
best-effort rather than strict.

HOW: Two parse entry points share the timestamp parser from timecodes:
  parse_srt()        — line scanner; resynchronizes on the next "-->" line
                       after any garbage, tolerates missing index lines.
  parse_srt_blocks() — splits on blank lines first; for input that is
                       already well formed. Produces identical cues.
serialize_srt() writes index, timing line, verbatim text and a blank line.

RULES:
- CRLF and lone CR are normalized to LF before parsing.
- The index line is optional and ignored; it is never validated against
  the cue position.
- Blocks whose timing line fails to parse, whose text is empty, or whose
  timing is invalid (end <= start) are skipped with a log line, never fatal.
- Text lines are kept verbatim; multi-line text is joined with "\\n".
- Round trip: parse_srt(serialize_srt(cues)) == cues for text without
  blank lines and without a literal "-->".
"""

import logging
import re
from typing import List, Optional, Sequence

from .errors import InvalidCueError, ParseError
from .models import Cue
from .timecodes import format_srt_timestamp_pair, parse_srt_timestamp_pair

logger = logging.getLogger(__name__)

_BLOCK_SPLIT_RE = re.compile(r"\n[ \t]*\n+")


def _normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _build_cue(timing_line: str, text_lines: Sequence[str]) -> Optional[Cue]:
    """Turn a timing line and its text lines into a Cue, or None if unusable."""
    try:
        start_ms, end_ms = parse_srt_timestamp_pair(timing_line)
    except ParseError:
        logger.warning("Skipping SRT block with unreadable timing: %r", timing_line)
        return None

    text = "\n".join(text_lines)
    if not text.strip():
        return None

    try:
        return Cue(start_ms=start_ms, end_ms=end_ms, text=text)
    except InvalidCueError as exc:
        logger.warning("Skipping SRT block: %s", exc)
        return None


def parse_srt(content: str) -> List[Cue]:
    """Parse SRT text into cues by scanning line by line.

    WHY: The most common breakage in user-supplied SRT files is a missing
    or extra line somewhere in the middle. A line scanner can resync on the
    next timing line instead of losing the rest of the file.

    HOW:
      1. Skip blank lines.
      2. If the line is a bare integer, consume it as the index.
      3. The next line must contain "-->"; if not, skip one line and retry.
      4. Accumulate text lines until a blank line or end of input.

    Args:
        content: Raw SRT file content.

    Returns:
        Cues in file order.
    """
    lines = _normalize_newlines(content).split("\n")
    cues = []  # type: List[Cue]
    index = 0

    while index < len(lines):
        line = lines[index].strip()

        if not line:
            index += 1
            continue

        if line.isdigit():
            index += 1
            if index >= len(lines):
                break

        timing_line = lines[index]
        if "-->" not in timing_line:
            # Out of sync or not an SRT block: drop one line and retry
            index += 1
            continue
        index += 1

        text_lines = []  # type: List[str]
        while index < len(lines) and lines[index].strip():
            text_lines.append(lines[index])
            index += 1

        cue = _build_cue(timing_line, text_lines)
        if cue is not None:
            cues.append(cue)

    return cues


def parse_srt_blocks(content: str) -> List[Cue]:
    """Parse well-formed SRT text by splitting on blank-line separators.

    Each block is "[index]\\ntiming\\ntext...". The index line may be
    absent. Blocks without a parseable timing line are skipped.
    """
    normalized = _normalize_newlines(content).strip()
    if not normalized:
        return []

    cues = []  # type: List[Cue]
    for block in _BLOCK_SPLIT_RE.split(normalized):
        lines = block.split("\n")
        while lines and not lines[0].strip():
            lines.pop(0)
        if not lines:
            continue

        if "-->" not in lines[0]:
            lines = lines[1:]  # index line
        if not lines or "-->" not in lines[0]:
            logger.warning("Skipping SRT block without timing line: %r", block[:80])
            continue

        cue = _build_cue(lines[0], lines[1:])
        if cue is not None:
            cues.append(cue)

    return cues


def serialize_srt(cues: Sequence[Cue]) -> str:
    """Serialize cues to SRT text.

    RULES:
    - Indices are 1-based and follow list order (callers sort first).
    - Cue text is written verbatim; multi-line text stays multi-line.
    - Every block, including the last, ends with a blank line.
    """
    parts = []  # type: List[str]
    for i, cue in enumerate(cues, 1):
        parts.append("{}\n{}\n{}\n\n".format(
            i, format_srt_timestamp_pair(cue.start_ms, cue.end_ms), cue.text
        ))
    return "".join(parts)
