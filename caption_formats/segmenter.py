"""Greedy caption segmentation of timestamped words.

WHY: Speech-to-text providers return a flat list of words. Captions need
to be short enough to read at a glance and short enough in time that they
track the speech. This module re-segments words into cues deterministically
so the user can change the character limit and re-run it on the fly.

HOW: A single left-to-right pass keeps an accumulating run of words. Before
appending the next word it computes the run's would-be text length and
would-be duration; if either exceeds its ceiling the run is closed as a
cue and a new run starts at the word. Punctuation tie-breaks stop the pass
from separating a word from the punctuation token that follows it.

RULES:
- Character count is the length of the joined cue text, spaces included.
- Duration ceiling triggers when would-be duration >= max_duration_ms.
- Never break before a word whose follower is pure punctuation.
- Never start a cue with a pure punctuation token; it attaches to the
  preceding run without a space ("world" + "!" -> "world!").
- A single word longer than max_chars is never split; its cue may exceed
  the limit.
- Words with empty text extend the cue timing and count one separating
  space, but add no visible characters.
- Deterministic: no clock or randomness; inputs are never mutated.
"""

import logging
from typing import Any, Iterable, List, Optional, Sequence

from .models import Cue, Word
from .presets import DEFAULT_MAX_DURATION_MS, PUNCTUATION_MARKS

logger = logging.getLogger(__name__)


# =============================================================================
# Text Utilities
# =============================================================================

def is_pure_punctuation(text: str, punctuation: Iterable[str] = PUNCTUATION_MARKS) -> bool:
    """True if the trimmed text is non-empty and consists only of punctuation marks."""
    stripped = text.strip()
    if not stripped:
        return False
    marks = punctuation if isinstance(punctuation, (set, frozenset)) else set(punctuation)
    return all(ch in marks for ch in stripped)


def _append_text(current: str, text: str, punctuation: Iterable[str]) -> str:
    """Append a word to cue text: single space, none before punctuation."""
    if not text:
        return current
    if not current:
        return text
    if is_pure_punctuation(text, punctuation):
        return current + text
    return current + " " + text


def _emit(cues: List[Cue], start_ms: int, end_ms: int, text: str) -> None:
    """Close a run as a cue; a run with no duration is dropped."""
    if end_ms <= start_ms:
        logger.warning(
            "Dropping zero-length caption at %dms-%dms: %r", start_ms, end_ms, text
        )
        return
    cues.append(Cue(start_ms=start_ms, end_ms=end_ms, text=text))


# =============================================================================
# Segmentation
# =============================================================================

def segment(
    words: Sequence[Word],
    max_chars: int,
    max_duration_ms: int = DEFAULT_MAX_DURATION_MS,
    punctuation: Optional[Iterable[str]] = None,
) -> List[Cue]:
    """Segment a flat word list into caption cues.

    WHY: Readers need captions that fit on one line of a phone screen and
    change roughly in step with the speaker. A greedy pass is predictable:
    the same words and limits always produce the same cues, which matters
    because translations are keyed to the cue list.

    HOW: For each word (left to right):
      1. Compute the text the run would have with the word appended and
         the run's would-be duration (word.end_ms - run start).
      2. Look ahead at the following word: is it pure punctuation?
      3. If the run is non-empty, a limit would be exceeded, the follower
         is not punctuation and the word itself is not punctuation,
         close the run as a cue and start a new one at this word.
      4. Otherwise append the word to the run.
    The last non-empty run becomes the final cue.

    RULES:
    - Empty input returns an empty list.
    - Cue start = first word's start_ms, cue end = last word's end_ms.
    - Timings are not repaired; a run ending at or before its start (a
      lone zero-duration word) is dropped with a warning.

    Args:
        words: Ordered words with millisecond timings.
        max_chars: Character ceiling per cue (> 0).
        max_duration_ms: Duration ceiling per cue (> 0), default 2500 ms.
        punctuation: Optional override of the punctuation mark set.

    Returns:
        Ordered list of Cue objects.

    Raises:
        ValueError: If max_chars or max_duration_ms is not positive.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive, got {}".format(max_chars))
    if max_duration_ms <= 0:
        raise ValueError("max_duration_ms must be positive, got {}".format(max_duration_ms))

    marks = PUNCTUATION_MARKS if punctuation is None else frozenset(punctuation)

    cues = []  # type: List[Cue]
    run = []  # type: List[Word]
    run_text = ""
    run_start = 0
    run_blanks = 0

    for i, word in enumerate(words):
        text = word.text.strip()

        if run:
            would_be_text = _append_text(run_text, text, marks)
            # Empty words add no text but still count their separating space.
            would_be_chars = len(would_be_text) + run_blanks + (0 if text else 1)
            would_exceed_chars = would_be_chars > max_chars
            would_exceed_duration = word.end_ms - run_start >= max_duration_ms

            next_is_punctuation = (
                i + 1 < len(words) and is_pure_punctuation(words[i + 1].text, marks)
            )

            if ((would_exceed_chars or would_exceed_duration)
                    and not next_is_punctuation
                    and not is_pure_punctuation(text, marks)):
                _emit(cues, run_start, run[-1].end_ms, run_text)
                run = []

        if not run:
            run_start = word.start_ms
            run_text = text
            run_blanks = 0
        else:
            run_text = _append_text(run_text, text, marks)
            if not text:
                run_blanks += 1
        run.append(word)

    if run:
        _emit(cues, run_start, run[-1].end_ms, run_text)

    logger.debug(
        "Segmented %d words into %d cues (max_chars=%d, max_duration_ms=%d)",
        len(words), len(cues), max_chars, max_duration_ms,
    )
    return cues


# =============================================================================
# Input Parsing
# =============================================================================

def _first_present(item: dict, keys: Sequence[str], default: Any = None) -> Any:
    for key in keys:
        if key in item:
            return item[key]
    return default


def parse_words(data: Any) -> List[Word]:
    """Parse speech-to-text JSON into a flat word list.

    WHY: Transcription providers and saved projects spell word fields
    differently. This normalizes them into Word objects.

    HOW: Accepts either a list of word objects or a dict with a "words"
    list. Field names are flexible: text/word/t for text,
    start/start_ms/startMs/s for start, end/end_ms/endMs/e for end.

    RULES:
    - Times are integer milliseconds; numeric strings are converted.
    - Entries with empty text (after trimming) are skipped.
    - Non-dict entries are skipped.
    - Missing end falls back to start.

    Args:
        data: Parsed JSON data.

    Returns:
        Flat list of Word objects in input order.
    """
    if isinstance(data, dict):
        data = data.get("words", [])
    if not isinstance(data, list):
        return []

    words = []  # type: List[Word]
    for item in data:
        if not isinstance(item, dict):
            continue
        text = _first_present(item, ("text", "word", "t"), "")
        if not isinstance(text, str) or not text.strip():
            continue
        start = int(_first_present(item, ("start", "start_ms", "startMs", "s"), 0))
        end = int(_first_present(item, ("end", "end_ms", "endMs", "e"), start))
        words.append(Word(text=text.strip(), start_ms=start, end_ms=end))
    return words
