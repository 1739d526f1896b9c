"""Caption track editing and the translation contract.

WHY: After segmentation the user fixes typos, nudges timings, inserts and
removes cues, and asks for translations. Translations are keyed to the
original cue list by position, so every edit must keep tracks ordered and
every translation must come back with exactly the same cues.

HOW: Plain functions over cue lists that return new lists (Cue is frozen,
so an "edit" is a replacement). build_caption_set() ties the segmenter and
the external translate collaborator together into an ordered
language -> cues mapping ready for the composer.

RULES:
- Inputs are never mutated; every function returns a new list.
- Any edit that touches timing re-sorts the track by start_ms (stable).
- Text-only edits keep the position of the cue.
- add_cue() appends after the last cue's end: 3000 ms of "New caption".
- A translation must return the same number of cues; the translated text
  is re-attached to the original timings.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Callable, Dict, List, Optional, Sequence, Union

from caption_formats import Cue, Word, segment

logger = logging.getLogger(__name__)

NEW_CUE_TEXT = "New caption"
NEW_CUE_DURATION_MS = 3000

TranslateFn = Callable[[Sequence[Cue], str, str], Sequence[Union[Cue, str]]]
"""translate(cues, source_label, target_label) -> translated cues or texts."""


class TranslationContractError(ValueError):
    """The translation collaborator broke the same-length contract.

    WHY: Translated tracks are displayed against the original timings. A
    translator that merges or splits cues would silently shift every
    following caption, so the mismatch is raised instead of repaired.
    """

    def __init__(self, language: str, expected: int, actual: int) -> None:
        self.language = language
        self.expected = expected
        self.actual = actual
        super().__init__(
            "Translation to '{}' returned {} cues, expected {}".format(
                language, actual, expected
            )
        )


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------


def sort_track(cues: Sequence[Cue]) -> List[Cue]:
    """Return the cues ordered by start time (stable for equal starts)."""
    return sorted(cues, key=lambda cue: cue.start_ms)


def add_cue(
    cues: Sequence[Cue],
    text: str = NEW_CUE_TEXT,
    duration_ms: int = NEW_CUE_DURATION_MS,
) -> List[Cue]:
    """Append a new cue starting where the last cue ends.

    An empty track gets its first cue at 0 ms.
    """
    start_ms = max((cue.end_ms for cue in cues), default=0)
    new_cue = Cue(start_ms=start_ms, end_ms=start_ms + duration_ms, text=text)
    return sort_track(list(cues) + [new_cue])


def delete_cue(cues: Sequence[Cue], index: int) -> List[Cue]:
    """Remove the cue at index.

    Raises:
        IndexError: If index is out of range.
    """
    if not 0 <= index < len(cues):
        raise IndexError("Cue index {} out of range (0..{})".format(index, len(cues) - 1))
    return [cue for i, cue in enumerate(cues) if i != index]


def update_cue(
    cues: Sequence[Cue],
    index: int,
    start_ms: Optional[int] = None,
    end_ms: Optional[int] = None,
    text: Optional[str] = None,
) -> List[Cue]:
    """Replace fields of the cue at index.

    WHY: The editor changes one field at a time. Timing changes can move a
    cue past its neighbours, so the track is re-sorted whenever start or end
    changes; a text change never moves anything.

    Raises:
        IndexError: If index is out of range.
        InvalidCueError: If the new timing is invalid (end <= start).
    """
    if not 0 <= index < len(cues):
        raise IndexError("Cue index {} out of range (0..{})".format(index, len(cues) - 1))

    changes = {}  # type: Dict[str, object]
    if start_ms is not None:
        changes["start_ms"] = start_ms
    if end_ms is not None:
        changes["end_ms"] = end_ms
    if text is not None:
        changes["text"] = text

    updated = list(cues)
    updated[index] = cues[index].with_changes(**changes)

    if start_ms is not None or end_ms is not None:
        return sort_track(updated)
    return updated


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------


def translate_track(
    cues: Sequence[Cue],
    translate: TranslateFn,
    source_label: str,
    target_label: str,
) -> List[Cue]:
    """Translate a track through the external collaborator.

    HOW: Calls translate(cues, source_label, target_label), checks the
    length, and copies each translated text onto the original cue's timing.
    The collaborator may return Cue objects or plain strings.

    Raises:
        TranslationContractError: If the result length differs.
    """
    if not cues:
        return []

    translated = list(translate(list(cues), source_label, target_label))
    if len(translated) != len(cues):
        raise TranslationContractError(target_label, len(cues), len(translated))

    result = []  # type: List[Cue]
    for original, item in zip(cues, translated):
        text = item.text if isinstance(item, Cue) else str(item)
        result.append(original.with_changes(text=text))
    return result


def build_caption_set(
    words: Sequence[Word],
    max_chars: int,
    original_language: str,
    target_languages: Sequence[str] = (),
    translate: Optional[TranslateFn] = None,
    label_for: Callable[[str], str] = str,
) -> "OrderedDict[str, List[Cue]]":
    """Segment words once and translate the result into each target language.

    Args:
        words: Transcript words in spoken order.
        max_chars: Segmenter character ceiling.
        original_language: Code of the spoken language (first track).
        target_languages: Codes to translate into, in display order.
        translate: The translation collaborator; required when
            target_languages is non-empty.
        label_for: Maps a code to the label passed to translate
            (e.g. config.language_name).

    Returns:
        Ordered mapping, original language first.

    Raises:
        ValueError: If targets are requested without a translate function.
        TranslationContractError: If a translation changes the cue count.
    """
    cues = segment(words, max_chars)
    caption_set = OrderedDict()  # type: OrderedDict[str, List[Cue]]
    caption_set[original_language] = cues

    targets = [lang for lang in target_languages if lang != original_language]
    if targets and translate is None:
        raise ValueError("A translate function is required for target languages")

    for language in targets:
        logger.info(
            "Translating %d cues %s -> %s", len(cues), original_language, language
        )
        caption_set[language] = translate_track(
            cues, translate, label_for(original_language), label_for(language)
        )
    return caption_set
