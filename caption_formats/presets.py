"""Segmentation presets and punctuation constants.

WHY: Vertical social clips and 16:9 broadcast output want very different
caption lengths. Naming the common limits lets callers pick one by name
instead of hard-coding character counts, and keeps the punctuation set in
one place so it can be extended for other languages.

HOW: SEGMENT_PRESETS maps a preset name to a plain dict of limits.
PUNCTUATION_MARKS is the set of characters a "pure punctuation" token may
consist of.

RULES:
- Presets are frozen constants; never mutate them at runtime.
- "some" is an alias for "social".
- The duration ceiling is shared by all presets (2500 ms).
"""

from typing import Dict, FrozenSet

DEFAULT_MAX_DURATION_MS = 2500

# Tokens made only of these characters stay attached to the preceding word.
PUNCTUATION_MARKS: FrozenSet[str] = frozenset(",.!?;:-—–")

# Social format: 9:16 vertical video, short single-line captions
PRESET_SOCIAL: Dict = {
    "max_chars": 25,
    "max_duration_ms": DEFAULT_MAX_DURATION_MS,
}

# Broadcast format: 16:9, one long line
PRESET_BROADCAST: Dict = {
    "max_chars": 42,
    "max_duration_ms": DEFAULT_MAX_DURATION_MS,
}

SEGMENT_PRESETS: Dict[str, Dict] = {
    "social": PRESET_SOCIAL,
    "some": PRESET_SOCIAL,  # Alias
    "broadcast": PRESET_BROADCAST,
}

DEFAULT_PRESET = "social"


def resolve_preset(name: str) -> Dict:
    """Return a copy of the named preset.

    Raises:
        ValueError: If the preset name is not recognized.
    """
    key = name.lower()
    if key not in SEGMENT_PRESETS:
        raise ValueError(
            "Unknown preset '{}'. Available: {}".format(
                name, ", ".join(SEGMENT_PRESETS.keys())
            )
        )
    return dict(SEGMENT_PRESETS[key])


def resolve_max_chars(name: str) -> int:
    """Return the character ceiling of the named preset."""
    return resolve_preset(name)["max_chars"]
