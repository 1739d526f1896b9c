"""Command line for turning a word-list JSON file into SRT captions.

WHY: Useful for checking segmentation limits against a real transcript
without starting the app, and for scripting batch conversions.

HOW: Reads a word-list JSON (file or stdin), parses it with parse_words(),
segments with the chosen preset (or explicit --max-chars), and writes SRT
to the output file or stdout.

RULES:
- Usage:
    python -m caption_formats words.json out.srt [--preset broadcast]
    python -m caption_formats words.json --max-chars 32   (stdout)
    cat words.json | python -m caption_formats - out.srt
- Exit codes: 0 = success, 1 = error.
- Progress messages go to stderr; SRT content goes to stdout when no
  output file is given.
"""

import json
import sys
from typing import List, Optional

from .presets import DEFAULT_PRESET, SEGMENT_PRESETS, resolve_preset
from .segmenter import parse_words, segment
from .srt import serialize_srt

HELP_TEXT = """caption_formats — word list to SRT caption segmenter

Usage:
    python -m caption_formats words.json output.srt
    python -m caption_formats words.json output.srt --preset broadcast
    python -m caption_formats words.json --max-chars 32  # outputs to stdout
    cat words.json | python -m caption_formats - output.srt

Presets:
    --preset social     (default) vertical video, max 25 chars per cue
    --preset broadcast  16:9 video, max 42 chars per cue
    --preset some       Alias for social

Options:
    --max-chars N       Override the preset's character limit
    --max-duration MS   Override the duration limit (default 2500)
"""


def _fail(message: str) -> None:
    print("Error: {}".format(message), file=sys.stderr)
    sys.exit(1)


def _take_option(args: List[str], name: str) -> Optional[str]:
    """Remove "--name value" or "--name=value" from args and return the value."""
    for i, arg in enumerate(args):
        if arg == name and i + 1 < len(args):
            value = args[i + 1]
            del args[i:i + 2]
            return value
        if arg.startswith(name + "="):
            del args[i]
            return arg.split("=", 1)[1]
    return None


def main(argv: "List[str]" = None) -> None:
    """Run the segmenter CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).
    """
    if argv is None:
        argv = sys.argv[1:]

    args = list(argv)

    if not args or args[0] in ("-h", "--help"):
        print(HELP_TEXT)
        sys.exit(0)

    preset_name = (_take_option(args, "--preset") or DEFAULT_PRESET).lower()
    max_chars_arg = _take_option(args, "--max-chars")
    max_duration_arg = _take_option(args, "--max-duration")

    if preset_name not in SEGMENT_PRESETS:
        _fail("Unknown preset '{}'. Available: {}".format(
            preset_name, ", ".join(SEGMENT_PRESETS.keys())
        ))

    cfg = resolve_preset(preset_name)
    try:
        if max_chars_arg is not None:
            cfg["max_chars"] = int(max_chars_arg)
        if max_duration_arg is not None:
            cfg["max_duration_ms"] = int(max_duration_arg)
    except ValueError:
        _fail("--max-chars and --max-duration take integers")

    input_path = args[0] if args else "-"
    output_path = args[1] if len(args) > 1 else None

    if input_path == "-":
        raw = sys.stdin.read()
    else:
        try:
            with open(input_path, "r", encoding="utf-8") as f:
                raw = f.read()
        except OSError as e:
            _fail("Cannot read {}: {}".format(input_path, e))

    try:
        data = json.loads(raw)
    except ValueError as e:
        _fail("Invalid JSON: {}".format(e))

    words = parse_words(data)
    if not words:
        _fail("No words found in input")

    try:
        cues = segment(words, cfg["max_chars"], cfg["max_duration_ms"])
    except ValueError as e:
        _fail(str(e))

    srt = serialize_srt(cues)

    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(srt)
        print(
            "Wrote {} captions (max {} chars) to {}".format(
                len(cues), cfg["max_chars"], output_path
            ),
            file=sys.stderr,
        )
    else:
        sys.stdout.write(srt)


if __name__ == "__main__":
    main()
