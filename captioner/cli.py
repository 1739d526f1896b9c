"""Command-line interface for the captioner.

WHY: Most renders are one-off jobs on a workstation: turn a transcript into
a caption project, fix the SRTs by hand, burn the captions into the video.
The CLI wires the caption library, project files, companion SRTs and the
render orchestrator together behind a few subcommands.

HOW: argparse with one subparser per step:
  new     words JSON -> caption project (original-language track)
  export  caption project -> <video stem>.<lang>.srt companion files
  import  companion SRT files -> caption project
  render  caption project + video -> captioned video
Status messages go to stderr; render progress is a single updating line.

RULES:
- Exit code 0 on success, 1 on any user-facing error
- Status output goes to stderr (not stdout)
- Video extension is checked against SUPPORTED_VIDEO_FORMATS before render
- render never overwrites the input video
- Ctrl+C during a render cancels ffmpeg and exits 130
- Python 3.9+ compatible (no match/case, no X | Y unions)
"""

from __future__ import annotations

import argparse
import json
import sys
import threading
from collections import OrderedDict
from pathlib import Path
from typing import List, Optional

from caption_formats import SEGMENT_PRESETS, parse_words, resolve_max_chars, segment

from captioner import config
from captioner.core.companions import (
    CompanionExistsError,
    export_companion_srts,
    import_companion_srts,
)
from captioner.core.project import (
    CaptionProject,
    ProjectFileError,
    load_project,
    save_project,
)
from captioner.logs import configure_logging
from captioner.render import RenderError, RenderOrchestrator, Resolution


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _progress_printer():
    """A progress sink that redraws one percentage line on stderr."""
    state = {"last": -1}

    def sink(fraction: float) -> None:
        percent = int(fraction * 100)
        if percent == state["last"]:
            return
        state["last"] = percent
        sys.stderr.write("\r  Rendering... {:3d}%".format(percent))
        sys.stderr.flush()
        if percent >= 100:
            sys.stderr.write("\n")

    return sink


def _default_output_path(video: Path, resolution: Resolution) -> Path:
    suffix = "" if resolution == Resolution.ORIGINAL else "-{}".format(resolution.value)
    return video.with_name("{}.captioned{}{}".format(video.stem, suffix, video.suffix))


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_new(args: argparse.Namespace) -> None:
    words_path = Path(args.words)
    try:
        words = parse_words(json.loads(words_path.read_text(encoding="utf-8")))
    except (OSError, ValueError) as e:
        _fail("Cannot read words from {}: {}".format(words_path, e))

    max_chars = args.max_chars or resolve_max_chars(args.preset)
    cues = segment(words, max_chars)
    _status("Segmented {} words into {} cues (max {} chars)".format(
        len(words), len(cues), max_chars
    ))

    project = CaptionProject(
        original_language=args.language,
        tracks=OrderedDict([(args.language, cues)]),
        words=words,
        video_path=args.video,
        max_chars=max_chars,
    )
    output = Path(args.output or words_path.with_suffix(".captions.json"))
    save_project(project, output)
    _status("Saved project: {}".format(output))


def _cmd_export(args: argparse.Namespace) -> None:
    project = load_project(args.project)
    video = args.video or project.video_path
    if not video:
        _fail("No video given and the project does not name one")

    try:
        written = export_companion_srts(
            project.tracks, video, output_dir=args.output_dir, overwrite=args.overwrite
        )
    except CompanionExistsError as e:
        _fail("{} (use --overwrite to replace)".format(e))

    for path in written:
        _status("  Saved: {}".format(path))
    _status("Exported {} track(s)".format(len(written)))


def _cmd_import(args: argparse.Namespace) -> None:
    video = Path(args.video)
    tracks = import_companion_srts(video)
    if not tracks:
        _fail("No companion SRT files found next to {}".format(video))

    original = args.original_language
    if original not in tracks:
        original = next(iter(tracks))
        _status("  No '{}' track; using '{}' as original".format(args.original_language, original))

    ordered = OrderedDict([(original, tracks[original])])
    for code, cues in tracks.items():
        if code != original:
            ordered[code] = cues

    for code, cues in ordered.items():
        _status("  {} ({}): {} cues".format(config.language_name(code), code, len(cues)))

    project = CaptionProject(original_language=original, tracks=ordered, video_path=str(video))
    output = Path(args.output or video.with_suffix(".captions.json"))
    save_project(project, output)
    _status("Saved project: {}".format(output))


def _cmd_render(args: argparse.Namespace) -> None:
    video = Path(args.video).resolve()
    if not video.is_file():
        _fail("File not found: {}".format(video))
    ext = video.suffix.lower()
    if ext not in config.SUPPORTED_VIDEO_FORMATS:
        _fail("Unsupported file type '{}'. Supported formats: {}".format(
            ext, ", ".join(sorted(config.SUPPORTED_VIDEO_FORMATS))
        ))

    try:
        resolution = Resolution.parse(args.resolution)
    except ValueError as e:
        _fail(str(e))

    project = load_project(args.project)
    if not any(project.tracks.values()):
        _fail("Project has no cues to render")

    output = Path(args.output).resolve() if args.output else _default_output_path(video, resolution)
    if output == video:
        _fail("Output would overwrite the input video")

    encoder = config.create_encoder(args.encoder, font_config=config.create_font_config())
    orchestrator = RenderOrchestrator(encoder)
    cancel_event = threading.Event()

    _status("Rendering {} track(s) into {}".format(len(project.tracks), output.name))
    try:
        result = orchestrator.render_tracks(
            project.track_specs(),
            input_path=video,
            output_path=output,
            work_dir=output.parent,
            target_resolution=resolution,
            progress_sink=_progress_printer(),
            cancel_event=cancel_event,
        )
    except KeyboardInterrupt:
        cancel_event.set()
        _status("\nCancelled by user.")
        sys.exit(130)

    try:
        result.raise_for_status()
    except RenderError as e:
        _status("")
        if e.log:
            _status(e.log)
        _fail(str(e))

    _status("Done! {}".format(result.output_path))


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    RULES:
    - One subcommand is required
    - --encoder defaults to CAPTIONER_ENCODER, --resolution to
      CAPTIONER_DEFAULT_RESOLUTION
    """
    parser = argparse.ArgumentParser(
        prog="captioner",
        description="Segment transcripts into captions, manage caption projects "
                    "and burn multi-language captions into videos.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: CAPTIONER_LOG_LEVEL or INFO).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    new = subparsers.add_parser("new", help="Create a caption project from a words JSON file.")
    new.add_argument("words", help="Words JSON (list of {text, start, end} in ms).")
    new.add_argument(
        "--language",
        default=config.DEFAULT_ORIGINAL_LANGUAGE,
        help="Spoken language code (default: %(default)s).",
    )
    new.add_argument(
        "--preset",
        default="social",
        choices=sorted(SEGMENT_PRESETS),
        help="Segmentation preset (default: %(default)s).",
    )
    new.add_argument("--max-chars", type=int, default=None, help="Override the preset's character limit.")
    new.add_argument("--video", default=None, help="Video the project belongs to.")
    new.add_argument("--output", default=None, help="Project file to write (default: <words>.captions.json).")
    new.set_defaults(func=_cmd_new)

    export = subparsers.add_parser("export", help="Write companion SRT files for every track.")
    export.add_argument("project", help="Caption project JSON.")
    export.add_argument("--video", default=None, help="Video to name the files after (default: from project).")
    export.add_argument("--output-dir", default=None, help="Directory to write into (default: next to the video).")
    export.add_argument("--overwrite", action="store_true", help="Replace existing SRT files.")
    export.set_defaults(func=_cmd_export)

    imp = subparsers.add_parser("import", help="Build a caption project from companion SRT files.")
    imp.add_argument("video", help="Video whose <stem>.<lang>.srt files should be imported.")
    imp.add_argument(
        "--original-language",
        default=config.DEFAULT_ORIGINAL_LANGUAGE,
        help="Track to treat as the original (default: %(default)s).",
    )
    imp.add_argument("--output", default=None, help="Project file to write (default: <video>.captions.json).")
    imp.set_defaults(func=_cmd_import)

    render = subparsers.add_parser("render", help="Burn a caption project into a video.")
    render.add_argument("video", help="Input video file.")
    render.add_argument("--project", required=True, help="Caption project JSON.")
    render.add_argument(
        "--resolution",
        default=config.DEFAULT_RESOLUTION,
        choices=[r.value for r in Resolution],
        help="Output resolution (default: %(default)s).",
    )
    render.add_argument("--output", default=None, help="Output video (default: <stem>.captioned<ext>).")
    render.add_argument(
        "--encoder",
        default=None,
        choices=["system", "session"],
        help="Encoder implementation (default: CAPTIONER_ENCODER or system).",
    )
    render.set_defaults(func=_cmd_render)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level)

    try:
        args.func(args)
    except ProjectFileError as e:
        _fail(str(e))


if __name__ == "__main__":
    main()
