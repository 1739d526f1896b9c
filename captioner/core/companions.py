"""Companion SRT files next to the source video.

WHY: Users hand captions to other tools (YouTube uploads, editors) as SRT
files named after the video, one per language, and often come back with
corrected files under the same names. Exporting and re-importing by naming
convention means nobody has to pick files by hand.

HOW: companion_srt_path() derives "<video stem>.<lang>.srt".
export_companion_srts() writes one file per track after checking that
none of the targets exist. discover_companion_srts() looks for
"<stem>.<code>.srt" for every supported language code;
import_companion_srts() parses what it finds with the SRT codec.

RULES:
- Naming: {stem}.{lang}.srt, e.g. interview.mp4 -> interview.en.srt
- Export refuses to overwrite (CompanionExistsError listing every
  conflicting path) unless overwrite=True; nothing is written on refusal
- Only codes in SUPPORTED_LANGUAGES are discovered on import
- Files are UTF-8; import tolerates a BOM and CRLF line endings
- Import order follows SUPPORTED_LANGUAGES order
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Union

from caption_formats import Cue, parse_srt, serialize_srt

from captioner.config import SUPPORTED_LANGUAGES

logger = logging.getLogger(__name__)


class CompanionExistsError(FileExistsError):
    """One or more companion SRT files already exist.

    Attributes:
        paths: Every target path that would have been overwritten.
    """

    def __init__(self, paths: Sequence[Path]) -> None:
        self.paths = list(paths)
        super().__init__(
            "Refusing to overwrite existing file(s): {}".format(
                ", ".join(str(p) for p in self.paths)
            )
        )


def companion_srt_path(
    video_path: Union[str, Path],
    language: str,
    output_dir: Optional[Union[str, Path]] = None,
) -> Path:
    """Path of the companion SRT for a language: <dir>/<stem>.<lang>.srt."""
    video = Path(video_path)
    directory = Path(output_dir) if output_dir is not None else video.parent
    return directory / "{}.{}.srt".format(video.stem, language)


def export_companion_srts(
    tracks: Mapping[str, Sequence[Cue]],
    video_path: Union[str, Path],
    output_dir: Optional[Union[str, Path]] = None,
    overwrite: bool = False,
) -> List[Path]:
    """Write every track as a companion SRT file.

    Args:
        tracks: Ordered language -> cues mapping.
        video_path: Source video the files are named after.
        output_dir: Directory to write into (default: next to the video).
        overwrite: Replace existing files instead of refusing.

    Returns:
        Written paths, in track order.

    Raises:
        CompanionExistsError: If any target exists and overwrite is False.
    """
    targets = [
        (companion_srt_path(video_path, language, output_dir), cues)
        for language, cues in tracks.items()
    ]

    if not overwrite:
        existing = [path for path, _ in targets if path.exists()]
        if existing:
            raise CompanionExistsError(existing)

    written = []  # type: List[Path]
    for path, cues in targets:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(serialize_srt(cues), encoding="utf-8")
        logger.info("Exported %d cues to %s", len(cues), path)
        written.append(path)
    return written


def discover_companion_srts(video_path: Union[str, Path]) -> "OrderedDict[str, Path]":
    """Find <stem>.<code>.srt files next to the video for supported codes."""
    found = OrderedDict()  # type: OrderedDict[str, Path]
    for code in SUPPORTED_LANGUAGES:
        candidate = companion_srt_path(video_path, code)
        if candidate.is_file():
            found[code] = candidate
    return found


def import_companion_srts(video_path: Union[str, Path]) -> "OrderedDict[str, List[Cue]]":
    """Parse every discovered companion SRT into a track.

    Files that parse to zero cues are skipped with a warning.
    """
    tracks = OrderedDict()  # type: OrderedDict[str, List[Cue]]
    for code, path in discover_companion_srts(video_path).items():
        content = path.read_text(encoding="utf-8-sig")
        cues = parse_srt(content)
        if not cues:
            logger.warning("No cues found in %s, skipping", path)
            continue
        logger.info("Imported %d cues for '%s' from %s", len(cues), code, path)
        tracks[code] = cues
    return tracks
