"""Caption configuration and project files.

WHY: A render needs more than cue lists: which language is the original,
which targets are wanted, and how each language is styled. The CLI and the
HTTP API exchange all of that as one JSON project file, so it needs a
single well-defined shape that is checked before anything is rendered.

HOW: CaptionConfig holds the language selection and per-language styles.
CaptionProject adds the ordered tracks and, optionally, the raw words for
re-segmentation. Project JSON is validated with jsonschema against
schemas/caption_project.schema.json on load and on save.

RULES:
- Tracks are stored as a JSON list so their order is explicit.
- Missing styles fall back to DEFAULT_STYLE (style_for()).
- Every load/save error is raised as ProjectFileError, with the
  underlying cause chained.
- Cues are re-validated on load (InvalidCueError -> ProjectFileError).
"""

from __future__ import annotations

import json
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema

from caption_formats import DEFAULT_STYLE, Cue, LanguageStyle, TrackSpec, Word

logger = logging.getLogger(__name__)

PROJECT_VERSION = 1

_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "caption_project.schema.json"

_CACHED_SCHEMA: Optional[Dict[str, Any]] = None


def _get_schema() -> Dict[str, Any]:
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


class ProjectFileError(ValueError):
    """A caption project file could not be read, validated or written."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class CaptionConfig:
    """Language selection and per-language styles for one session.

    RULES:
    - original_language is the spoken language of the video
    - target_languages are translated into, in display order
    - language_styles may omit languages; style_for() falls back to default
    """

    original_language: str
    target_languages: List[str] = field(default_factory=list)
    language_styles: Dict[str, LanguageStyle] = field(default_factory=dict)

    def style_for(self, language: str) -> LanguageStyle:
        return self.language_styles.get(language, DEFAULT_STYLE)

    @property
    def languages(self) -> List[str]:
        """Original language first, then targets, without duplicates."""
        ordered = [self.original_language]
        for lang in self.target_languages:
            if lang not in ordered:
                ordered.append(lang)
        return ordered


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


@dataclass
class CaptionProject:
    """Everything needed to re-open, edit and render a captioned video.

    Attributes:
        original_language: Spoken language code.
        tracks: Ordered language -> cue list.
        styles: Per-language styles (may be partial).
        words: Raw transcript words, kept so the track can be re-segmented.
        video_path: Source video, if known.
        max_chars: Character ceiling the original track was segmented with.
    """

    original_language: str
    tracks: "OrderedDict[str, List[Cue]]" = field(default_factory=OrderedDict)
    styles: Dict[str, LanguageStyle] = field(default_factory=dict)
    words: List[Word] = field(default_factory=list)
    video_path: Optional[str] = None
    max_chars: Optional[int] = None

    @property
    def config(self) -> CaptionConfig:
        return CaptionConfig(
            original_language=self.original_language,
            target_languages=[lang for lang in self.tracks if lang != self.original_language],
            language_styles=dict(self.styles),
        )

    def track_specs(self) -> List[TrackSpec]:
        """Tracks paired with their styles, in project order, for compose_ass()."""
        config = self.config
        return [
            TrackSpec(language, cues, config.style_for(language))
            for language, cues in self.tracks.items()
        ]

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "version": PROJECT_VERSION,
            "originalLanguage": self.original_language,
            "tracks": [
                {"language": language, "cues": [cue.to_dict() for cue in cues]}
                for language, cues in self.tracks.items()
            ],
            "styles": {lang: style.to_dict() for lang, style in self.styles.items()},
        }  # type: Dict[str, Any]
        if self.words:
            data["words"] = [
                {"text": w.text, "startMs": w.start_ms, "endMs": w.end_ms}
                for w in self.words
            ]
        if self.video_path is not None:
            data["videoPath"] = self.video_path
        if self.max_chars is not None:
            data["maxChars"] = self.max_chars
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaptionProject":
        """Build a project from already-parsed JSON, validating it first.

        Raises:
            ProjectFileError: On schema violations or invalid cue timing.
        """
        try:
            jsonschema.validate(instance=data, schema=_get_schema())
        except jsonschema.ValidationError as exc:
            raise ProjectFileError("Invalid caption project: {}".format(exc.message)) from exc

        tracks = OrderedDict()  # type: OrderedDict[str, List[Cue]]
        try:
            for track in data["tracks"]:
                tracks[track["language"]] = [Cue.from_dict(c) for c in track["cues"]]
            styles = {
                lang: LanguageStyle.from_dict(style)
                for lang, style in data.get("styles", {}).items()
            }
        except ValueError as exc:
            raise ProjectFileError("Invalid caption project: {}".format(exc)) from exc

        words = [
            Word(text=w["text"], start_ms=w["startMs"], end_ms=w["endMs"])
            for w in data.get("words", [])
        ]

        return cls(
            original_language=data["originalLanguage"],
            tracks=tracks,
            styles=styles,
            words=words,
            video_path=data.get("videoPath"),
            max_chars=data.get("maxChars"),
        )


def loads_project(text: str) -> CaptionProject:
    """Parse and validate project JSON text.

    Raises:
        ProjectFileError: If the text is not valid JSON or not a valid project.
    """
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise ProjectFileError("Project file is not valid JSON: {}".format(exc)) from exc
    if not isinstance(data, dict):
        raise ProjectFileError("Project file must contain a JSON object")
    return CaptionProject.from_dict(data)


def dumps_project(project: CaptionProject) -> str:
    """Serialize a project to JSON text, validating the output.

    Raises:
        ProjectFileError: If the project does not satisfy the schema.
    """
    data = project.to_dict()
    try:
        jsonschema.validate(instance=data, schema=_get_schema())
    except jsonschema.ValidationError as exc:
        raise ProjectFileError("Refusing to save invalid project: {}".format(exc.message)) from exc
    return json.dumps(data, indent=2, ensure_ascii=False)


def load_project(path: Union[str, Path]) -> CaptionProject:
    """Read and validate a project file from disk."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProjectFileError("Cannot read project file {}: {}".format(path, exc)) from exc
    project = loads_project(text)
    logger.info("Loaded project %s (%d tracks)", path, len(project.tracks))
    return project


def save_project(project: CaptionProject, path: Union[str, Path]) -> Path:
    """Validate and write a project file; returns the written path."""
    path = Path(path)
    content = dumps_project(project)
    path.write_text(content, encoding="utf-8")
    logger.info("Saved project %s (%d tracks)", path, len(project.tracks))
    return path
