"""Tests for caption project files and their JSON schema validation."""

from __future__ import annotations

import json

import pytest

from caption_formats import DEFAULT_STYLE, Cue, LanguageStyle
from captioner.core.project import (
    CaptionConfig,
    CaptionProject,
    ProjectFileError,
    dumps_project,
    load_project,
    loads_project,
    save_project,
)


def _minimal(**overrides):
    data = {
        "version": 1,
        "originalLanguage": "en",
        "tracks": [{"language": "en", "cues": [{"startMs": 0, "endMs": 1000, "text": "Hi"}]}],
    }
    data.update(overrides)
    return data


class TestCaptionConfig:
    def test_style_fallback(self):
        config = CaptionConfig("en", ["es"], {"es": LanguageStyle(font_family="Lato")})
        assert config.style_for("en") == DEFAULT_STYLE
        assert config.style_for("es").font_family == "Lato"

    def test_languages_original_first_without_duplicates(self):
        config = CaptionConfig("en", ["es", "en", "fr"])
        assert config.languages == ["en", "es", "fr"]


class TestRoundTrip:
    def test_dumps_then_loads(self, sample_project):
        loaded = loads_project(dumps_project(sample_project))
        assert loaded == sample_project
        assert list(loaded.tracks) == ["en", "es"]

    def test_save_and_load(self, sample_project, tmp_path):
        path = save_project(sample_project, tmp_path / "clip.captions.json")
        assert load_project(path) == sample_project

    def test_camel_case_keys(self, sample_project):
        data = json.loads(dumps_project(sample_project))
        assert data["originalLanguage"] == "en"
        assert data["tracks"][0]["cues"][0] == {"startMs": 0, "endMs": 950, "text": "Hello world!"}
        assert data["styles"]["es"]["verticalPosition"] == 70.0
        assert data["maxChars"] == 25

    def test_non_ascii_written_verbatim(self, sample_project):
        assert "¡Hola mundo!" in dumps_project(sample_project)


class TestValidation:
    def test_minimal_project(self):
        project = loads_project(json.dumps(_minimal()))
        assert project.tracks["en"] == [Cue(0, 1000, "Hi")]
        assert project.styles == {}
        assert project.words == []

    def test_track_specs_use_default_style(self):
        project = loads_project(json.dumps(_minimal()))
        spec = project.track_specs()[0]
        assert spec.language == "en"
        assert spec.style == DEFAULT_STYLE

    def test_not_json(self):
        with pytest.raises(ProjectFileError, match="not valid JSON"):
            loads_project("{nope")

    def test_not_an_object(self):
        with pytest.raises(ProjectFileError):
            loads_project("[]")

    def test_wrong_version(self):
        with pytest.raises(ProjectFileError):
            loads_project(json.dumps(_minimal(version=2)))

    def test_missing_tracks(self):
        data = _minimal()
        del data["tracks"]
        with pytest.raises(ProjectFileError):
            loads_project(json.dumps(data))

    def test_vertical_position_out_of_range(self):
        data = _minimal(styles={"en": {"verticalPosition": 40}})
        with pytest.raises(ProjectFileError):
            loads_project(json.dumps(data))

    def test_backwards_cue_rejected(self):
        data = _minimal(tracks=[{"language": "en", "cues": [{"startMs": 500, "endMs": 100, "text": "x"}]}])
        with pytest.raises(ProjectFileError, match="Invalid cue timing"):
            loads_project(json.dumps(data))

    def test_unknown_field_rejected(self):
        with pytest.raises(ProjectFileError):
            loads_project(json.dumps(_minimal(extra=True)))

    def test_partial_style_uses_defaults(self):
        project = loads_project(json.dumps(_minimal(styles={"en": {"fontFamily": "Lato"}})))
        assert project.styles["en"] == LanguageStyle(font_family="Lato")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ProjectFileError, match="Cannot read"):
            load_project(tmp_path / "missing.json")

    def test_refuses_to_save_invalid(self, tmp_path):
        project = CaptionProject(original_language="")
        with pytest.raises(ProjectFileError):
            save_project(project, tmp_path / "bad.json")
        assert not (tmp_path / "bad.json").exists()
