"""Tests for companion SRT export and import next to the source video."""

from __future__ import annotations

from collections import OrderedDict

import pytest

from caption_formats import Cue
from captioner.core.companions import (
    CompanionExistsError,
    companion_srt_path,
    discover_companion_srts,
    export_companion_srts,
    import_companion_srts,
)


class TestCompanionPath:
    def test_next_to_video(self, tmp_path):
        video = tmp_path / "interview.mp4"
        assert companion_srt_path(video, "en") == tmp_path / "interview.en.srt"

    def test_custom_directory(self, tmp_path):
        out = tmp_path / "out"
        assert companion_srt_path("/videos/clip.mov", "es", out) == out / "clip.es.srt"


class TestExport:
    def test_writes_one_file_per_track(self, caption_set, input_video):
        written = export_companion_srts(caption_set, input_video)
        assert [p.name for p in written] == ["clip.en.srt", "clip.es.srt"]
        assert written[0].read_text(encoding="utf-8").startswith(
            "1\n00:00:00,000 --> 00:00:00,950\nHello world!\n"
        )

    def test_refuses_to_overwrite(self, caption_set, input_video):
        existing = input_video.with_name("clip.es.srt")
        existing.write_text("keep me", encoding="utf-8")

        with pytest.raises(CompanionExistsError) as excinfo:
            export_companion_srts(caption_set, input_video)

        assert excinfo.value.paths == [existing]
        assert existing.read_text(encoding="utf-8") == "keep me"
        assert not input_video.with_name("clip.en.srt").exists()

    def test_overwrite(self, caption_set, input_video):
        existing = input_video.with_name("clip.es.srt")
        existing.write_text("old", encoding="utf-8")
        export_companion_srts(caption_set, input_video, overwrite=True)
        assert "Hola" in existing.read_text(encoding="utf-8")

    def test_output_dir_created(self, caption_set, input_video, tmp_path):
        written = export_companion_srts(caption_set, input_video, output_dir=tmp_path / "srt")
        assert all(p.parent == tmp_path / "srt" for p in written)

    def test_exists_error_is_file_exists_error(self):
        assert issubclass(CompanionExistsError, FileExistsError)


class TestImport:
    def test_round_trip(self, caption_set, input_video):
        export_companion_srts(caption_set, input_video)
        assert import_companion_srts(input_video) == caption_set

    def test_only_supported_codes(self, input_video):
        input_video.with_name("clip.en.srt").write_text(
            "1\n00:00:01,000 --> 00:00:02,000\nhi\n", encoding="utf-8"
        )
        input_video.with_name("clip.xx.srt").write_text(
            "1\n00:00:01,000 --> 00:00:02,000\nnope\n", encoding="utf-8"
        )
        assert list(discover_companion_srts(input_video)) == ["en"]

    def test_bom_and_crlf(self, input_video):
        input_video.with_name("clip.de.srt").write_bytes(
            "\ufeff1\r\n00:00:01,000 --> 00:00:02,000\r\nHallo\r\n".encode("utf-8")
        )
        assert import_companion_srts(input_video) == OrderedDict([("de", [Cue(1000, 2000, "Hallo")])])

    def test_empty_file_skipped(self, input_video):
        input_video.with_name("clip.fr.srt").write_text("", encoding="utf-8")
        assert import_companion_srts(input_video) == OrderedDict()

    def test_language_order(self, input_video):
        for code in ("ja", "en"):
            input_video.with_name("clip.{}.srt".format(code)).write_text(
                "1\n00:00:01,000 --> 00:00:02,000\nx\n", encoding="utf-8"
            )
        assert list(import_companion_srts(input_video)) == ["en", "ja"]
