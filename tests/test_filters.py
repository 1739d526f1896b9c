"""Tests for the subtitle burn-in filter graph."""

from __future__ import annotations

import pytest

from captioner.render.filters import Resolution, build_filter_graph, escape_filter_path
from captioner.render.probe import VideoDimensions

LANDSCAPE_4K = VideoDimensions(3840, 2160)
PORTRAIT = VideoDimensions(1080, 1920)


class TestResolution:
    @pytest.mark.parametrize("name,short_side", [
        ("original", None), ("4k", 2160), ("1440p", 1440),
        ("1080p", 1080), ("720p", 720), ("480p", 480),
    ])
    def test_short_sides(self, name, short_side):
        assert Resolution.parse(name).short_side == short_side

    def test_parse_case_insensitive(self):
        assert Resolution.parse(" 4K ") is Resolution.UHD_4K

    def test_parse_passthrough(self):
        assert Resolution.parse(Resolution.HD_720P) is Resolution.HD_720P

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown resolution"):
            Resolution.parse("8k")


class TestEscapeFilterPath:
    def test_windows_path(self):
        assert escape_filter_path("C:\\Users\\me\\subs.ass") == "C\\:/Users/me/subs.ass"

    def test_apostrophe(self):
        assert escape_filter_path("/home/o'brien/subs.ass") == "/home/o'\\''brien/subs.ass"

    def test_plain_path_unchanged(self):
        assert escape_filter_path("/tmp/job/clip.captions.ass") == "/tmp/job/clip.captions.ass"


class TestBuildFilterGraph:
    def test_original_has_no_scale(self):
        graph = build_filter_graph("/tmp/a.ass", "original", LANDSCAPE_4K)
        assert graph == "subtitles='/tmp/a.ass'"

    def test_landscape_scales_height(self):
        graph = build_filter_graph("/tmp/a.ass", "1080p", LANDSCAPE_4K)
        assert graph == "subtitles='/tmp/a.ass',scale=-2:1080"

    def test_portrait_scales_width(self):
        graph = build_filter_graph("/tmp/a.ass", Resolution.FHD_1080P, PORTRAIT)
        assert graph == "subtitles='/tmp/a.ass',scale=1080:-2"

    def test_fonts_dir(self):
        graph = build_filter_graph("/tmp/a.ass", "720p", LANDSCAPE_4K, fonts_dir="/opt/fonts")
        assert graph == "subtitles='/tmp/a.ass':fontsdir='/opt/fonts',scale=-2:720"

    def test_square_treated_as_landscape(self):
        graph = build_filter_graph("/tmp/a.ass", "480p", VideoDimensions(1000, 1000))
        assert graph.endswith("scale=-2:480")
