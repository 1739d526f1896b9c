"""Shared test fixtures for the captioner test suite.

WHY: Segmentation, composition, project files and the render pipeline are
all exercised with the same small transcript and the same ffmpeg probe
text. Centralizing them here keeps the expected values consistent across
test modules.

HOW: Pytest fixtures provide a word list, a two-language caption set, a
caption project, canned "ffmpeg -i" output and a FakeEncoder that records
what it was asked to do instead of starting ffmpeg.

RULES:
- No fixture starts a real ffmpeg.
- FakeEncoder writes the output file like ffmpeg would, so cleanup of
  partial output can be observed.
- Probe text matches what ffmpeg 6.x prints for an H.264 MP4.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from caption_formats import Cue, LanguageStyle, Word
from captioner.core.project import CaptionProject
from captioner.render.encoder import EncodeResult, Encoder, ProcessLaunchFailed


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

SAMPLE_WORDS: List[Word] = [
    Word("Hello", 0, 400),
    Word("world", 450, 900),
    Word("!", 900, 950),
    Word("This", 1200, 1400),
    Word("is", 1420, 1500),
    Word("a", 1510, 1550),
    Word("caption", 1560, 1900),
    Word("test", 1920, 2200),
    Word(".", 2200, 2220),
]

LANDSCAPE_PROBE = """\
Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'clip.mp4':
  Metadata:
    major_brand     : isom
  Duration: 00:00:10.00, start: 0.000000, bitrate: 1205 kb/s
  Stream #0:0[0x1](und): Video: h264 (High) (avc1 / 0x31637661), yuv420p(progressive), 1920x1080 [SAR 1:1 DAR 16:9], 1070 kb/s, 30 fps, 30 tbr, 15360 tbn (default)
  Stream #0:1[0x2](und): Audio: aac (LC) (mp4a / 0x6134706D), 48000 Hz, stereo, fltp, 128 kb/s (default)
At least one output file must be specified
"""

ROTATED_PROBE = """\
Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'phone.mov':
  Duration: 00:01:02.50, start: 0.000000, bitrate: 8000 kb/s
  Stream #0:0(und): Video: hevc (Main) (hvc1 / 0x31637668), yuv420p(tv), 1080x1920, 7800 kb/s, 29.97 fps
    Metadata:
      rotate          : 90
    Side data:
      displaymatrix: rotation of -90.00 degrees
"""

PROGRESS_LINES = [
    "frame=   75 fps= 30 q=28.0 size=     256kB time=00:00:02.50 bitrate= 838.9kbits/s speed=1.0x",
    "frame=  150 fps= 30 q=28.0 size=     512kB time=00:00:05.00 bitrate= 838.9kbits/s speed=1.0x",
    "frame=  300 fps= 30 q=-1.0 Lsize=    1024kB time=00:00:10.00 bitrate= 838.9kbits/s speed=1.0x",
]


@pytest.fixture
def sample_words() -> List[Word]:
    return list(SAMPLE_WORDS)


@pytest.fixture
def sample_cues() -> List[Cue]:
    return [
        Cue(0, 950, "Hello world!"),
        Cue(1200, 2220, "This is a caption test."),
    ]


@pytest.fixture
def caption_set(sample_cues) -> "OrderedDict[str, List[Cue]]":
    """English original plus a Spanish translation with identical timings."""
    return OrderedDict([
        ("en", sample_cues),
        ("es", [
            Cue(0, 950, "¡Hola mundo!"),
            Cue(1200, 2220, "Esto es una prueba de subtítulos."),
        ]),
    ])


@pytest.fixture
def sample_project(caption_set, sample_words) -> CaptionProject:
    return CaptionProject(
        original_language="en",
        tracks=caption_set,
        styles={
            "en": LanguageStyle(vertical_position_percent=85.0),
            "es": LanguageStyle(vertical_position_percent=70.0, color_argb=0xFFFFFF00),
        },
        words=sample_words,
        video_path="clip.mp4",
        max_chars=25,
    )


# ---------------------------------------------------------------------------
# Fake encoder
# ---------------------------------------------------------------------------


class FakeEncoder(Encoder):
    """Encoder double: canned probe text, scripted output lines, no process.

    Attributes:
        probe_text: Returned from _probe_output().
        lines: Fed to the progress callback during _execute().
        return_code: Exit code to report; 0 means success.
        available: What is_available() returns.
        launch_error: Raise ProcessLaunchFailed from _execute() when True.
        probe_error: Exception to raise from _probe_output(), if any.
        on_execute: Optional hook run inside _execute() (e.g. to cancel).
    """

    name = "fake-ffmpeg"

    def __init__(self, probe_text: str = LANDSCAPE_PROBE, font_config=None) -> None:
        super().__init__(font_config=font_config)
        self.probe_text = probe_text
        self.lines = list(PROGRESS_LINES)
        self.return_code = 0
        self.available = True
        self.launch_error = False
        self.probe_error: Optional[Exception] = None
        self.write_output = True
        self.on_execute: Optional[Callable[[], None]] = None
        self.probed: List[str] = []
        self.executed: List[List[str]] = []

    def is_available(self) -> bool:
        return self.available

    def _probe_output(self, input_path: str) -> str:
        self.probed.append(input_path)
        if self.probe_error is not None:
            raise self.probe_error
        return self.probe_text

    def _execute(
        self,
        arguments: List[str],
        on_line: Callable[[str], None],
        cancel_event: Optional[threading.Event],
    ) -> EncodeResult:
        self.executed.append(list(arguments))
        if self.launch_error:
            raise ProcessLaunchFailed("Cannot start fake-ffmpeg: not found")
        if self.write_output:
            Path(arguments[-1]).write_bytes(b"partial video")
        if self.on_execute is not None:
            self.on_execute()
        if cancel_event is not None and cancel_event.is_set():
            return EncodeResult(success=False, return_code=-9, log="killed", cancelled=True)
        for line in self.lines:
            on_line(line)
        return EncodeResult(
            success=self.return_code == 0,
            return_code=self.return_code,
            log="\n".join(self.lines),
        )


@pytest.fixture
def fake_encoder() -> FakeEncoder:
    return FakeEncoder()


@pytest.fixture
def input_video(tmp_path) -> Path:
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"not really a video")
    return path


@pytest.fixture
def landscape_probe_text() -> str:
    return LANDSCAPE_PROBE


@pytest.fixture
def rotated_probe_text() -> str:
    return ROTATED_PROBE


@pytest.fixture
def progress_lines() -> List[str]:
    return list(PROGRESS_LINES)
