"""Tests for SessionFfmpegEncoder with an in-memory session."""

from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional

import pytest

from captioner.render import FontConfig, RenderJob, RenderOrchestrator
from captioner.render.session import (
    FfmpegSession,
    ReturnCode,
    SessionFfmpegEncoder,
    SessionResult,
)


class FakeSession(FfmpegSession):
    """Records commands and environment; replays scripted results."""

    def __init__(self, probe_text: str, lines: List[str]) -> None:
        self.probe_text = probe_text
        self.lines = lines
        self.encode_code = ReturnCode(ReturnCode.SUCCESS)  # type: Optional[ReturnCode]
        self.environment = {}  # type: Dict[str, str]
        self.commands = []  # type: List[List[str]]
        self.cancel_during_encode = False

    def is_available(self) -> bool:
        return True

    def set_environment_variable(self, name: str, value: str) -> None:
        self.environment[name] = value

    def execute(
        self,
        arguments: List[str],
        log_callback: Optional[Callable[[str], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SessionResult:
        self.commands.append(list(arguments))
        if arguments[0] == "-i" and len(arguments) == 2:
            return SessionResult(ReturnCode(1), self.probe_text)
        if self.cancel_during_encode and cancel_event is not None:
            cancel_event.set()
            return SessionResult(ReturnCode(ReturnCode.CANCEL), "killed")
        for line in self.lines:
            if log_callback is not None:
                log_callback(line)
        return SessionResult(self.encode_code, "\n".join(self.lines))


@pytest.fixture
def session(landscape_probe_text, progress_lines):
    return FakeSession(landscape_probe_text, progress_lines)


@pytest.fixture
def job(tmp_path, input_video):
    subtitles = tmp_path / "clip.ass"
    subtitles.write_text("[Script Info]\n", encoding="utf-8")
    return RenderJob(input_video, tmp_path / "out.mp4", subtitles, "480p")


class TestReturnCode:
    def test_success(self):
        assert ReturnCode.is_success(ReturnCode(0))
        assert not ReturnCode.is_success(ReturnCode(1))
        assert not ReturnCode.is_success(None)

    def test_cancel(self):
        assert ReturnCode.is_cancel(ReturnCode(ReturnCode.CANCEL))
        assert not ReturnCode.is_cancel(None)

    def test_equality(self):
        assert ReturnCode(3) == ReturnCode(3)
        assert ReturnCode(3) != ReturnCode(4)


class TestSessionEncoder:
    def test_success(self, session, job):
        seen = []
        result = RenderOrchestrator(SessionFfmpegEncoder(session)).render(
            job, progress_sink=seen.append
        )
        assert result.success
        assert seen == [0.25, 0.5, 1.0]
        encode_args = session.commands[-1]
        assert encode_args[3] == "subtitles='{}',scale=-2:480".format(job.subtitle_path)
        assert "fontsdir" not in encode_args[3]

    def test_failure_code(self, session, job):
        session.encode_code = ReturnCode(1)
        result = RenderOrchestrator(SessionFfmpegEncoder(session)).render(job)
        assert result.reason.value == "encode_failed"
        assert "exit code 1" in result.status

    def test_missing_return_code_is_failure(self, session, job):
        session.encode_code = None
        result = RenderOrchestrator(SessionFfmpegEncoder(session)).render(job)
        assert not result.success
        assert "exit code None" in result.status

    def test_cancel(self, session, job):
        session.cancel_during_encode = True
        result = RenderOrchestrator(SessionFfmpegEncoder(session)).render(
            job, cancel_event=threading.Event()
        )
        assert result.reason.value == "cancelled"

    def test_fontconfig_environment(self, session, job, tmp_path):
        fonts = FontConfig(tmp_path / "fonts")
        RenderOrchestrator(SessionFfmpegEncoder(session, font_config=fonts)).render(job)
        conf = tmp_path / "fonts" / "fonts.conf"
        assert session.environment["FONTCONFIG_FILE"] == str(conf)
        assert session.environment["FONTCONFIG_PATH"] == str(conf.parent)
        assert conf.is_file()
