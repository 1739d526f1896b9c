"""Tests for the render state machine, driven by FakeEncoder.

WHY: The orchestrator is where every failure mode of a render meets the
caller: missing ffmpeg, unreadable input, non-zero exit, cancellation.
Each must end in exactly one terminal state with the right reason, and a
half-written output must never be left behind.
"""

from __future__ import annotations

import threading

import pytest

from caption_formats import DEFAULT_STYLE, Cue, TrackSpec
from captioner.render import (
    EncodeFailed,
    FailureReason,
    ProbeFailed,
    ProcessLaunchFailed,
    RenderCancelled,
    RenderInProgressError,
    RenderJob,
    RenderOrchestrator,
    RenderState,
    Resolution,
    VideoDimensions,
)


@pytest.fixture
def job(tmp_path, input_video):
    subtitles = tmp_path / "clip.ass"
    subtitles.write_text("[Script Info]\n", encoding="utf-8")
    return RenderJob(
        input_path=input_video,
        output_path=tmp_path / "out.mp4",
        subtitle_path=subtitles,
        target_resolution="720p",
    )


def _orchestrator(encoder):
    states = []
    return RenderOrchestrator(encoder, on_state=states.append), states


class TestRenderSuccess:
    def test_state_sequence(self, fake_encoder, job):
        orchestrator, states = _orchestrator(fake_encoder)
        result = orchestrator.render(job)
        assert result.success
        assert states == [
            RenderState.IDLE,
            RenderState.PROBING_INPUT,
            RenderState.BUILDING_FILTER,
            RenderState.ENCODING,
            RenderState.SUCCEEDED,
        ]
        assert orchestrator.state == RenderState.SUCCEEDED
        assert result.output_path == job.output_path
        assert job.output_path.exists()

    def test_encode_arguments(self, fake_encoder, job):
        RenderOrchestrator(fake_encoder).render(job)
        args = fake_encoder.executed[0]
        assert args[:2] == ["-i", str(job.input_path)]
        assert args[2] == "-vf"
        assert args[3] == "subtitles='{}',scale=-2:720".format(job.subtitle_path)
        assert args[4:] == ["-c:a", "copy", "-y", str(job.output_path)]

    def test_progress_monotonic_and_complete(self, fake_encoder, job):
        seen = []
        RenderOrchestrator(fake_encoder).render(job, progress_sink=seen.append)
        assert seen == [0.25, 0.5, 1.0]

    def test_probe_result_attached(self, fake_encoder, job):
        result = RenderOrchestrator(fake_encoder).render(job)
        assert result.probe.dimensions == VideoDimensions(1920, 1080)
        assert result.probe.duration_ms == 10000

    def test_raise_for_status_noop(self, fake_encoder, job):
        RenderOrchestrator(fake_encoder).render(job).raise_for_status()


class TestRenderFailures:
    def test_encoder_unavailable_fails_before_probe(self, fake_encoder, job):
        fake_encoder.available = False
        orchestrator, states = _orchestrator(fake_encoder)
        result = orchestrator.render(job)
        assert not result.success
        assert result.reason == FailureReason.PROCESS_LAUNCH_FAILED
        assert fake_encoder.probed == []
        assert RenderState.PROBING_INPUT not in states
        with pytest.raises(ProcessLaunchFailed):
            result.raise_for_status()

    def test_launch_failure_during_encode(self, fake_encoder, job):
        fake_encoder.launch_error = True
        result = RenderOrchestrator(fake_encoder).render(job)
        assert result.reason == FailureReason.PROCESS_LAUNCH_FAILED
        assert "not found" in result.status

    def test_non_zero_exit(self, fake_encoder, job):
        fake_encoder.return_code = 1
        fake_encoder.lines = ["Error opening filters!"]
        result = RenderOrchestrator(fake_encoder).render(job)
        assert result.state == RenderState.FAILED
        assert result.reason == FailureReason.ENCODE_FAILED
        assert "exit code 1" in result.status
        assert "Error opening filters!" in result.log
        with pytest.raises(EncodeFailed) as excinfo:
            result.raise_for_status()
        assert "Error opening filters!" in excinfo.value.log

    def test_partial_output_removed(self, fake_encoder, job):
        fake_encoder.return_code = 1
        RenderOrchestrator(fake_encoder).render(job)
        assert not job.output_path.exists()
        assert job.input_path.exists()

    def test_no_progress_completion_on_failure(self, fake_encoder, job):
        fake_encoder.return_code = 1
        fake_encoder.lines = []
        seen = []
        RenderOrchestrator(fake_encoder).render(job, progress_sink=seen.append)
        assert seen == []

    def test_probe_failure_uses_defaults(self, fake_encoder, job):
        fake_encoder.probe_error = OSError("timed out")
        result = RenderOrchestrator(fake_encoder).render(job)
        assert result.success
        assert result.probe.dimensions == VideoDimensions(1920, 1080)
        assert not result.probe.duration_known

    def test_probe_failed_raised_by_encoder(self, fake_encoder, input_video):
        fake_encoder.probe_error = OSError("boom")
        with pytest.raises(ProbeFailed):
            fake_encoder.probe(input_video)


class TestCancellation:
    def test_cancel_during_encode(self, fake_encoder, job):
        cancel = threading.Event()
        fake_encoder.on_execute = cancel.set
        result = RenderOrchestrator(fake_encoder).render(job, cancel_event=cancel)
        assert result.reason == FailureReason.CANCELLED
        assert result.state == RenderState.FAILED
        assert not job.output_path.exists()
        with pytest.raises(RenderCancelled):
            result.raise_for_status()

    def test_cancel_before_start_keeps_existing_output(self, fake_encoder, job):
        job.output_path.write_bytes(b"previous render")
        cancel = threading.Event()
        cancel.set()
        result = RenderOrchestrator(fake_encoder).render(job, cancel_event=cancel)
        assert result.reason == FailureReason.CANCELLED
        assert fake_encoder.executed == []
        assert job.output_path.read_bytes() == b"previous render"


class TestConcurrency:
    def test_second_render_rejected(self, fake_encoder, job):
        orchestrator = RenderOrchestrator(fake_encoder)
        errors = []

        def nested():
            try:
                orchestrator.render(job)
            except RenderInProgressError as exc:
                errors.append(exc)

        fake_encoder.on_execute = nested
        result = orchestrator.render(job)
        assert result.success
        assert len(errors) == 1

    def test_rejected_render_tracks_leaves_running_document(
        self, fake_encoder, caption_set, input_video, tmp_path
    ):
        states = []
        orchestrator = RenderOrchestrator(fake_encoder, on_state=states.append)
        document_path = tmp_path / "work" / "clip.captions.ass"
        errors = []
        seen_during_encode = []

        def nested():
            before = document_path.read_text(encoding="utf-8")
            intruder = [TrackSpec("en", [Cue(0, 500, "INTRUDER")], DEFAULT_STYLE)]
            try:
                orchestrator.render_tracks(
                    intruder, input_video, tmp_path / "other.mp4", tmp_path / "work"
                )
            except RenderInProgressError as exc:
                errors.append(exc)
            seen_during_encode.append(document_path.read_text(encoding="utf-8") == before)
            seen_during_encode.append(orchestrator.state)

        fake_encoder.on_execute = nested
        tracks = [TrackSpec("en", caption_set["en"], DEFAULT_STYLE)]
        result = orchestrator.render_tracks(
            tracks, input_video, tmp_path / "out.mp4", tmp_path / "work"
        )

        assert result.success
        assert len(errors) == 1
        assert seen_during_encode == [True, RenderState.ENCODING]
        assert len(fake_encoder.probed) == 1
        assert "INTRUDER" not in document_path.read_text(encoding="utf-8")
        assert states.count(RenderState.IDLE) == 1


class TestRenderTracks:
    def test_composes_at_probed_size(self, fake_encoder, caption_set, input_video, tmp_path):
        tracks = [TrackSpec(lang, cues, DEFAULT_STYLE) for lang, cues in caption_set.items()]
        result = RenderOrchestrator(fake_encoder).render_tracks(
            tracks,
            input_path=input_video,
            output_path=tmp_path / "out.mp4",
            work_dir=tmp_path / "work",
            target_resolution=Resolution.ORIGINAL,
        )
        assert result.success
        assert len(fake_encoder.probed) == 1

        document = (tmp_path / "work" / "clip.captions.ass").read_text(encoding="utf-8")
        assert "PlayResX: 1920\nPlayResY: 1080" in document
        assert document.count("Dialogue:") == 4

    def test_rotated_input_uses_display_orientation(
        self, fake_encoder, rotated_probe_text, caption_set, input_video, tmp_path
    ):
        fake_encoder.probe_text = rotated_probe_text
        tracks = [TrackSpec("en", caption_set["en"], DEFAULT_STYLE)]
        RenderOrchestrator(fake_encoder).render_tracks(
            tracks, input_video, tmp_path / "out.mp4", tmp_path, "1080p"
        )
        document = (tmp_path / "clip.captions.ass").read_text(encoding="utf-8")
        assert "PlayResX: 1920\nPlayResY: 1080" in document
        assert fake_encoder.executed[0][3].endswith("scale=-2:1080")

    def test_unavailable_encoder_writes_nothing(self, fake_encoder, caption_set, input_video, tmp_path):
        fake_encoder.available = False
        tracks = [TrackSpec("en", caption_set["en"], DEFAULT_STYLE)]
        result = RenderOrchestrator(fake_encoder).render_tracks(
            tracks, input_video, tmp_path / "out.mp4", tmp_path / "work"
        )
        assert result.reason == FailureReason.PROCESS_LAUNCH_FAILED
        assert not (tmp_path / "work").exists()
