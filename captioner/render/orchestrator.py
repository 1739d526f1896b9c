"""Render orchestration: probe, build filter, encode, report.

WHY: A burn-in is a long external process with several ways to fail. The
caller (CLI, HTTP job, UI) only wants a progress fraction while it runs
and a plain success/failure with a status line and the encoder's log when
it ends. This module owns that state machine so no caller has to.

HOW: RenderOrchestrator.render() walks
    idle -> probing_input -> building_filter -> encoding -> succeeded | failed
using an Encoder for the actual work. Exceptions from the encoder are
turned into a RenderResult with a FailureReason. render_tracks() adds the
step before: compose the ASS document at the probed size and write it.

RULES:
- ProcessLaunchFailed is detected before probing (is_available()).
- ProbeFailed is not fatal: defaults (1920x1080, unknown duration) are used.
- Encode failure, launch failure and cancellation end in state failed;
  the partial output file is deleted.
- One render at a time per orchestrator; a second concurrent call raises
  RenderInProgressError before it probes, writes or changes state.
- No automatic retries.
"""

from __future__ import annotations

import enum
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence, Union

from caption_formats import TrackSpec, compose_ass

from captioner.render.encoder import (
    EncodeFailed,
    Encoder,
    ProbeFailed,
    ProcessLaunchFailed,
    RenderCancelled,
    RenderJob,
)
from captioner.render.filters import Resolution
from captioner.render.probe import ProbeResult
from captioner.render.progress import ProgressSink

logger = logging.getLogger(__name__)


class RenderState(str, enum.Enum):
    """Lifecycle of one render job.

    RULES:
    - idle -> probing_input -> building_filter -> encoding -> terminal
    - succeeded and failed are terminal
    """

    IDLE = "idle"
    PROBING_INPUT = "probing_input"
    BUILDING_FILTER = "building_filter"
    ENCODING = "encoding"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureReason(str, enum.Enum):
    ENCODE_FAILED = "encode_failed"
    PROCESS_LAUNCH_FAILED = "process_launch_failed"
    CANCELLED = "cancelled"


@dataclass
class RenderResult:
    """Outcome of a render, suitable for display and logging.

    Attributes:
        success: True only if the output video is complete and usable.
        state: Terminal state (succeeded or failed).
        reason: Why it failed, None on success.
        status: Human-readable one-line status.
        log: Tail of the encoder output (empty on success unless captured).
        probe: What was learned about the input, if probing happened.
        output_path: The output video on success.
    """

    success: bool
    state: RenderState
    reason: Optional[FailureReason] = None
    status: str = ""
    log: str = ""
    probe: Optional[ProbeResult] = None
    output_path: Optional[Path] = None

    def raise_for_status(self) -> None:
        """Raise the RenderError matching a failed result; no-op on success."""
        if self.success:
            return
        if self.reason == FailureReason.CANCELLED:
            raise RenderCancelled(self.status, self.log)
        if self.reason == FailureReason.PROCESS_LAUNCH_FAILED:
            raise ProcessLaunchFailed(self.status, self.log)
        raise EncodeFailed(self.status, self.log)


class RenderInProgressError(RuntimeError):
    """render() was called while another render is running on the same orchestrator."""


class RenderOrchestrator:
    """Drives one Encoder through the render state machine.

    Args:
        encoder: The encoder implementation to use.
        on_state: Optional callback receiving every state transition.
    """

    def __init__(
        self,
        encoder: Encoder,
        on_state: Optional[Callable[[RenderState], None]] = None,
    ) -> None:
        self.encoder = encoder
        self._on_state = on_state
        self._state = RenderState.IDLE
        self._busy = threading.Lock()

    @property
    def state(self) -> RenderState:
        return self._state

    def _transition(self, state: RenderState) -> None:
        logger.debug("Render state %s -> %s", self._state.value, state.value)
        self._state = state
        if self._on_state is not None:
            self._on_state(state)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def probe(self, input_path: Union[str, Path]) -> ProbeResult:
        """Probe the input, substituting defaults if probing fails."""
        try:
            return self.encoder.probe(input_path)
        except ProbeFailed as exc:
            logger.warning("%s; using default dimensions and unknown duration", exc)
            return ProbeResult.defaults()

    def render(
        self,
        job: RenderJob,
        progress_sink: Optional[ProgressSink] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> RenderResult:
        """Run one render job to a terminal state.

        Args:
            job: Input, output, subtitle file and target resolution.
            progress_sink: Called with fractions in [0, 1] from the reader thread.
            cancel_event: When set, the encode is killed and the job fails
                with reason cancelled.

        Returns:
            RenderResult describing the terminal state.

        Raises:
            RenderInProgressError: If this orchestrator is already rendering.
        """
        with self._exclusive():
            self._transition(RenderState.IDLE)
            return self._run(job, None, progress_sink, cancel_event)

    def render_tracks(
        self,
        tracks: Sequence[TrackSpec],
        input_path: Union[str, Path],
        output_path: Union[str, Path],
        work_dir: Union[str, Path],
        target_resolution: Union[str, Resolution] = Resolution.ORIGINAL,
        progress_sink: Optional[ProgressSink] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> RenderResult:
        """Compose the ASS document for tracks at the video's size, then render.

        The input is probed once; the same probe sizes the subtitle canvas
        and drives the filter and progress. The subtitle document is
        written only while this orchestrator holds its render slot.
        """
        input_path = Path(input_path)
        with self._exclusive():
            self._transition(RenderState.IDLE)
            if not self.encoder.is_available():
                return self._launch_failure()

            probe = self.probe(input_path)
            document = compose_ass(tracks, probe.dimensions.width, probe.dimensions.height)

            subtitle_path = Path(work_dir) / "{}.captions.ass".format(input_path.stem)
            subtitle_path.parent.mkdir(parents=True, exist_ok=True)
            subtitle_path.write_text(document, encoding="utf-8")
            logger.info("Wrote subtitle document %s (%d tracks)", subtitle_path, len(tracks))

            job = RenderJob(
                input_path=input_path,
                output_path=Path(output_path),
                subtitle_path=subtitle_path,
                target_resolution=target_resolution,
            )
            return self._run(job, probe, progress_sink, cancel_event)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the render slot; a second caller is rejected, never queued."""
        if not self._busy.acquire(blocking=False):
            raise RenderInProgressError("A render is already running on this orchestrator")
        try:
            yield
        finally:
            self._busy.release()

    def _run(
        self,
        job: RenderJob,
        probe: Optional[ProbeResult],
        progress_sink: Optional[ProgressSink],
        cancel_event: Optional[threading.Event],
    ) -> RenderResult:
        logger.info(
            "Render start: %s -> %s (subtitles %s, resolution %s)",
            job.input_path, job.output_path, job.subtitle_path, job.target_resolution.value,
        )
        if not job.subtitle_path.is_file():
            logger.warning("Subtitle document does not exist: %s", job.subtitle_path)

        if probe is None and not self.encoder.is_available():
            return self._launch_failure()

        try:
            self.encoder.prepare()
        except OSError:
            logger.exception("Font setup failed; rendering with system fonts")

        if cancel_event is not None and cancel_event.is_set():
            return self._fail(
                job, FailureReason.CANCELLED, "Render cancelled", "", probe, remove_output=False
            )

        # Probing
        self._transition(RenderState.PROBING_INPUT)
        if probe is None:
            probe = self.probe(job.input_path)

        # Filter
        self._transition(RenderState.BUILDING_FILTER)
        filter_graph = self.encoder.build_filter(
            job.subtitle_path, job.target_resolution, probe.dimensions
        )
        logger.info("Video filter: %s", filter_graph)

        # Encode
        self._transition(RenderState.ENCODING)
        try:
            result = self.encoder.encode(
                job, filter_graph, probe.duration_ms, progress_sink, cancel_event
            )
        except ProcessLaunchFailed as exc:
            logger.exception("Encoder could not be started")
            return self._fail(job, FailureReason.PROCESS_LAUNCH_FAILED, str(exc), exc.log, probe)

        if result.cancelled:
            return self._fail(job, FailureReason.CANCELLED, "Render cancelled", result.log, probe)
        if not result.success:
            status = "Encoding failed (exit code {})".format(result.return_code)
            return self._fail(job, FailureReason.ENCODE_FAILED, status, result.log, probe)

        self._transition(RenderState.SUCCEEDED)
        return RenderResult(
            success=True,
            state=RenderState.SUCCEEDED,
            status="Render complete: {}".format(job.output_path.name),
            log=result.log,
            probe=probe,
            output_path=job.output_path,
        )

    def _launch_failure(self) -> RenderResult:
        status = "Encoder not available: {} cannot be started".format(self.encoder.name)
        logger.error(status)
        self._transition(RenderState.FAILED)
        return RenderResult(
            success=False,
            state=RenderState.FAILED,
            reason=FailureReason.PROCESS_LAUNCH_FAILED,
            status=status,
        )

    def _fail(
        self,
        job: RenderJob,
        reason: FailureReason,
        status: str,
        log: str,
        probe: Optional[ProbeResult],
        remove_output: bool = True,
    ) -> RenderResult:
        logger.error("Render failed (%s): %s", reason.value, status)
        if remove_output:
            _remove_partial_output(job)
        self._transition(RenderState.FAILED)
        return RenderResult(
            success=False,
            state=RenderState.FAILED,
            reason=reason,
            status=status,
            log=log,
            probe=probe,
        )


def _remove_partial_output(job: RenderJob) -> None:
    """Delete a partially written output file; never touches the input."""
    output = job.output_path
    try:
        if output.exists() and output.resolve() != job.input_path.resolve():
            output.unlink()
            logger.info("Removed partial output %s", output)
    except OSError:
        logger.warning("Could not remove partial output %s", output)
