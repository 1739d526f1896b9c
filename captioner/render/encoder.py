"""Encoder interface, render errors, and the shared process runner.

WHY: The same render runs on two execution paths: the system ffmpeg binary
on desktop installs, and a bundled ffmpeg driven through a session object
in packaged builds. Argument construction, filter building and progress
parsing must be identical on both, so they live in one base class and the
subclasses only supply "run this and give me the output".

HOW:
  RenderError and subclasses — the failure taxonomy
  EncodeResult               — normalized outcome of one encode
  stream_process()           — run a child process, stream its lines to a
                               callback, keep a log tail, honour a cancel
                               event by killing the child
  Encoder                    — abstract base: probe(), build_filter(),
                               encode(); subclasses implement
                               is_available(), _probe_output(), _execute()

RULES:
- Encode arguments: -i <in> -vf <filter> -c:a copy -y <out> (audio copied).
- Progress 1.0 is reported only after a successful exit.
- ProcessLaunchFailed is raised when the executable cannot be started;
  any other failure is an EncodeResult with success=False.
- A cancelled encode is killed, never waited out.
"""

from __future__ import annotations

import abc
import collections
import logging
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Deque, Dict, List, Optional, Sequence, Union

from captioner.render.filters import Resolution, build_filter_graph
from captioner.render.probe import ProbeResult, VideoDimensions, parse_probe_output
from captioner.render.progress import ProgressSink, ProgressTracker

logger = logging.getLogger(__name__)

LOG_TAIL_LINES = 200
CANCEL_POLL_SECONDS = 0.1


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class RenderError(Exception):
    """Base class for render pipeline failures.

    Attributes:
        log: Captured encoder output relevant to the failure (may be empty).
    """

    def __init__(self, message: str, log: str = "") -> None:
        super().__init__(message)
        self.log = log


class ProbeFailed(RenderError):
    """The input could not be probed. Non-fatal: defaults are substituted."""


class EncodeFailed(RenderError):
    """The encoder ran but reported failure; no output is usable.

    Attributes:
        return_code: Process exit code or session return code, if known.
    """

    def __init__(self, message: str, log: str = "", return_code: Optional[int] = None) -> None:
        super().__init__(message, log)
        self.return_code = return_code


class ProcessLaunchFailed(RenderError):
    """The encoder executable is missing or cannot be started."""


class RenderCancelled(RenderError):
    """The caller cancelled the render while it was running."""


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class RenderJob:
    """One burn-in request. The caller writes the subtitle file beforehand.

    Attributes:
        input_path: Source video.
        output_path: Video to create (overwritten if it exists).
        subtitle_path: ASS document to burn in.
        target_resolution: Output size, named by short side.
    """

    input_path: Path
    output_path: Path
    subtitle_path: Path
    target_resolution: Resolution = Resolution.ORIGINAL

    def __post_init__(self) -> None:
        self.input_path = Path(self.input_path)
        self.output_path = Path(self.output_path)
        self.subtitle_path = Path(self.subtitle_path)
        self.target_resolution = Resolution.parse(self.target_resolution)


@dataclass
class EncodeResult:
    """Outcome of one encoder run, normalized across encoder types."""

    success: bool
    return_code: Optional[int] = None
    log: str = ""
    cancelled: bool = False


@dataclass
class ProcessOutcome:
    return_code: int
    log: str
    cancelled: bool


def stream_process(
    argv: Sequence[str],
    on_line: Optional[Callable[[str], None]] = None,
    cancel_event: Optional[threading.Event] = None,
    merge_stderr: bool = False,
    env: Optional[Dict[str, str]] = None,
) -> ProcessOutcome:
    """Run a child process, streaming its diagnostic output line by line.

    WHY: ffmpeg writes progress with carriage returns on stderr for the
    whole encode. The stream must be drained continuously or the child
    blocks on a full pipe, and the caller must be able to stop it.

    HOW: Text-mode pipe (universal newlines turn "\\r" status updates into
    separate lines) read by a daemon thread, which forwards each line to
    on_line and keeps the last LOG_TAIL_LINES. The calling thread waits on
    the child, polling cancel_event; when it is set the child is killed.

    Args:
        argv: Full command line, executable first.
        on_line: Called from the reader thread for every output line.
        cancel_event: When set, the child is killed.
        merge_stderr: Read stdout and stderr as one stream.
        env: Environment for the child (default: inherit).

    Returns:
        ProcessOutcome with the exit code, log tail and cancelled flag.

    Raises:
        ProcessLaunchFailed: If the executable cannot be started.
    """
    try:
        process = subprocess.Popen(
            list(argv),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE if merge_stderr else subprocess.DEVNULL,
            stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            env=env,
        )
    except OSError as exc:
        raise ProcessLaunchFailed("Cannot start {}: {}".format(argv[0], exc)) from exc

    stream = process.stdout if merge_stderr else process.stderr
    tail = collections.deque(maxlen=LOG_TAIL_LINES)  # type: Deque[str]

    def _reader() -> None:
        for raw in stream:
            line = raw.rstrip("\n")
            if not line:
                continue
            tail.append(line)
            if on_line is not None:
                on_line(line)

    reader = threading.Thread(target=_reader, name="encoder-output", daemon=True)
    reader.start()

    cancelled = False
    if cancel_event is None:
        return_code = process.wait()
    else:
        while True:
            try:
                return_code = process.wait(timeout=CANCEL_POLL_SECONDS)
                break
            except subprocess.TimeoutExpired:
                if cancel_event.is_set():
                    logger.info("Cancel requested, killing pid %d", process.pid)
                    process.kill()
                    return_code = process.wait()
                    cancelled = True
                    break

    reader.join(timeout=5)
    stream.close()
    return ProcessOutcome(return_code=return_code, log="\n".join(tail), cancelled=cancelled)


# ---------------------------------------------------------------------------
# Encoder interface
# ---------------------------------------------------------------------------


def encode_arguments(input_path: Union[str, Path], filter_graph: str, output_path: Union[str, Path]) -> List[str]:
    """Arguments (without the executable) for one burn-in encode."""
    return [
        "-i", str(input_path),
        "-vf", filter_graph,
        "-c:a", "copy",
        "-y", str(output_path),
    ]


class Encoder(abc.ABC):
    """Abstract encoder: one implementation per way of running ffmpeg.

    Subclasses implement is_available(), _probe_output() and _execute().
    Everything else (probe parsing, filter graph, arguments, progress) is
    shared here.
    """

    name = "encoder"

    def __init__(self, font_config=None) -> None:
        self.font_config = font_config

    @abc.abstractmethod
    def is_available(self) -> bool:
        """True if the encoder executable can be invoked."""

    @abc.abstractmethod
    def _probe_output(self, input_path: str) -> str:
        """Diagnostic text of "ffmpeg -i <input>"."""

    @abc.abstractmethod
    def _execute(
        self,
        arguments: List[str],
        on_line: Callable[[str], None],
        cancel_event: Optional[threading.Event],
    ) -> EncodeResult:
        """Run ffmpeg with arguments, forwarding output lines to on_line."""

    def prepare(self) -> None:
        """Make fonts available to the encoder. Idempotent."""
        if self.font_config is not None:
            self.font_config.initialize()

    def filter_fonts_dir(self) -> Optional[Path]:
        """Directory passed as fontsdir= in the filter, or None."""
        return None

    def probe(self, input_path: Union[str, Path]) -> ProbeResult:
        """Probe the input video.

        Raises:
            ProbeFailed: If the probe command could not run at all.
        """
        try:
            output = self._probe_output(str(input_path))
        except (OSError, subprocess.SubprocessError, ProcessLaunchFailed) as exc:
            raise ProbeFailed("Probe of {} failed: {}".format(input_path, exc)) from exc

        result = parse_probe_output(output)
        logger.info(
            "Probed %s: %dx%d, %d ms, rotation %d",
            input_path,
            result.dimensions.width,
            result.dimensions.height,
            result.duration_ms,
            result.rotation,
        )
        if not result.dimensions_known:
            logger.warning("No dimensions in probe output for %s; assuming 1920x1080", input_path)
        if not result.duration_known:
            logger.warning("No duration in probe output for %s; progress unavailable", input_path)
        return result

    def build_filter(
        self,
        subtitle_path: Union[str, Path],
        target_resolution: Union[str, Resolution],
        dimensions: VideoDimensions,
    ) -> str:
        return build_filter_graph(
            subtitle_path, target_resolution, dimensions, fonts_dir=self.filter_fonts_dir()
        )

    def encode(
        self,
        job: RenderJob,
        filter_graph: str,
        duration_ms: int,
        progress_sink: Optional[ProgressSink] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> EncodeResult:
        """Burn subtitles: run the encode and report progress.

        Raises:
            ProcessLaunchFailed: If the encoder cannot be started.
        """
        arguments = encode_arguments(job.input_path, filter_graph, job.output_path)
        logger.info("Executing %s %s", self.name, " ".join(arguments))

        tracker = ProgressTracker(duration_ms, progress_sink)
        result = self._execute(arguments, tracker.feed_line, cancel_event)

        if result.success:
            tracker.complete()
            logger.info("Encode finished: %s", job.output_path)
        elif result.cancelled:
            logger.info("Encode cancelled: %s", job.output_path)
        else:
            logger.error(
                "Encode failed with code %s:\n%s", result.return_code, result.log
            )
        return result
