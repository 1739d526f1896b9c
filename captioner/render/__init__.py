"""Burn-in rendering with ffmpeg.

WHY: Rendering is the only part of the app that runs an external process
for minutes at a time. Keeping it in one package with a narrow interface
(RenderOrchestrator.render -> RenderResult) lets the CLI, the HTTP API and
tests drive it the same way.

HOW:
  probe.py        — parse "ffmpeg -i" output (duration, size, rotation)
  filters.py      — Resolution and the subtitles/scale filter graph
  progress.py     — "time=" parsing and monotonic progress reporting
  encoder.py      — Encoder base class, errors, shared process runner
  ffmpeg.py       — SystemFfmpegEncoder (ffmpeg on PATH)
  session.py      — SessionFfmpegEncoder (bundled, session-style API)
  fonts.py        — FontConfig: bundled fonts and fonts.conf
  orchestrator.py — the render state machine

RULES:
- Encoders share filter construction and progress parsing; subclasses
  only know how to start ffmpeg.
"""

from captioner.render.encoder import (
    EncodeFailed,
    EncodeResult,
    Encoder,
    ProbeFailed,
    ProcessLaunchFailed,
    RenderCancelled,
    RenderError,
    RenderJob,
)
from captioner.render.filters import Resolution, build_filter_graph, escape_filter_path
from captioner.render.fonts import FontConfig, font_display_name
from captioner.render.orchestrator import (
    FailureReason,
    RenderInProgressError,
    RenderOrchestrator,
    RenderResult,
    RenderState,
)
from captioner.render.probe import ProbeResult, VideoDimensions, parse_probe_output

__all__ = [
    "EncodeFailed",
    "EncodeResult",
    "Encoder",
    "FailureReason",
    "FontConfig",
    "ProbeFailed",
    "ProbeResult",
    "ProcessLaunchFailed",
    "RenderCancelled",
    "RenderError",
    "RenderInProgressError",
    "RenderJob",
    "RenderOrchestrator",
    "RenderResult",
    "RenderState",
    "Resolution",
    "VideoDimensions",
    "build_filter_graph",
    "escape_filter_path",
    "font_display_name",
    "parse_probe_output",
]
