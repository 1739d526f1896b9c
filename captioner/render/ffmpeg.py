"""Encoder backed by the system ffmpeg executable.

WHY: Desktop installs use whatever ffmpeg is on PATH (or configured via
CAPTIONER_FFMPEG). libass finds bundled fonts through the filter's
fontsdir option, so no environment setup is needed.

HOW: is_available() runs "ffmpeg -version". Probing runs "ffmpeg -i
<input>" and reads the combined output (ffmpeg writes stream info to
stderr and exits non-zero because no output is given). Encoding streams
stderr through stream_process().

RULES:
- Success is exit code 0, nothing else.
- The fonts directory goes into the filter only after FontConfig has been
  initialized.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from pathlib import Path
from typing import Callable, List, Optional

from captioner.render.encoder import EncodeResult, Encoder, stream_process

logger = logging.getLogger(__name__)

AVAILABILITY_TIMEOUT_SECONDS = 10
PROBE_TIMEOUT_SECONDS = 60


class SystemFfmpegEncoder(Encoder):
    """Runs the ffmpeg binary as a child process."""

    name = "ffmpeg"

    def __init__(
        self,
        binary: str = "ffmpeg",
        font_config=None,
        probe_timeout: float = PROBE_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(font_config=font_config)
        self.binary = binary
        self.probe_timeout = probe_timeout

    def is_available(self) -> bool:
        try:
            result = subprocess.run(
                [self.binary, "-version"],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=AVAILABILITY_TIMEOUT_SECONDS,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning("ffmpeg not available (%s): %s", self.binary, exc)
            return False
        return result.returncode == 0

    def filter_fonts_dir(self) -> Optional[Path]:
        if self.font_config is not None and self.font_config.is_initialized:
            return self.font_config.fonts_dir
        return None

    def _probe_output(self, input_path: str) -> str:
        result = subprocess.run(
            [self.binary, "-i", input_path],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=self.probe_timeout,
        )
        return (result.stderr or "") + (result.stdout or "")

    def _execute(
        self,
        arguments: List[str],
        on_line: Callable[[str], None],
        cancel_event: Optional[threading.Event],
    ) -> EncodeResult:
        outcome = stream_process(
            [self.binary] + arguments,
            on_line=on_line,
            cancel_event=cancel_event,
        )
        return EncodeResult(
            success=outcome.return_code == 0 and not outcome.cancelled,
            return_code=outcome.return_code,
            log=outcome.log,
            cancelled=outcome.cancelled,
        )
