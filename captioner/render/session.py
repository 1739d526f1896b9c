"""Encoder backed by a session-style bundled ffmpeg.

WHY: Packaged builds ship their own ffmpeg and drive it through a session
API (execute a command, get a return code object and the collected
logs) instead of calling a binary on PATH. That ffmpeg cannot be told
about extra font directories through the filter, so fontconfig is
pointed at a generated fonts.conf through environment variables instead.

HOW: ReturnCode mirrors the session API's return code object, with
is_success()/is_cancel() as the only way to interpret it.
FfmpegSession is the session interface; BundledBinarySession implements
it on top of a bundled executable. SessionFfmpegEncoder adapts any
session to the Encoder interface, so filter construction and progress
parsing stay in the shared base class.

RULES:
- Success is ReturnCode.is_success(), normalized to a bool.
- Session output merges stdout and stderr (the session API's "2>&1").
- FONTCONFIG_FILE and FONTCONFIG_PATH are set before any encode.
- No fontsdir= in the filter for this encoder.
"""

from __future__ import annotations

import abc
import logging
import os
import subprocess
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from captioner.render.encoder import EncodeResult, Encoder, stream_process

logger = logging.getLogger(__name__)


class ReturnCode:
    """Return code of a finished session."""

    SUCCESS = 0
    CANCEL = 255

    def __init__(self, value: int) -> None:
        self.value = value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ReturnCode):
            return self.value == other.value
        return NotImplemented

    def __repr__(self) -> str:
        return "ReturnCode({})".format(self.value)

    @staticmethod
    def is_success(return_code: Optional["ReturnCode"]) -> bool:
        return return_code is not None and return_code.value == ReturnCode.SUCCESS

    @staticmethod
    def is_cancel(return_code: Optional["ReturnCode"]) -> bool:
        return return_code is not None and return_code.value == ReturnCode.CANCEL


@dataclass
class SessionResult:
    """What a session hands back when it finishes."""

    return_code: Optional[ReturnCode]
    output: str


class FfmpegSession(abc.ABC):
    """Session-style ffmpeg execution API."""

    @abc.abstractmethod
    def is_available(self) -> bool:
        """True if the bundled ffmpeg can be executed."""

    @abc.abstractmethod
    def set_environment_variable(self, name: str, value: str) -> None:
        """Set a variable in the environment ffmpeg runs with."""

    @abc.abstractmethod
    def execute(
        self,
        arguments: List[str],
        log_callback: Optional[Callable[[str], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SessionResult:
        """Run ffmpeg with arguments and wait for it to finish.

        Raises:
            ProcessLaunchFailed: If ffmpeg cannot be started.
        """


class BundledBinarySession(FfmpegSession):
    """FfmpegSession over an ffmpeg executable shipped with the app."""

    def __init__(self, binary: str) -> None:
        self.binary = binary
        self._environment = {}  # type: Dict[str, str]

    @property
    def environment(self) -> Dict[str, str]:
        return dict(self._environment)

    def is_available(self) -> bool:
        try:
            result = subprocess.run(
                [self.binary, "-version"],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=10,
                env=self._child_env(),
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning("Bundled ffmpeg not available (%s): %s", self.binary, exc)
            return False
        return result.returncode == 0

    def set_environment_variable(self, name: str, value: str) -> None:
        self._environment[name] = value

    def _child_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        env.update(self._environment)
        return env

    def execute(
        self,
        arguments: List[str],
        log_callback: Optional[Callable[[str], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SessionResult:
        outcome = stream_process(
            [self.binary] + list(arguments),
            on_line=log_callback,
            cancel_event=cancel_event,
            merge_stderr=True,
            env=self._child_env(),
        )
        code = ReturnCode.CANCEL if outcome.cancelled else outcome.return_code
        return SessionResult(return_code=ReturnCode(code), output=outcome.log)


class SessionFfmpegEncoder(Encoder):
    """Encoder running ffmpeg through an FfmpegSession."""

    name = "ffmpeg-session"

    def __init__(self, session: FfmpegSession, font_config=None) -> None:
        super().__init__(font_config=font_config)
        self.session = session

    def is_available(self) -> bool:
        return self.session.is_available()

    def prepare(self) -> None:
        """Initialize fonts and point fontconfig at the generated fonts.conf."""
        if self.font_config is None:
            return
        self.font_config.initialize()
        conf_path = self.font_config.write_fonts_conf()
        self.session.set_environment_variable("FONTCONFIG_FILE", str(conf_path))
        self.session.set_environment_variable("FONTCONFIG_PATH", str(conf_path.parent))
        logger.info("Font environment set: FONTCONFIG_FILE=%s", conf_path)

    def _probe_output(self, input_path: str) -> str:
        return self.session.execute(["-i", input_path]).output

    def _execute(
        self,
        arguments: List[str],
        on_line: Callable[[str], None],
        cancel_event: Optional[threading.Event],
    ) -> EncodeResult:
        result = self.session.execute(arguments, on_line, cancel_event)
        cancelled = cancel_event is not None and cancel_event.is_set() and (
            ReturnCode.is_cancel(result.return_code)
            or not ReturnCode.is_success(result.return_code)
        )
        return EncodeResult(
            success=ReturnCode.is_success(result.return_code) and not cancelled,
            return_code=result.return_code.value if result.return_code is not None else None,
            log=result.output,
            cancelled=cancelled,
        )
