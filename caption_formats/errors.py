"""Exception types raised by the caption library.

WHY: Callers (the SRT importer, the project loader, the HTTP layer) need to
tell malformed input apart from programming errors. Both exceptions derive
from ValueError so generic input-validation handlers keep working.

RULES:
- ParseError: a timestamp line or subtitle block could not be read.
- InvalidCueError: a cue has a negative start or a non-positive duration.
"""


class ParseError(ValueError):
    """Raised when a timestamp or subtitle block does not match its format.

    The strict timestamp parser raises it directly. The SRT block parsers
    catch it and skip the offending block.
    """


class InvalidCueError(ValueError):
    """Raised when a cue is built with zero/negative duration or negative start."""

    def __init__(self, start_ms: int, end_ms: int) -> None:
        self.start_ms = start_ms
        self.end_ms = end_ms
        super().__init__(
            "Invalid cue timing: start={}ms end={}ms (end must be after start, "
            "start must be >= 0)".format(start_ms, end_ms)
        )
