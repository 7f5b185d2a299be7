"""Error taxonomy for the snfsdefrag wrapper."""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Why one invocation of the external utility did not succeed."""

    LAUNCH_FAILURE = "launch_failure"
    REPORTED_FAILURE = "reported_failure"
    TIMEOUT = "timeout"


class SnfsDefragError(RuntimeError):
    """Base class for errors raised by this package."""


class ParseFailure(SnfsDefragError):
    """Utility output did not have the expected shape."""


class CandidateListingError(ParseFailure):
    """Candidate listing returned an ``Error: ...`` response instead of candidates."""

    def __init__(self, raw_response: str) -> None:
        super().__init__(raw_response.strip())
        self.raw_response = raw_response


class WorklistIOError(SnfsDefragError):
    """Worklist file could not be read or written."""


class WorklistNotFoundError(WorklistIOError, FileNotFoundError):
    """Worklist file does not exist."""


class InvocationError(SnfsDefragError):
    """The utility could not be launched, timed out, or exited non-zero."""

    def __init__(
        self,
        *,
        command_line: str,
        exit_code: int,
        failure_kind: FailureKind,
        detail: str = "",
    ) -> None:
        message = f"{command_line} failed ({failure_kind.value}, exit code {exit_code})"
        if detail.strip():
            message = f"{message}: {detail.strip()}"
        super().__init__(message)
        self.command_line = command_line
        self.exit_code = exit_code
        self.failure_kind = failure_kind
        self.detail = detail
