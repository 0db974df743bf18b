"""Exception hierarchy for managed child processes.

managed-process v0.1.0
"""

from __future__ import annotations

__all__ = [
    "ProcessError",
    "SpawnError",
    "StreamStateError",
    "DrainProtocolError",
]


class ProcessError(Exception):
    """Base exception for this package."""
    pass


class SpawnError(ProcessError):
    """The OS refused to create the child process.

    Raised before any ProcessHandle exists, so there is never a
    half-constructed handle to clean up.

    Attributes:
        program: Program that was requested
        errno: OS error number, if known
        strerror: OS error message, if known
    """

    def __init__(
        self,
        program: str,
        errno: int | None = None,
        strerror: str | None = None,
    ) -> None:
        self.program = program
        self.errno = errno
        self.strerror = strerror
        detail = strerror or "unknown error"
        super().__init__(f"failed to spawn {program!r}: {detail}")


class StreamStateError(ProcessError):
    """A stream accessor was used on a stream the parent does not own.

    This is a usage error: the stream was inherited by the child at spawn
    time, or it has already been taken by a lifecycle operation.

    Attributes:
        stream: Stream name (stdin/stdout/stderr)
        state: Current state name (inherited/taken)
    """

    def __init__(self, stream: str, state: str) -> None:
        self.stream = stream
        self.state = state
        super().__init__(f"{stream} is not available: stream is {state}")


class DrainProtocolError(ProcessError):
    """The drain workers reported an unexpected stream tag."""
    pass
