"""Standard-stream routing and spawn configuration.

managed-process runtime module v0.1.0

This module provides:
- StdioPolicy variants (Inherit, Pipe) describing how each child stream is wired
- SpawnConfig, the immutable description of a child to start
- StreamSlot, the parent-side tri-state (inherited / open / taken) of one stream

Key design points:
- Policies are fixed at spawn time; only the slot state changes afterwards
- Open -> Taken is one-way and only happens inside StreamSlot methods
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import IO, Any, Union

from ..errors import SpawnError, StreamStateError

__all__ = [
    "Inherit",
    "Pipe",
    "StdioPolicy",
    "all_piped",
    "SpawnConfig",
    "Inherited",
    "Open",
    "Taken",
    "StreamSlot",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Inherit:
    """Child uses an existing OS stream handle directly.

    Attributes:
        handle: File descriptor or object with fileno().
            None means the parent's own corresponding stream.
    """

    handle: int | IO[Any] | None = None


@dataclass(frozen=True)
class Pipe:
    """Child gets a fresh pipe; the parent keeps the other end."""


StdioPolicy = Union[Inherit, Pipe]


def all_piped() -> tuple[Pipe, Pipe, Pipe]:
    """Default policy: stdin, stdout and stderr all piped."""
    return Pipe(), Pipe(), Pipe()


@dataclass(frozen=True)
class SpawnConfig:
    """Specification for a child process to spawn.

    Attributes:
        program: Executable path or name (looked up on PATH)
        args: Arguments passed verbatim, never through a shell
        env: Replacement environment (None = inherit parent).
            Ordered (name, value) pairs or a mapping; later duplicates win.
        cwd: Working directory (None = inherit parent)
        stdin: Policy for the child's stdin
        stdout: Policy for the child's stdout
        stderr: Policy for the child's stderr
    """

    program: str
    args: Sequence[str] = ()
    env: Mapping[str, str] | Sequence[tuple[str, str]] | None = None
    cwd: str | os.PathLike[str] | None = None
    stdin: StdioPolicy = field(default_factory=Pipe)
    stdout: StdioPolicy = field(default_factory=Pipe)
    stderr: StdioPolicy = field(default_factory=Pipe)

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    @property
    def stdio(self) -> tuple[StdioPolicy, StdioPolicy, StdioPolicy]:
        return self.stdin, self.stdout, self.stderr

    def env_dict(self) -> dict[str, str] | None:
        """Environment in the shape subprocess expects, or None to inherit."""
        if self.env is None:
            return None
        if isinstance(self.env, Mapping):
            return dict(self.env)
        return {name: value for name, value in self.env}


def popen_stdio_arg(policy: StdioPolicy, program: str) -> int | None:
    """Translate a policy into a subprocess stdio argument.

    Raises:
        SpawnError: If an inherited handle has no usable file descriptor
    """
    if isinstance(policy, Pipe):
        return subprocess.PIPE
    if policy.handle is None:
        return None
    if isinstance(policy.handle, int):
        # Negative values are subprocess sentinels; only the non-pipe ones are inheritable
        if policy.handle < 0 and policy.handle not in (subprocess.DEVNULL, subprocess.STDOUT):
            raise SpawnError(program, None, f"invalid inherited fd {policy.handle}")
        return policy.handle
    try:
        return policy.handle.fileno()
    except (OSError, ValueError) as e:
        raise SpawnError(program, getattr(e, "errno", None), f"unusable inherited handle: {e}") from e


@dataclass(frozen=True)
class Inherited:
    """Stream was wired to an existing handle; the parent owns nothing."""

    name = "inherited"


@dataclass(frozen=True)
class Open:
    """Parent owns a live pipe endpoint."""

    endpoint: IO[bytes]
    name = "open"


@dataclass(frozen=True)
class Taken:
    """Endpoint was removed by an earlier lifecycle operation."""

    name = "taken"


StreamState = Union[Inherited, Open, Taken]

INHERITED = Inherited()
TAKEN = Taken()


class StreamSlot:
    """Parent-side state of one child stream.

    Example:
        slot = StreamSlot.for_policy("stdout", Pipe(), popen.stdout)
        reader = slot.endpoint()   # live pipe reader
        slot.take()                # -> endpoint, slot is now taken
        slot.endpoint()            # raises StreamStateError
    """

    def __init__(self, stream: str, state: StreamState) -> None:
        self.stream = stream
        self._state = state

    @classmethod
    def for_policy(
        cls,
        stream: str,
        policy: StdioPolicy,
        endpoint: IO[bytes] | None,
    ) -> StreamSlot:
        if isinstance(policy, Inherit) or endpoint is None:
            return cls(stream, INHERITED)
        return cls(stream, Open(endpoint))

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def is_open(self) -> bool:
        return isinstance(self._state, Open)

    def endpoint(self) -> IO[bytes]:
        """Return the live endpoint.

        Raises:
            StreamStateError: If the stream is inherited or already taken
        """
        if isinstance(self._state, Open):
            return self._state.endpoint
        raise StreamStateError(self.stream, self._state.name)

    def take(self) -> IO[bytes] | None:
        """Detach the endpoint into the caller's ownership.

        Returns None when there is nothing to take (inherited or taken).
        """
        if not isinstance(self._state, Open):
            return None
        endpoint = self._state.endpoint
        self._state = TAKEN
        return endpoint

    def close(self) -> None:
        """Take the endpoint and release it. Idempotent."""
        endpoint = self.take()
        if endpoint is None:
            return
        try:
            endpoint.close()
        except BrokenPipeError:
            # Buffered stdin data could not be flushed; the child is gone.
            logger.debug(f"{self.stream} closed after the child stopped reading")

    def __repr__(self) -> str:
        return f"StreamSlot({self.stream}={self._state.name})"
