"""Managed child process handle.

managed-process runtime module v0.1.0

This module provides:
- ProcessHandle: spawn a child and drive its lifecycle (write, read, wait, signal)
- ExitStatus: portable exit disposition (exit code or terminating signal)
- CapturedOutput: exit status plus everything the child wrote to stdout/stderr

Key design points:
- Spawn failure raises SpawnError before a handle exists
- The exit status is cached after the first wait; the OS is never waited on twice
- finish_with_output drains both pipes concurrently before waiting for exit
- A handle that is discarded unreaped reaps its child on the way out
"""

from __future__ import annotations

import logging
import signal
import subprocess
from dataclasses import dataclass
from typing import IO, Any

import anyio

from ..errors import SpawnError
from .drainer import ConcurrentDrainer
from .stdio import SpawnConfig, StreamSlot, popen_stdio_arg

__all__ = [
    "ProcessHandle",
    "ExitStatus",
    "CapturedOutput",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExitStatus:
    """How a child process terminated.

    Exactly one of the attributes is set.

    Attributes:
        code: Exit code for a normal exit
        term_signal: Signal number if the child was killed by a signal
    """

    code: int | None = None
    term_signal: int | None = None

    @classmethod
    def from_returncode(cls, returncode: int) -> ExitStatus:
        """Build from subprocess's returncode (negative = killed by signal)."""
        if returncode < 0:
            return cls(term_signal=-returncode)
        return cls(code=returncode)

    @property
    def success(self) -> bool:
        return self.code == 0

    @property
    def returncode(self) -> int:
        if self.term_signal is not None:
            return -self.term_signal
        return self.code  # type: ignore[return-value]

    def matches_exit_status(self, code: int) -> bool:
        return self.code == code

    def __str__(self) -> str:
        if self.term_signal is not None:
            try:
                name = signal.Signals(self.term_signal).name
            except ValueError:
                return f"signal {self.term_signal}"
            return f"signal {self.term_signal} ({name})"
        return f"exit code {self.code}"


@dataclass(frozen=True)
class CapturedOutput:
    """Exit status and complete output of a finished child.

    Attributes:
        status: How the child terminated
        stdout: Everything read from stdout (empty if not piped or already taken)
        stderr: Everything read from stderr (empty if not piped or already taken)
    """

    status: ExitStatus
    stdout: bytes = b""
    stderr: bytes = b""

    def stdout_text(self, encoding: str = "utf-8") -> str:
        return self.stdout.decode(encoding, errors="replace")

    def stderr_text(self, encoding: str = "utf-8") -> str:
        return self.stderr.decode(encoding, errors="replace")


class ProcessHandle:
    """One spawned child process and the parent's ends of its streams.

    Example:
        with ProcessHandle.spawn(SpawnConfig("cat")) as proc:
            proc.stdin_writer().write(b"hello")
            result = proc.finish_with_output()

        assert result.stdout == b"hello"

    Use :meth:`spawn` to create handles; the constructor only wraps an
    already-started subprocess.Popen.
    """

    def __init__(
        self,
        popen: subprocess.Popen[bytes],
        stdin: StreamSlot,
        stdout: StreamSlot,
        stderr: StreamSlot,
        drainer: ConcurrentDrainer,
    ) -> None:
        self._popen = popen
        self._stdin = stdin
        self._stdout = stdout
        self._stderr = stderr
        self._drainer = drainer
        self._status: ExitStatus | None = None

    @classmethod
    def spawn(
        cls,
        config: SpawnConfig,
        *,
        chunk_size: int | None = None,
    ) -> ProcessHandle:
        """Start a child process.

        Args:
            config: What to run and how to wire its streams
            chunk_size: Drain read size (default from MP_DRAIN_CHUNK_SIZE)

        Returns:
            Handle for the running child

        Raises:
            SpawnError: If the OS could not create the process (executable
                not found, invalid working directory, permission denied, ...)
        """
        kwargs = cls._build_popen_kwargs(config)

        try:
            popen = subprocess.Popen(config.argv, **kwargs)
        except OSError as e:
            logger.debug(f"Spawn failed argv={config.argv} cwd={config.cwd}: {e}")
            raise SpawnError(config.program, e.errno, e.strerror) from e

        # Move the pipe ends out of Popen so the slots are their only owner
        stdin = StreamSlot.for_policy("stdin", config.stdin, popen.stdin)
        stdout = StreamSlot.for_policy("stdout", config.stdout, popen.stdout)
        stderr = StreamSlot.for_policy("stderr", config.stderr, popen.stderr)
        popen.stdin = popen.stdout = popen.stderr = None

        logger.debug(
            f"Started subprocess pid={popen.pid} "
            f"argv={config.argv} cwd={config.cwd} "
            f"stdio={stdin!r},{stdout!r},{stderr!r}"
        )

        return cls(
            popen,
            stdin,
            stdout,
            stderr,
            ConcurrentDrainer(chunk_size),
        )

    @staticmethod
    def _build_popen_kwargs(config: SpawnConfig) -> dict[str, Any]:
        """Build subprocess.Popen kwargs from a spawn config.

        Raises:
            SpawnError: If an inherited handle is unusable
        """
        kwargs: dict[str, Any] = {
            "stdin": popen_stdio_arg(config.stdin, config.program),
            "stdout": popen_stdio_arg(config.stdout, config.program),
            "stderr": popen_stdio_arg(config.stderr, config.program),
        }

        env = config.env_dict()
        if env is not None:
            kwargs["env"] = env

        if config.cwd is not None:
            kwargs["cwd"] = config.cwd

        return kwargs

    # ------------------------------------------------------------------
    # Identity and state
    # ------------------------------------------------------------------

    @property
    def pid(self) -> int:
        return self._popen.pid

    @property
    def exit_status(self) -> ExitStatus | None:
        """Cached exit status, or None if the child has not been reaped."""
        return self._status

    @property
    def is_reaped(self) -> bool:
        return self._status is not None

    # ------------------------------------------------------------------
    # Stream access
    # ------------------------------------------------------------------

    def stdin_writer(self) -> IO[bytes]:
        """Writable end of the child's stdin.

        Raises:
            StreamStateError: If stdin was inherited or already closed
        """
        return self._stdin.endpoint()

    def stdout_reader(self) -> IO[bytes]:
        """Readable end of the child's stdout.

        Raises:
            StreamStateError: If stdout was inherited or already taken
        """
        return self._stdout.endpoint()

    def stderr_reader(self) -> IO[bytes]:
        """Readable end of the child's stderr.

        Raises:
            StreamStateError: If stderr was inherited or already taken
        """
        return self._stderr.endpoint()

    def close_input(self) -> None:
        """Close the child's stdin so it sees EOF. Idempotent."""
        self._stdin.close()

    def close_outputs(self) -> None:
        """Close stdout and stderr without reading what is left in them."""
        self._stdout.close()
        self._stderr.close()

    # ------------------------------------------------------------------
    # Waiting
    # ------------------------------------------------------------------

    def poll(self) -> ExitStatus | None:
        """Return the exit status if the child has exited, without blocking."""
        if self._status is not None:
            return self._status
        returncode = self._popen.poll()
        if returncode is None:
            return None
        return self._record_exit(returncode)

    def finish(self) -> ExitStatus:
        """Wait for the child to terminate and return its exit status.

        Returns the cached status immediately on repeated calls. Streams are
        left untouched: a child blocked writing to an unread pipe will never
        exit, so read or close piped outputs first.
        """
        if self._status is not None:
            return self._status
        returncode = self._popen.wait()
        return self._record_exit(returncode)

    def finish_with_output(self) -> CapturedOutput:
        """Close stdin, drain stdout/stderr, wait, and return everything.

        Both outputs are read concurrently so a child filling one pipe while
        the other is being read cannot deadlock. Streams that were inherited
        or already taken contribute empty bytes, so a second call returns
        empty output with the cached status.
        """
        self.close_input()
        stdout = self._stdout.take()
        stderr = self._stderr.take()

        out, err = self._drainer.drain(stdout, stderr)
        status = self.finish()

        return CapturedOutput(status=status, stdout=out, stderr=err)

    def _record_exit(self, returncode: int) -> ExitStatus:
        self._status = ExitStatus.from_returncode(returncode)
        logger.debug(f"Subprocess reaped pid={self.pid} status={self._status}")
        return self._status

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------

    def destroy(self) -> ExitStatus:
        """Ask the child to exit (SIGTERM / TerminateProcess) and reap it.

        Blocks until the child is gone; a child that ignores the request
        keeps this call waiting. See :meth:`force_destroy`.
        """
        self._send_termination(force=False)
        return self.finish()

    def force_destroy(self) -> ExitStatus:
        """Kill the child (SIGKILL / TerminateProcess) and reap it."""
        self._send_termination(force=True)
        return self.finish()

    def _send_termination(self, *, force: bool) -> None:
        if self._status is not None:
            logger.debug(f"Subprocess already reaped pid={self.pid}, not signalling")
            return

        try:
            if force:
                self._popen.kill()
                logger.debug(f"Sent kill to pid={self.pid}")
            else:
                self._popen.terminate()
                logger.debug(f"Sent terminate to pid={self.pid}")
        except ProcessLookupError:
            # Exited but not yet reaped
            logger.debug(f"Subprocess already exited pid={self.pid}")

    # ------------------------------------------------------------------
    # Async forms
    # ------------------------------------------------------------------

    async def afinish(self) -> ExitStatus:
        """:meth:`finish` on a worker thread. Not cancellable."""
        return await anyio.to_thread.run_sync(self.finish)

    async def afinish_with_output(self) -> CapturedOutput:
        """:meth:`finish_with_output` on a worker thread. Not cancellable."""
        return await anyio.to_thread.run_sync(self.finish_with_output)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def close(self) -> ExitStatus:
        """Reap the child and release every parent-side endpoint.

        Unread output pipes are dropped before waiting, so a child blocked
        writing to one gets EPIPE instead of stalling the wait forever.
        """
        self.close_input()
        self.close_outputs()
        return self.finish()

    def __enter__(self) -> ProcessHandle:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __del__(self) -> None:
        # Partially constructed handles own no child
        if getattr(self, "_status", True) is not None:
            return
        logger.warning(
            f"ProcessHandle pid={self._popen.pid} discarded without being "
            f"reaped, waiting for it"
        )
        try:
            self.close()
        except Exception as e:
            logger.warning(f"Error reaping discarded subprocess pid={self._popen.pid}: {e}")

    def __repr__(self) -> str:
        state = str(self._status) if self._status is not None else "running"
        return f"ProcessHandle(pid={self.pid}, {state})"
