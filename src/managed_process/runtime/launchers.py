"""One-shot helpers for running a program to completion.

managed-process runtime module v0.1.0
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence

import anyio

from ..config import get_config
from ..errors import SpawnError
from .process import CapturedOutput, ExitStatus, ProcessHandle
from .stdio import Inherit, SpawnConfig, all_piped

__all__ = [
    "run_to_status",
    "run_captured",
    "arun_to_status",
    "arun_captured",
]

logger = logging.getLogger(__name__)

STDIO_FDS = (0, 1, 2)


def _dup_std_fd(fd: int) -> int | None:
    """Duplicate one of the parent's standard fds.

    Returns None (inherit the original directly) if the fd is not open.
    """
    try:
        return os.dup(fd)
    except OSError as e:
        logger.debug(f"Cannot duplicate fd {fd}, inheriting it directly: {e}")
        return None


def run_to_status(program: str, args: Sequence[str] = ()) -> ExitStatus | None:
    """Run a program on the parent's terminal streams and wait for it.

    Args:
        program: Executable path or name
        args: Arguments passed verbatim

    Returns:
        The exit status, or None if the program could not be started
    """
    if get_config().dup_stdio:
        handles = [_dup_std_fd(fd) for fd in STDIO_FDS]
    else:
        handles = [None, None, None]

    config = SpawnConfig(
        program,
        tuple(args),
        stdin=Inherit(handles[0]),
        stdout=Inherit(handles[1]),
        stderr=Inherit(handles[2]),
    )

    try:
        handle = ProcessHandle.spawn(config)
    except SpawnError as e:
        logger.debug(f"run_to_status: {e}")
        return None
    finally:
        # The child has its own copies now
        for fd in handles:
            if fd is not None:
                os.close(fd)

    with handle:
        return handle.finish()


def run_captured(program: str, args: Sequence[str] = ()) -> CapturedOutput | None:
    """Run a program with all streams piped and capture its output.

    Args:
        program: Executable path or name
        args: Arguments passed verbatim

    Returns:
        Exit status with stdout/stderr bytes, or None if the program could
        not be started
    """
    stdin, stdout, stderr = all_piped()
    config = SpawnConfig(program, tuple(args), stdin=stdin, stdout=stdout, stderr=stderr)

    try:
        handle = ProcessHandle.spawn(config)
    except SpawnError as e:
        logger.debug(f"run_captured: {e}")
        return None

    with handle:
        return handle.finish_with_output()


async def arun_to_status(program: str, args: Sequence[str] = ()) -> ExitStatus | None:
    """Async form of :func:`run_to_status` on a worker thread."""
    return await anyio.to_thread.run_sync(run_to_status, program, args)


async def arun_captured(program: str, args: Sequence[str] = ()) -> CapturedOutput | None:
    """Async form of :func:`run_captured` on a worker thread."""
    return await anyio.to_thread.run_sync(run_captured, program, args)
