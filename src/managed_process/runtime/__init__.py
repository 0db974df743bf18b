"""Runtime module for managed child processes.

This module spawns a single child process, routes its standard streams,
drains its output without deadlocking, and reaps it reliably.
"""

from __future__ import annotations

from .drainer import ConcurrentDrainer, StreamId
from .launchers import arun_captured, arun_to_status, run_captured, run_to_status
from .process import CapturedOutput, ExitStatus, ProcessHandle
from .stdio import Inherit, Pipe, SpawnConfig, StdioPolicy, all_piped

__all__ = [
    "CapturedOutput",
    "ConcurrentDrainer",
    "ExitStatus",
    "Inherit",
    "Pipe",
    "ProcessHandle",
    "SpawnConfig",
    "StdioPolicy",
    "StreamId",
    "all_piped",
    "arun_captured",
    "arun_to_status",
    "run_captured",
    "run_to_status",
]
