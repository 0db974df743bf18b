"""managed-process - spawn and manage a single child process.

环境变量:
    MP_DRAIN_CHUNK_SIZE: 并发读取块大小 (默认 65536)
    MP_DUP_STDIO: run_to_status 是否复制父进程标准流 (默认 true)
    MP_LOG_DEBUG: 日志输出到临时文件 (默认 false)

用法:
    from managed_process import run_captured

    result = run_captured("echo", ["hello"])
"""

__version__ = "0.1.0"

from .errors import DrainProtocolError, ProcessError, SpawnError, StreamStateError
from .runtime import (
    CapturedOutput,
    ExitStatus,
    Inherit,
    Pipe,
    ProcessHandle,
    SpawnConfig,
    all_piped,
    arun_captured,
    arun_to_status,
    run_captured,
    run_to_status,
)

__all__ = [
    "__version__",
    "CapturedOutput",
    "DrainProtocolError",
    "ExitStatus",
    "Inherit",
    "Pipe",
    "ProcessError",
    "ProcessHandle",
    "SpawnConfig",
    "SpawnError",
    "StreamStateError",
    "all_piped",
    "arun_captured",
    "arun_to_status",
    "run_captured",
    "run_to_status",
]
