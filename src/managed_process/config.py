"""managed-process 环境变量配置管理。

环境变量:
    MP_DRAIN_CHUNK_SIZE: 并发读取 stdout/stderr 时每次读取的字节数
        - 默认 65536
        - 限制在 1 KiB - 16 MiB 范围，无效值使用默认值

    MP_DUP_STDIO: run_to_status 是否复制父进程的标准流句柄
        - true/1/yes = 复制 (默认，子进程关闭流不影响父进程)
        - false/0/no = 直接继承父进程的标准流

    MP_LOG_DEBUG: 日志调试模式
        - true/1/yes = 开启 (日志输出到临时文件)
        - false/0/no = 关闭 (默认，日志输出到 stderr)
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_CHUNK_SIZE = 64 * 1024
MIN_CHUNK_SIZE = 1024
MAX_CHUNK_SIZE = 16 * 1024 * 1024


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """解析布尔值环境变量。"""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_chunk_size(value: str | None) -> int:
    """解析读取块大小环境变量。"""
    if not value:
        return DEFAULT_CHUNK_SIZE
    try:
        size = int(value)
    except ValueError:
        return DEFAULT_CHUNK_SIZE
    return max(MIN_CHUNK_SIZE, min(size, MAX_CHUNK_SIZE))


@dataclass
class Config:
    """managed-process 配置。

    Attributes:
        drain_chunk_size: 并发读取时的块大小（字节）
        dup_stdio: run_to_status 是否复制父进程标准流
        log_debug: 日志调试模式（输出到临时文件）
        log_file: 日志文件路径（当 log_debug=True 时自动设置）
    """

    drain_chunk_size: int = DEFAULT_CHUNK_SIZE
    dup_stdio: bool = True
    log_debug: bool = False
    log_file: str | None = None

    def __repr__(self) -> str:
        return (
            f"Config(drain_chunk_size={self.drain_chunk_size}, "
            f"dup_stdio={self.dup_stdio}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """生成日志文件路径。

    Returns:
        临时目录下的日志文件绝对路径
    """
    log_dir = Path(tempfile.gettempdir()) / "managed-process"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"mp_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """从环境变量加载配置。"""
    log_debug = _parse_bool(os.environ.get("MP_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        drain_chunk_size=_parse_chunk_size(os.environ.get("MP_DRAIN_CHUNK_SIZE")),
        dup_stdio=_parse_bool(os.environ.get("MP_DUP_STDIO"), default=True),
        log_debug=log_debug,
        log_file=log_file,
    )


# 全局配置实例（延迟加载）
_config: Config | None = None


def get_config() -> Config:
    """获取全局配置实例。"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """重新加载配置（用于测试）。"""
    global _config
    _config = load_config()
    return _config
