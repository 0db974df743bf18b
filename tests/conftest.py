"""Pytest 配置和 fixtures。"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent

# 添加 src 目录到 Python 路径
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

# 测试用子进程脚本
FAKE_CHILD = PROJECT_ROOT / "tests" / "fixtures" / "fake_child.py"


@pytest.fixture
def fake_child() -> list[str]:
    """运行 fake_child.py 的参数前缀（不含程序名）。"""
    return [str(FAKE_CHILD)]


@pytest.fixture
def python() -> str:
    """当前解释器路径。"""
    return sys.executable


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """临时工作目录。"""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace
