"""Convenience launcher tests.

Test coverage:
- run_to_status exit codes with inherited stdio
- run_captured stdout/stderr capture
- Spawn failure yields None
- Async forms via anyio worker threads
"""

from __future__ import annotations

import logging
import os
import sys
from unittest import mock

import pytest

from managed_process.config import reload_config
from managed_process.runtime.launchers import (
    arun_captured,
    arun_to_status,
    run_captured,
    run_to_status,
)
from managed_process.runtime.process import ProcessHandle
from managed_process.runtime.stdio import SpawnConfig

IS_WINDOWS = sys.platform == "win32"


class TestRunToStatus:
    """Test run_to_status."""

    @pytest.mark.skipif(IS_WINDOWS, reason="POSIX true/false")
    def test_true_and_false(self):
        status = run_to_status("false")
        assert status is not None
        assert status.matches_exit_status(1)

        status = run_to_status("true")
        assert status is not None
        assert status.success

    @pytest.mark.parametrize("code", [0, 3, 42])
    def test_exit_code(self, python: str, code: int):
        status = run_to_status(python, ["-c", f"import sys; sys.exit({code})"])
        assert status is not None
        assert status.matches_exit_status(code)

    def test_parent_fds_stay_open(self, python: str):
        run_to_status(python, ["-c", "import os; os.close(1); os.close(2)"])

        # The child closed its copies, not ours
        os.fstat(1)
        os.fstat(2)

    def test_without_dup(self, python: str):
        with mock.patch.dict(os.environ, {"MP_DUP_STDIO": "false"}, clear=False):
            assert reload_config().dup_stdio is False
            status = run_to_status(python, ["-c", "pass"])
        reload_config()

        assert status is not None
        assert status.success

    def test_undupable_fd_inherited_directly(self, python: str, caplog):
        with mock.patch("os.dup", side_effect=OSError(9, "Bad file descriptor")) as dup:
            with caplog.at_level(logging.DEBUG, logger="managed_process"):
                status = run_to_status(python, ["-c", "pass"])

        assert dup.call_count == 3
        assert status is not None
        assert status.success
        assert any("Cannot duplicate fd" in r.message for r in caplog.records)

    def test_nonexistent_program(self):
        assert run_to_status("no-binary-by-this-name-should-exist") is None

    def test_no_fd_leak_on_failure(self):
        before = os.open(os.devnull, os.O_RDONLY)
        os.close(before)

        run_to_status("no-binary-by-this-name-should-exist")

        after = os.open(os.devnull, os.O_RDONLY)
        os.close(after)
        assert after == before


class TestRunCaptured:
    """Test run_captured."""

    @pytest.mark.skipif(IS_WINDOWS, reason="POSIX echo")
    def test_echo(self):
        result = run_captured("echo", ["hello"])

        assert result is not None
        assert result.status.success
        assert result.stdout_text().strip() == "hello"
        assert result.stderr == b""

    @pytest.mark.skipif(IS_WINDOWS, reason="POSIX mkdir")
    def test_mkdir_error(self):
        result = run_captured("mkdir", ["."])

        assert result is not None
        assert result.status.matches_exit_status(1)
        assert result.stdout == b""
        assert result.stderr != b""

    def test_stderr_only_failure(self, python: str):
        result = run_captured(python, ["-c", "import sys; sys.stderr.write('bad'); sys.exit(2)"])

        assert result is not None
        assert not result.status.success
        assert result.stdout == b""
        assert result.stderr == b"bad"

    def test_arguments_not_shell_interpreted(self, python: str):
        result = run_captured(python, ["-c", "import sys; print(sys.argv[1])", "$HOME; echo hi"])

        assert result is not None
        assert result.stdout_text().strip() == "$HOME; echo hi"

    @pytest.mark.timeout(30)
    def test_stdin_is_piped_and_closed(self, python: str):
        # Reading stdin hits EOF at once instead of waiting on the terminal
        result = run_captured(python, ["-c", "import sys; print(len(sys.stdin.read()))"])

        assert result is not None
        assert result.status.success
        assert result.stdout_text().strip() == "0"

    @pytest.mark.timeout(60)
    def test_large_stderr(self, python: str, fake_child: list[str]):
        size = 3 * 1024 * 1024
        result = run_captured(python, [*fake_child, "--stderr-bytes", str(size), "--stdout-bytes", "10"])

        assert result is not None
        assert len(result.stderr) == size
        assert result.stdout == b"o" * 10

    def test_nonexistent_program(self):
        assert run_captured("no-binary-by-this-name-should-exist") is None


class TestAsyncLaunchers:
    """Test async launcher forms."""

    @pytest.mark.asyncio
    async def test_arun_captured(self, python: str):
        result = await arun_captured(python, ["-c", "print('async hello')"])

        assert result is not None
        assert result.status.success
        assert result.stdout_text().strip() == "async hello"

    @pytest.mark.asyncio
    async def test_arun_to_status(self, python: str):
        status = await arun_to_status(python, ["-c", "import sys; sys.exit(9)"])

        assert status is not None
        assert status.matches_exit_status(9)

    @pytest.mark.asyncio
    async def test_async_spawn_failure(self):
        assert await arun_captured("no-binary-by-this-name-should-exist") is None
        assert await arun_to_status("no-binary-by-this-name-should-exist") is None

    @pytest.mark.asyncio
    async def test_handle_async_methods(self, python: str):
        with ProcessHandle.spawn(SpawnConfig(python, ["-c", "import sys; print('x'); sys.exit(1)"])) as proc:
            result = await proc.afinish_with_output()
            status = await proc.afinish()

        assert result.stdout.strip() == b"x"
        assert status == result.status
        assert status.matches_exit_status(1)
