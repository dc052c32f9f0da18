"""Tests for the async CLI subprocess runner.

All tools invoke nix, git, elm-review and the test runners through this
wrapper.
"""

import subprocess
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from elmdedup.tools.cli import CommandResult, check_shell_syntax, run_command, run_interactive


class TestCommandResult:
    def test_success_check(self):
        result = CommandResult(stdout="ok", stderr="", returncode=0)
        assert result.success is True

    def test_failure_check(self):
        result = CommandResult(stdout="", stderr="error", returncode=1)
        assert result.success is False

    def test_stdout_stripped(self):
        result = CommandResult(stdout="  I found no errors!\n", stderr="", returncode=0)
        assert result.stdout == "I found no errors!"

    def test_stderr_stripped(self):
        result = CommandResult(stdout="", stderr="  warning\n", returncode=0)
        assert result.stderr == "warning"


class TestRunCommand:
    async def test_successful_command(self):
        mock_proc = AsyncMock()
        mock_proc.communicate.return_value = (b"hello\n", b"")
        mock_proc.returncode = 0

        with patch("elmdedup.tools.cli.asyncio.create_subprocess_exec", return_value=mock_proc):
            result = await run_command("echo", "hello")

        assert result.success is True
        assert result.stdout == "hello"

    async def test_failed_command(self):
        mock_proc = AsyncMock()
        mock_proc.communicate.return_value = (b"", b"fatal: Remote branch 1.0.0 not found\n")
        mock_proc.returncode = 128

        with patch("elmdedup.tools.cli.asyncio.create_subprocess_exec", return_value=mock_proc):
            result = await run_command("git", "clone")

        assert result.success is False
        assert result.returncode == 128
        assert "not found" in result.stderr

    async def test_invalid_utf8_replaced(self):
        mock_proc = AsyncMock()
        mock_proc.communicate.return_value = (b"caf\xe9", b"")
        mock_proc.returncode = 0

        with patch("elmdedup.tools.cli.asyncio.create_subprocess_exec", return_value=mock_proc):
            result = await run_command("cat")

        assert result.stdout.startswith("caf")

    async def test_timeout_kills_and_raises(self):
        mock_proc = AsyncMock()
        mock_proc.communicate.side_effect = TimeoutError()
        mock_proc.kill = MagicMock()  # kill() is synchronous on asyncio.Process
        mock_proc.wait = AsyncMock()

        with (
            patch("elmdedup.tools.cli.asyncio.create_subprocess_exec", return_value=mock_proc),
            pytest.raises(TimeoutError, match="timed out"),
        ):
            await run_command("elm-test-rs", timeout_seconds=1)

        mock_proc.kill.assert_called_once()

    async def test_passes_args_cwd_and_env(self, tmp_path):
        mock_proc = AsyncMock()
        mock_proc.communicate.return_value = (b"", b"")
        mock_proc.returncode = 0

        with patch(
            "elmdedup.tools.cli.asyncio.create_subprocess_exec", return_value=mock_proc
        ) as mock_exec:
            await run_command("elm-review", "--config", "cfg", cwd=tmp_path, env={"A": "1"})

        args = mock_exec.call_args
        assert args[0] == ("elm-review", "--config", "cfg")
        assert args[1]["cwd"] == tmp_path
        assert args[1]["env"] == {"A": "1"}


class TestRunInteractive:
    async def test_returns_exit_code(self):
        mock_proc = AsyncMock()
        mock_proc.wait.return_value = 3

        with patch(
            "elmdedup.tools.cli.asyncio.create_subprocess_exec", return_value=mock_proc
        ) as mock_exec:
            code = await run_interactive("/nix/store/abc/bin/dev")

        assert code == 3
        # stdio is inherited: no pipes requested
        assert "stdout" not in mock_exec.call_args[1]


class TestCheckShellSyntax:
    def test_valid_script(self):
        assert check_shell_syntax('export PATH="$HOME/bin:$PATH"\n') is None

    def test_quoted_heredoc(self):
        assert check_shell_syntax("cat <<'EOF'\ndon't forget\nEOF\n") is None

    def test_syntax_error_reported(self):
        error = check_shell_syntax("if then fi (\n")
        assert error is not None
        assert "syntax error" in error

    def test_script_not_executed(self, tmp_path):
        marker = tmp_path / "ran"
        assert check_shell_syntax(f"touch {marker}\n") is None
        assert not marker.exists()

    def test_timeout_raises(self):
        with (
            patch(
                "elmdedup.tools.cli.subprocess.run",
                side_effect=subprocess.TimeoutExpired(["bash", "-n"], 10),
            ),
            pytest.raises(TimeoutError, match="timed out"),
        ):
            check_shell_syntax("true\n")
