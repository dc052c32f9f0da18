"""Async subprocess runner for elmdedup tools.

Every external tool (nix, nix-build, git, elm-review, npx, elm-test-rs, the
sandbox wrapper) goes through this module. It provides:

- Structured results (stdout, stderr, returncode) via CommandResult
- Async execution via asyncio.create_subprocess_exec
- Configurable timeouts with automatic process cleanup
- An interactive variant that hands the terminal to the child
- A synchronous `bash -n` syntax check for model validation
"""

from __future__ import annotations

import asyncio
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

# Default timeout for CLI commands (seconds).
# nix-build and git clone can take much longer and should override this.
DEFAULT_TIMEOUT_SECONDS = 60

# `bash -n` only parses; anything slower than this is not a profile script.
SHELL_CHECK_TIMEOUT_SECONDS = 10


@dataclass
class CommandResult:
    """Structured result from a CLI invocation."""

    stdout: str
    stderr: str
    returncode: int

    def __post_init__(self) -> None:
        self.stdout = self.stdout.strip()
        self.stderr = self.stderr.strip()

    @property
    def success(self) -> bool:
        """True if the command exited with code 0."""
        return self.returncode == 0


async def run_command(
    *args: str,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Run a CLI command asynchronously and return a structured result.

    Args:
        *args: Command and arguments (e.g. "nix", "eval", "--json", "--expr", "...").
        timeout_seconds: Maximum runtime before the process is killed.
        cwd: Working directory for the child. Defaults to the current directory.
        env: Full environment for the child. Defaults to the parent's environment.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        TimeoutError: If the command exceeds timeout_seconds. The process is killed.
    """
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=cwd,
        env=env,
    )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            proc.communicate(),
            timeout=timeout_seconds,
        )
    except TimeoutError:
        proc.kill()
        await proc.wait()
        cmd_str = " ".join(args)
        msg = f"Command timed out after {timeout_seconds}s: {cmd_str}"
        raise TimeoutError(msg) from None

    return CommandResult(
        stdout=stdout_bytes.decode(errors="replace") if stdout_bytes else "",
        stderr=stderr_bytes.decode(errors="replace") if stderr_bytes else "",
        returncode=proc.returncode or 0,
    )


def check_shell_syntax(script: str, shell: str = "bash") -> str | None:
    """Parse script with `<shell> -n` without running it.

    Synchronous so model validators can call it.

    Returns:
        The shell's error message if the script does not parse, None if it does.

    Raises:
        FileNotFoundError: If the shell is not installed.
        TimeoutError: If the parse takes longer than SHELL_CHECK_TIMEOUT_SECONDS.
    """
    try:
        result = subprocess.run(
            [shell, "-n"],
            input=script,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=SHELL_CHECK_TIMEOUT_SECONDS,
            check=False,
        )
    except subprocess.TimeoutExpired:
        msg = f"Command timed out after {SHELL_CHECK_TIMEOUT_SECONDS}s: {shell} -n"
        raise TimeoutError(msg) from None

    if result.returncode == 0:
        return None
    return result.stderr.strip() or f"{shell} -n exited with {result.returncode}"


async def run_interactive(*args: str, cwd: Path | str | None = None) -> int:
    """Run a command attached to the current terminal and return its exit code.

    stdin/stdout/stderr are inherited, so the child owns the terminal until it
    exits. No timeout: interactive shells run as long as the user wants.
    """
    proc = await asyncio.create_subprocess_exec(*args, cwd=cwd)
    return await proc.wait()
