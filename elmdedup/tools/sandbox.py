"""Sandbox provisioning — builds and enters the FHS sandbox shell.

Lifecycle:
  1. generate_sandbox_expr() renders the SandboxSpec to a Nix expression.
  2. build_sandbox() writes it to a temporary .nix file and runs
     `nix-build --no-out-link`, returning the store path of the wrapper.
  3. enter_sandbox() runs <store path>/bin/<name> attached to the terminal.
     The wrapper sets up the namespace, sources the profile and execs the
     run command.

Observability: every step is wrapped in a logfire.span().
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import logfire

from elmdedup.nix_gen.generator import generate_environment_expr, generate_sandbox_expr
from elmdedup.tools.cli import run_command, run_interactive

if TYPE_CHECKING:
    from elmdedup.nix_gen.models import EnvironmentSpec, SandboxSpec

logger = logging.getLogger(__name__)

# Building the sandbox may have to fetch nixpkgs and every target package.
_BUILD_TIMEOUT_SECONDS = 3600


class ProvisioningError(Exception):
    """Raised when the sandbox cannot be built or entered."""


def write_expression(expr: str, directory: Path, filename: str) -> Path:
    """Write a generated expression into directory and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(expr)
    logger.info("Wrote %s", path)
    return path


def write_environment(spec: EnvironmentSpec, directory: Path) -> Path:
    return write_expression(generate_environment_expr(spec), directory, "devenv.nix")


def write_sandbox(spec: SandboxSpec, directory: Path) -> Path:
    return write_expression(generate_sandbox_expr(spec), directory, "default.nix")


async def build_sandbox(spec: SandboxSpec) -> Path:
    """Build the sandbox derivation and return its store path.

    Raises:
        ProvisioningError: If nix-build fails or times out.
    """
    with logfire.span("sandbox.build", sandbox_name=spec.name):
        with tempfile.TemporaryDirectory(prefix="elmdedup-") as tmp:
            expr_path = write_sandbox(spec, Path(tmp))
            try:
                result = await run_command(
                    "nix-build",
                    "--no-out-link",
                    str(expr_path),
                    timeout_seconds=_BUILD_TIMEOUT_SECONDS,
                )
            except TimeoutError as e:
                raise ProvisioningError(str(e)) from e

        if not result.success:
            raise ProvisioningError(
                f"nix-build failed for '{spec.name}' (exit {result.returncode}): {result.stderr}"
            )

        # nix-build prints one store path per output; the wrapper is the last line.
        lines = result.stdout.splitlines()
        if not lines:
            raise ProvisioningError(f"nix-build produced no store path for '{spec.name}'")
        store_path = Path(lines[-1].strip())

        logfire.info(
            "Built sandbox '{sandbox_name}' at {store_path}",
            sandbox_name=spec.name,
            store_path=str(store_path),
        )
        return store_path


async def enter_sandbox(spec: SandboxSpec) -> int:
    """Build the sandbox and run its wrapper attached to the terminal.

    Returns:
        The exit code of the run command.
    """
    store_path = await build_sandbox(spec)
    wrapper = store_path / "bin" / spec.name

    with logfire.span("sandbox.enter", sandbox_name=spec.name):
        try:
            returncode = await run_interactive(str(wrapper))
        except OSError as e:
            raise ProvisioningError(f"Could not start {wrapper}: {e}") from e

    logfire.info(
        "Sandbox '{sandbox_name}' exited with {returncode}",
        sandbox_name=spec.name,
        returncode=returncode,
    )
    return returncode
