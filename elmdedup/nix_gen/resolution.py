"""Package resolution — checks declared package names against nixpkgs.

Names are validated syntactically by the models; whether they actually exist
is only known to nixpkgs. This module asks `nix eval` which of the names do
not resolve, so a typo is reported before a long nix-build starts.
"""

from __future__ import annotations

import json

import logfire

from elmdedup.nix_gen.generator import nix_list, nixpkgs_import
from elmdedup.tools.cli import CommandResult, run_command


class PackageResolutionError(Exception):
    """Raised when package resolution cannot be performed."""


def _missing_packages_expr(names: list[str], nixpkgs_url: str | None) -> str:
    return (
        f"let pkgs = {nixpkgs_import(nixpkgs_url)}; lib = pkgs.lib; in "
        "builtins.filter "
        '(name: !(lib.hasAttrByPath (lib.splitString "." name) pkgs)) '
        f"{nix_list(names)}"
    )


async def run_nix_eval(expr: str) -> CommandResult:
    """Run `nix eval --json --impure --expr <expr>`.

    Separated from find_missing_packages so tests can mock the nix call.

    Flags:
        --impure: required for <nixpkgs> lookups and unpinned fetchTarball.
        timeout_seconds=300: a cold evaluation downloads the nixpkgs tarball.
    """
    return await run_command(
        "nix",
        "eval",
        "--json",
        "--impure",
        "--expr",
        expr,
        timeout_seconds=300,
    )


async def find_missing_packages(names: list[str], nixpkgs_url: str | None = None) -> list[str]:
    """Return the package names that do not resolve in nixpkgs.

    Args:
        names: Attribute paths to check (e.g. ["openssl", "llvmPackages_latest.lld"]).
        nixpkgs_url: Pinned nixpkgs tarball. Uses <nixpkgs> when None.

    Returns:
        Sorted list of unresolvable names. Empty when everything resolves.

    Raises:
        PackageResolutionError: If nix eval fails or returns something other
            than a list of strings.
    """
    if not names:
        return []

    with logfire.span("nix.resolve_packages", count=len(names)):
        result = await run_nix_eval(_missing_packages_expr(names, nixpkgs_url))

        if not result.success:
            raise PackageResolutionError(f"nix eval failed (exit {result.returncode}): {result.stderr}")

        try:
            parsed = json.loads(result.stdout)
        except (json.JSONDecodeError, ValueError) as e:
            raise PackageResolutionError(f"Failed to parse nix eval output as JSON: {e}") from e

        if not isinstance(parsed, list) or not all(isinstance(n, str) for n in parsed):
            raise PackageResolutionError(f"Expected a list of package names, got: {result.stdout}")

        missing = sorted(parsed)
        if missing:
            logfire.warn("Unresolvable packages: {missing}", missing=missing)
        return missing
