"""Pydantic models for the development environment declarations.

These models define the Python side of the tooling-to-Nix boundary:

- EnvironmentSpec: a flat package set plus enabled language toolchains,
  rendered as a devenv module.
- SandboxSpec: the inputs of an FHS sandbox (buildFHSUserEnv): target
  packages, extra outputs, profile script and the command run on entry.
- SandboxDescription: what the sandbox will actually contain once the
  external resolver has processed a SandboxSpec.

All models are frozen and normalise their collections on construction
(sorted sets, order-preserving dedup), so generating from the same inputs
twice yields byte-identical output.
"""

from __future__ import annotations

import logging
import re

from pydantic import BaseModel, ConfigDict, field_validator

from elmdedup.tools.cli import check_shell_syntax

logger = logging.getLogger(__name__)

# A nixpkgs attribute path: identifier segments joined by dots
# (e.g. "openssl", "pkg-config", "llvmPackages_latest.lld").
_ATTR_SEGMENT = r"[A-Za-z_][A-Za-z0-9_'-]*"
_PACKAGE_NAME_RE = re.compile(rf"^{_ATTR_SEGMENT}(?:\.{_ATTR_SEGMENT})*$")

# Nix keywords cannot appear as bare identifiers under `with pkgs;`.
NIX_KEYWORDS = frozenset(
    {"assert", "else", "if", "in", "inherit", "let", "or", "rec", "then", "with"}
)

# Nix antiquotations in the profile (${pkgs.foo}) become store paths before the
# shell ever reads the script.
_NIX_ANTIQUOTE_RE = re.compile(r"\$\{[^{}]*\}")
_ANTIQUOTE_PLACEHOLDER = "/nix/store/antiquote"

# devenv language toolchains: languages.<id>.enable
_TOOLCHAIN_RE = re.compile(r"^[a-z][a-z0-9_-]*$")

# Output names of a multi-output derivation (out, dev, lib, man, ...).
_OUTPUT_RE = re.compile(r"^[a-z][a-z0-9]*$")

# Sandbox name becomes the derivation name and the wrapper binary name.
_SANDBOX_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._+-]*$")

DEFAULT_OUTPUT = "out"


def validate_package_name(name: str) -> str | None:
    """Validate a single package name.

    Returns an error message string if the name is invalid, or None if valid.
    Shared by the models and the CLI, which accepts package names as arguments.
    """
    if not name:
        return "Package name must not be empty."
    if not _PACKAGE_NAME_RE.match(name):
        return (
            f"Package name '{name}' is invalid. "
            "Must be a nixpkgs attribute path (e.g. 'openssl', 'llvmPackages_latest.lld')."
        )
    keywords = [segment for segment in name.split(".") if segment in NIX_KEYWORDS]
    if keywords:
        return f"Package name '{name}' is invalid. '{keywords[0]}' is a Nix keyword."
    return None


def _check_package_names(names: list[str]) -> None:
    for name in names:
        error = validate_package_name(name)
        if error is not None:
            raise ValueError(error)


def _check_pattern(values: list[str], pattern: re.Pattern[str], kind: str) -> None:
    for value in values:
        if not pattern.match(value):
            msg = f"Invalid {kind} '{value}'"
            raise ValueError(msg)


class EnvironmentSpec(BaseModel):
    """Packages and toolchains of the devenv development environment."""

    model_config = ConfigDict(frozen=True)

    packages: list[str]
    toolchains: list[str] = []

    @field_validator("packages")
    @classmethod
    def validate_packages(cls, v: list[str]) -> list[str]:
        _check_package_names(v)
        return sorted(set(v))

    @field_validator("toolchains")
    @classmethod
    def validate_toolchains(cls, v: list[str]) -> list[str]:
        _check_pattern(v, _TOOLCHAIN_RE, "toolchain")
        return sorted(set(v))


class SandboxSpec(BaseModel):
    """Spec for an FHS sandbox shell.

    Rendered by generate_sandbox_expr() as a buildFHSUserEnv expression.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    target_packages: list[str] = []
    extra_outputs: list[str] = []
    profile_script: str = ""
    """Shell text sourced once on entry.

    Opaque to this layer apart from a `bash -n` parse. It is embedded in a Nix
    indented string, so ${...} references are evaluated by Nix (that is how
    store paths such as the rust source tree get into the environment).
    """

    run_command: str = "bash"

    nixpkgs_url: str | None = None
    """Pinned nixpkgs tarball. When None, the expression imports <nixpkgs>."""

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v:
            msg = "Sandbox name must not be empty"
            raise ValueError(msg)
        if not _SANDBOX_NAME_RE.match(v):
            msg = (
                f"Sandbox name '{v}' is invalid. "
                "Must start with a letter or digit and contain only letters, digits, '.', '_', '+', '-'"
            )
            raise ValueError(msg)
        return v

    @field_validator("target_packages")
    @classmethod
    def validate_target_packages(cls, v: list[str]) -> list[str]:
        _check_package_names(v)
        # Order matters for readability of the generated expression; keep the
        # first occurrence of each package.
        return list(dict.fromkeys(v))

    @field_validator("extra_outputs")
    @classmethod
    def validate_extra_outputs(cls, v: list[str]) -> list[str]:
        _check_pattern(v, _OUTPUT_RE, "output name")
        return sorted(set(v))

    @field_validator("profile_script")
    @classmethod
    def validate_profile_script(cls, v: str) -> str:
        if not v.strip():
            return v
        script = _NIX_ANTIQUOTE_RE.sub(_ANTIQUOTE_PLACEHOLDER, v)
        try:
            error = check_shell_syntax(script)
        except FileNotFoundError:
            logger.warning("bash not found; profile script syntax not checked")
            return v
        except TimeoutError as e:
            raise ValueError(str(e)) from e
        if error is not None:
            msg = f"Profile script is not valid shell: {error}"
            raise ValueError(msg)
        return v

    @field_validator("run_command")
    @classmethod
    def validate_run_command(cls, v: str) -> str:
        if not v.strip():
            msg = "Run command must not be empty"
            raise ValueError(msg)
        return v


class SandboxMember(BaseModel):
    """One package in a materialized sandbox and the outputs installed for it."""

    model_config = ConfigDict(frozen=True)

    package: str
    outputs: list[str]


class SandboxDescription(BaseModel):
    """What an external tool needs to build the sandbox described by a SandboxSpec."""

    model_config = ConfigDict(frozen=True)

    name: str
    members: list[SandboxMember]
    profile_script: str
    run_command: str

    @property
    def packages(self) -> set[str]:
        return {m.package for m in self.members}
