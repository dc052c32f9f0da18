"""The project's own development environment.

Two declarations: the devenv environment used for day-to-day work, and the FHS
sandbox that carries the Rust toolchain, native build dependencies and an
editor. `python -m elmdedup generate` renders them to devenv.nix / default.nix.
"""

from __future__ import annotations

from elmdedup.config import DEFAULT_NIXPKGS_URL
from elmdedup.nix_gen.models import EnvironmentSpec, SandboxSpec

SANDBOX_NAME = "elm-dedup-project"

_RUST_PACKAGES = [
    "llvmPackages_latest.llvm",
    "llvmPackages_latest.bintools",
    "llvmPackages_latest.lld",
    "cargo",
    "rustc",
    "rustfmt",
]

_NATIVE_PACKAGES = [
    "pkg-config",
    "openssl",
]

_EDITOR_PACKAGES = [
    "vscode",
]

# Evaluated by Nix when the profile is rendered: points rust-analyzer and
# friends at the standard library sources of the pinned toolchain.
_PROFILE = 'export RUST_SRC_PATH="${pkgs.rust.packages.stable.rustPlatform.rustLibSrc}";\n'


def project_environment() -> EnvironmentSpec:
    return EnvironmentSpec(
        packages=["git", *_NATIVE_PACKAGES],
        toolchains=["rust"],
    )


def project_sandbox(nixpkgs_url: str | None = DEFAULT_NIXPKGS_URL) -> SandboxSpec:
    return SandboxSpec(
        name=SANDBOX_NAME,
        target_packages=[*_RUST_PACKAGES, *_NATIVE_PACKAGES, *_EDITOR_PACKAGES],
        extra_outputs=["dev"],
        profile_script=_PROFILE,
        run_command="zsh",
        nixpkgs_url=nixpkgs_url,
    )
