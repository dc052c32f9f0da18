"""Nix expression generator — renders EnvironmentSpec and SandboxSpec as Nix.

Nix syntax is never written by hand elsewhere in the project. This module is
the single place where the Python declarations are translated into:

  devenv.nix (EnvironmentSpec):
      { pkgs, ... }:

      {
        packages = with pkgs; [
          git
          openssl
        ];
        languages.rust.enable = true;
      }

  default.nix (SandboxSpec):
      let
        pkgs = import (fetchTarball "https://.../nixpkgs.tar.gz") { };
      in
      pkgs.buildFHSUserEnv {
        name = "elm-dedup-project";
        targetPkgs = pkgs: with pkgs; [ ... ];
        extraOutputsToInstall = [ "dev" ];
        profile = '' ... '';
        runScript = "zsh";
      }

Generation is pure string manipulation: the same spec always yields the same
bytes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from elmdedup.nix_gen.models import DEFAULT_OUTPUT, SandboxDescription, SandboxMember

if TYPE_CHECKING:
    from elmdedup.nix_gen.models import EnvironmentSpec, SandboxSpec


def _nix_string(value: str) -> str:
    """Wrap a Python string as a Nix string literal.

    Escapes Nix special characters within double-quoted strings:
      \\  →  \\\\   (must be first to avoid double-escaping)
      "   →  \\"
      $   →  \\$    (prevents Nix string interpolation)
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$")
    return f'"{escaped}"'


def nix_list(items: list[str]) -> str:
    """Format a Python list of strings as a Nix list literal.

    Example: ["dev", "lib"] → '[ "dev" "lib" ]'
    """
    if not items:
        return "[ ]"
    return "[ " + " ".join(_nix_string(item) for item in items) + " ]"


def _nix_package_list(packages: list[str], indent: str) -> str:
    """Format attribute paths as a multi-line list for use under `with pkgs;`."""
    if not packages:
        return "[ ]"
    body = "".join(f"{indent}  {package}\n" for package in packages)
    return f"[\n{body}{indent}]"


def _nix_indented_string(text: str, indent: str) -> str:
    """Wrap shell text in a Nix indented string ('' ... '').

    Only the terminator is escaped ('' → '''). ${...} is left alone so the
    profile can interpolate store paths.
    """
    if not text.strip():
        return '""'
    escaped = text.replace("''", "'''")
    lines = escaped.strip("\n").splitlines()
    body = "".join(f"{indent}  {line}\n" if line.strip() else "\n" for line in lines)
    return f"''\n{body}{indent}''"


def nixpkgs_import(nixpkgs_url: str | None) -> str:
    if nixpkgs_url:
        return f"import (fetchTarball {_nix_string(nixpkgs_url)}) {{ }}"
    return "import <nixpkgs> { }"


def generate_environment_expr(spec: EnvironmentSpec) -> str:
    """Generate a devenv module from an EnvironmentSpec.

    The result is meant to be written as devenv.nix and consumed by `devenv shell`.
    """
    toolchains = "".join(f"  languages.{toolchain}.enable = true;\n" for toolchain in spec.toolchains)
    return f"""\
{{ pkgs, ... }}:

{{
  packages = with pkgs; {_nix_package_list(spec.packages, "  ")};
{toolchains}}}
"""


def generate_sandbox_expr(spec: SandboxSpec) -> str:
    """Generate a buildFHSUserEnv expression from a SandboxSpec.

    The expression evaluates to a derivation whose bin/<name> wrapper enters
    the sandbox, sources the profile and runs spec.run_command.
    """
    return f"""\
let
  pkgs = {nixpkgs_import(spec.nixpkgs_url)};
in
pkgs.buildFHSUserEnv {{
  name = {_nix_string(spec.name)};
  targetPkgs = pkgs: with pkgs; {_nix_package_list(spec.target_packages, "  ")};

  extraOutputsToInstall = {nix_list(spec.extra_outputs)};

  profile = {_nix_indented_string(spec.profile_script, "  ")};
  runScript = {_nix_string(spec.run_command)};
}}
"""


def describe_sandbox(spec: SandboxSpec) -> SandboxDescription:
    """Describe the sandbox a SandboxSpec materializes into.

    Members are exactly the (deduplicated) target packages. Each member gets
    its default output plus every extra output requested.
    """
    outputs = [DEFAULT_OUTPUT, *(o for o in spec.extra_outputs if o != DEFAULT_OUTPUT)]
    return SandboxDescription(
        name=spec.name,
        members=[SandboxMember(package=p, outputs=outputs) for p in spec.target_packages],
        profile_script=spec.profile_script,
        run_command=spec.run_command,
    )
