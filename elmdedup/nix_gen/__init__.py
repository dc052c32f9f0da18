"""nix_gen — Nix expression generation for the development environment.

This package owns the Python side of the tooling-to-Nix boundary:
- Pydantic models for the environment and sandbox declarations
- The project's own declarations
- Rendering to devenv.nix / buildFHSUserEnv expressions
- Package resolution against nixpkgs
"""
