"""elmdedup configuration — centralized environment variable management.

Every knob of the tooling (where the package clones live, which compilers to
compare, how many workers to run) is declared here. No module should call
os.environ directly — import settings from here instead.

Usage:
    from elmdedup.config import get_settings

    settings = get_settings()
    repos = settings.repos_path
    timeout = settings.test_timeout_seconds

Environment variables (all optional, a .env file is read in development):

    REPOS_DIR               — Root of the cloned package tree
                              (<repos>/<author>/<project>/<version>). Default: repos
    PACKAGE_INDEX_URL       — Elm package index listing every published package.
    NIXPKGS_URL             — nixpkgs tarball the generated expressions import.
                              Defaults to the revision the project shell is pinned to.
    ELM_REVIEW_CONFIG       — elm-review configuration directory passed as --config.
    ELM                     — Command for the reference Elm compiler.
    LAMDERA_STABLE_NO_WIRE  — Lamdera stable, wire codegen disabled.
    LAMDERA_STABLE          — Lamdera stable.
    LAMDERA_NEXT_NO_WIRE    — Lamdera next, wire codegen disabled.
    LAMDERA_NEXT            — Lamdera next.
    ELM_TEST_RS_PATH        — Explicit elm-test-rs binary. Falls back to npx when unset.
    CONCURRENCY             — Parallel clones / reviews / test workers. Default: 10
    TEST_TIMEOUT_SECONDS    — Per-compiler test run timeout. Default: 120
    FPS                     — Dashboard refresh rate. Default: 20
    EXPORT_PATH             — CSV export target. Default: export.csv
    LOGFIRE_TOKEN           — Logfire project token. If unset, logfire runs in local mode.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# The nixpkgs revision the project sandbox was originally pinned to.
DEFAULT_NIXPKGS_URL = (
    "https://github.com/NixOS/nixpkgs/archive/174e938d593817f2eb5ae363684dea7c412eb96a.tar.gz"
)

DEFAULT_PACKAGE_INDEX_URL = "https://package.elm-lang.org/search.json"


class ElmDedupSettings(BaseSettings):
    """Centralized configuration for the elmdedup tooling.

    Field names map to env vars by uppercasing: repos_dir → REPOS_DIR.
    Instantiate via get_settings() to benefit from caching.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Layout ───────────────────────────────────────────────────────────────

    repos_dir: str = "repos"
    package_index_url: str = DEFAULT_PACKAGE_INDEX_URL
    nixpkgs_url: str | None = DEFAULT_NIXPKGS_URL

    elm_review_config: str = "~/src/elm-review-simplify/preview"
    """elm-review configuration directory. A leading ~ is expanded at use time."""

    # ── Compilers ────────────────────────────────────────────────────────────

    elm: str = "elm"
    lamdera_stable_no_wire: str = "lamdera-stable-no-wire"
    lamdera_stable: str = "lamdera-stable"
    lamdera_next_no_wire: str = "lamdera-next-no-wire"
    lamdera_next: str = "lamdera-next"

    elm_test_rs_path: str | None = None
    """elm-test-rs binary for elm-explorations/test 2.x packages.

    When unset, elm-test-rs is fetched and run through `npx --yes elm-test-rs`.
    """

    # ── Runtime ──────────────────────────────────────────────────────────────

    concurrency: int = 10
    test_timeout_seconds: float = 120.0
    fps: int = 20
    export_path: str = "export.csv"

    # ── Observability ────────────────────────────────────────────────────────

    logfire_token: SecretStr | None = None

    # ── Computed properties ──────────────────────────────────────────────────

    @property
    def repos_path(self) -> Path:
        return Path(self.repos_dir)

    @property
    def elm_review_config_path(self) -> Path:
        return Path(self.elm_review_config).expanduser()

    # ── Validators ───────────────────────────────────────────────────────────

    @field_validator("concurrency", "fps")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            msg = f"Must be at least 1, got {v}"
            raise ValueError(msg)
        return v

    @field_validator("test_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            msg = f"Timeout must be positive, got {v}"
            raise ValueError(msg)
        return v


@lru_cache(maxsize=1)
def get_settings() -> ElmDedupSettings:
    """Return the cached ElmDedupSettings instance.

    Reads from environment on first call, then caches for the process lifetime.
    Call clear_settings_cache() in tests to reset between test cases.
    """
    return ElmDedupSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache."""
    get_settings.cache_clear()
