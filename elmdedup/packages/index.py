"""Elm package index — lists every published package and its latest version.

The index (https://package.elm-lang.org/search.json) is a JSON array of
objects with at least "name" ("author/project") and "version" fields.
"""

from __future__ import annotations

import logging
import re

import httpx
import logfire
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

logger = logging.getLogger(__name__)

_PACKAGE_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")

_INDEX_TIMEOUT_SECONDS = 60.0


class PackageIndexError(Exception):
    """Raised when the package index cannot be fetched or parsed."""


class ElmPackage(BaseModel):
    """A published Elm package at a specific version."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    version: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not _PACKAGE_NAME_RE.match(v) or any(part in (".", "..") for part in v.split("/")):
            msg = f"Could not parse '{v}' as author/package-name"
            raise ValueError(msg)
        return v

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        if not v or "/" in v or v.startswith("."):
            msg = f"Invalid package version '{v}'"
            raise ValueError(msg)
        return v

    @property
    def author(self) -> str:
        return self.name.split("/", 1)[0]

    @property
    def project(self) -> str:
        return self.name.split("/", 1)[1]

    @property
    def git_url(self) -> str:
        """SSH clone URL, so git never prompts for a username or password."""
        return f"git@github.com:{self.name}.git"

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


def parse_package_index(payload: object) -> list[ElmPackage]:
    """Parse the decoded index payload, skipping entries that fail validation.

    Raises:
        PackageIndexError: If the payload is not a list.
    """
    if not isinstance(payload, list):
        raise PackageIndexError(f"Expected a list of packages, got {type(payload).__name__}")

    packages: list[ElmPackage] = []
    for entry in payload:
        try:
            packages.append(ElmPackage.model_validate(entry))
        except ValidationError as e:
            logger.warning("Skipping index entry %r: %s", entry, e.errors()[0]["msg"])
    return packages


async def fetch_package_index(
    url: str,
    client: httpx.AsyncClient | None = None,
) -> list[ElmPackage]:
    """Fetch and parse the package index.

    Args:
        url: Index URL (ElmDedupSettings.package_index_url).
        client: Optional client to reuse. Tests pass one built on httpx.MockTransport.

    Raises:
        PackageIndexError: On transport errors, non-2xx responses or invalid JSON.
    """
    with logfire.span("packages.fetch_index", url=url):
        owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(timeout=_INDEX_TIMEOUT_SECONDS, follow_redirects=True)
        try:
            response = await client.get(url)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise PackageIndexError(f"Could not fetch package index from {url}: {e}") from e
        except ValueError as e:
            raise PackageIndexError(f"Package index at {url} is not valid JSON: {e}") from e
        finally:
            if owns_client:
                await client.aclose()

        packages = parse_package_index(payload)
        logfire.info("Fetched {count} packages from the index", count=len(packages))
        return packages
