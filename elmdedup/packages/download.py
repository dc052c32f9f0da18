"""Package download — shallow-clones every indexed package version.

Each package is cloned at its published tag into
<repos>/<author>/<project>/<version>. Versions already on disk are skipped,
so the command can be re-run after a partial download or when new versions
are published.

A failed clone (deleted repository, missing tag, network hiccup) is logged and
counted; it never aborts the rest of the download.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

import logfire

from elmdedup.packages.layout import version_root
from elmdedup.tools.cli import run_command

if TYPE_CHECKING:
    from pathlib import Path

    from elmdedup.packages.index import ElmPackage

# Shallow clones are small, but some packages ship large assets.
_CLONE_TIMEOUT_SECONDS = 600


class CloneStatus(enum.Enum):
    CLONED = "cloned"
    ALREADY_PRESENT = "already_present"
    ERROR = "error"


@dataclass
class DownloadSummary:
    """Counts of each clone outcome over a download run."""

    cloned: int = 0
    errored: int = 0
    already_present: int = 0

    def record(self, status: CloneStatus) -> None:
        match status:
            case CloneStatus.CLONED:
                self.cloned += 1
            case CloneStatus.ALREADY_PRESENT:
                self.already_present += 1
            case CloneStatus.ERROR:
                self.errored += 1

    def __str__(self) -> str:
        return (
            f"Cloned {self.cloned}, errored {self.errored}, "
            f"already present {self.already_present}"
        )


async def clone_package(package: ElmPackage, repos_dir: Path) -> CloneStatus:
    """Clone one package version unless it is already on disk."""
    target = version_root(repos_dir, package.name, package.version)
    if target.exists():
        return CloneStatus.ALREADY_PRESENT

    logfire.info("Cloning {package}", package=str(package))
    target.parent.mkdir(parents=True, exist_ok=True)

    try:
        result = await run_command(
            "git",
            "clone",
            "--quiet",
            "--branch",
            package.version,
            "--depth",
            "1",
            package.git_url,
            str(target),
            timeout_seconds=_CLONE_TIMEOUT_SECONDS,
        )
    except TimeoutError as e:
        logfire.error("Error cloning {package}: {error}", package=str(package), error=str(e))
        return CloneStatus.ERROR

    if not result.success:
        logfire.error(
            "Error cloning {package} (exit {returncode}): {stderr}",
            package=str(package),
            returncode=result.returncode,
            stderr=result.stderr,
        )
        return CloneStatus.ERROR

    return CloneStatus.CLONED


async def download_all(
    packages: list[ElmPackage],
    repos_dir: Path,
    concurrency: int,
) -> DownloadSummary:
    """Clone every package with at most `concurrency` clones in flight."""
    semaphore = asyncio.Semaphore(concurrency)

    async def _bounded(package: ElmPackage) -> CloneStatus:
        async with semaphore:
            return await clone_package(package, repos_dir)

    with logfire.span("packages.download_all", count=len(packages), concurrency=concurrency):
        statuses = await asyncio.gather(*(_bounded(p) for p in packages))

        summary = DownloadSummary()
        for status in statuses:
            summary.record(status)

        logfire.info(
            "Download finished: {summary}",
            summary=str(summary),
            cloned=summary.cloned,
            errored=summary.errored,
            already_present=summary.already_present,
        )
        return summary
