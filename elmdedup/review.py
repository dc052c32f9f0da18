"""elm-review over the whole cloned package tree.

Runs `elm-review --config <config>` in every package version and keeps the
output of the ones that report something. A clean run prints exactly
"I found no errors!"; anything else (findings, compile errors, missing
elm.json) is reported as-is.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

import logfire

from elmdedup.packages.layout import iter_version_roots
from elmdedup.tools.cli import run_command

NO_ERRORS_OUTPUT = "I found no errors!"

_REVIEW_TIMEOUT_SECONDS = 300


class ReviewError(Exception):
    """Raised when elm-review cannot be run at all."""


@dataclass
class ReviewFinding:
    path: Path
    output: str


@dataclass
class ReviewReport:
    total: int = 0
    clean: int = 0
    findings: list[ReviewFinding] = field(default_factory=list)


async def review_package(path: Path, config: Path) -> str | None:
    """Run elm-review in one package directory.

    Returns:
        None when the package is clean, otherwise elm-review's output.

    Raises:
        ReviewError: If elm-review is not installed.
    """
    try:
        result = await run_command(
            "elm-review",
            "--config",
            str(config),
            cwd=path,
            timeout_seconds=_REVIEW_TIMEOUT_SECONDS,
        )
    except FileNotFoundError as e:
        raise ReviewError("elm-review not found on PATH") from e
    except TimeoutError as e:
        return str(e)

    if result.stdout == NO_ERRORS_OUTPUT:
        return None
    return "\n".join(part for part in (result.stdout, result.stderr) if part)


async def review_all(repos_dir: Path, config: Path, concurrency: int) -> ReviewReport:
    """Review every package version under repos_dir."""
    roots = list(iter_version_roots(repos_dir))
    report = ReviewReport(total=len(roots))
    semaphore = asyncio.Semaphore(concurrency)

    async def _review(path: Path) -> None:
        async with semaphore:
            output = await review_package(path, config)
        if output is None:
            report.clean += 1
            logfire.info("{done:5}/{total}", done=report.clean, total=report.total)
            return
        report.findings.append(ReviewFinding(path=path, output=output))
        logfire.info("Findings in {path}", path=str(path))

    with logfire.span("review.all", total=len(roots), config=str(config)):
        await asyncio.gather(*(_review(root) for root in roots))

    report.findings.sort(key=lambda f: f.path)
    return report
