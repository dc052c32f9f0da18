"""Command-line entry point for elmdedup.

    python -m elmdedup describe              # what the project sandbox contains
    python -m elmdedup generate sandbox      # default.nix for the FHS shell
    python -m elmdedup generate environment  # devenv.nix
    python -m elmdedup check-packages        # every declared package resolves?
    python -m elmdedup shell                 # build and enter the sandbox
    python -m elmdedup download              # clone every published Elm package
    python -m elmdedup review                # elm-review over the cloned tree
    python -m elmdedup test                  # compiler comparison dashboard

Configuration comes from ElmDedupSettings (env vars / .env file). Logfire is
configured here so every command's spans end up under one service.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import sys
from pathlib import Path

import click
import logfire

from elmdedup.config import get_settings
from elmdedup.nix_gen.declarations import project_environment, project_sandbox
from elmdedup.nix_gen.generator import describe_sandbox, generate_environment_expr, generate_sandbox_expr
from elmdedup.nix_gen.resolution import PackageResolutionError, find_missing_packages
from elmdedup.packages.download import download_all
from elmdedup.packages.index import PackageIndexError, fetch_package_index
from elmdedup.review import ReviewError, review_all
from elmdedup.testing.dashboard import run_dashboard
from elmdedup.testing.models import Compilers
from elmdedup.testing.pool import TestPool
from elmdedup.testing.runner import check_tests_for
from elmdedup.tools.sandbox import ProvisioningError, enter_sandbox, write_expression

# ── Logging ───────────────────────────────────────────────────────────────────

logging.basicConfig(
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    level=logging.INFO,
)
logger = logging.getLogger(__name__)


# ── Commands ──────────────────────────────────────────────────────────────────


@click.group()
@click.pass_context
def main(ctx: click.Context) -> None:
    """Development environment and Elm ecosystem tooling for the elm-dedup project."""
    settings = get_settings()
    logfire_token = settings.logfire_token
    logfire.configure(
        token=logfire_token.get_secret_value() if logfire_token else None,
        service_name="elmdedup",
        send_to_logfire="if-token-present",
        # The test dashboard owns the terminal.
        console=False if ctx.invoked_subcommand == "test" else None,
    )


@main.command()
def describe() -> None:
    """Print the sandbox description (members and requested outputs) as JSON."""
    sandbox = project_sandbox(get_settings().nixpkgs_url)
    click.echo(describe_sandbox(sandbox).model_dump_json(indent=2))


@main.command()
@click.argument("what", type=click.Choice(["environment", "sandbox"]))
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to write devenv.nix / default.nix into. Prints to stdout when omitted.",
)
def generate(what: str, output: Path | None) -> None:
    """Render the environment or sandbox declaration as a Nix expression."""
    if what == "environment":
        expr, filename = generate_environment_expr(project_environment()), "devenv.nix"
    else:
        expr, filename = generate_sandbox_expr(project_sandbox(get_settings().nixpkgs_url)), "default.nix"

    if output is None:
        click.echo(expr, nl=False)
        return
    path = write_expression(expr, output, filename)
    click.echo(f"Wrote {path}")


@main.command("check-packages")
def check_packages() -> None:
    """Check that every declared package resolves in nixpkgs."""
    settings = get_settings()
    sandbox = project_sandbox(settings.nixpkgs_url)
    names = sorted(set(project_environment().packages) | set(sandbox.target_packages))

    try:
        missing = asyncio.run(find_missing_packages(names, settings.nixpkgs_url))
    except PackageResolutionError as e:
        raise click.ClickException(str(e)) from e

    if missing:
        raise click.ClickException(f"Unresolvable packages: {', '.join(missing)}")
    click.echo(f"All {len(names)} packages resolve.")


@main.command()
def shell() -> None:
    """Build the FHS sandbox and open its shell."""
    sandbox = project_sandbox(get_settings().nixpkgs_url)
    try:
        returncode = asyncio.run(enter_sandbox(sandbox))
    except ProvisioningError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(returncode)


@main.command()
def download() -> None:
    """Clone every package from the Elm package index."""
    settings = get_settings()

    async def _download() -> str:
        click.secho("Getting packages list", fg="blue")
        packages = await fetch_package_index(settings.package_index_url)
        summary = await download_all(packages, settings.repos_path, settings.concurrency)
        return str(summary)

    try:
        summary = asyncio.run(_download())
    except PackageIndexError as e:
        raise click.ClickException(str(e)) from e
    click.secho(summary, fg="green")


@main.command()
def review() -> None:
    """Run elm-review over every cloned package and print the findings."""
    settings = get_settings()
    try:
        report = asyncio.run(
            review_all(settings.repos_path, settings.elm_review_config_path, settings.concurrency)
        )
    except ReviewError as e:
        raise click.ClickException(str(e)) from e

    for finding in report.findings:
        click.echo(f"\n\n==========================\n\n{finding.path}\n\n{finding.output}")
    click.secho(
        f"{report.clean}/{report.total} packages clean, {len(report.findings)} with findings",
        fg="green" if not report.findings else "yellow",
    )


@main.command()
def test() -> None:
    """Run every package's tests against each compiler, with a live dashboard.

    Keys: e exports the non-passing rows to CSV, q quits.
    """
    settings = get_settings()
    compilers = Compilers.from_settings(settings)
    check = functools.partial(check_tests_for, compilers=compilers, settings=settings)

    async def _test() -> None:
        pool = TestPool(settings.repos_path, check, settings.concurrency)
        pool_task = asyncio.create_task(pool.run())
        try:
            await run_dashboard(pool, pool_task, Path(settings.export_path), settings.fps)
        finally:
            pool.stop()
            click.echo("Waiting for testers to exit.")
            await pool_task

    asyncio.run(_test())


if __name__ == "__main__":
    main()
