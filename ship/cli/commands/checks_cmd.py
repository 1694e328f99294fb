"""Lint, test and fix commands for the server crate."""

from __future__ import annotations

import typer

from ship.cli.commands._helpers import exit_on_error
from ship.cli.context import CLIContext, build_context
from ship.core.errors import ErrorCode
from ship.services.checks import CheckService

_DRY_RUN = typer.Option(False, "--dry-run", help="Print cargo commands without running them")


def _service(ctx: CLIContext, *, dry_run: bool) -> CheckService:
    return CheckService(
        root=ctx.project.root,
        console=ctx.console,
        cargo=ctx.config.tools.cargo,
        env=ctx.env,
        dry_run=dry_run,
    )


def lint(dry_run: bool = _DRY_RUN) -> None:
    """Run rustfmt, cargo check and clippy."""
    ctx = build_context()
    exit_on_error(_service(ctx, dry_run=dry_run).lint(), ctx, ErrorCode.BUILD_ERROR)
    ctx.console.success("lint passed")


def test(
    ci: bool = typer.Option(False, "--ci", help="Keep going after failures, report at the end"),
    dry_run: bool = _DRY_RUN,
) -> None:
    """Run the test suite (nextest plus doc tests)."""
    ctx = build_context()
    exit_on_error(_service(ctx, dry_run=dry_run).test(ci=ci), ctx, ErrorCode.BUILD_ERROR)
    ctx.console.success("tests passed")


def fix(dry_run: bool = _DRY_RUN) -> None:
    """Apply clippy fixes and rustfmt."""
    ctx = build_context()
    exit_on_error(_service(ctx, dry_run=dry_run).fix(), ctx, ErrorCode.BUILD_ERROR)


def prepush(dry_run: bool = _DRY_RUN) -> None:
    """Run all lints and CI tests."""
    ctx = build_context()
    svc = _service(ctx, dry_run=dry_run)
    exit_on_error(svc.lint(), ctx, ErrorCode.BUILD_ERROR)
    exit_on_error(svc.test(ci=True), ctx, ErrorCode.BUILD_ERROR)
    ctx.console.success("ready to push")
