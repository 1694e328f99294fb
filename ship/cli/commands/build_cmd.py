"""Build command - run the package builder only."""

from __future__ import annotations

import typer

from ship.cli.commands.pipeline_common import make_driver
from ship.cli.context import build_context
from ship.core.result import Err, Ok
from ship.output.console import Style
from ship.output.errors import print_stage_failure, stage_failure_exit_code


def build(
    profile: str | None = typer.Option(
        None, "--profile", help="Build profile: debug or release", show_default=False
    ),
    check: bool = typer.Option(
        False, "--check", help="Rebuild and verify the output is bit-for-bit identical"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without running them"),
) -> None:
    """Build the image archive without touching the container daemon."""
    ctx = build_context(profile=profile)
    driver = make_driver(ctx, check=check, dry_run=dry_run)

    match driver.build_only():
        case Ok(artifact):
            if artifact.path.is_file():
                ctx.console.print(f"artifact digest: {artifact.digest()}", Style.DIM)
            ctx.console.success(str(artifact.path))
        case Err(failure):
            print_stage_failure(failure, ctx.console)
            raise typer.Exit(code=stage_failure_exit_code(failure))
