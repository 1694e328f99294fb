"""Release command - build, load, tag and push the production image."""

from __future__ import annotations

import typer

from ship.cli.commands.pipeline_common import make_driver
from ship.cli.context import build_context
from ship.core.result import Err, Ok
from ship.output.console import Style
from ship.output.errors import print_stage_failure, stage_failure_exit_code


def release(
    tag: str | None = typer.Option(
        None, "--tag", help="Production tag (repository:tag)", show_default=False
    ),
    profile: str | None = typer.Option(
        None, "--profile", help="Build profile: debug or release", show_default=False
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without running them"),
) -> None:
    """Build the image, tag it as production and push it.

    The server follows the production tag, so a successful push is a deploy.
    Run at most one release at a time against the same docker daemon.
    """
    ctx = build_context(tag=tag, profile=profile)
    driver = make_driver(ctx, dry_run=dry_run)

    match driver.release():
        case Ok(result):
            ctx.console.print(f"image: {result.image}", Style.DIM)
            ctx.console.print(f"remote: {result.remote}", Style.DIM)
        case Err(failure):
            print_stage_failure(failure, ctx.console)
            raise typer.Exit(code=stage_failure_exit_code(failure))
