from __future__ import annotations

import os
from pathlib import Path

import typer

from ship import __version__
from ship.cli.commands.build_cmd import build
from ship.cli.commands.checks_cmd import fix, lint, prepush, test
from ship.cli.commands.release_cmd import release
from ship.core.errors import ErrorCode
from ship.core.project import ENV_PROJECT_ROOT, is_project_root


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


app.command()(build)
app.command()(release)
app.command()(lint)
app.command()(test)
app.command()(fix)
app.command()(prepush)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    project: Path | None = typer.Option(
        None,
        "--project",
        help="Project root (overrides auto detection)",
    ),
) -> None:
    del version
    if project is not None:
        try:
            root = project.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --project: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not root.is_dir() or not is_project_root(root):
            typer.echo(
                f"error: --project '{root}' is not a project (missing ship.toml or flake.nix)",
                err=True,
            )
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ[ENV_PROJECT_ROOT] = str(root)


def main() -> None:
    app()
