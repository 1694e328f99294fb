from __future__ import annotations

import os
from dataclasses import dataclass

import typer

from ship.core.config import ReleaseConfig, apply_overrides, load_config
from ship.core.errors import ErrorCode
from ship.core.project import Project, detect_project
from ship.core.result import Err
from ship.output.console import ConsoleProtocol, RichConsole
from ship.pipeline.model import SourceTree


@dataclass(frozen=True, slots=True)
class CLIContext:
    project: Project
    config: ReleaseConfig
    console: ConsoleProtocol
    env: dict[str, str]

    def source_tree(self) -> SourceTree:
        return SourceTree(
            root=self.project.root,
            paths=self.config.source.paths,
            lock_file=self.config.source.lock_file,
        )


def build_context(*, tag: str | None = None, profile: str | None = None) -> CLIContext:
    """Detect the project and resolve configuration, or exit."""
    console = RichConsole()

    project_result = detect_project()
    if isinstance(project_result, Err):
        console.error(project_result.error.message)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    project = project_result.value

    env = dict(os.environ)

    config_result = load_config(project.config_path)
    if isinstance(config_result, Err):
        console.error(config_result.error.message)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    overridden = apply_overrides(config_result.value, env, tag=tag, profile=profile)
    if isinstance(overridden, Err):
        console.error(overridden.error.message)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(project=project, config=overridden.value, console=console, env=env)
