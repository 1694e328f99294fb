from __future__ import annotations

from ship.cli.context import CLIContext
from ship.pipeline.docker import DockerCli
from ship.pipeline.driver import PipelineDriver
from ship.pipeline.nix import NixBuilder


def make_builder(ctx: CLIContext, *, check: bool = False, dry_run: bool = False) -> NixBuilder:
    config = ctx.config
    return NixBuilder(
        flake=config.build.flake,
        attr=config.flake_attr,
        out_link=config.build.out_link,
        console=ctx.console,
        nix=config.tools.nix,
        env=ctx.env,
        timeout=config.timeouts.build,
        check=check,
        dry_run=dry_run,
    )


def make_driver(ctx: CLIContext, *, check: bool = False, dry_run: bool = False) -> PipelineDriver:
    docker = DockerCli(
        cwd=ctx.project.root,
        console=ctx.console,
        docker=ctx.config.tools.docker,
        env=ctx.env,
        timeouts=ctx.config.timeouts,
        dry_run=dry_run,
    )
    return PipelineDriver(
        config=ctx.config,
        source=ctx.source_tree(),
        builder=make_builder(ctx, check=check, dry_run=dry_run),
        images=docker,
        registry=docker,
        console=ctx.console,
    )
