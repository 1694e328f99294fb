from __future__ import annotations

from pathlib import Path

import pytest
import typer

from ship.cli.context import CLIContext
from ship.core.config import ReleaseConfig
from ship.core.errors import ErrorCode
from ship.core.project import Project
from ship.core.result import Err, Ok
from ship.output.console import MockConsole, Style
from ship.pipeline import docker as docker_mod
from ship.pipeline import nix as nix_mod
from ship.platform.process import ProcessError


def _ctx(tmp_path: Path, console: MockConsole) -> CLIContext:
    (tmp_path / "flake.nix").write_text("{}\n")
    (tmp_path / "Cargo.toml").write_text("[package]\n")
    (tmp_path / "Cargo.lock").write_text("# lock\n")
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.rs").write_text("fn main() {}\n")
    return CLIContext(project=Project(root=tmp_path), config=ReleaseConfig(), console=console, env={})


class FakeTools:
    """Scripted nix and docker with a command log."""

    def __init__(self, tmp_path: Path, *, fail: str | None = None) -> None:
        self.calls: list[list[str]] = []
        self.fail = fail
        self.image = tmp_path / "store" / "docker-image-awesomelify.tar.gz"
        self.image.parent.mkdir()
        self.image.write_bytes(b"archive")

    def __call__(self, cmd: list[str], *, cwd: Path, env: object = None, timeout: float | None = None):
        del cwd, env, timeout
        self.calls.append(cmd)
        step = cmd[1]
        if step == self.fail:
            return Err(ProcessError(tuple(cmd), 1, "", f"{step}: simulated failure\n"))
        if step == "build":
            return Ok(f"{self.image}\n")
        if step == "load":
            return Ok("Loaded image: theduke/awesomelify:0abc\n")
        return Ok("")


def _install(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, *, fail: str | None = None
) -> tuple[FakeTools, MockConsole]:
    import ship.cli.commands.release_cmd as release_cmd

    console = MockConsole()
    ctx = _ctx(tmp_path, console)
    tools = FakeTools(tmp_path, fail=fail)
    monkeypatch.setattr(release_cmd, "build_context", lambda **_: ctx)
    monkeypatch.setattr(nix_mod, "run_process", tools)
    monkeypatch.setattr(docker_mod, "run_process", tools)
    return tools, console


def test_release_success(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    import ship.cli.commands.release_cmd as release_cmd

    tools, console = _install(monkeypatch, tmp_path)

    release_cmd.release(tag=None, profile=None, dry_run=False)

    assert [c[:2] for c in tools.calls] == [
        ["nix", "build"],
        ["docker", "load"],
        ["docker", "tag"],
        ["docker", "push"],
    ]
    assert tools.calls[2] == ["docker", "tag", "theduke/awesomelify:0abc", "theduke/awesomelify:production"]
    assert not console.has_error()
    assert console.find("Tag theduke/awesomelify:production pushed!")


def test_build_failure_exits_without_docker(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    import ship.cli.commands.release_cmd as release_cmd

    tools, console = _install(monkeypatch, tmp_path, fail="build")

    with pytest.raises(typer.Exit) as exc:
        release_cmd.release(tag=None, profile=None, dry_run=False)

    assert exc.value.exit_code == int(ErrorCode.BUILD_ERROR)
    assert all(c[0] == "nix" for c in tools.calls)
    assert console.find("stage 'build' failed")
    assert console.find("build: simulated failure")


def test_push_failure_exit_code_and_divergence_warning(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    import ship.cli.commands.release_cmd as release_cmd

    tools, console = _install(monkeypatch, tmp_path, fail="push")

    with pytest.raises(typer.Exit) as exc:
        release_cmd.release(tag=None, profile=None, dry_run=False)

    assert exc.value.exit_code == int(ErrorCode.NETWORK_ERROR)
    assert tools.calls[-1][:2] == ["docker", "push"]
    assert console.has_warning()
    diagnostics = [o.message for o in console.outputs if o.style == Style.DIAGNOSTIC]
    assert diagnostics == ["push: simulated failure\n"]


@pytest.mark.parametrize("failing", ["load", "tag"])
def test_image_stage_failure_exit_code(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, failing: str
) -> None:
    import ship.cli.commands.release_cmd as release_cmd

    tools, _ = _install(monkeypatch, tmp_path, fail=failing)

    with pytest.raises(typer.Exit) as exc:
        release_cmd.release(tag=None, profile=None, dry_run=False)

    assert exc.value.exit_code == int(ErrorCode.IMAGE_ERROR)
    assert tools.calls[-1][:2] == ["docker", failing]


def test_dry_run_runs_nothing(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    import ship.cli.commands.release_cmd as release_cmd

    tools, console = _install(monkeypatch, tmp_path)

    release_cmd.release(tag=None, profile=None, dry_run=True)

    assert tools.calls == []
    assert console.find("docker push theduke/awesomelify:production")
