from __future__ import annotations

from pathlib import Path

import pytest

from ship.core.result import Err, Ok
from ship.output.console import MockConsole
from ship.pipeline import nix as nix_mod
from ship.pipeline.model import SourceTree
from ship.pipeline.nix import NixBuilder, parse_out_path
from ship.platform.process import ProcessError


def _source(root: Path) -> SourceTree:
    (root / "Cargo.toml").write_text("[package]\n")
    (root / "Cargo.lock").write_text("# lock\n")
    (root / "src").mkdir(exist_ok=True)
    (root / "src" / "main.rs").write_text("fn main() {}\n")
    return SourceTree(root=root, paths=("Cargo.toml", "Cargo.lock", "src"), lock_file="Cargo.lock")


def _builder(**overrides: object) -> NixBuilder:
    params: dict[str, object] = {
        "flake": ".",
        "attr": "dockerImage",
        "out_link": "result",
        "console": MockConsole(),
        "timeout": 30.0,
    }
    params.update(overrides)
    return NixBuilder(**params)  # type: ignore[arg-type]


class TestParseOutPath:
    def test_single_path(self) -> None:
        out = "/nix/store/abc-docker-image-awesomelify.tar.gz\n"
        assert parse_out_path(out) == Path("/nix/store/abc-docker-image-awesomelify.tar.gz")

    def test_takes_last_line(self) -> None:
        out = "/nix/store/one\n/nix/store/two\n\n"
        assert parse_out_path(out) == Path("/nix/store/two")

    def test_empty(self) -> None:
        assert parse_out_path("") is None

    def test_not_a_path(self) -> None:
        assert parse_out_path("warning: Git tree is dirty\n") is None


def test_command_shape() -> None:
    assert _builder().command() == [
        "nix",
        "build",
        ".#dockerImage",
        "--out-link",
        "result",
        "--print-out-paths",
    ]
    assert _builder(check=True).command()[-1] == "--rebuild"


def test_build_returns_store_artifact(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    source = _source(tmp_path)
    store = tmp_path / "store"
    store.mkdir()
    image = store / "docker-image-awesomelify.tar.gz"
    image.write_bytes(b"archive")
    seen: dict[str, object] = {}

    def fake_run(cmd: list[str], *, cwd: Path, env: object = None, timeout: float | None = None):
        seen.update(cmd=cmd, cwd=cwd, timeout=timeout)
        return Ok(f"{image}\n")

    monkeypatch.setattr(nix_mod, "run_process", fake_run)

    result = _builder().build(source)

    assert isinstance(result, Ok)
    assert result.value.path == image
    assert seen["cwd"] == tmp_path
    assert seen["timeout"] == 30.0


def test_missing_lock_file_fails_before_nix(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    source = _source(tmp_path)
    (tmp_path / "Cargo.lock").unlink()

    def fake_run(*args: object, **kwargs: object):
        raise AssertionError("nix must not run without a lock file")

    monkeypatch.setattr(nix_mod, "run_process", fake_run)

    result = _builder().build(source)

    assert isinstance(result, Err)
    assert "lock file" in result.error.message


def test_missing_source_path_fails(tmp_path: Path) -> None:
    source = _source(tmp_path)
    source = SourceTree(root=source.root, paths=(*source.paths, "build.rs"), lock_file="Cargo.lock")

    result = _builder().build(source)

    assert isinstance(result, Err)
    assert "build.rs" in result.error.message


def test_nix_failure_keeps_raw_log(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    source = _source(tmp_path)
    log = "error: builder for '/nix/store/x-awesomelify.drv' failed with exit code 101\n"

    def fake_run(cmd: list[str], *, cwd: Path, env: object = None, timeout: float | None = None):
        return Err(ProcessError(tuple(cmd), 1, "", log))

    monkeypatch.setattr(nix_mod, "run_process", fake_run)

    result = _builder().build(source)

    assert isinstance(result, Err)
    assert result.error.diagnostic == log
    assert result.error.returncode == 1


def test_unparseable_output_fails(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    source = _source(tmp_path)

    def fake_run(cmd: list[str], *, cwd: Path, env: object = None, timeout: float | None = None):
        return Ok("")

    monkeypatch.setattr(nix_mod, "run_process", fake_run)

    result = _builder().build(source)

    assert isinstance(result, Err)
    assert "output path" in result.error.message


def test_dry_run_prints_command_only(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    source = _source(tmp_path)
    console = MockConsole()

    def fake_run(*args: object, **kwargs: object):
        raise AssertionError("nix must not run in dry-run mode")

    monkeypatch.setattr(nix_mod, "run_process", fake_run)

    result = _builder(console=console, dry_run=True).build(source)

    assert isinstance(result, Ok)
    assert console.messages == ["nix build .#dockerImage --out-link result --print-out-paths"]


def test_build_does_not_modify_source(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    source = _source(tmp_path)
    before = source.digest()
    image = tmp_path.parent / f"{tmp_path.name}-image.tar.gz"
    image.write_bytes(b"archive")

    def fake_run(cmd: list[str], *, cwd: Path, env: object = None, timeout: float | None = None):
        return Ok(f"{image}\n")

    monkeypatch.setattr(nix_mod, "run_process", fake_run)

    assert isinstance(_builder().build(source), Ok)
    assert source.digest() == before
