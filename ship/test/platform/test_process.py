"""Tests for ship.platform.process module."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from ship.core.result import Err, Ok
from ship.platform.process import ProcessError, run, run_silent

PY = sys.executable


class TestProcessError:
    def test_str_short_command(self) -> None:
        error = ProcessError(command=("docker", "push"), returncode=1, stdout="", stderr="denied")
        assert str(error) == "docker push failed (exit 1)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(("docker", "load", "-i", "result", "--quiet"), 1, "", "")
        assert str(error) == "docker load -i ... failed (exit 1)"

    def test_timed_out(self) -> None:
        assert ProcessError(("nix",), -1, "", "Command timed out after 1.0s").timed_out
        assert not ProcessError(("nix",), -1, "", "No such file or directory").timed_out

    def test_frozen(self) -> None:
        error = ProcessError(("cmd",), 1, "", "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


class TestRun:
    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "print('hello')"], cwd=tmp_path)
        assert isinstance(result, Ok)
        assert "hello" in result.value

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run(
            [PY, "-c", "import sys; sys.stderr.write('boom'); sys.exit(42)"],
            cwd=tmp_path,
        )
        assert isinstance(result, Err)
        assert result.error.returncode == 42
        assert "boom" in result.error.stderr

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert len(result.error.stderr) > 0

    def test_uses_env(self, tmp_path: Path) -> None:
        env = dict(os.environ)
        env["SHIP_TEST_VAR"] = "value"
        result = run(
            [PY, "-c", "import os; print(os.environ.get('SHIP_TEST_VAR', ''))"],
            cwd=tmp_path,
            env=env,
        )
        assert isinstance(result, Ok)
        assert "value" in result.value

    def test_timeout(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "import time; time.sleep(10)"], cwd=tmp_path, timeout=0.2)
        assert isinstance(result, Err)
        assert result.error.timed_out

    def test_undecodable_output_is_replaced(self, tmp_path: Path) -> None:
        script = "import sys; sys.stderr.buffer.write(b'bad \\xff byte\\n'); sys.exit(1)"
        result = run([PY, "-c", script], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == 1
        assert result.error.stderr.startswith("bad \ufffd byte")


class TestRunSilent:
    def test_success_returns_none(self, tmp_path: Path) -> None:
        result = run_silent([PY, "-c", "pass"], cwd=tmp_path, timeout=10.0)
        assert result == Ok(None)

    def test_failure_returns_code(self, tmp_path: Path) -> None:
        result = run_silent([PY, "-c", "import sys; sys.exit(3)"], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == 3

    def test_timeout(self, tmp_path: Path) -> None:
        result = run_silent([PY, "-c", "import time; time.sleep(10)"], cwd=tmp_path, timeout=0.2)
        assert isinstance(result, Err)
        assert result.error.timed_out
