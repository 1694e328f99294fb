"""Lint and test workflows for the server crate.

Thin sequences of cargo invocations. Output streams straight to the
terminal; the first failing step stops the sequence.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from ship.core.result import Err, Ok, Result
from ship.output.console import ConsoleProtocol, Style
from ship.platform.process import run_silent

__all__ = ["CheckError", "CheckService"]

_LINT_TIMEOUT_SECONDS = 20 * 60.0
_TEST_TIMEOUT_SECONDS = 60 * 60.0


@dataclass(frozen=True, slots=True)
class CheckError:
    step: str
    returncode: int
    hint: str | None = None

    @property
    def message(self) -> str:
        if self.returncode == -1:
            return f"{self.step}: could not run"
        return f"{self.step} failed (exit {self.returncode})"


class CheckService:
    def __init__(
        self,
        *,
        root: Path,
        console: ConsoleProtocol,
        cargo: str = "cargo",
        env: Mapping[str, str] | None = None,
        dry_run: bool = False,
    ) -> None:
        self._root = root
        self._console = console
        self._cargo = cargo
        self._env = env
        self._dry_run = dry_run

    def _steps(self, steps: Sequence[list[str]], *, timeout: float) -> Result[None, CheckError]:
        for args in steps:
            cmd = [self._cargo, *args]
            self._console.print(" ".join(cmd), Style.DIM)
            if self._dry_run:
                continue
            result = run_silent(cmd, cwd=self._root, env=self._env, timeout=timeout)
            if isinstance(result, Err):
                e = result.error
                hint = e.stderr or None
                return Err(CheckError(step=" ".join(cmd[:3]), returncode=e.returncode, hint=hint))
        return Ok(None)

    def lint(self) -> Result[None, CheckError]:
        """rustfmt, cargo check and clippy, each preceded by its version."""
        self._console.header("Lint")
        return self._steps(
            [
                ["fmt", "--version"],
                ["fmt", "--check"],
                ["--version"],
                ["check"],
                ["clippy", "--version"],
                ["clippy", "--", "--deny", "warnings"],
            ],
            timeout=_LINT_TIMEOUT_SECONDS,
        )

    def test(self, *, ci: bool = False) -> Result[None, CheckError]:
        """nextest, then doc tests (nextest does not run those)."""
        self._console.header("Test")
        nextest = ["nextest", "run"]
        if ci:
            nextest += ["--no-fail-fast", "--failure-output=immediate-final"]
        return self._steps([nextest, ["test", "--doc"]], timeout=_TEST_TIMEOUT_SECONDS)

    def fix(self) -> Result[None, CheckError]:
        self._console.header("Fix")
        return self._steps([["clippy", "--fix"], ["fmt"]], timeout=_LINT_TIMEOUT_SECONDS)
