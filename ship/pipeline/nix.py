"""Package builder backed by ``nix build``.

The flake selects its inputs with an explicit file set, so the output is a
pure function of the allow-listed sources and the lock file. The store path
is read from ``--print-out-paths``, which prints one path per line and is
stable across nix versions, rather than from the human-readable log.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ship.core.result import Err, Ok, Result
from ship.output.console import ConsoleProtocol, Style
from ship.pipeline.errors import BuildFailure, diagnostic_of
from ship.pipeline.model import Artifact, SourceTree
from ship.platform.process import run as run_process

__all__ = ["NixBuilder", "parse_out_path"]


def parse_out_path(output: str) -> Path | None:
    """Return the last store path printed by ``nix build --print-out-paths``."""
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    if not lines:
        return None
    last = lines[-1]
    if not last.startswith("/"):
        return None
    return Path(last)


@dataclass(frozen=True, slots=True)
class NixBuilder:
    flake: str
    attr: str
    out_link: str
    console: ConsoleProtocol
    nix: str = "nix"
    env: Mapping[str, str] | None = None
    timeout: float | None = None
    check: bool = False
    dry_run: bool = False

    @property
    def installable(self) -> str:
        return f"{self.flake}#{self.attr}"

    def command(self) -> list[str]:
        cmd = [
            self.nix,
            "build",
            self.installable,
            "--out-link",
            self.out_link,
            "--print-out-paths",
        ]
        if self.check:
            # rebuild and fail if the result differs from the existing output
            cmd.append("--rebuild")
        return cmd

    def build(self, source: SourceTree) -> Result[Artifact, BuildFailure]:
        """Build the image archive for ``source``.

        Returns:
            Ok(Artifact) pointing into the nix store, or Err(BuildFailure).
        """
        if not source.lock_path.is_file():
            return Err(BuildFailure(f"lock file not found: {source.lock_file}"))

        missing = source.missing()
        if missing:
            return Err(BuildFailure(f"source paths not found: {', '.join(missing)}"))

        cmd = self.command()
        self.console.print(" ".join(cmd), Style.DIM)
        if self.dry_run:
            return Ok(Artifact(path=source.root / self.out_link))

        result = run_process(cmd, cwd=source.root, env=self.env, timeout=self.timeout)
        if isinstance(result, Err):
            e = result.error
            message = (
                "nix build timed out"
                if e.timed_out
                else f"nix build {self.installable} failed (exit {e.returncode})"
            )
            return Err(BuildFailure(message, diagnostic=diagnostic_of(e), returncode=e.returncode))

        out_path = parse_out_path(result.value)
        if out_path is None:
            return Err(
                BuildFailure(
                    "nix build did not report an output path",
                    diagnostic=result.value,
                )
            )
        if not out_path.is_file():
            return Err(BuildFailure(f"build output is not an image archive: {out_path}"))

        return Ok(Artifact(path=out_path))
