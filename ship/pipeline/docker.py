"""Image loader, tagger and publisher backed by the ``docker`` CLI.

``docker load --quiet`` has no machine-readable output mode; it prints one
``Loaded image: <name:tag>`` or ``Loaded image ID: <id>`` line per image in
the archive. That text is parsed by ``parse_loaded_image`` and nothing
else, and any other shape is a ``LoadFailure``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ship.core.config import TimeoutsConfig
from ship.core.result import Err, Ok, Result
from ship.output.console import ConsoleProtocol, Style
from ship.pipeline.errors import LoadFailure, PushFailure, TagFailure, diagnostic_of
from ship.pipeline.model import Artifact, LocalImageRef, RemoteImageRef, TagName
from ship.platform.process import run as run_process

__all__ = ["DockerCli", "parse_loaded_image", "parse_pushed_digest"]

_LOADED_RE = re.compile(r"^Loaded image(?: ID)?:\s+(\S+)\s*$")
_DIGEST_RE = re.compile(r"\bdigest:\s+(sha256:[0-9a-f]{64})\b")


def parse_loaded_image(output: str) -> Result[LocalImageRef, LoadFailure]:
    """Extract the single image reference from ``docker load`` output."""
    refs: list[str] = []
    for line in output.splitlines():
        m = _LOADED_RE.match(line.strip())
        if m and m.group(1) not in refs:
            refs.append(m.group(1))

    if not refs:
        return Err(
            LoadFailure(
                "could not find a loaded image reference in docker load output",
                diagnostic=output,
            )
        )
    if len(refs) > 1:
        return Err(
            LoadFailure(
                f"archive contained {len(refs)} images, expected exactly one",
                diagnostic=output,
            )
        )
    return Ok(LocalImageRef(refs[0]))


def parse_pushed_digest(output: str) -> str | None:
    """Return the manifest digest from ``docker push`` output, if printed."""
    found: str | None = None
    for line in output.splitlines():
        m = _DIGEST_RE.search(line)
        if m:
            found = m.group(1)
    return found


@dataclass(frozen=True, slots=True)
class DockerCli:
    """Drives the local daemon and the registry through ``docker``.

    ``env`` is the process environment snapshot, which carries registry
    credentials (``DOCKER_CONFIG`` and friends) to the tool unchanged.
    """

    cwd: Path
    console: ConsoleProtocol
    docker: str = "docker"
    env: Mapping[str, str] | None = None
    timeouts: TimeoutsConfig = TimeoutsConfig()
    dry_run: bool = False

    def load(self, artifact: Artifact) -> Result[LocalImageRef, LoadFailure]:
        cmd = [self.docker, "load", "-i", str(artifact.path), "--quiet"]
        self.console.print(" ".join(cmd), Style.DIM)
        if self.dry_run:
            return Ok(LocalImageRef("(dry-run)"))

        result = run_process(cmd, cwd=self.cwd, env=self.env, timeout=self.timeouts.load)
        if isinstance(result, Err):
            e = result.error
            return Err(
                LoadFailure(
                    f"docker load failed (exit {e.returncode})",
                    diagnostic=diagnostic_of(e),
                    returncode=e.returncode,
                )
            )
        return parse_loaded_image(result.value)

    def tag(self, image: LocalImageRef, tag: TagName) -> Result[None, TagFailure]:
        """Point ``tag`` at ``image``.

        Rebinding replaces the previous binding; the image that held the tag
        before stays in the store untagged. Repeating the call is a no-op.
        """
        cmd = [self.docker, "tag", str(image), str(tag)]
        self.console.print(" ".join(cmd), Style.DIM)
        if self.dry_run:
            return Ok(None)

        result = run_process(cmd, cwd=self.cwd, env=self.env, timeout=self.timeouts.tag)
        if isinstance(result, Err):
            e = result.error
            return Err(
                TagFailure(
                    f"docker tag {image} {tag} failed (exit {e.returncode})",
                    diagnostic=diagnostic_of(e),
                    returncode=e.returncode,
                )
            )
        return Ok(None)

    def push(self, tag: TagName) -> Result[RemoteImageRef, PushFailure]:
        cmd = [self.docker, "push", str(tag)]
        self.console.print(" ".join(cmd), Style.DIM)
        if self.dry_run:
            return Ok(RemoteImageRef(tag=tag))

        result = run_process(cmd, cwd=self.cwd, env=self.env, timeout=self.timeouts.push)
        if isinstance(result, Err):
            e = result.error
            return Err(
                PushFailure(
                    f"docker push {tag} failed (exit {e.returncode})",
                    diagnostic=diagnostic_of(e),
                    returncode=e.returncode,
                )
            )
        return Ok(RemoteImageRef(tag=tag, digest=parse_pushed_digest(result.value)))
