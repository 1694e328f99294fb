"""Data model of the release pipeline.

A run moves one value along a strictly linear chain:

    SourceTree -> Artifact -> LocalImageRef -> TagName -> RemoteImageRef

The source tree is read-only input. The artifact is produced once by the
package builder and handed to the image loader, which consumes it. The
local image reference is only meaningful inside the local container
daemon's store. The production tag is rebound (never merged) on each
successful tagging, and the remote reference exists once a push succeeds.
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, TypeAlias

from ship.core.result import Err, Ok, Result

if TYPE_CHECKING:
    from ship.pipeline.errors import StageFailure

__all__ = [
    "Stage",
    "BuildProfile",
    "SourceTree",
    "Artifact",
    "LocalImageRef",
    "TagName",
    "RemoteImageRef",
    "Release",
    "Building",
    "Loading",
    "Tagging",
    "Pushing",
    "Done",
    "Failed",
    "PipelineState",
    "parse_tag",
]

_CHUNK_SIZE = 1024 * 1024

# registry[:port]/path components, lowercase; tag per the OCI distribution rules
_REPOSITORY_RE = re.compile(
    r"^(?:[a-z0-9.-]+(?::[0-9]+)?/)?[a-z0-9]+(?:[._-][a-z0-9]+)*(?:/[a-z0-9]+(?:[._-][a-z0-9]+)*)*$"
)
_TAG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")


class Stage(StrEnum):
    """Pipeline stages, in execution order."""

    BUILD = "build"
    LOAD = "load"
    TAG = "tag"
    PUSH = "push"


class BuildProfile(StrEnum):
    DEBUG = "debug"
    RELEASE = "release"


@dataclass(frozen=True, slots=True)
class SourceTree:
    """The allow-listed part of the project that feeds the build.

    Only entries in ``paths`` (files or directories, relative to ``root``)
    take part in the build; scripts, CI config and docs do not.
    """

    root: Path
    paths: tuple[str, ...]
    lock_file: str

    @property
    def lock_path(self) -> Path:
        return self.root / self.lock_file

    def missing(self) -> list[str]:
        """Allow-listed entries that do not exist on disk."""
        return [p for p in self.paths if not (self.root / p).exists()]

    def files(self) -> Iterator[Path]:
        """Yield allow-listed regular files as sorted root-relative paths."""
        seen: set[Path] = set()
        for entry in self.paths:
            path = self.root / entry
            if path.is_file():
                seen.add(path.relative_to(self.root))
            elif path.is_dir():
                for child in path.rglob("*"):
                    if child.is_file():
                        seen.add(child.relative_to(self.root))
        yield from sorted(seen)

    def digest(self) -> str:
        """sha256 over (relative path, content) of every allow-listed file."""
        h = hashlib.sha256()
        for rel in self.files():
            h.update(rel.as_posix().encode("utf-8"))
            h.update(b"\0")
            h.update((self.root / rel).read_bytes())
            h.update(b"\0")
        return h.hexdigest()


@dataclass(frozen=True, slots=True)
class Artifact:
    """An immutable build output (image archive in the nix store)."""

    path: Path

    def digest(self) -> str:
        h = hashlib.sha256()
        with self.path.open("rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                h.update(chunk)
        return h.hexdigest()


@dataclass(frozen=True, slots=True)
class LocalImageRef:
    """Image identifier minted by the local daemon on load."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class TagName:
    repository: str
    tag: str = "latest"

    def __str__(self) -> str:
        return f"{self.repository}:{self.tag}"


def parse_tag(value: str) -> Result[TagName, str]:
    """Parse ``repository[:tag]`` into a TagName.

    A colon followed by a slash belongs to a registry port, not a tag.
    """
    text = value.strip()
    if not text:
        return Err("tag must not be empty")
    if "@" in text:
        return Err(f"digest references cannot be used as a tag: {text}")

    repository, tag = text, "latest"
    head, sep, tail = text.rpartition(":")
    if sep and "/" not in tail:
        repository, tag = head, tail

    if not _REPOSITORY_RE.match(repository):
        return Err(f"invalid repository name: {repository}")
    if not _TAG_RE.match(tag):
        return Err(f"invalid tag: {tag}")
    return Ok(TagName(repository=repository, tag=tag))


@dataclass(frozen=True, slots=True)
class RemoteImageRef:
    """The registry-side counterpart of a pushed tag."""

    tag: TagName
    digest: str | None = None

    def __str__(self) -> str:
        if self.digest:
            return f"{self.tag}@{self.digest}"
        return str(self.tag)


@dataclass(frozen=True, slots=True)
class Release:
    """Everything a successful run produced."""

    source_digest: str
    artifact: Artifact
    image: LocalImageRef
    remote: RemoteImageRef


# -----------------------------------------------------------------------------
# Pipeline states
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Building:
    pass


@dataclass(frozen=True, slots=True)
class Loading:
    artifact: Artifact


@dataclass(frozen=True, slots=True)
class Tagging:
    artifact: Artifact
    image: LocalImageRef


@dataclass(frozen=True, slots=True)
class Pushing:
    artifact: Artifact
    image: LocalImageRef


@dataclass(frozen=True, slots=True)
class Done:
    release: Release


@dataclass(frozen=True, slots=True)
class Failed:
    failure: StageFailure

    @property
    def stage(self) -> Stage:
        return self.failure.stage


PipelineState: TypeAlias = Building | Loading | Tagging | Pushing | Done | Failed
