"""Failure taxonomy of the release pipeline.

Each stage has exactly one failure type. A failure carries the underlying
tool's raw output in ``diagnostic``; it is shown to the operator as-is and
never rewritten. No failure is recovered or retried inside the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from ship.pipeline.model import Stage
from ship.platform.process import ProcessError

__all__ = [
    "BuildFailure",
    "LoadFailure",
    "TagFailure",
    "PushFailure",
    "StageFailure",
    "diagnostic_of",
]


@dataclass(frozen=True, slots=True)
class BuildFailure:
    stage: ClassVar[Stage] = Stage.BUILD

    message: str
    diagnostic: str = ""
    returncode: int | None = None


@dataclass(frozen=True, slots=True)
class LoadFailure:
    stage: ClassVar[Stage] = Stage.LOAD

    message: str
    diagnostic: str = ""
    returncode: int | None = None


@dataclass(frozen=True, slots=True)
class TagFailure:
    stage: ClassVar[Stage] = Stage.TAG

    message: str
    diagnostic: str = ""
    returncode: int | None = None


@dataclass(frozen=True, slots=True)
class PushFailure:
    stage: ClassVar[Stage] = Stage.PUSH

    message: str
    diagnostic: str = ""
    returncode: int | None = None


StageFailure = BuildFailure | LoadFailure | TagFailure | PushFailure


def diagnostic_of(error: ProcessError) -> str:
    """Raw text to surface for a failed tool: stderr, else stdout."""
    if error.stderr.strip():
        return error.stderr
    return error.stdout
