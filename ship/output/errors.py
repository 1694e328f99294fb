"""Failure presentation.

Centralized formatting and exit code mapping for pipeline failures.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ship.core.errors import ErrorCode
from ship.pipeline.errors import (
    BuildFailure,
    LoadFailure,
    PushFailure,
    StageFailure,
    TagFailure,
)

if TYPE_CHECKING:
    from ship.output.console import ConsoleProtocol

__all__ = ["print_stage_failure", "stage_failure_exit_code"]


def print_stage_failure(failure: StageFailure, console: ConsoleProtocol) -> None:
    """Print the failing stage, the message, then the tool output verbatim."""
    console.error(f"stage '{failure.stage}' failed: {failure.message}")
    if failure.diagnostic.strip():
        console.diagnostic(failure.diagnostic)


def stage_failure_exit_code(failure: StageFailure) -> int:
    match failure:
        case BuildFailure():
            return int(ErrorCode.BUILD_ERROR)
        case LoadFailure() | TagFailure():
            return int(ErrorCode.IMAGE_ERROR)
        case PushFailure():
            return int(ErrorCode.NETWORK_ERROR)
