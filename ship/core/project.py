"""Project root detection.

The project root is the directory holding ``ship.toml`` or the ``flake.nix``
that describes the image build. Detection walks upward from the current
directory; ``SHIP_PROJECT_ROOT`` (set by ``--project``) bypasses it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .config import CONFIG_FILE_NAME
from .result import Err, Ok, Result

__all__ = ["Project", "ProjectError", "detect_project", "is_project_root", "ENV_PROJECT_ROOT"]

ENV_PROJECT_ROOT = "SHIP_PROJECT_ROOT"
_MARKERS = (CONFIG_FILE_NAME, "flake.nix")


@dataclass(frozen=True)
class ProjectError:
    message: str
    searched_from: Path | None = None


@dataclass(frozen=True, slots=True)
class Project:
    root: Path

    @property
    def config_path(self) -> Path:
        return self.root / CONFIG_FILE_NAME


def is_project_root(path: Path) -> bool:
    return any((path / marker).is_file() for marker in _MARKERS)


def detect_project(start: Path | None = None) -> Result[Project, ProjectError]:
    """Find the project root.

    Args:
        start: Directory to search from (defaults to cwd).

    Returns:
        Ok(Project) or Err(ProjectError) when no marker file is found.
    """
    env_root = os.environ.get(ENV_PROJECT_ROOT)
    if env_root:
        root = Path(env_root).expanduser().resolve()
        if not root.is_dir() or not is_project_root(root):
            return Err(
                ProjectError(
                    f"{ENV_PROJECT_ROOT}={root} is not a project (no {' or '.join(_MARKERS)})",
                    searched_from=root,
                )
            )
        return Ok(Project(root=root))

    origin = (start or Path.cwd()).resolve()
    for candidate in (origin, *origin.parents):
        if is_project_root(candidate):
            return Ok(Project(root=candidate))

    return Err(
        ProjectError(
            f"no {' or '.join(_MARKERS)} found in {origin} or any parent directory",
            searched_from=origin,
        )
    )
