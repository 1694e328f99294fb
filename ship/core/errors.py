"""Process exit codes.

The numeric values are part of the command-line contract and must stay
stable; release automation wrapped around ``ship release`` branches on them.

- 0: Success
- 1: User error (bad option, invalid config value)
- 2: Environment error (no project found, tool missing)
- 3: Build error (package build failed)
- 4: Network error (registry push failed)
- 5: I/O error (file not readable)
- 6: Image error (container daemon rejected a load or tag)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    IMAGE_ERROR = 6

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
