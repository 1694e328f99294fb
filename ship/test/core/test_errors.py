from __future__ import annotations

from ship.core.errors import ErrorCode


def test_values_are_stable() -> None:
    assert [int(c) for c in ErrorCode] == [0, 1, 2, 3, 4, 5, 6]


def test_str() -> None:
    assert str(ErrorCode.NETWORK_ERROR) == "network error"
    assert ErrorCode.OK.is_success
    assert not ErrorCode.IMAGE_ERROR.is_success
