"""Duration parsing tests."""

import pytest

from tokenagg.timeouts import parse_duration, reduce_by


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, None),
        ("", None),
        (2, 2.0),
        (1.5, 1.5),
        ("10s", 10.0),
        ("500ms", 0.5),
        ("2m", 120.0),
        ("1h", 3600.0),
        ("3", 3.0),
    ],
)
def test_parse_duration(value, expected) -> None:
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["soon", "-1s", -2, True])
def test_parse_duration_rejects_invalid(value) -> None:
    with pytest.raises(ValueError):
        parse_duration(value)


def test_reduce_by_keeps_half_at_least() -> None:
    assert reduce_by(None, 0.1) is None
    assert reduce_by(10.0, 0.1) == pytest.approx(9.9)
    assert reduce_by(0.1, 0.1) == pytest.approx(0.05)
