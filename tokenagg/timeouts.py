"""Duration parsing for timeout budgets."""

from __future__ import annotations

import re
from typing import Any

_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}
_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$", re.IGNORECASE)


def parse_duration(value: Any) -> float | None:
    """Return *value* as seconds.

    Accepts numbers (seconds) and strings such as ``"500ms"``, ``"10s"``,
    ``"2m"`` or ``"1.5"``. ``None`` and empty strings yield ``None``.

    Raises
    ------
    ValueError
        If *value* cannot be interpreted as a non-negative duration.
    """

    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ValueError(f"duration must be non-negative, got {value}")
        return float(value)
    raw = str(value).strip()
    if not raw:
        return None
    match = _DURATION_RE.match(raw)
    if match is None:
        raise ValueError(f"invalid duration {value!r}")
    number, unit = match.groups()
    return float(number) * _UNITS[(unit or "s").lower()]


def reduce_by(timeout: float | None, margin: float) -> float | None:
    """Shrink *timeout* by *margin* seconds so inner calls finish first."""

    if timeout is None:
        return None
    return max(timeout - margin, timeout / 2)
