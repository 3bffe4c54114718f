"""Human readable rendering of time spans for chat replies."""

from __future__ import annotations

from datetime import timedelta

_UNITS = (
    ("days", 86_400),
    ("hours", 3_600),
    ("minutes", 60),
    ("seconds", 1),
)


def format_duration(span: timedelta) -> str:
    """Render ``span`` as ``"<N> <unit> "`` chunks, largest unit first.

    Zero components are skipped, so a zero span renders as ``""``. Sub-second
    precision is truncated. Negative spans keep the sign on every component
    (truncating towards zero), which is rarely what a reader wants; clamp first.
    """
    total = int(span.total_seconds())
    sign = -1 if total < 0 else 1
    remaining = abs(total)
    parts = []
    for unit, size in _UNITS:
        value, remaining = divmod(remaining, size)
        if value:
            parts.append(f"{sign * value} {unit} ")
    return "".join(parts)
