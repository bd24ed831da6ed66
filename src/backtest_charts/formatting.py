"""Display formatting for chart labels and CLI summaries.

Formats follow US English conventions: ``Jan 5`` for axis labels,
``$1,234.56`` for currency and ``$1.23m`` for compact axis ticks.
"""

from __future__ import annotations

from datetime import datetime

from backtest_charts.timeutil import ensure_utc

_COMPACT_UNITS = (
    (1_000_000_000, "b"),
    (1_000_000, "m"),
    (1_000, "k"),
)


def format_short_date(value: datetime) -> str:
    """``Jan 5`` style axis label."""
    value = ensure_utc(value)
    return f"{value.strftime('%b')} {value.day}"


def format_short_datetime(value: datetime) -> str:
    """``Jan 5, 09:30 AM`` style tooltip label."""
    value = ensure_utc(value)
    return f"{value.strftime('%b')} {value.day}, {value.strftime('%I:%M %p')}"


def format_date(value: datetime) -> str:
    """``Jan 5, 2024`` style date."""
    value = ensure_utc(value)
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def format_currency(value: float) -> str:
    """Format as US dollars with thousands separators, e.g. ``-$1,234.50``."""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_percent(value: float) -> str:
    """Format a decimal ratio as a percentage (0.1234 -> ``12.34%``)."""
    return f"{value * 100:.2f}%"


def _compact(value: float) -> tuple[str, str] | None:
    for threshold, suffix in _COMPACT_UNITS:
        if abs(value) >= threshold:
            return f"{value / threshold:.2f}", suffix
    return None


def format_compact_currency(value: float) -> str:
    """Short currency for axis ticks, e.g. ``$1.50k``."""
    compact = _compact(value)
    if compact is None:
        return f"${value:.2f}"
    number, suffix = compact
    return f"${number}{suffix}"


def format_compact_number(value: float) -> str:
    """Short number for volume ticks, e.g. ``2.35m``."""
    compact = _compact(value)
    if compact is None:
        return f"{value:.0f}"
    number, suffix = compact
    return f"{number}{suffix}"


__all__ = [
    "format_short_date",
    "format_short_datetime",
    "format_date",
    "format_currency",
    "format_percent",
    "format_compact_currency",
    "format_compact_number",
]
