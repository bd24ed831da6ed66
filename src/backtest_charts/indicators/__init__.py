"""Indicator decompaction and field naming."""

from backtest_charts.indicators.compact import (
    ExpandedIndicators,
    expand_indicators,
)
from backtest_charts.indicators.naming import (
    indicator_field_key,
    indicator_field_label,
    normalize_indicator_key,
)

__all__ = [
    "ExpandedIndicators",
    "expand_indicators",
    "indicator_field_key",
    "indicator_field_label",
    "normalize_indicator_key",
]
