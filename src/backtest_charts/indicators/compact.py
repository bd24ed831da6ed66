"""Expansion of the compact indicator encoding into per-bar points.

The backtest engine ships indicators without placeholder values for the
warm-up window. Each series is a bare list aligned to the bar sequence by an
offset::

    {"_offsets": {"ema_20": 19}, "ema_20": [45.2, 45.5, ...]}
    {"BB": [[44.0, 45.2, 46.4], ...]}

Element ``i`` of a series belongs to ``bars[offset + i]``. Three-element
lists are band values ``[lower, middle, upper]``; anything else is a scalar.
Elements may also be tagged explicitly, ``{"kind": "band", "lower": ...}`` or
``{"kind": "scalar", "value": ...}``, which takes precedence over the shape.

Expansion never raises: malformed elements are skipped one by one and
elements past the last bar are dropped.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from numbers import Real
from typing import Any

from loguru import logger
from pydantic import Field, TypeAdapter, ValidationError

from backtest_charts.indicators.naming import indicator_field_key, indicator_field_label
from backtest_charts.types import Bar, BandPoint, FrozenModel, IndicatorPoint, ScalarPoint

OFFSETS_KEY = "_offsets"
BAND_WIDTH = 3

_POINT_ADAPTER: TypeAdapter[ScalarPoint | BandPoint] = TypeAdapter(IndicatorPoint)


class ExpandedIndicators(FrozenModel):
    """Verbose indicator series plus the legend labels of their fields.

    :param series: Points per indicator name, in bar order.
    :param labels: Display label per output field key.
    """

    series: dict[str, list[IndicatorPoint]] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.series)


def as_finite_number(value: Any) -> float | None:
    """Return ``value`` as a float if it is a finite real number.

    Booleans, strings, None and NaN/inf are rejected.
    """
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return number


def _read_offsets(indicators: Mapping[str, Any]) -> dict[str, int | None]:
    """Map indicator name to offset; None marks an unusable offset."""
    raw_offsets = indicators.get(OFFSETS_KEY)
    if not isinstance(raw_offsets, Mapping):
        return {}

    offsets: dict[str, int | None] = {}
    for name, raw in raw_offsets.items():
        number = as_finite_number(raw)
        offsets[str(name)] = int(number) if number is not None and number.is_integer() else None
    return offsets


def decode_point(time: Any, raw: Any) -> ScalarPoint | BandPoint | None:
    """Build one verbose point from a compact element.

    :param time: Timestamp of the bar the element aligns with.
    :param raw: Compact element (number, 3-element list or tagged mapping).
    :returns: The decoded point, or None if the element is malformed.
    """
    if isinstance(raw, Mapping):
        if "kind" not in raw:
            return None
        try:
            return _POINT_ADAPTER.validate_python({**raw, "time": time})
        except ValidationError:
            return None

    if isinstance(raw, (list, tuple)) and len(raw) == BAND_WIDTH:
        lower, middle, upper = (as_finite_number(v) for v in raw)
        if lower is None or middle is None or upper is None:
            return None
        return BandPoint(time=time, lower=lower, middle=middle, upper=upper)

    value = as_finite_number(raw)
    if value is None:
        return None
    return ScalarPoint(time=time, value=value)


def expand_indicators(
    indicators: Mapping[str, Any] | None,
    bars: Sequence[Bar] | None,
) -> ExpandedIndicators:
    """Expand a compact indicator set against the bars it was computed over.

    :param indicators: Compact indicator mapping, including ``_offsets``.
    :param bars: Original (not downsampled) bar sequence.
    :returns: Expanded series and field labels; empty if either input is
        missing or empty.
    """
    if not indicators or not bars or not isinstance(indicators, Mapping):
        return ExpandedIndicators()

    offsets = _read_offsets(indicators)
    series: dict[str, list[ScalarPoint | BandPoint]] = {}
    labels: dict[str, str] = {}
    bar_count = len(bars)

    for name, values in indicators.items():
        if name == OFFSETS_KEY:
            continue
        if not isinstance(values, (list, tuple)) or not values:
            continue

        offset = offsets.get(name, 0)
        if offset is None:
            logger.warning(f"Skipping indicator '{name}': offset is not an integer")
            continue

        points: list[ScalarPoint | BandPoint] = []
        skipped = 0
        for i, raw in enumerate(values):
            bar_index = offset + i
            if bar_index >= bar_count:
                logger.debug(
                    f"Indicator '{name}' runs past the last bar; "
                    f"dropped {len(values) - i} trailing values"
                )
                break
            if bar_index < 0:
                skipped += 1
                continue

            point = decode_point(bars[bar_index].time, raw)
            if point is None:
                skipped += 1
                continue
            points.append(point)

            for field in point.fields():
                key = indicator_field_key(name, field)
                if key:
                    labels[key] = indicator_field_label(name, field)

        if skipped:
            logger.debug(f"Indicator '{name}': skipped {skipped} malformed values")
        if points:
            series[name] = points

    return ExpandedIndicators(series=series, labels=labels)


__all__ = [
    "OFFSETS_KEY",
    "ExpandedIndicators",
    "as_finite_number",
    "decode_point",
    "expand_indicators",
]
