"""Assembly of chart records from bars, indicators, trades and equity.

Two families of charts are produced:

* the price chart, one record per (downsampled) bar, carrying OHLCV values,
  indicator overlays joined by exact timestamp, and trade markers aligned to
  the nearest bar;
* the equity, drawdown and returns charts, one record per equity point,
  carrying trade markers for trades that fall within a tolerance window of
  that point.

Every output list has exactly one record per input element. Fields without
data stay ``None``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from loguru import logger

from backtest_charts.alignment import DEFAULT_EQUITY_TOLERANCE, align_trades
from backtest_charts.exceptions import InvalidParametersError
from backtest_charts.formatting import format_short_date
from backtest_charts.indicators.compact import ExpandedIndicators, as_finite_number
from backtest_charts.indicators.naming import indicator_field_key, indicator_field_label
from backtest_charts.timeutil import parse_timestamp, to_epoch_us
from backtest_charts.types import (
    Bar,
    BandPoint,
    EquityChartKind,
    EquityPoint,
    EquityRecord,
    PriceRecord,
    ScalarPoint,
    Trade,
)

_RESERVED_POINT_KEYS = frozenset(["time", "kind"])


# ---------------------------------------------------------------------------
# Indicator lookup
# ---------------------------------------------------------------------------


@dataclass
class IndicatorIndex:
    """Indicator fields keyed by epoch-microsecond timestamp.

    :param by_time: Flat field values per timestamp.
    :param labels: Display label per field key.
    """

    by_time: dict[int, dict[str, float]] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)

    def fields_at(self, time: datetime) -> dict[str, float]:
        return self.by_time.get(to_epoch_us(time), {})


def _point_fields(point: Any) -> tuple[datetime, dict[str, float]] | None:
    """Timestamp and numeric fields of a verbose point, or None if unusable."""
    if isinstance(point, (ScalarPoint, BandPoint)):
        return point.time, point.fields()

    # Legacy verbose points: {"time": "...", "<field>": number, ...}
    if not isinstance(point, Mapping):
        return None
    time = parse_timestamp(point.get("time"))
    if time is None:
        return None
    fields: dict[str, float] = {}
    for key, raw in point.items():
        if key in _RESERVED_POINT_KEYS:
            continue
        value = as_finite_number(raw)
        if value is not None:
            fields[str(key)] = value
    return time, fields


def build_indicator_index(
    indicators: ExpandedIndicators | Mapping[str, Sequence[Any]] | None,
) -> IndicatorIndex:
    """Index verbose indicator series by timestamp.

    :param indicators: Output of ``expand_indicators`` or a mapping of
        indicator name to verbose points (models or plain dicts).
    :returns: Lookup of flattened field values per timestamp.
    """
    index = IndicatorIndex()
    if isinstance(indicators, ExpandedIndicators):
        series: Mapping[str, Sequence[Any]] = indicators.series
    elif isinstance(indicators, Mapping):
        series = indicators
    else:
        return index

    for name, points in series.items():
        if not isinstance(points, (list, tuple)):
            continue
        skipped = 0
        for point in points:
            resolved = _point_fields(point)
            if resolved is None:
                skipped += 1
                continue
            time, fields = resolved
            existing = index.by_time.setdefault(to_epoch_us(time), {})
            for field_name, value in fields.items():
                key = indicator_field_key(name, field_name)
                if not key:
                    continue
                existing[key] = value
                index.labels[key] = indicator_field_label(name, field_name)
        if skipped:
            logger.debug(f"Indicator '{name}': skipped {skipped} unusable points")

    return index


# ---------------------------------------------------------------------------
# Price chart
# ---------------------------------------------------------------------------


def assemble_price_records(
    bars: Sequence[Bar],
    indicators: ExpandedIndicators | Mapping[str, Sequence[Any]] | None = None,
    trades: Sequence[Trade] = (),
) -> tuple[list[PriceRecord], dict[str, str]]:
    """Build price chart records.

    Indicators are joined by exact timestamp. When ``bars`` were downsampled
    each bar carries the time of the first bar of its chunk, so the overlay
    shows the indicator value at that representative bar.

    Trades are aligned to the nearest bar with no distance limit. When
    several trades land on the same bar the later trade's markers win. Exit
    markers need both an exit time and an exit price.

    :param bars: Bars to plot, ascending by time.
    :param indicators: Expanded or verbose indicator series.
    :param trades: Trades to mark.
    :returns: One record per bar, and the labels of indicator fields seen.
    """
    if not bars:
        return [], {}

    index = build_indicator_index(indicators)
    bar_times = [bar.time for bar in bars]

    entry_prices: dict[int, float] = {}
    exits: dict[int, Trade] = {}
    for alignment in align_trades(trades, bar_times):
        trade = alignment.trade
        if alignment.entry_index is not None:
            entry_prices[alignment.entry_index] = trade.entry_price
        if alignment.exit_index is not None and trade.exit_price is not None:
            exits[alignment.exit_index] = trade

    records = []
    for i, bar in enumerate(bars):
        exit_trade = exits.get(i)
        records.append(
            PriceRecord(
                time=bar.time,
                time_str=format_short_date(bar.time),
                open=bar.open,
                high=bar.high,
                low=bar.low,
                close=bar.close,
                volume=bar.volume,
                # Markers sit on the close line; fill prices go in the *_price fields.
                entry=bar.close if i in entry_prices else None,
                entry_price=entry_prices.get(i),
                exit=bar.close if exit_trade is not None else None,
                exit_price=exit_trade.exit_price if exit_trade is not None else None,
                exit_pnl=exit_trade.pnl if exit_trade is not None else None,
                indicators=index.fields_at(bar.time),
            )
        )
    return records, index.labels


# ---------------------------------------------------------------------------
# Equity-derived charts
# ---------------------------------------------------------------------------


def _chart_value(kind: EquityChartKind, equity: float, drawdown_pct: float, return_pct: float) -> float:
    if kind is EquityChartKind.DRAWDOWN:
        return -abs(drawdown_pct)
    if kind is EquityChartKind.RETURNS:
        return return_pct
    return equity


def assemble_equity_charts(
    equity_curve: Sequence[EquityPoint],
    trades: Sequence[Trade] = (),
    initial_cash: float = 100_000.0,
    tolerance: timedelta | None = DEFAULT_EQUITY_TOLERANCE,
) -> dict[EquityChartKind, list[EquityRecord]]:
    """Build the equity, drawdown and returns charts in one pass.

    A trade endpoint is attached to its nearest equity point only if that
    point is within ``tolerance``; otherwise it is left off the charts. When
    several trades land on the same point the first one in ``trades`` wins.

    :param equity_curve: Equity samples, ascending by time.
    :param trades: Trades to mark.
    :param initial_cash: Basis for return percentages.
    :param tolerance: Matching window; None disables the limit.
    :returns: Records per chart kind, one per equity point.
    :raises InvalidParametersError: If ``initial_cash`` is not positive or
        ``tolerance`` is negative.
    """
    if initial_cash <= 0:
        raise InvalidParametersError(f"initial_cash must be positive, got {initial_cash}")
    if tolerance is not None and tolerance < timedelta(0):
        raise InvalidParametersError(f"tolerance must not be negative, got {tolerance}")

    charts: dict[EquityChartKind, list[EquityRecord]] = {kind: [] for kind in EquityChartKind}
    if not equity_curve:
        return charts

    entries: dict[int, Trade] = {}
    exits: dict[int, Trade] = {}
    for alignment in align_trades(trades, [p.time for p in equity_curve], tolerance):
        if alignment.entry_index is not None:
            entries.setdefault(alignment.entry_index, alignment.trade)
        if alignment.exit_index is not None:
            exits.setdefault(alignment.exit_index, alignment.trade)

    for i, point in enumerate(equity_curve):
        drawdown_pct = point.drawdown * 100
        return_pct = (point.equity - initial_cash) / initial_cash * 100
        entry_trade = entries.get(i)
        exit_trade = exits.get(i)
        time_str = format_short_date(point.time)

        for kind in EquityChartKind:
            value = _chart_value(kind, point.equity, drawdown_pct, return_pct)
            charts[kind].append(
                EquityRecord(
                    time=point.time,
                    time_str=time_str,
                    equity=point.equity,
                    cash=point.cash,
                    holdings=point.holdings_value,
                    drawdown=drawdown_pct,
                    return_pct=return_pct,
                    value=value,
                    entry=value if entry_trade is not None else None,
                    entry_price=entry_trade.entry_price if entry_trade is not None else None,
                    exit=value if exit_trade is not None else None,
                    exit_price=exit_trade.exit_price if exit_trade is not None else None,
                    exit_pnl=exit_trade.pnl if exit_trade is not None else None,
                )
            )
    return charts


def assemble_equity_records(
    equity_curve: Sequence[EquityPoint],
    trades: Sequence[Trade] = (),
    kind: EquityChartKind = EquityChartKind.EQUITY,
    initial_cash: float = 100_000.0,
    tolerance: timedelta | None = DEFAULT_EQUITY_TOLERANCE,
) -> list[EquityRecord]:
    """Build a single equity-derived chart. See :func:`assemble_equity_charts`."""
    return assemble_equity_charts(equity_curve, trades, initial_cash, tolerance)[kind]


__all__ = [
    "IndicatorIndex",
    "build_indicator_index",
    "assemble_price_records",
    "assemble_equity_charts",
    "assemble_equity_records",
]
