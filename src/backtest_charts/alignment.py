"""Nearest-timestamp alignment of trade events onto a sampled series.

Trades happen at arbitrary instants while charts are sampled on a grid (bars
or equity ticks). Each trade endpoint is attached to the grid element whose
time is closest. On equal distance the earlier element wins, which is what a
left-to-right scan produces and keeps output stable across versions.

Lookups use one binary search per query over the sorted target times. If the
target series turns out not to be strictly ascending the lookup falls back to
a full scan with the same tie-break, so malformed upstream data still gives
deterministic results.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from backtest_charts.exceptions import InvalidParametersError
from backtest_charts.timeutil import to_epoch_us
from backtest_charts.types import FrozenModel, Trade

DEFAULT_EQUITY_TOLERANCE = timedelta(hours=1)

_MICROSECOND = timedelta(microseconds=1)


class TradeAlignment(FrozenModel):
    """Grid positions matched to one trade.

    :param trade: The trade being placed.
    :param entry_index: Target index of the entry, or None if unmatched.
    :param exit_index: Target index of the exit, or None if the trade has no
        exit or it is unmatched.
    """

    trade: Trade
    entry_index: int | None = None
    exit_index: int | None = None


def _epoch_array(times: Sequence[datetime]) -> NDArray[np.int64]:
    return np.fromiter((to_epoch_us(t) for t in times), dtype=np.int64, count=len(times))


def _tolerance_us(tolerance: timedelta | None) -> int | None:
    if tolerance is None:
        return None
    if tolerance < timedelta(0):
        raise InvalidParametersError(f"tolerance must not be negative, got {tolerance}")
    return tolerance // _MICROSECOND


def _nearest(targets: NDArray[np.int64], queries: NDArray[np.int64]) -> NDArray[np.intp]:
    """Index of the closest target for every query, earliest on ties."""
    if targets.size > 1 and not bool(np.all(np.diff(targets) > 0)):
        logger.warning("Target series is not strictly ascending; using a linear scan")
        distances = np.abs(targets[np.newaxis, :] - queries[:, np.newaxis])
        return np.argmin(distances, axis=1)

    last = targets.size - 1
    right = np.searchsorted(targets, queries, side="left")
    right_idx = np.clip(right, 0, last)
    left_idx = np.clip(right - 1, 0, last)
    right_dist = np.abs(targets[right_idx] - queries)
    left_dist = np.abs(queries - targets[left_idx])
    return np.where(left_dist <= right_dist, left_idx, right_idx)


def nearest_indices(
    queries: Sequence[datetime],
    target_times: Sequence[datetime],
    tolerance: timedelta | None = None,
) -> list[int | None]:
    """Align each query timestamp to the closest target timestamp.

    :param queries: Timestamps to place.
    :param target_times: Target series times, ascending and unique.
    :param tolerance: Maximum accepted distance; None accepts any distance.
    :returns: One target index per query, None where nothing is within
        ``tolerance`` or the target series is empty.
    :raises InvalidParametersError: If ``tolerance`` is negative.
    """
    limit = _tolerance_us(tolerance)
    if not queries:
        return []
    if not target_times:
        return [None] * len(queries)

    targets = _epoch_array(target_times)
    query_us = _epoch_array(queries)
    indices = _nearest(targets, query_us)

    result: list[int | None] = []
    for query, index in zip(query_us, indices):
        if limit is not None and abs(int(targets[index]) - int(query)) > limit:
            result.append(None)
        else:
            result.append(int(index))
    return result


def nearest_index(
    query: datetime,
    target_times: Sequence[datetime],
    tolerance: timedelta | None = None,
) -> int | None:
    """Single-query form of :func:`nearest_indices`."""
    return nearest_indices([query], target_times, tolerance)[0]


def align_trades(
    trades: Sequence[Trade],
    target_times: Sequence[datetime],
    tolerance: timedelta | None = None,
) -> list[TradeAlignment]:
    """Place the entry and exit of every trade on the target series.

    :param trades: Trades in any order.
    :param target_times: Target series times, ascending and unique.
    :param tolerance: Maximum accepted distance; None accepts any distance.
    :returns: One alignment per trade, in input order.
    """
    entries = nearest_indices([t.entry_time for t in trades], target_times, tolerance)

    exit_positions = [i for i, t in enumerate(trades) if t.exit_time is not None]
    exit_times = [trades[i].exit_time for i in exit_positions]
    exits = dict(zip(exit_positions, nearest_indices(exit_times, target_times, tolerance)))

    alignments = [
        TradeAlignment(trade=trade, entry_index=entries[i], exit_index=exits.get(i))
        for i, trade in enumerate(trades)
    ]

    unmatched = sum(1 for a in alignments if a.entry_index is None)
    if unmatched and target_times:
        logger.debug(f"{unmatched} of {len(trades)} trade entries had no point within tolerance")
    return alignments


__all__ = [
    "DEFAULT_EQUITY_TOLERANCE",
    "TradeAlignment",
    "nearest_indices",
    "nearest_index",
    "align_trades",
]
