"""OHLCV-preserving downsampling of bar sequences.

Consecutive bars are merged into fixed-size chunks. Each chunk becomes one
bar that starts at the chunk's first bar: open from the first bar, close from
the last, the extreme high and low, and the summed volume. This is what a
reader of the coarser timeframe would see, and the merged range always
contains every constituent bar's range.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from backtest_charts.exceptions import InvalidParametersError
from backtest_charts.types import Bar

DEFAULT_TARGET_BARS = 500


def _check_target(target_count: int) -> None:
    if isinstance(target_count, bool) or not isinstance(target_count, int) or target_count <= 0:
        raise InvalidParametersError(
            f"target_count must be a positive integer, got {target_count!r}"
        )


def chunk_bounds(length: int, target_count: int) -> list[tuple[int, int]]:
    """Half-open index ranges of the chunks a sequence is split into.

    :param length: Number of input bars.
    :param target_count: Maximum number of output bars.
    :returns: ``(start, stop)`` pairs covering ``range(length)`` in order; one
        pair per input bar when no aggregation is needed.
    :raises InvalidParametersError: If ``target_count`` is not positive.
    """
    _check_target(target_count)
    if length <= target_count:
        return [(i, i + 1) for i in range(length)]
    step = math.ceil(length / target_count)
    return [(start, min(start + step, length)) for start in range(0, length, step)]


def downsample_bars(
    bars: Sequence[Bar],
    target_count: int = DEFAULT_TARGET_BARS,
) -> Sequence[Bar]:
    """Reduce ``bars`` to at most ``target_count`` bars.

    Sequences that already fit are returned unchanged, as the same object.

    :param bars: Bars sorted ascending by time.
    :param target_count: Maximum number of output bars.
    :returns: Downsampled bars in time order.
    :raises InvalidParametersError: If ``target_count`` is not positive.
    """
    _check_target(target_count)
    if len(bars) <= target_count:
        return bars

    bounds = chunk_bounds(len(bars), target_count)
    starts = np.fromiter((start for start, _ in bounds), dtype=np.intp, count=len(bounds))

    highs = np.fromiter((bar.high for bar in bars), dtype=np.float64, count=len(bars))
    lows = np.fromiter((bar.low for bar in bars), dtype=np.float64, count=len(bars))
    volumes = np.fromiter((bar.volume for bar in bars), dtype=np.float64, count=len(bars))

    chunk_highs = np.maximum.reduceat(highs, starts)
    chunk_lows = np.minimum.reduceat(lows, starts)
    chunk_volumes = np.add.reduceat(volumes, starts)

    return [
        Bar(
            time=bars[start].time,
            open=bars[start].open,
            high=float(chunk_highs[i]),
            low=float(chunk_lows[i]),
            close=bars[stop - 1].close,
            volume=float(chunk_volumes[i]),
        )
        for i, (start, stop) in enumerate(bounds)
    ]


__all__ = ["DEFAULT_TARGET_BARS", "chunk_bounds", "downsample_bars"]
