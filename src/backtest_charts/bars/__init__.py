"""Bar sequence transformations."""

from backtest_charts.bars.downsample import chunk_bounds, downsample_bars

__all__ = ["chunk_bounds", "downsample_bars"]
