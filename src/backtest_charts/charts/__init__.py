"""Chart record assembly."""

from backtest_charts.charts.assembly import (
    assemble_equity_charts,
    assemble_equity_records,
    assemble_price_records,
    build_indicator_index,
)

__all__ = [
    "assemble_equity_charts",
    "assemble_equity_records",
    "assemble_price_records",
    "build_indicator_index",
]
