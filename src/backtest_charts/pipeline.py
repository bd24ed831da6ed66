"""End-to-end chart building.

Example usage::

    import json
    from backtest_charts.pipeline import build_charts
    from backtest_charts.parsing import parse_results

    with open("backtest.json") as f:
        results = parse_results(json.load(f))

    charts = build_charts(results)
    print(len(charts.price), "candles,", len(charts.equity), "equity points")
"""

from __future__ import annotations

from loguru import logger

from backtest_charts.bars.downsample import downsample_bars
from backtest_charts.charts.assembly import assemble_equity_charts, assemble_price_records
from backtest_charts.indicators.compact import expand_indicators
from backtest_charts.types import BacktestResults, ChartConfig, ChartSet, EquityChartKind


def build_charts(results: BacktestResults, config: ChartConfig | None = None) -> ChartSet:
    """Turn backtest results into every chart series.

    Indicators are expanded against the full bar sequence before the bars are
    downsampled, so overlay values stay attached to the bars they were
    computed on.

    :param results: Parsed backtest results.
    :param config: Chart settings; defaults apply when omitted.
    :returns: Price, equity, drawdown and returns records plus indicator labels.
    """
    config = config or ChartConfig()
    bars = results.ohlcv_bars

    expanded = expand_indicators(results.indicators, bars)
    price_bars = downsample_bars(bars, config.price_target_bars)
    price, labels = assemble_price_records(price_bars, expanded, results.trades)

    equity_charts = assemble_equity_charts(
        results.equity_curve,
        results.trades,
        initial_cash=config.initial_cash,
        tolerance=config.trade_match_tolerance,
    )

    logger.debug(
        f"Built charts: {len(bars)} bars -> {len(price)} candles, "
        f"{len(expanded.series)} indicators, {len(results.equity_curve)} equity points, "
        f"{len(results.trades)} trades"
    )

    return ChartSet(
        price=price,
        equity=equity_charts[EquityChartKind.EQUITY],
        drawdown=equity_charts[EquityChartKind.DRAWDOWN],
        returns=equity_charts[EquityChartKind.RETURNS],
        indicator_labels={**expanded.labels, **labels},
    )


__all__ = ["build_charts"]
