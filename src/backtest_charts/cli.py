#!/usr/bin/env python3
"""Command-line interface for the backtest chart pipeline."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from loguru import logger


def _load_response(args: argparse.Namespace):
    """Load config and input; returns (config, response) or None on error."""
    from backtest_charts.commands.build_charts import (
        DEFAULT_CONFIG,
        load_chart_config,
        load_payload,
    )
    from backtest_charts.exceptions import ConfigError, PayloadError
    from backtest_charts.log import configure_logging
    from backtest_charts.parsing import parse_response

    config = DEFAULT_CONFIG
    if getattr(args, "config", None):
        try:
            config = load_chart_config(args.config)
        except ConfigError as e:
            print(f"Configuration error: {e}")
            return None

    try:
        configure_logging(args.log_level or config.log_level)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return None

    try:
        payload = load_payload(args.input)
    except PayloadError as e:
        print(f"Input error: {e}")
        return None

    return config, parse_response(payload)


def cmd_build(args: argparse.Namespace) -> int:
    """Build chart series from a backtest result file."""
    from backtest_charts.pipeline import build_charts
    from backtest_charts.types import BacktestStatus

    loaded = _load_response(args)
    if loaded is None:
        return 1
    config, response = loaded

    if response.status is not BacktestStatus.COMPLETED or response.results is None:
        detail = response.error or response.message or "no results"
        print(f"Backtest is {response.status.value}: {detail}")
        return 1

    charts = build_charts(response.results, config)
    document = json.dumps(charts.to_dict(), indent=2)

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(document + "\n", encoding="utf-8")
        logger.info(
            f"Wrote {len(charts.price)} candles and {len(charts.equity)} equity points "
            f"to {output_path}"
        )
    else:
        print(document)
    return 0


def _format_period_date(value: str) -> str:
    """Reported dates as ``Jan 5, 2024``, or unchanged if unparseable."""
    from backtest_charts.formatting import format_date
    from backtest_charts.timeutil import parse_timestamp

    parsed = parse_timestamp(value)
    return format_date(parsed) if parsed is not None else value


def cmd_summary(args: argparse.Namespace) -> int:
    """Print a short summary of a backtest result file."""
    from backtest_charts.formatting import (
        format_compact_currency,
        format_compact_number,
        format_currency,
        format_percent,
        format_short_datetime,
    )
    from backtest_charts.pipeline import build_charts
    from backtest_charts.timeutil import to_epoch_us

    loaded = _load_response(args)
    if loaded is None:
        return 1
    config, response = loaded

    print("=" * 60)
    print("BACKTEST")
    print("=" * 60)
    print(f"Status:    {response.status.value}")
    if response.symbol:
        print(f"Symbol:    {response.symbol}")
    if response.start_date or response.end_date:
        start = _format_period_date(response.start_date)
        end = _format_period_date(response.end_date)
        print(f"Period:    {start} to {end}")
    if response.message:
        print(f"Message:   {response.message}")
    if response.error:
        print(f"Error:     {response.error}")

    results = response.results
    if results is None:
        return 0

    stats = results.statistics
    if stats is not None:
        print("\n" + "=" * 60)
        print("STATISTICS")
        print("=" * 60)
        if stats.total_return is not None:
            print(f"Total Return:    {format_percent(stats.total_return)}")
        if stats.net_profit is not None:
            print(f"Net Profit:      {format_currency(stats.net_profit)}")
        if stats.max_drawdown is not None:
            print(f"Max Drawdown:    {format_percent(stats.max_drawdown)}")
        if stats.sharpe_ratio is not None:
            print(f"Sharpe Ratio:    {stats.sharpe_ratio:.2f}")
        if stats.win_rate is not None:
            print(f"Win Rate:        {format_percent(stats.win_rate)}")
        if stats.total_trades is not None:
            print(f"Total Trades:    {stats.total_trades}")

    charts = build_charts(results, config)
    print("\n" + "=" * 60)
    print("CHARTS")
    print("=" * 60)
    print(f"Bars:            {len(results.ohlcv_bars)} -> {len(charts.price)} candles")
    print(f"Indicators:      {', '.join(sorted(charts.indicator_labels)) or 'none'}")
    print(f"Equity Points:   {len(charts.equity)}")
    print(f"Trades:          {len(results.trades)}")
    if results.trades:
        first_entry = min((trade.entry_time for trade in results.trades), key=to_epoch_us)
        print(f"First Entry:     {format_short_datetime(first_entry)}")
    if charts.equity:
        low = min(record.equity for record in charts.equity)
        high = max(record.equity for record in charts.equity)
        print(f"Equity Range:    {format_compact_currency(low)} to {format_compact_currency(high)}")
    if results.final_equity is not None:
        print(f"Final Equity:    {format_currency(results.final_equity)}")
    if charts.price:
        total_volume = sum(record.volume for record in charts.price)
        print(f"Total Volume:    {format_compact_number(total_volume)}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Backtest chart pipeline CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level", default=None, help="Override the configured log level"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Build command
    build_parser = subparsers.add_parser(
        "build", help="Build chart series from a backtest result"
    )
    build_parser.add_argument("input", help="Path to backtest JSON")
    build_parser.add_argument("-c", "--config", help="Path to YAML configuration file")
    build_parser.add_argument("-o", "--output", help="Output JSON path (default: stdout)")

    # Summary command
    summary_parser = subparsers.add_parser(
        "summary", help="Summarize a backtest result"
    )
    summary_parser.add_argument("input", help="Path to backtest JSON")
    summary_parser.add_argument("-c", "--config", help="Path to YAML configuration file")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "build":
        return cmd_build(args)
    elif args.command == "summary":
        return cmd_summary(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
