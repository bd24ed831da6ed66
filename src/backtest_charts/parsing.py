"""Lenient conversion of raw backtest JSON into typed models.

A chart with one series missing is an acceptable result; a crash is not. The
parsers here therefore validate collections element by element and drop the
entries that fail, logging how many were lost.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from backtest_charts.indicators.compact import as_finite_number
from backtest_charts.types import (
    BacktestResponse,
    BacktestResults,
    BacktestStatus,
    Bar,
    EquityPoint,
    PerformanceStatistics,
    Trade,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

_ENVELOPE_STRING_FIELDS = ("backtest_id", "strategy_id", "start_date", "end_date", "symbol")


def _parse_items(raw: Any, model: type[ModelT], label: str) -> list[ModelT]:
    """Validate each element of ``raw`` as ``model``, skipping failures."""
    if not isinstance(raw, (list, tuple)):
        if raw is not None:
            logger.warning(f"Ignoring '{label}': expected a list, got {type(raw).__name__}")
        return []

    items: list[ModelT] = []
    skipped = 0
    for entry in raw:
        try:
            items.append(model.model_validate(entry))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.warning(f"Skipped {skipped} malformed entries in '{label}'")
    return items


def parse_results(raw: Any) -> BacktestResults:
    """Parse the ``results`` object of a backtest response.

    :param raw: Decoded JSON object.
    :returns: Results with every malformed entry dropped; empty results if
        ``raw`` is not a mapping.
    """
    if not isinstance(raw, Mapping):
        return BacktestResults()

    statistics = None
    raw_statistics = raw.get("statistics")
    if isinstance(raw_statistics, Mapping):
        try:
            statistics = PerformanceStatistics.model_validate(dict(raw_statistics))
        except ValidationError:
            logger.warning("Ignoring malformed 'statistics'")

    indicators = raw.get("indicators")
    return BacktestResults(
        trades=_parse_items(raw.get("trades"), Trade, "trades"),
        equity_curve=_parse_items(raw.get("equity_curve"), EquityPoint, "equity_curve"),
        ohlcv_bars=_parse_items(raw.get("ohlcv_bars"), Bar, "ohlcv_bars"),
        indicators=dict(indicators) if isinstance(indicators, Mapping) else {},
        statistics=statistics,
        final_equity=as_finite_number(raw.get("final_equity")),
    )


def _parse_status(raw: Any, has_results: bool) -> BacktestStatus:
    try:
        return BacktestStatus(raw)
    except ValueError:
        fallback = BacktestStatus.COMPLETED if has_results else BacktestStatus.FAILED
        logger.warning(f"Unknown backtest status {raw!r}; treating as {fallback.value}")
        return fallback


def parse_response(raw: Any) -> BacktestResponse:
    """Parse a backtest response, with or without its envelope.

    A bare results object (one that has no ``results`` or ``status`` key) is
    wrapped in a completed response.

    :param raw: Decoded JSON object.
    :returns: Parsed response.
    """
    if not isinstance(raw, Mapping):
        return BacktestResponse(status=BacktestStatus.FAILED, error="Backtest payload is not an object")

    if "results" not in raw and "status" not in raw:
        return BacktestResponse(results=parse_results(raw))

    results = parse_results(raw["results"]) if isinstance(raw.get("results"), Mapping) else None
    envelope: dict[str, Any] = {
        name: str(raw[name]) for name in _ENVELOPE_STRING_FIELDS if raw.get(name) is not None
    }
    for name in ("message", "error"):
        if raw.get(name) is not None:
            envelope[name] = str(raw[name])

    return BacktestResponse(
        status=_parse_status(raw.get("status", BacktestStatus.COMPLETED.value), results is not None),
        results=results,
        **envelope,
    )


__all__ = ["parse_results", "parse_response"]
