"""Backtest chart pipeline package root."""

from loguru import logger

from backtest_charts.exceptions import ChartsError, InvalidParametersError
from backtest_charts.parsing import parse_response, parse_results
from backtest_charts.pipeline import build_charts

# Library logging stays silent until an application calls configure_logging.
logger.disable("backtest_charts")

__all__ = [
    "ChartsError",
    "InvalidParametersError",
    "build_charts",
    "parse_response",
    "parse_results",
]
