"""Configuration and input loading for the build command.

Example config file (charts.yaml):

    price:
      target_bars: 100
    equity:
      initial_cash: 100000
      trade_match_tolerance: 3600  # seconds
    logging:
      level: "INFO"

Every section and key is optional.
"""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml

from backtest_charts.exceptions import ConfigError, PayloadError
from backtest_charts.log import VALID_LOG_LEVELS
from backtest_charts.types import ChartConfig

DEFAULT_CONFIG = ChartConfig()


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw_config.get(name, {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return section


def _positive_number(value: Any, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{field}' must be a number")
    if value <= 0:
        raise ConfigError(f"'{field}' must be positive")
    return float(value)


def parse_chart_config(raw_config: Any) -> ChartConfig:
    """Validate a decoded configuration mapping.

    :param raw_config: Parsed YAML document (None is treated as empty).
    :returns: Validated ChartConfig.
    :raises ConfigError: If any value is invalid.
    """
    if raw_config is None:
        return DEFAULT_CONFIG
    if not isinstance(raw_config, dict):
        raise ConfigError("Configuration must be a YAML mapping")

    # Parse price (optional)
    raw_price = _section(raw_config, "price")
    target_bars = raw_price.get("target_bars", DEFAULT_CONFIG.price_target_bars)
    if isinstance(target_bars, bool) or not isinstance(target_bars, int) or target_bars <= 0:
        raise ConfigError("'price.target_bars' must be a positive integer")

    # Parse equity (optional)
    raw_equity = _section(raw_config, "equity")
    initial_cash = _positive_number(
        raw_equity.get("initial_cash", DEFAULT_CONFIG.initial_cash), "equity.initial_cash"
    )

    raw_tolerance = raw_equity.get("trade_match_tolerance")
    if raw_tolerance is None:
        tolerance = DEFAULT_CONFIG.trade_match_tolerance
    else:
        tolerance = timedelta(
            seconds=_positive_number(raw_tolerance, "equity.trade_match_tolerance")
        )

    # Parse logging (optional)
    raw_logging = _section(raw_config, "logging")
    log_level = raw_logging.get("level", DEFAULT_CONFIG.log_level)
    if not isinstance(log_level, str) or log_level.upper() not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid log level '{log_level}'. "
            f"Valid options: {sorted(VALID_LOG_LEVELS)}"
        )

    return ChartConfig(
        price_target_bars=target_bars,
        initial_cash=initial_cash,
        trade_match_tolerance=tolerance,
        log_level=log_level.upper(),
    )


def load_chart_config(config_path: str | Path) -> ChartConfig:
    """Parse and validate a chart configuration file.

    :param config_path: Path to YAML configuration file.
    :returns: Validated ChartConfig object.
    :raises ConfigError: If file cannot be read or config is invalid.
    """
    config_path = Path(config_path)

    try:
        with open(config_path) as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e

    return parse_chart_config(raw_config)


def load_payload(input_path: str | Path) -> dict[str, Any]:
    """Read a backtest response or results document from JSON.

    :param input_path: Path to the JSON file.
    :returns: Decoded JSON object.
    :raises PayloadError: If the file is missing, not JSON, or not an object.
    """
    input_path = Path(input_path)

    try:
        with open(input_path, encoding="utf-8") as f:
            payload = json.load(f)
    except FileNotFoundError as e:
        raise PayloadError(f"Input file not found: {input_path}") from e
    except json.JSONDecodeError as e:
        raise PayloadError(f"Invalid JSON in input file: {e}") from e

    if not isinstance(payload, dict):
        raise PayloadError("Backtest payload must be a JSON object")
    return payload


__all__ = ["parse_chart_config", "load_chart_config", "load_payload"]
