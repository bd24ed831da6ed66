"""Tests for command configuration and input loaders."""

import json
from datetime import timedelta
from pathlib import Path

import pytest
import yaml

from backtest_charts.commands.build_charts import (
    DEFAULT_CONFIG,
    load_chart_config,
    load_payload,
    parse_chart_config,
)
from backtest_charts.exceptions import ConfigError, PayloadError


class TestParseChartConfig:
    """Tests for config validation."""

    def test_none_gives_defaults(self) -> None:
        """An empty document means default settings."""
        assert parse_chart_config(None) == DEFAULT_CONFIG

    def test_defaults(self) -> None:
        """Defaults match the documented values."""
        config = parse_chart_config({})
        assert config.price_target_bars == 100
        assert config.initial_cash == 100_000.0
        assert config.trade_match_tolerance == timedelta(hours=1)
        assert config.log_level == "INFO"

    def test_null_section_treated_as_empty(self) -> None:
        """A section with no keys is allowed."""
        assert parse_chart_config({"price": None}) == DEFAULT_CONFIG

    def test_non_mapping_rejected(self) -> None:
        """Top-level lists are not configs."""
        with pytest.raises(ConfigError, match="must be a YAML mapping"):
            parse_chart_config([1, 2, 3])

    def test_section_must_be_mapping(self) -> None:
        """Sections are mappings."""
        with pytest.raises(ConfigError, match="'equity' must be a mapping"):
            parse_chart_config({"equity": 5})

    @pytest.mark.parametrize("target_bars", [0, -1, 2.5, "100", True])
    def test_invalid_target_bars(self, target_bars: object) -> None:
        """target_bars must be a positive integer."""
        with pytest.raises(ConfigError, match="price.target_bars"):
            parse_chart_config({"price": {"target_bars": target_bars}})

    def test_tolerance_in_seconds(self) -> None:
        """Tolerance is given in seconds."""
        config = parse_chart_config({"equity": {"trade_match_tolerance": 90}})
        assert config.trade_match_tolerance == timedelta(seconds=90)

    @pytest.mark.parametrize("cash", [0, -100, "lots"])
    def test_invalid_initial_cash(self, cash: object) -> None:
        """initial_cash must be a positive number."""
        with pytest.raises(ConfigError, match="equity.initial_cash"):
            parse_chart_config({"equity": {"initial_cash": cash}})

    def test_log_level_normalized(self) -> None:
        """Log levels are case-insensitive."""
        assert parse_chart_config({"logging": {"level": "debug"}}).log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        """Unknown log levels raise ConfigError."""
        with pytest.raises(ConfigError, match="Invalid log level"):
            parse_chart_config({"logging": {"level": "LOUD"}})


class TestLoadChartConfig:
    """Tests for loading config files."""

    def test_load_valid_config(self, tmp_path: Path) -> None:
        """Valid YAML loads into ChartConfig."""
        config = {
            "price": {"target_bars": 250},
            "equity": {"initial_cash": 50_000, "trade_match_tolerance": 7200},
            "logging": {"level": "WARNING"},
        }
        config_file = tmp_path / "charts.yaml"
        config_file.write_text(yaml.dump(config))

        result = load_chart_config(config_file)

        assert result.price_target_bars == 250
        assert result.initial_cash == 50_000.0
        assert result.trade_match_tolerance == timedelta(hours=2)
        assert result.log_level == "WARNING"

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        """An empty file is a valid config."""
        config_file = tmp_path / "charts.yaml"
        config_file.write_text("")
        assert load_chart_config(config_file) == DEFAULT_CONFIG

    def test_file_not_found_raises(self) -> None:
        """Missing file raises ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_chart_config("/nonexistent/charts.yaml")

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        """Broken YAML raises ConfigError."""
        config_file = tmp_path / "charts.yaml"
        config_file.write_text("price: [unclosed")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_chart_config(config_file)


class TestLoadPayload:
    """Tests for reading backtest JSON."""

    def test_load_object(self, tmp_path: Path) -> None:
        """A JSON object is returned as a dict."""
        payload_file = tmp_path / "backtest.json"
        payload_file.write_text(json.dumps({"status": "completed", "results": {}}))

        assert load_payload(payload_file) == {"status": "completed", "results": {}}

    def test_file_not_found_raises(self) -> None:
        """Missing input raises PayloadError."""
        with pytest.raises(PayloadError, match="not found"):
            load_payload("/nonexistent/backtest.json")

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        """Non-JSON input raises PayloadError."""
        payload_file = tmp_path / "backtest.json"
        payload_file.write_text("{not json")

        with pytest.raises(PayloadError, match="Invalid JSON"):
            load_payload(payload_file)

    def test_non_object_raises(self, tmp_path: Path) -> None:
        """Top-level arrays are rejected."""
        payload_file = tmp_path / "backtest.json"
        payload_file.write_text("[1, 2]")

        with pytest.raises(PayloadError, match="must be a JSON object"):
            load_payload(payload_file)
