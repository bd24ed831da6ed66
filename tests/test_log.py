"""Tests for logging configuration."""

from collections.abc import Iterator
from datetime import datetime, timezone

import pytest
from loguru import logger

from backtest_charts.exceptions import ConfigError
from backtest_charts.indicators.compact import expand_indicators
from backtest_charts.log import configure_logging
from backtest_charts.types import Bar

BAR = Bar(
    time=datetime(2024, 1, 1, tzinfo=timezone.utc),
    open=1.0,
    high=1.0,
    low=1.0,
    close=1.0,
    volume=1.0,
)
BAD_OFFSET = {"_offsets": {"ema": "soon"}, "ema": [1.0]}


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Restore the silent library default after each test."""
    yield
    logger.remove()
    logger.disable("backtest_charts")


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_package_silent_by_default(self) -> None:
        """Library messages are dropped until logging is configured."""
        messages: list[str] = []
        logger.add(messages.append, level="DEBUG")

        expand_indicators(BAD_OFFSET, [BAR])

        assert messages == []

    def test_configured_sink_receives_package_messages(self) -> None:
        """After configuration, warnings reach the sink."""
        messages: list[str] = []
        configure_logging("WARNING", sink=messages.append)

        expand_indicators(BAD_OFFSET, [BAR])

        assert len(messages) == 1
        assert "WARNING" in messages[0]
        assert "offset is not an integer" in messages[0]

    def test_level_filters_messages(self) -> None:
        """Messages below the configured level are dropped."""
        messages: list[str] = []
        configure_logging("error", sink=messages.append)

        expand_indicators(BAD_OFFSET, [BAR])

        assert messages == []

    def test_returns_handler_id(self) -> None:
        """The handler id can be used to remove the sink."""
        handler_id = configure_logging("INFO", sink=lambda message: None)
        logger.remove(handler_id)

    def test_invalid_level_raises(self) -> None:
        """Unknown levels raise ConfigError."""
        with pytest.raises(ConfigError, match="Invalid log level"):
            configure_logging("VERBOSE")
