"""Core type definitions for the backtest chart pipeline.

All data models use Pydantic BaseModel for automatic validation, JSON
serialization, and better error messages. Input models mirror the backtest
engine's wire format; output models are the chart records handed to the
rendering layer.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Annotated, Any, Literal, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, model_validator

from backtest_charts.timeutil import to_epoch_us

# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class FrozenModel(BaseModel):
    """Base model with frozen (immutable) configuration."""

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Market Data Types
# ---------------------------------------------------------------------------


class Bar(FrozenModel):
    """OHLCV bar as produced by the backtest engine.

    :param time: Start time of the bar period.
    :param open: Opening price.
    :param high: Highest price during the bar period.
    :param low: Lowest price during the bar period.
    :param close: Closing price.
    :param volume: Trading volume during the bar period.
    """

    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float


# ---------------------------------------------------------------------------
# Indicator Types
# ---------------------------------------------------------------------------


class ScalarPoint(FrozenModel):
    """Single-valued indicator sample (EMA, RSI, ...).

    :param time: Timestamp of the bar this value belongs to.
    :param value: Indicator value.
    """

    kind: Literal["scalar"] = "scalar"
    time: datetime
    value: float

    def fields(self) -> dict[str, float]:
        """Numeric fields keyed by their output field name."""
        return {"value": self.value}


class BandPoint(FrozenModel):
    """Three-valued band indicator sample (Bollinger Bands, Keltner, ...).

    :param time: Timestamp of the bar this value belongs to.
    :param lower: Lower band.
    :param middle: Middle band.
    :param upper: Upper band.
    """

    kind: Literal["band"] = "band"
    time: datetime
    lower: float
    middle: float
    upper: float

    def fields(self) -> dict[str, float]:
        """Numeric fields keyed by their output field name."""
        return {"lower": self.lower, "middle": self.middle, "upper": self.upper}


IndicatorPoint = Annotated[Union[ScalarPoint, BandPoint], Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Backtest Result Types
# ---------------------------------------------------------------------------


class Trade(FrozenModel):
    """Round-trip trade reported by the backtest engine.

    Only ``entry_time`` and ``entry_price`` are required; open trades have no
    exit fields.
    """

    trade_id: str | None = None
    symbol: str | None = None
    direction: str | None = None
    entry_time: datetime
    entry_price: float
    entry_quantity: float | None = None
    exit_time: datetime | None = None
    exit_price: float | None = None
    pnl: float | None = None
    pnl_percent: float | None = None
    exit_reason: str | None = None

    @model_validator(mode="after")
    def _check_exit_after_entry(self) -> Trade:
        # Mixed naive and aware timestamps compare as UTC.
        if self.exit_time is not None and to_epoch_us(self.exit_time) < to_epoch_us(self.entry_time):
            raise ValueError("exit_time must not precede entry_time")
        return self


class EquityPoint(FrozenModel):
    """Portfolio state at one sampling tick of the backtest.

    :param time: Sampling timestamp.
    :param equity: Total portfolio value.
    :param cash: Cash component.
    :param holdings_value: Market value of open positions.
    :param drawdown: Decline from the running peak as a decimal (0.05 = 5%).
    """

    time: datetime
    equity: float
    cash: float
    holdings_value: float
    drawdown: float


class PerformanceStatistics(FrozenModel):
    """Pre-computed performance statistics, passed through untouched.

    Only the headline figures are typed; any other statistic the engine
    reports is preserved as an extra field.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    total_return: float | None = None
    annual_return: float | None = None
    max_drawdown: float | None = None
    total_trades: int | None = None
    winning_trades: int | None = None
    losing_trades: int | None = None
    win_rate: float | None = None
    average_win: float | None = None
    average_loss: float | None = None
    net_profit: float | None = None
    profit_factor: float | None = None
    sharpe_ratio: float | None = None
    sortino_ratio: float | None = None


class BacktestStatus(str, Enum):
    """Lifecycle status of a backtest job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class BacktestResults(FrozenModel):
    """Payload of a completed backtest.

    :param trades: Round-trip trades in execution order.
    :param equity_curve: Equity samples, ascending by time.
    :param ohlcv_bars: Price bars the backtest ran over, ascending by time.
    :param indicators: Compact indicator set (see ``indicators.compact``).
    :param statistics: Pre-computed performance statistics.
    :param final_equity: Portfolio value at the end of the run.
    """

    trades: list[Trade] = Field(default_factory=list)
    equity_curve: list[EquityPoint] = Field(default_factory=list)
    ohlcv_bars: list[Bar] = Field(default_factory=list)
    indicators: dict[str, Any] = Field(default_factory=dict)
    statistics: PerformanceStatistics | None = None
    final_equity: float | None = None


class BacktestResponse(FrozenModel):
    """Envelope returned by the backtest API.

    :param backtest_id: Identifier of the backtest job.
    :param status: Job status.
    :param strategy_id: Strategy that was backtested.
    :param start_date: First day of the backtest window (as reported).
    :param end_date: Last day of the backtest window (as reported).
    :param symbol: Traded symbol.
    :param message: Optional informational message (e.g. persistence warnings).
    :param error: Error description for failed jobs.
    :param results: Results of a completed job.
    """

    backtest_id: str = ""
    status: BacktestStatus = BacktestStatus.COMPLETED
    strategy_id: str = ""
    start_date: str = ""
    end_date: str = ""
    symbol: str = ""
    message: str | None = None
    error: str | None = None
    results: BacktestResults | None = None


# ---------------------------------------------------------------------------
# Chart Record Types
# ---------------------------------------------------------------------------


class ChartRecord(FrozenModel):
    """Common fields of every assembled chart record.

    Marker fields are ``None`` wherever no trade was matched, so consumers
    can tell "no entry here" from "entry at price 0".

    :param time: Timestamp of the record.
    :param time_str: Short display label for the timestamp.
    :param entry: Y position of an entry marker.
    :param entry_price: Fill price of the matched entry.
    :param exit: Y position of an exit marker.
    :param exit_price: Fill price of the matched exit.
    :param exit_pnl: Realized P&L of the matched exit.
    """

    time: datetime
    time_str: str
    entry: float | None = None
    entry_price: float | None = None
    exit: float | None = None
    exit_price: float | None = None
    exit_pnl: float | None = None


class PriceRecord(ChartRecord):
    """One candle of the price chart with its indicator overlays."""

    open: float
    high: float
    low: float
    close: float
    volume: float
    indicators: dict[str, float] = Field(default_factory=dict)

    def to_row(self) -> dict[str, Any]:
        """Flatten into a JSON-ready row with indicator fields inline.

        Record fields win over indicator keys that collide with them.
        """
        row = self.model_dump(mode="json", exclude={"indicators"})
        for key, value in self.indicators.items():
            if key in row:
                logger.debug(f"Indicator field '{key}' collides with a record field; dropped")
                continue
            row[key] = value
        return row


class EquityChartKind(str, Enum):
    """Charts derived from the equity curve."""

    EQUITY = "equity"
    DRAWDOWN = "drawdown"
    RETURNS = "returns"


class EquityRecord(ChartRecord):
    """One sample of an equity-derived chart.

    :param equity: Total portfolio value.
    :param cash: Cash component.
    :param holdings: Market value of open positions.
    :param drawdown: Drawdown in percent.
    :param return_pct: Return versus initial cash in percent.
    :param value: Plotted value for this chart kind.
    """

    equity: float
    cash: float
    holdings: float
    drawdown: float
    return_pct: float
    value: float

    def to_row(self) -> dict[str, Any]:
        """JSON-ready row."""
        return self.model_dump(mode="json")


class ChartSet(FrozenModel):
    """All chart series built from one backtest result.

    :param price: Downsampled candles with indicator overlays and markers.
    :param equity: Equity curve records.
    :param drawdown: Drawdown records (values are non-positive percentages).
    :param returns: Cumulative return records in percent.
    :param indicator_labels: Display label per indicator field key.
    """

    price: list[PriceRecord] = Field(default_factory=list)
    equity: list[EquityRecord] = Field(default_factory=list)
    drawdown: list[EquityRecord] = Field(default_factory=list)
    returns: list[EquityRecord] = Field(default_factory=list)
    indicator_labels: dict[str, str] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Export every series as lists of JSON-ready rows."""
        return {
            "price": [record.to_row() for record in self.price],
            "equity": [record.to_row() for record in self.equity],
            "drawdown": [record.to_row() for record in self.drawdown],
            "returns": [record.to_row() for record in self.returns],
            "indicator_labels": dict(self.indicator_labels),
        }


# ---------------------------------------------------------------------------
# Configuration Types
# ---------------------------------------------------------------------------


class ChartConfig(FrozenModel):
    """Configuration for building chart series.

    :param price_target_bars: Maximum number of candles on the price chart.
    :param initial_cash: Basis for return percentages.
    :param trade_match_tolerance: Maximum distance between a trade and the
        equity point it is attached to.
    :param log_level: Logging level.
    """

    price_target_bars: int = Field(default=100, gt=0)
    initial_cash: float = Field(default=100_000.0, gt=0)
    trade_match_tolerance: timedelta = timedelta(hours=1)
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

__all__ = [
    # Base models
    "FrozenModel",
    # Market data
    "Bar",
    # Indicators
    "ScalarPoint",
    "BandPoint",
    "IndicatorPoint",
    # Backtest results
    "Trade",
    "EquityPoint",
    "PerformanceStatistics",
    "BacktestStatus",
    "BacktestResults",
    "BacktestResponse",
    # Chart records
    "ChartRecord",
    "PriceRecord",
    "EquityChartKind",
    "EquityRecord",
    "ChartSet",
    # Configuration
    "ChartConfig",
]
