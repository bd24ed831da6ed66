"""End-to-end tests for parsing and chart building."""

from datetime import datetime, timedelta, timezone

from backtest_charts.parsing import parse_response, parse_results
from backtest_charts.pipeline import build_charts
from backtest_charts.types import BacktestStatus, ChartConfig

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def iso(time: datetime) -> str:
    return time.isoformat().replace("+00:00", "Z")


def create_raw_results(num_bars: int = 10, num_equity: int = 10) -> dict:
    """Create a raw results payload shaped like the engine's JSON."""
    bars = [
        {
            "time": iso(T0 + timedelta(hours=i)),
            "open": 100 + i,
            "high": 102 + i,
            "low": 99 + i,
            "close": 101 + i,
            "volume": 1000,
        }
        for i in range(num_bars)
    ]
    equity = [
        {
            "time": iso(T0 + timedelta(hours=i)),
            "equity": 100_000 + 100 * i,
            "cash": 50_000,
            "holdings_value": 50_000 + 100 * i,
            "drawdown": 0.0,
        }
        for i in range(num_equity)
    ]
    return {
        "trades": [
            {
                "trade_id": "t1",
                "symbol": "SPY",
                "direction": "buy",
                "entry_time": iso(T0 + timedelta(hours=2)),
                "entry_price": 102.0,
                "entry_quantity": 10,
                "exit_time": iso(T0 + timedelta(hours=5)),
                "exit_price": 106.0,
                "pnl": 40.0,
            }
        ],
        "equity_curve": equity,
        "ohlcv_bars": bars,
        "indicators": {
            "_offsets": {"ema_3": 2},
            "ema_3": [101.0 + i for i in range(num_bars - 2)],
            "BB": [[99.0 + i, 101.0 + i, 103.0 + i] for i in range(num_bars)],
        },
        "statistics": {"total_return": 0.009, "sharpe_ratio": 1.2},
        "final_equity": 100_900,
    }


class TestParsing:
    """Tests for lenient payload parsing."""

    def test_parse_complete_results(self) -> None:
        """Every section is parsed into models."""
        results = parse_results(create_raw_results())

        assert len(results.ohlcv_bars) == 10
        assert len(results.equity_curve) == 10
        assert results.trades[0].pnl == 40.0
        assert results.statistics is not None
        assert results.statistics.sharpe_ratio == 1.2
        assert results.final_equity == 100_900.0
        assert "ema_3" in results.indicators

    def test_malformed_entries_skipped(self) -> None:
        """Bad bars and trades are dropped, good ones kept."""
        raw = create_raw_results(3, 3)
        raw["ohlcv_bars"].append({"time": "not a time", "open": 1})
        raw["ohlcv_bars"].append("garbage")
        raw["trades"].append({"entry_price": 5.0})
        raw["trades"].append(
            {
                "entry_time": iso(T0 + timedelta(hours=2)),
                "entry_price": 1.0,
                "exit_time": iso(T0),
            }
        )

        results = parse_results(raw)

        assert len(results.ohlcv_bars) == 3
        assert len(results.trades) == 1

    def test_mixed_timezone_trades(self) -> None:
        """Naive trade times are read as UTC instead of aborting the parse."""
        raw = create_raw_results(3, 3)
        raw["trades"] = [
            {
                "entry_time": "2024-01-01T00:00:00Z",
                "entry_price": 10.0,
                "exit_time": "2024-01-01T01:00:00",
                "exit_price": 11.0,
            },
            {
                "entry_time": "2024-01-01T02:00:00Z",
                "entry_price": 10.0,
                "exit_time": "2024-01-01T01:00:00",
            },
            {"entry_time": iso(T0 + timedelta(hours=1)), "entry_price": 12.0},
        ]

        results = parse_results(raw)

        assert [t.entry_price for t in results.trades] == [10.0, 12.0]
        charts = build_charts(results)
        assert charts.price[1].exit_price == 11.0

    def test_missing_sections(self) -> None:
        """Absent or wrongly typed sections become empty."""
        results = parse_results({"trades": "none", "indicators": [1, 2]})
        assert results.trades == []
        assert results.ohlcv_bars == []
        assert results.indicators == {}
        assert results.statistics is None

    def test_non_mapping_results(self) -> None:
        """A non-object payload parses to empty results."""
        assert parse_results(["not", "an", "object"]).ohlcv_bars == []

    def test_bare_results_wrapped(self) -> None:
        """A results object without envelope becomes a completed response."""
        response = parse_response(create_raw_results())
        assert response.status is BacktestStatus.COMPLETED
        assert response.results is not None

    def test_envelope_parsed(self) -> None:
        """Envelope fields are read alongside results."""
        response = parse_response(
            {
                "backtest_id": "bt-1",
                "status": "completed",
                "symbol": "SPY",
                "start_date": "2024-01-01",
                "end_date": "2024-02-01",
                "results": create_raw_results(),
            }
        )
        assert response.backtest_id == "bt-1"
        assert response.symbol == "SPY"
        assert response.results is not None

    def test_failed_envelope(self) -> None:
        """Failed jobs carry their error and no results."""
        response = parse_response({"status": "failed", "error": "boom"})
        assert response.status is BacktestStatus.FAILED
        assert response.error == "boom"
        assert response.results is None

    def test_unknown_status(self) -> None:
        """Unknown statuses fall back based on the presence of results."""
        response = parse_response({"status": "exploded", "results": {}})
        assert response.status is BacktestStatus.COMPLETED


class TestBuildCharts:
    """Tests for the complete pipeline."""

    def test_builds_every_chart(self) -> None:
        """All four series are produced with matching lengths."""
        charts = build_charts(parse_results(create_raw_results()))

        assert len(charts.price) == 10
        assert len(charts.equity) == 10
        assert len(charts.drawdown) == 10
        assert len(charts.returns) == 10
        assert set(charts.indicator_labels) == {"ema_3_value", "bb_lower", "bb_middle", "bb_upper"}

    def test_indicator_offset_respected(self) -> None:
        """The offset indicator starts at the third bar."""
        charts = build_charts(parse_results(create_raw_results()))

        assert "ema_3_value" not in charts.price[1].indicators
        assert charts.price[2].indicators["ema_3_value"] == 101.0
        assert charts.price[0].indicators["bb_middle"] == 101.0

    def test_trade_markers_on_both_chart_families(self) -> None:
        """The trade shows on the price chart and the equity chart."""
        charts = build_charts(parse_results(create_raw_results()))

        assert charts.price[2].entry_price == 102.0
        assert charts.price[5].exit_price == 106.0
        assert charts.price[5].exit_pnl == 40.0
        assert charts.equity[2].entry == charts.equity[2].equity
        assert charts.equity[5].exit_pnl == 40.0

    def test_price_chart_downsampled(self) -> None:
        """Long bar sequences are reduced to the configured target."""
        results = parse_results(create_raw_results(num_bars=250))
        charts = build_charts(results, ChartConfig(price_target_bars=50))

        assert len(charts.price) == 50
        assert charts.price[1].time == results.ohlcv_bars[5].time
        assert charts.price[1].indicators["ema_3_value"] == 104.0

    def test_empty_results(self) -> None:
        """Nothing in, empty charts out."""
        charts = build_charts(parse_results({}))
        assert charts.price == []
        assert charts.equity == []
        assert charts.indicator_labels == {}

    def test_export_is_json_ready(self) -> None:
        """Exported rows are plain JSON values."""
        exported = build_charts(parse_results(create_raw_results())).to_dict()

        first = exported["price"][0]
        assert isinstance(first["time"], str)
        assert first["bb_upper"] == 103.0
        assert first["entry"] is None

    def test_idempotent(self) -> None:
        """Repeated runs give identical output."""
        results = parse_results(create_raw_results(num_bars=120))
        assert build_charts(results).to_dict() == build_charts(results).to_dict()
