"""CLI command support for the backtest chart pipeline.

Each command module provides:
- Configuration loading and validation
- Input document loading
"""

from backtest_charts.commands.build_charts import (
    load_chart_config,
    load_payload,
    parse_chart_config,
)

__all__ = [
    "load_chart_config",
    "load_payload",
    "parse_chart_config",
]
