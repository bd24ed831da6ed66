"""Backtest chart exception hierarchy.

All package-specific exceptions derive from :class:`ChartsError` so callers can
catch them uniformly. The transformation pipeline itself never raises on
malformed upstream data; these errors cover configuration problems, caller
misuse and the file boundary of the CLI.
"""

from __future__ import annotations


class ChartsError(Exception):
    """Base class for backtest chart exceptions."""


class ConfigError(ChartsError):
    """Raised when configuration files or parameters are invalid."""


class PayloadError(ChartsError):
    """Raised when an input document cannot be read as a backtest payload."""


class InvalidParametersError(ChartsError, ValueError):
    """Raised when a pipeline function is called with nonsensical parameters.

    Examples are a non-positive downsample target or a negative alignment
    tolerance.
    """


__all__ = [
    "ChartsError",
    "ConfigError",
    "PayloadError",
    "InvalidParametersError",
]
