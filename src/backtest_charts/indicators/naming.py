"""Field key and label conventions for indicator overlays.

Every indicator field ends up as a flat key on a price chart record:
``"<name>_<field>"`` in lower snake case, except the Bollinger Band
indicator ``"BB"`` which uses the fixed ``bb_`` prefix.
"""

from __future__ import annotations

import re

BOLLINGER_NAME = "BB"
BOLLINGER_PREFIX = "bb"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_indicator_key(value: str) -> str:
    """Lower-case, collapse non-alphanumeric runs to ``_``, trim underscores.

    >>> normalize_indicator_key("EMA (20)")
    'ema_20'
    """
    return _NON_ALNUM.sub("_", value.lower()).strip("_")


def capitalize_word(value: str) -> str:
    if not value:
        return value
    return value[0].upper() + value[1:]


def indicator_field_key(name: str, field: str) -> str:
    """Output key for one field of an indicator.

    :param name: Indicator name as sent by the engine.
    :param field: Point field ("value", "lower", ...).
    :returns: Flat record key, or an empty string if either part normalizes
        to nothing.
    """
    normalized_field = normalize_indicator_key(field)
    prefix = BOLLINGER_PREFIX if name == BOLLINGER_NAME else normalize_indicator_key(name)
    if not prefix or not normalized_field:
        return ""
    return f"{prefix}_{normalized_field}"


def indicator_field_label(name: str, field: str) -> str:
    """Human-readable legend label for one field of an indicator."""
    if name == BOLLINGER_NAME:
        return f"{BOLLINGER_NAME} {capitalize_word(field)}"
    return f"{name} {field}"


__all__ = [
    "BOLLINGER_NAME",
    "normalize_indicator_key",
    "capitalize_word",
    "indicator_field_key",
    "indicator_field_label",
]
