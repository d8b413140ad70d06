"""
Math Utilities

Lenient number parsing for values coming from the commerce API, request bodies
and environment variables. Prices arrive as strings ("12.50", "$1,200.00") or
not at all; anything unparseable becomes the default.
"""

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

# Currency symbols, thousands separators and surrounding whitespace
_NUMERIC_NOISE = re.compile(r"[\s,$€£¥]")


def safe_float_convert(value: Any, default: float = 0.0) -> float:
    """
    Safely converts a value to a float.

    Handles:
    - Integers and floats (returned as float, bools excluded)
    - Strings with whitespace, currency symbols and thousands separators
    - Strings with negative signs and decimal points

    Args:
        value: The value to convert.
        default: The default value to return if conversion fails.

    Returns:
        The converted float value, or the default if conversion fails.
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, (int, float)):
        return float(value)

    if isinstance(value, str):
        cleaned = _NUMERIC_NOISE.sub("", value)
        if not cleaned:
            return default
        try:
            return float(cleaned)
        except ValueError:
            logger.debug(f"Could not parse '{value}' as a number, using {default}")

    return default


def safe_int_convert(value: Any, default: int = 0) -> int:
    """
    Safely converts a value to an integer.

    Floats and numeric strings such as "10.5" are truncated.

    Args:
        value: The value to convert.
        default: The default value to return if conversion fails.

    Returns:
        The converted integer value, or the default if conversion fails.
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, int):
        return value

    converted = safe_float_convert(value, default=float("nan"))
    try:
        return int(converted)
    except (ValueError, OverflowError):  # NaN / inf
        return default
