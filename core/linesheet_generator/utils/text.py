# This module contains utilities for text cleanup, date parsing and naming of sheets/files.

import datetime
import logging
import re
from typing import Any, Iterable, Optional

from openpyxl.cell import Cell

logger = logging.getLogger(__name__)

# The python-dateutil library is required for advanced date parsing.
from dateutil.parser import ParserError, parse

# Excel rejects these in sheet titles
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
MAX_SHEET_TITLE = 31


def excel_number_to_datetime(excel_num: Any) -> Optional[datetime.datetime]:
    """Converts an Excel date serial number to a Python datetime object."""
    try:
        excel_num = float(excel_num)
        # Excel's 1900 leap year bug needs to be accounted for.
        if excel_num > 59:
            excel_num -= 1
        delta = datetime.timedelta(days=excel_num - 1)
        return datetime.datetime(1900, 1, 1) + delta
    except (ValueError, TypeError, OverflowError):
        return None


def parse_date(value: Any) -> Optional[datetime.datetime]:
    """Best-effort parse of ISO strings, US-style strings, datetimes and Excel serials."""
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return parse(value.strip())
        except (ParserError, ValueError, OverflowError):
            return None
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 1:
        return excel_number_to_datetime(value)
    return None


def format_cell_as_date_smarter(cell: Cell, value: Any, number_format: str = "mm/dd/yyyy"):
    """
    Intelligently parses a value (string, number, or datetime) into a
    datetime object and formats the cell accordingly. Unparseable values are
    written as-is.
    """
    parsed_date = parse_date(value)
    if parsed_date:
        # Drop tz info; openpyxl cannot write aware datetimes
        cell.value = parsed_date.replace(tzinfo=None)
        cell.number_format = number_format
    else:
        cell.value = value


def sanitize_filename_part(value: str, fallback: str = "Linesheet") -> str:
    """Whitespace runs become underscores; characters unsafe in filenames are dropped."""
    cleaned = _INVALID_FILENAME_CHARS.sub("", str(value or "")).strip()
    cleaned = re.sub(r"\s+", "_", cleaned)
    return cleaned or fallback


def sanitize_sheet_title(value: str, fallback: str = "Catalog") -> str:
    """Applies Excel's sheet title rules: no []:*?/\\, no leading/trailing quote, 31 chars max."""
    cleaned = _INVALID_SHEET_CHARS.sub(" ", str(value or "")).strip().strip("'").strip()
    cleaned = re.sub(r"\s{2,}", " ", cleaned)
    return (cleaned or fallback)[:MAX_SHEET_TITLE].rstrip()


def unique_sheet_title(value: str, existing: Iterable[str], fallback: str = "Catalog") -> str:
    """
    Sanitized title that does not collide (case-insensitively) with ``existing``.

    Collisions get a ' (2)', ' (3)', ... suffix, trimming the base so the
    result still fits in 31 characters.
    """
    taken = {name.lower() for name in existing}
    base = sanitize_sheet_title(value, fallback=fallback)
    if base.lower() not in taken:
        return base

    counter = 2
    while True:
        suffix = f" ({counter})"
        candidate = f"{base[:MAX_SHEET_TITLE - len(suffix)].rstrip()}{suffix}"
        if candidate.lower() not in taken:
            logger.warning(f"Sheet title '{base}' already used, renamed to '{candidate}'")
            return candidate
        counter += 1


def hash_string(value: str) -> int:
    """
    Deterministic 32-bit string hash: h = (h << 5) - h + ord(ch), wrapped to a
    signed int at every step, absolute value returned.
    """
    h = 0
    for ch in value:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)
