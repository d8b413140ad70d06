"""
Coordinate and formula helpers.

Formulas are composed as plain strings; the spreadsheet application evaluates
them on open. Array/data-table formulas are flattened into self-contained
strings because openpyxl keeps them anchored to their original range, which
is invalid once a sheet is cloned or rows are rewritten.
"""
import logging
from typing import Any, Callable, Optional

from openpyxl import Workbook
from openpyxl.cell.cell import MergedCell
from openpyxl.formula.translate import Translator
from openpyxl.worksheet.formula import ArrayFormula, DataTableFormula

logger = logging.getLogger(__name__)

# Cached-value lookup used by the recovery pass: (sheet title, coordinate) -> value
CachedValueLookup = Callable[[str, str], Any]


def column_letter(index: int) -> str:
    """
    Converts a 1-based column index to spreadsheet letters.

    1 -> 'A', 26 -> 'Z', 27 -> 'AA', 702 -> 'ZZ', 16384 -> 'XFD'.

    Raises:
        ValueError: if index is not a positive integer.
    """
    if isinstance(index, bool) or not isinstance(index, int) or index <= 0:
        raise ValueError(f"Column index must be a positive integer, got {index!r}")

    letters = ""
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


def units_formula(row: int, first_size_col: int, size_count: int) -> str:
    """Sum of the row's size-quantity cells, e.g. '=SUM(Q7:V7)'."""
    if size_count <= 0:
        return "=0"
    start = column_letter(first_size_col)
    end = column_letter(first_size_col + size_count - 1)
    return f"=SUM({start}{row}:{end}{row})"


def total_formula(row: int, units_col: int, price_col: int) -> str:
    """Units times a price column, e.g. '=W7*O7'."""
    return f"={column_letter(units_col)}{row}*{column_letter(price_col)}{row}"


def is_formula(value: Any) -> bool:
    if isinstance(value, (ArrayFormula, DataTableFormula)):
        return True
    return isinstance(value, str) and value.startswith("=") and len(value) > 1


def normalize_formula_value(value: Any) -> Any:
    """
    Returns ``value`` with any formula object replaced by an independent formula string.

    ArrayFormula -> its formula text; DataTableFormula -> None (what-if tables
    cannot be expressed as a standalone cell formula). Everything else is
    returned unchanged.
    """
    if isinstance(value, ArrayFormula):
        text = value.text or ""
        if text and not text.startswith("="):
            text = f"={text}"
        return text or None
    if isinstance(value, DataTableFormula):
        return None
    return value


def translate_formula(formula: str, origin: str, destination: str) -> str:
    """Re-anchors relative references when a formula moves from ``origin`` to ``destination``."""
    if origin == destination:
        return formula
    return Translator(formula, origin=origin).translate_formula(destination)


def normalize_workbook_formulas(workbook: Workbook) -> int:
    """
    Final pass over every sheet turning formula objects into plain strings.

    Returns:
        Number of cells rewritten.
    """
    rewritten = 0
    for worksheet in workbook.worksheets:
        for row in worksheet.iter_rows():
            for cell in row:
                if isinstance(cell, MergedCell):
                    continue
                if isinstance(cell.value, (ArrayFormula, DataTableFormula)):
                    cell.value = normalize_formula_value(cell.value)
                    rewritten += 1
    if rewritten:
        logger.info(f"Normalized {rewritten} array/data-table formulas into independent formulas")
    return rewritten


def strip_formulas(workbook: Workbook, cached_values: Optional[CachedValueLookup] = None) -> int:
    """
    Destructive recovery pass: replaces every formula cell with its cached value.

    Cells with no cached value become empty.

    Returns:
        Number of formula cells replaced.
    """
    replaced = 0
    for worksheet in workbook.worksheets:
        for row in worksheet.iter_rows():
            for cell in row:
                if isinstance(cell, MergedCell) or not is_formula(cell.value):
                    continue
                cached = cached_values(worksheet.title, cell.coordinate) if cached_values else None
                cell.value = None if is_formula(cached) else cached
                replaced += 1
    logger.warning(f"Replaced {replaced} formula cells with cached values")
    return replaced
