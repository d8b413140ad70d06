import logging
from typing import Dict, List, Optional, Sequence, Tuple

from openpyxl.cell.cell import MergedCell
from openpyxl.worksheet.worksheet import Worksheet

from ..config.models import LinesheetLayout
from ..data.models import Catalog, Company
from ..styling.style_config import BOLD_FONT, FORMAT_CURRENCY, FORMAT_INTEGER, THIN_BORDER
from ..utils.text import hash_string

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"


def estimate_units(catalog_name: str, category: str, subcategory: str) -> int:
    """Deterministic placeholder quantity for a summary group (12..71)."""
    return 12 + hash_string(f"{catalog_name}|{category}|{subcategory}") % 60


class SummarySheetBuilder:
    """
    Fills the order summary sheet with one row per (catalog, category, subcategory),
    followed by a grand total row.
    """

    def __init__(self, ws: Worksheet, layout: LinesheetLayout):
        self.ws = ws
        self.layout = layout
        self.summary = layout.summary

    def collect_rows(self, catalogs: Sequence[Catalog]) -> List[Dict[str, object]]:
        groups: Dict[Tuple[str, str, str], List] = {}
        for catalog in catalogs:
            for product in catalog.products:
                key = (catalog.name, product.category.strip(), product.subcategory.strip())
                groups.setdefault(key, []).append(product)

        rows = []
        for (catalog_name, category, subcategory), products in groups.items():
            units = estimate_units(catalog_name, category, subcategory)
            mean_wholesale = sum(p.wholesalePrice for p in products) / len(products)
            mean_retail = sum(p.suggRetailPrice for p in products) / len(products)
            rows.append({
                "catalog": catalog_name,
                "category": category or UNCATEGORIZED,
                "subcategory": subcategory,
                "styles": len(products),
                "units": units,
                "wholesale_total": round(units * mean_wholesale, 2),
                "retail_total": round(units * mean_retail, 2),
            })
        return rows

    def build(self, catalogs: Sequence[Catalog], company: Optional[Company] = None) -> int:
        """
        Writes the summary rows.

        Returns:
            Number of group rows written (the grand total row not included).
        """
        if company is not None and self.summary.retailer_cell:
            self.ws[self.summary.retailer_cell] = company.name

        self._clear_previous()
        rows = self.collect_rows(catalogs)
        columns = {spec.key: spec.column for spec in self.summary.columns}

        row_idx = self.summary.data_start_row
        for values in rows:
            self._write_row(row_idx, columns, values)
            row_idx += 1

        totals = {
            "catalog": "Grand Total",
            "styles": sum(r["styles"] for r in rows),
            "units": sum(r["units"] for r in rows),
            "wholesale_total": round(sum(r["wholesale_total"] for r in rows), 2),
            "retail_total": round(sum(r["retail_total"] for r in rows), 2),
        }
        self._write_row(row_idx, columns, totals, bold=True)

        logger.info(f"Summary sheet: {len(rows)} group row(s) for {len(catalogs)} catalog(s)")
        return len(rows)

    def _clear_previous(self):
        start = self.summary.data_start_row
        last_col = max(spec.column for spec in self.summary.columns)
        if self.ws.max_row < start:
            return
        for row in self.ws.iter_rows(min_row=start, max_row=self.ws.max_row, max_col=last_col):
            for cell in row:
                if not isinstance(cell, MergedCell):
                    cell.value = None

    def _write_row(self, row_idx: int, columns: Dict[str, int], values: Dict[str, object], bold: bool = False):
        for key, col in columns.items():
            cell = self.ws.cell(row=row_idx, column=col, value=values.get(key))
            cell.border = THIN_BORDER
            if key in ("wholesale_total", "retail_total"):
                cell.number_format = FORMAT_CURRENCY
            elif key in ("styles", "units"):
                cell.number_format = FORMAT_INTEGER
            if bold:
                cell.font = BOLD_FONT
