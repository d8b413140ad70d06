import copy
import logging
from typing import Optional

from openpyxl import Workbook
from openpyxl.cell.cell import MergedCell
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from ..config.models import LinesheetLayout
from ..data.models import Catalog, Company
from ..styling.style_config import FORMAT_DATE
from ..utils.formula_utils import is_formula, normalize_formula_value, translate_formula
from ..utils.text import format_cell_as_date_smarter, unique_sheet_title

logger = logging.getLogger(__name__)


class TemplateSheetCloner:
    """
    Copies the template sheet into new per-catalog sheets.

    Values, formulas, styles, column widths, row heights and merged ranges are
    all copied. Style objects are copied, never shared, so later edits on one
    catalog sheet cannot leak into another.
    """

    def __init__(self, template_ws: Worksheet, layout: LinesheetLayout):
        """
        Args:
            template_ws: The template worksheet (left untouched)
            layout: Layout describing header cells and product region
        """
        self.template_ws = template_ws
        self.layout = layout

    def clone(self, workbook: Workbook, title: str, index: Optional[int] = None) -> Worksheet:
        """
        Creates a new sheet in ``workbook`` holding a copy of the template.

        The title is sanitized and made unique within the workbook.
        """
        safe_title = unique_sheet_title(title, workbook.sheetnames)
        target = workbook.create_sheet(title=safe_title, index=index)
        self.clone_into(target)
        logger.debug(f"Cloned template '{self.template_ws.title}' into '{safe_title}'")
        return target

    def clone_into(self, target_ws: Worksheet, row_offset: int = 0) -> int:
        """
        Copies every template cell into ``target_ws``, shifted down by ``row_offset`` rows.

        Returns:
            Number of cells copied.
        """
        source = self.template_ws
        copied = 0

        for row in source.iter_rows(min_row=1, max_row=source.max_row, max_col=source.max_column):
            for cell in row:
                if isinstance(cell, MergedCell):
                    continue
                target = target_ws.cell(row=cell.row + row_offset, column=cell.column)
                self._copy_value(cell, target, row_offset)
                if cell.has_style:
                    target.font = copy.copy(cell.font)
                    target.fill = copy.copy(cell.fill)
                    target.border = copy.copy(cell.border)
                    target.alignment = copy.copy(cell.alignment)
                    target.protection = copy.copy(cell.protection)
                    target.number_format = cell.number_format
                copied += 1

        for key, dim in source.column_dimensions.items():
            if dim.width:
                target_ws.column_dimensions[key].width = dim.width
            if dim.hidden:
                target_ws.column_dimensions[key].hidden = True

        for row_idx, dim in source.row_dimensions.items():
            if dim.height is not None:
                target_ws.row_dimensions[row_idx + row_offset].height = dim.height

        for merged_range in source.merged_cells.ranges:
            min_col, min_row, max_col, max_row = merged_range.bounds
            target_ws.merge_cells(
                start_row=min_row + row_offset, start_column=min_col,
                end_row=max_row + row_offset, end_column=max_col,
            )

        if source.freeze_panes and row_offset == 0:
            target_ws.freeze_panes = source.freeze_panes

        return copied

    @staticmethod
    def _copy_value(cell, target, row_offset: int):
        value = normalize_formula_value(cell.value)
        if row_offset and is_formula(value):
            value = translate_formula(value, cell.coordinate, f"{get_column_letter(cell.column)}{cell.row + row_offset}")
        target.value = value

    def stamp_header(self, ws: Worksheet, company: Company, catalog: Catalog):
        """Writes company, catalog name and ship dates into the header cells."""
        cells = self.layout.header_cells
        ws[cells.retailer] = company.name
        ws[cells.linesheet] = catalog.name

        if cells.start_ship and catalog.startShip:
            format_cell_as_date_smarter(ws[cells.start_ship], catalog.startShip, FORMAT_DATE)
        if cells.complete_ship and catalog.completeShip:
            format_cell_as_date_smarter(ws[cells.complete_ship], catalog.completeShip, FORMAT_DATE)

    def clear_product_region(self, ws: Worksheet, start_row: Optional[int] = None,
                             end_row: Optional[int] = None) -> int:
        """
        Empties leftover sample rows: unmerges ranges touching the region and clears values.

        Styles are kept so written rows inherit the template's formatting.

        Returns:
            Number of cells cleared.
        """
        region = self.layout.product_region
        start_row = start_row or region.start_row
        end_row = end_row or region.end_row
        last_col = region.column_count

        for merged_range in list(ws.merged_cells.ranges):
            if merged_range.max_row >= start_row and merged_range.min_row <= end_row \
                    and merged_range.min_col <= last_col:
                ws.unmerge_cells(str(merged_range))

        cleared = 0
        # Only rows that already exist; iterating the full region would create empty cells
        for row in ws.iter_rows(min_row=start_row, max_row=min(end_row, ws.max_row), max_col=last_col):
            for cell in row:
                if cell.value is not None:
                    cell.value = None
                    cleared += 1
        if cleared:
            logger.debug(f"Cleared {cleared} leftover cells in '{ws.title}' rows {start_row}-{end_row}")
        return cleared
