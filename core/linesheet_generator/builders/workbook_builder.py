# linesheet_generator/builders/workbook_builder.py
import io
import logging
from typing import List, Optional

from openpyxl import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from ..config.models import LinesheetLayout
from ..styling.style_config import BOLD_FONT, CENTER_ALIGNMENT, HEADER_FILL, THIN_BORDER, TITLE_FONT
from ..utils.formula_utils import column_letter

logger = logging.getLogger(__name__)

HEADER_CAPTIONS = {
    "retailer": "Retailer",
    "linesheet": "Linesheet",
    "start_ship": "Start Ship",
    "complete_ship": "Complete Ship",
}


class WorkbookBuilder:
    """
    Builder responsible for creating a clean linesheet template workbook.

    Used when no template file is available in dev mode, and by tests to
    produce a template that matches a layout exactly.
    """

    def __init__(self, layout: Optional[LinesheetLayout] = None, sheet_names: Optional[List[str]] = None):
        """
        Initialize the WorkbookBuilder.

        Args:
            layout: Layout the generated template must satisfy
            sheet_names: Sheets to create; defaults to the layout's required sheets
        """
        self.layout = layout or LinesheetLayout()
        self.sheet_names = sheet_names or self.layout.required_sheets
        self.workbook = None

    def build(self) -> Workbook:
        """
        Creates a new workbook with the template and summary sheets laid out
        according to the layout: header captions, header labels and column widths.

        Returns:
            A new Workbook instance
        """
        logger.info(f"Creating new template workbook with {len(self.sheet_names)} sheets")

        self.workbook = Workbook()

        # Remove the default 'Sheet' created by openpyxl
        if 'Sheet' in self.workbook.sheetnames:
            del self.workbook['Sheet']

        for sheet_name in self.sheet_names:
            ws = self.workbook.create_sheet(title=sheet_name)
            if sheet_name == self.layout.template_sheet:
                self._layout_product_sheet(ws)
            elif sheet_name == self.layout.summary.sheet_name:
                self._layout_summary_sheet(ws)
            logger.debug(f"Created sheet: '{sheet_name}'")

        logger.info("New template workbook created successfully")
        return self.workbook

    def to_bytes(self) -> bytes:
        """Builds (if needed) and serializes the workbook."""
        if self.workbook is None:
            self.build()
        buffer = io.BytesIO()
        self.workbook.save(buffer)
        return buffer.getvalue()

    def get_worksheet(self, sheet_name: str) -> Worksheet:
        """
        Get a specific worksheet from the created workbook.

        Args:
            sheet_name: Name of the sheet to retrieve

        Returns:
            The requested worksheet
        """
        if self.workbook is None:
            raise RuntimeError("Workbook not created yet. Call build() first.")

        if sheet_name not in self.workbook.sheetnames:
            raise ValueError(f"Sheet '{sheet_name}' not found in workbook")

        return self.workbook[sheet_name]

    def _layout_product_sheet(self, ws: Worksheet):
        layout = self.layout
        ws["A1"] = "LINESHEET"
        ws["A1"].font = TITLE_FONT

        for key, coord in layout.header_cells.model_dump().items():
            if not coord:
                continue
            caption_cell = ws[coord].offset(column=-1) if ws[coord].column > 1 else None
            if caption_cell is not None:
                caption_cell.value = f"{HEADER_CAPTIONS.get(key, key)}:"
                caption_cell.font = BOLD_FONT

        # Title line combining retailer and linesheet; exercises formula cloning
        retailer, linesheet = layout.header_cells.retailer, layout.header_cells.linesheet
        if retailer and linesheet:
            title_col = column_letter(max(ws[retailer].column, ws[linesheet].column) + 3)
            ws[f"{title_col}2"] = f'={retailer}&" / "&{linesheet}'

        for spec in layout.columns:
            self._header_cell(ws, layout.header_row, spec.column, spec.label)
            if spec.width:
                ws.column_dimensions[column_letter(spec.column)].width = spec.width

        # Keep line number and image visible while scrolling
        ws.freeze_panes = ws.cell(row=layout.product_region.start_row, column=3)

    def _layout_summary_sheet(self, ws: Worksheet):
        summary = self.layout.summary
        ws["A1"] = "ORDER SUMMARY"
        ws["A1"].font = TITLE_FONT
        if summary.retailer_cell and ws[summary.retailer_cell].column > 1:
            caption = ws[summary.retailer_cell].offset(column=-1)
            caption.value = "Retailer:"
            caption.font = BOLD_FONT

        for spec in summary.columns:
            self._header_cell(ws, summary.header_row, spec.column, spec.label)
            if spec.width:
                ws.column_dimensions[column_letter(spec.column)].width = spec.width

    @staticmethod
    def _header_cell(ws: Worksheet, row: int, column: int, label: str):
        cell = ws.cell(row=row, column=column, value=label)
        cell.font = BOLD_FONT
        cell.fill = HEADER_FILL
        cell.border = THIN_BORDER
        cell.alignment = CENTER_ALIGNMENT


def build_default_template(layout: Optional[LinesheetLayout] = None) -> Workbook:
    """Fresh workbook satisfying ``layout``; the permissive stand-in for a missing template."""
    return WorkbookBuilder(layout).build()
