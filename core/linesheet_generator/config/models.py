"""
Layout contract between the template workbook and the writers.

Every coordinate the writers touch is declared here instead of being spread
through the code as magic numbers. ``LinesheetLayout.validate_against`` checks
the contract against a loaded template once per load.
"""
import logging
from typing import Dict, List, Optional

from openpyxl import Workbook
from openpyxl.utils.cell import coordinate_from_string
from pydantic import BaseModel, Field, model_validator

from ..errors import ConfigurationError
from ..styling.style_config import PRODUCT_ROW_HEIGHT

logger = logging.getLogger(__name__)


class ColumnSpec(BaseModel):
    key: str
    column: int = Field(ge=1)
    label: str
    width: Optional[float] = None


DEFAULT_PRODUCT_COLUMNS: List[ColumnSpec] = [
    ColumnSpec(key="line_no", column=1, label="#", width=5),
    ColumnSpec(key="image", column=2, label="Image", width=16),
    ColumnSpec(key="name", column=3, label="Product Name", width=26),
    ColumnSpec(key="style_number", column=4, label="Style #", width=12),
    ColumnSpec(key="color", column=5, label="Color", width=14),
    ColumnSpec(key="color_code", column=6, label="Color Code", width=11),
    ColumnSpec(key="season", column=7, label="Season", width=10),
    ColumnSpec(key="evergreen", column=8, label="Evergreen", width=10),
    ColumnSpec(key="country_of_origin", column=9, label="Country of Origin", width=11),
    ColumnSpec(key="fabrication", column=10, label="Fabrication", width=16),
    ColumnSpec(key="material_composition", column=11, label="Material Composition", width=22),
    ColumnSpec(key="category", column=12, label="Category", width=14),
    ColumnSpec(key="subcategory", column=13, label="Subcategory", width=14),
    ColumnSpec(key="size_break", column=14, label="Size Break", width=9),
    ColumnSpec(key="wholesale_price", column=15, label="Wholesale Price", width=12),
    ColumnSpec(key="sugg_retail_price", column=16, label="Sugg. Retail Price", width=12),
]

DEFAULT_SUMMARY_COLUMNS: List[ColumnSpec] = [
    ColumnSpec(key="catalog", column=1, label="Catalog", width=22),
    ColumnSpec(key="category", column=2, label="Category", width=18),
    ColumnSpec(key="subcategory", column=3, label="Subcategory", width=18),
    ColumnSpec(key="styles", column=4, label="Styles", width=9),
    ColumnSpec(key="units", column=5, label="Units", width=9),
    ColumnSpec(key="wholesale_total", column=6, label="Wholesale Total", width=15),
    ColumnSpec(key="retail_total", column=7, label="Retail Total", width=15),
]


class ProductRegion(BaseModel):
    """Rectangle product rows are written into (and cleared from)."""
    start_row: int = Field(7, ge=1)
    row_count: int = Field(500, ge=1)
    column_count: int = Field(60, ge=1)

    @property
    def end_row(self) -> int:
        return self.start_row + self.row_count - 1


class HeaderCells(BaseModel):
    retailer: str = "B2"
    linesheet: str = "B3"
    start_ship: Optional[str] = "B4"
    complete_ship: Optional[str] = "B5"


class SummaryLayout(BaseModel):
    sheet_name: str = "Order Summary"
    retailer_cell: Optional[str] = "B2"
    header_row: int = Field(5, ge=1)
    data_start_row: int = Field(6, ge=1)
    columns: List[ColumnSpec] = Field(default_factory=lambda: [c.model_copy() for c in DEFAULT_SUMMARY_COLUMNS])

    def column_for(self, key: str) -> int:
        return _column_for(self.columns, key, self.sheet_name)


class LinesheetLayout(BaseModel):
    template_sheet: str = "Winter 25"
    header_row: int = Field(6, ge=1)
    header_cells: HeaderCells = Field(default_factory=HeaderCells)
    columns: List[ColumnSpec] = Field(default_factory=lambda: [c.model_copy() for c in DEFAULT_PRODUCT_COLUMNS])
    first_size_column: int = Field(17, ge=1)
    size_column_width: float = 9
    product_region: ProductRegion = Field(default_factory=ProductRegion)
    row_height: float = Field(PRODUCT_ROW_HEIGHT, gt=0)
    summary: SummaryLayout = Field(default_factory=SummaryLayout)

    @model_validator(mode="after")
    def _check_geometry(self) -> "LinesheetLayout":
        keys = [c.key for c in self.columns]
        if len(keys) != len(set(keys)):
            raise ValueError("Duplicate column keys in layout")
        widest = max((c.column for c in self.columns), default=0)
        if self.first_size_column <= widest:
            raise ValueError(
                f"first_size_column ({self.first_size_column}) must be right of the fixed columns (last: {widest})"
            )
        if self.product_region.start_row <= self.header_row:
            raise ValueError("Product region must start below the header row")
        if self.summary.data_start_row <= self.summary.header_row:
            raise ValueError("Summary data must start below the summary header row")
        return self

    @property
    def required_sheets(self) -> List[str]:
        return [self.template_sheet, self.summary.sheet_name]

    @property
    def fixed_column_count(self) -> int:
        return max(c.column for c in self.columns)

    def column_for(self, key: str) -> int:
        return _column_for(self.columns, key, self.template_sheet)

    def column_map(self) -> Dict[str, int]:
        return {c.key: c.column for c in self.columns}

    def validate_against(self, workbook: Workbook) -> None:
        """
        Fails fast when the template does not match this layout.

        Checks that the required sheets exist, that header cells are valid
        coordinates, and that every declared header label is present where
        expected (case/whitespace-insensitive).

        Raises:
            ConfigurationError: on the first mismatch found.
        """
        missing = [name for name in self.required_sheets if name not in workbook.sheetnames]
        if missing:
            raise ConfigurationError(f"Template is missing required sheet(s): {', '.join(missing)}")

        for coord in self.header_cells.model_dump().values():
            if coord:
                try:
                    coordinate_from_string(coord)
                except ValueError as e:
                    raise ConfigurationError(f"Invalid header cell coordinate '{coord}'") from e

        _check_labels(workbook[self.template_sheet], self.header_row, self.columns)
        _check_labels(workbook[self.summary.sheet_name], self.summary.header_row, self.summary.columns)
        logger.debug(f"Template layout validated for sheets {self.required_sheets}")


def _column_for(columns: List[ColumnSpec], key: str, sheet_name: str) -> int:
    for spec in columns:
        if spec.key == key:
            return spec.column
    raise KeyError(f"Layout for '{sheet_name}' has no column '{key}'")


def _normalize_label(value) -> str:
    return " ".join(str(value or "").split()).casefold()


def _check_labels(worksheet, header_row: int, columns: List[ColumnSpec]) -> None:
    mismatches = []
    for spec in columns:
        actual = worksheet.cell(row=header_row, column=spec.column).value
        if _normalize_label(actual) != _normalize_label(spec.label):
            mismatches.append(f"{spec.key}: expected '{spec.label}', found '{actual}'")
    if mismatches:
        raise ConfigurationError(
            f"Template sheet '{worksheet.title}' header row {header_row} does not match layout: "
            + "; ".join(mismatches)
        )
