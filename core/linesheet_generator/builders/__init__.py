# linesheet_generator/builders/__init__.py
from .workbook_builder import WorkbookBuilder
from .template_sheet_cloner import TemplateSheetCloner
from .product_row_writer import ProductRowWriter
from .summary_sheet_builder import SummarySheetBuilder

__all__ = [
    'WorkbookBuilder',
    'TemplateSheetCloner',
    'ProductRowWriter',
    'SummarySheetBuilder',
]
