"""
Centralized definition of reusable style objects for the linesheet generator.
"""

from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

# --- Border Styles ---
THIN_SIDE = Side(border_style="thin", color="000000")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)

# --- Alignment Styles ---
CENTER_ALIGNMENT = Alignment(horizontal='center', vertical='center', wrap_text=True)
LEFT_ALIGNMENT = Alignment(horizontal='left', vertical='center', wrap_text=True)

# --- Font Styles ---
BOLD_FONT = Font(bold=True)
TITLE_FONT = Font(bold=True, size=14)

# --- Fills ---
HEADER_FILL = PatternFill(fill_type="solid", start_color="D9D9D9", end_color="D9D9D9")

# --- Constants for Number Formats ---
FORMAT_CURRENCY = '"$"#,##0.00'
FORMAT_INTEGER = '#,##0'
FORMAT_DATE = 'mm/dd/yyyy'

# --- Dimensions ---
PRODUCT_ROW_HEIGHT = 80
DEFAULT_COLUMN_WIDTH = 14
