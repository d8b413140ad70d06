# linesheet_generator/builders/product_row_writer.py
import copy
import io
import logging
from typing import Dict, List, Optional, Sequence

from openpyxl.comments import Comment
from openpyxl.drawing.image import Image as XLImage
from openpyxl.drawing.spreadsheet_drawing import AnchorMarker, OneCellAnchor
from openpyxl.drawing.xdr import XDRPositiveSize2D
from openpyxl.utils.units import pixels_to_EMU
from openpyxl.worksheet.worksheet import Worksheet
from PIL import Image as PILImage

from ..assets.image_fetcher import ImageFetcher
from ..config.models import LinesheetLayout
from ..data.models import Product
from ..data.size_breaks import size_labels
from ..errors import PartialProductError
from ..styling.style_config import (
    BOLD_FONT, CENTER_ALIGNMENT, DEFAULT_COLUMN_WIDTH, FORMAT_CURRENCY, FORMAT_INTEGER, HEADER_FILL,
    LEFT_ALIGNMENT, THIN_BORDER,
)
from ..utils.formula_utils import column_letter, total_formula, units_formula
from ..utils.generation_session import GenerationSession

logger = logging.getLogger(__name__)

TRAILING_HEADERS = ("Units", "Total Wholesale", "Total Retail")
IMAGE_PADDING_PX = 6
PRICE_KEYS = ("wholesale_price", "sugg_retail_price")


def _attribute_values(product: Product, line_no: int, size_break: str) -> Dict[str, object]:
    return {
        "line_no": line_no,
        "name": product.name,
        "style_number": product.styleNumber,
        "color": product.color,
        "color_code": product.colorCode,
        "season": product.season,
        "evergreen": product.evergreen_display,
        "country_of_origin": product.countryOfOrigin,
        "fabrication": product.fabrication,
        "material_composition": product.materialComposition,
        "category": product.category,
        "subcategory": product.subcategory,
        "size_break": size_break,
        "wholesale_price": product.wholesalePrice,
        "sugg_retail_price": product.suggRetailPrice,
    }


class ProductRowWriter:
    """
    Writes one row per product into the product region of a catalog sheet.

    Each row carries the product attributes, one blank quantity cell per size
    of its size break, and Units / Total Wholesale / Total Retail formulas.
    A failing product is recorded and skipped; the others are still written.
    """

    def __init__(self, ws: Worksheet, layout: LinesheetLayout,
                 image_bytes: Optional[Dict[str, Optional[bytes]]] = None,
                 session: Optional[GenerationSession] = None,
                 default_size_break: str = "",
                 catalog_name: str = ""):
        """
        Args:
            ws: Catalog sheet (already cloned from the template)
            layout: Column/region layout
            image_bytes: Prefetched images keyed by product image ref
            session: Generation session recording skipped products and missing images
            default_size_break: Size break used for products that have none
            catalog_name: Used in log and session messages
        """
        self.ws = ws
        self.layout = layout
        self.image_bytes = image_bytes or {}
        self.session = session
        self.default_size_break = default_size_break
        self.catalog_name = catalog_name or ws.title
        self.columns = layout.column_map()

    def size_break_for(self, product: Product) -> str:
        """Size break the row is written with; products without one get the default."""
        return product.sizeBreak or self.default_size_break

    def size_labels_for(self, product: Product) -> List[str]:
        return size_labels(self.size_break_for(product))

    def write(self, products: Sequence[Product]) -> int:
        """
        Writes the header size labels and all product rows.

        Returns:
            Number of product rows written successfully.
        """
        region = self.layout.product_region
        if len(products) > region.row_count:
            logger.warning(
                f"'{self.catalog_name}' has {len(products)} products, more than the "
                f"{region.row_count}-row product region; extra rows extend past it"
            )

        self.write_header(products)

        written = 0
        for index, product in enumerate(products):
            row = region.start_row + index
            try:
                self._write_row(row, index, product)
                written += 1
            except Exception as e:
                failure = PartialProductError(str(e), row=row, product_name=product.name)
                if self.session:
                    self.session.log_product_failure(self.catalog_name, row, product.name, failure)
                else:
                    logger.warning(f"Product '{product.name}' (row {row}) skipped: {e}")
        return written

    def write_header(self, products: Sequence[Product]) -> List[str]:
        """
        Writes size labels plus Units/Total headers into the header row.

        Uses the labels shared by every product, or the widest size break's
        labels when the catalog mixes size breaks.

        Returns:
            The size labels written.
        """
        layout = self.layout
        header_row = layout.header_row
        first = layout.first_size_column

        distinct = {tuple(self.size_labels_for(p)) for p in products}
        labels = list(max(distinct, key=len)) if distinct else []
        if len(distinct) > 1:
            logger.debug(f"'{self.catalog_name}' mixes {len(distinct)} size breaks; header shows the widest")

        style_source = self.ws.cell(row=header_row, column=layout.fixed_column_count)
        for col in range(first, layout.product_region.column_count + 1):
            self.ws.cell(row=header_row, column=col).value = None

        for offset, text in enumerate(labels + list(TRAILING_HEADERS)):
            cell = self.ws.cell(row=header_row, column=first + offset, value=text)
            self._copy_header_style(style_source, cell)
            width = layout.size_column_width if offset < len(labels) else 14
            self.ws.column_dimensions[column_letter(first + offset)].width = width
        return labels

    @staticmethod
    def _copy_header_style(source, target):
        if source.has_style:
            target.font = copy.copy(source.font)
            target.fill = copy.copy(source.fill)
            target.border = copy.copy(source.border)
            target.alignment = copy.copy(source.alignment)
        else:
            target.font = BOLD_FONT
            target.fill = HEADER_FILL
            target.border = THIN_BORDER
            target.alignment = CENTER_ALIGNMENT

    def _clear_row(self, row: int):
        for col in range(1, self.layout.product_region.column_count + 1):
            cell = self.ws.cell(row=row, column=col)
            cell.value = None
            cell.comment = None

    def _write_row(self, row: int, index: int, product: Product):
        self._clear_row(row)
        self.ws.row_dimensions[row].height = self.layout.row_height

        for key, value in _attribute_values(product, index + 1, self.size_break_for(product)).items():
            col = self.columns.get(key)
            if col is None:
                continue
            cell = self.ws.cell(row=row, column=col, value=value)
            if key in PRICE_KEYS:
                cell.number_format = FORMAT_CURRENCY
                cell.alignment = CENTER_ALIGNMENT
            elif key in ("line_no", "size_break"):
                cell.alignment = CENTER_ALIGNMENT
            else:
                cell.alignment = LEFT_ALIGNMENT

        labels = self.size_labels_for(product)
        first = self.layout.first_size_column
        for offset, label in enumerate(labels):
            cell = self.ws.cell(row=row, column=first + offset)
            cell.alignment = CENTER_ALIGNMENT
            cell.border = THIN_BORDER
            comment = Comment(label, "Size")
            comment.width = 100
            comment.height = 20
            cell.comment = comment

        units_col = first + len(labels)
        units = self.ws.cell(row=row, column=units_col, value=units_formula(row, first, len(labels)))
        units.number_format = FORMAT_INTEGER
        units.alignment = CENTER_ALIGNMENT

        for offset, price_key in enumerate(PRICE_KEYS, start=1):
            price_col = self.columns.get(price_key)
            if price_col is None:
                continue
            total = self.ws.cell(row=row, column=units_col + offset, value=total_formula(row, units_col, price_col))
            total.number_format = FORMAT_CURRENCY
            total.alignment = CENTER_ALIGNMENT

        self._embed_image(row, product)

    def _embed_image(self, row: int, product: Product):
        image_col = self.columns.get("image")
        if image_col is None or ImageFetcher.is_placeholder(product.image):
            return

        data = self.image_bytes.get(product.image)
        if not data:
            if self.session:
                self.session.log_missing_image(product.name, product.image)
            return

        try:
            add_image_to_cell(self.ws, row, image_col, data)
        except (OSError, ValueError) as e:
            # Undecodable bytes leave the cell empty like a failed fetch
            logger.warning(f"Image for '{product.name}' could not be decoded: {e}")
            if self.session:
                self.session.log_missing_image(product.name, product.image)


def _cell_size_pixels(ws: Worksheet, row: int, col: int):
    width_chars = ws.column_dimensions[column_letter(col)].width or DEFAULT_COLUMN_WIDTH
    height_pt = ws.row_dimensions[row].height or 15
    return int(width_chars * 7 + 5), int(height_pt * 96 / 72)


def add_image_to_cell(ws: Worksheet, row: int, col: int, img_bytes: bytes,
                      padding_px: int = IMAGE_PADDING_PX) -> XLImage:
    """
    Embeds ``img_bytes`` in a cell, scaled to fit while keeping the aspect ratio
    and centered with a one-cell anchor.
    """
    cell_w, cell_h = _cell_size_pixels(ws, row, col)
    max_w = max(1, cell_w - padding_px)
    max_h = max(1, cell_h - padding_px)

    pil = PILImage.open(io.BytesIO(img_bytes))
    pil.load()
    if pil.mode not in ("RGB", "RGBA"):
        pil = pil.convert("RGBA")
    w, h = pil.size

    scale = min(max_w / w, max_h / h, 1.0)
    new_w = max(1, int(w * scale))
    new_h = max(1, int(h * scale))
    if (new_w, new_h) != (w, h):
        pil = pil.resize((new_w, new_h))

    bio = io.BytesIO()
    pil.save(bio, format="PNG")
    bio.seek(0)

    img = XLImage(bio)
    img.width = new_w
    img.height = new_h

    x_off = max(0, (cell_w - new_w) // 2)
    y_off = max(0, (cell_h - new_h) // 2)
    marker = AnchorMarker(col=col - 1, colOff=pixels_to_EMU(x_off), row=row - 1, rowOff=pixels_to_EMU(y_off))
    img.anchor = OneCellAnchor(_from=marker, ext=XDRPositiveSize2D(pixels_to_EMU(new_w), pixels_to_EMU(new_h)))
    ws.add_image(img)
    return img
