"""
Tests for the order summary sheet.
"""
import pytest

from conftest import make_catalog, make_product
from core.linesheet_generator.builders.summary_sheet_builder import SummarySheetBuilder, estimate_units
from core.linesheet_generator.data.models import Company
from core.linesheet_generator.utils.text import hash_string


@pytest.fixture
def summary_ws(template_workbook, layout):
    return template_workbook[layout.summary.sheet_name]


@pytest.fixture
def catalogs():
    return [
        make_catalog("FW25 Footwear", [
            make_product(category="Footwear", subcategory="Sneakers", wholesalePrice=40, suggRetailPrice=80),
            make_product(category="Footwear", subcategory="Sneakers", wholesalePrice=50, suggRetailPrice=100),
            make_product(category="Footwear", subcategory="Boots", wholesalePrice=70, suggRetailPrice=140),
        ]),
        make_catalog("FW25 Apparel", [
            make_product(category="", subcategory="", wholesalePrice=10, suggRetailPrice=25),
        ]),
    ]


def test_estimate_units_is_deterministic_and_bounded():
    units = estimate_units("FW25", "Footwear", "Sneakers")
    assert units == estimate_units("FW25", "Footwear", "Sneakers")
    assert units == 12 + hash_string("FW25|Footwear|Sneakers") % 60
    assert 12 <= units <= 71


def test_one_row_per_group_in_first_seen_order(summary_ws, layout, catalogs):
    rows = SummarySheetBuilder(summary_ws, layout).collect_rows(catalogs)

    assert [(r["catalog"], r["category"], r["subcategory"]) for r in rows] == [
        ("FW25 Footwear", "Footwear", "Sneakers"),
        ("FW25 Footwear", "Footwear", "Boots"),
        ("FW25 Apparel", "Uncategorized", ""),
    ]
    assert rows[0]["styles"] == 2


def test_totals_use_mean_group_price(summary_ws, layout, catalogs):
    rows = SummarySheetBuilder(summary_ws, layout).collect_rows(catalogs)
    sneakers = rows[0]
    units = estimate_units("FW25 Footwear", "Footwear", "Sneakers")

    assert sneakers["units"] == units
    assert sneakers["wholesale_total"] == round(units * 45, 2)
    assert sneakers["retail_total"] == round(units * 90, 2)


def test_build_writes_rows_and_grand_total(summary_ws, layout, catalogs):
    written = SummarySheetBuilder(summary_ws, layout).build(catalogs, Company(name="Acme Co"))

    assert written == 3
    assert summary_ws["B2"].value == "Acme Co"
    assert summary_ws["A6"].value == "FW25 Footwear"
    assert summary_ws["B8"].value == "Uncategorized"
    assert summary_ws["A9"].value == "Grand Total"
    assert summary_ws["D9"].value == 4
    assert summary_ws["E9"].value == sum(summary_ws.cell(row=r, column=5).value for r in (6, 7, 8))
    assert summary_ws["F6"].number_format == '"$"#,##0.00'


def test_build_clears_leftover_rows(summary_ws, layout):
    summary_ws["A20"] = "old sample"
    summary_ws["G12"] = 999
    SummarySheetBuilder(summary_ws, layout).build([make_catalog("FW25")])

    assert summary_ws["A20"].value is None
    assert summary_ws["G12"].value is None
    # Header row is untouched
    assert summary_ws["A5"].value == "Catalog"


def test_empty_catalogs_give_only_grand_total(summary_ws, layout):
    written = SummarySheetBuilder(summary_ws, layout).build([make_catalog("FW25", products=[])])
    assert written == 0
    assert summary_ws["A6"].value == "Grand Total"
    assert summary_ws["E6"].value == 0
