"""
End-to-end tests for LinesheetAssembler and the generate() entry point.
"""
import io
from unittest.mock import patch

import openpyxl
import pytest
from openpyxl.worksheet.formula import ArrayFormula

from conftest import make_catalog, make_product
from core.linesheet_generator.config.template_store import TemplateStore
from core.linesheet_generator.errors import ConfigurationError, SerializationError
from core.linesheet_generator.generate_linesheet import (
    LinesheetAssembler, default_assembler, generate, get_image_fetcher, output_filename,
)


def _load(buffer):
    return openpyxl.load_workbook(io.BytesIO(buffer))


class TestCombinedOutput:

    def test_single_catalog_filename_and_sheets(self, assembler, company):
        result = assembler.build(company, [make_catalog("FW25")], "combined")

        assert result.filename == "Acme_Co_FW25.xlsx"
        assert result.buffer
        wb = _load(result.buffer)
        assert wb.sheetnames == ["FW25", "Order Summary"]

    def test_multi_catalog_filename_and_sheet_order(self, assembler, company):
        result = assembler.build(company, [make_catalog("FW25 Footwear"), make_catalog("FW25 Apparel")])

        assert result.filename == "Acme_Co_Linesheet.xlsx"
        wb = _load(result.buffer)
        assert wb.sheetnames == ["FW25 Footwear", "FW25 Apparel", "Order Summary"]
        assert "Winter 25" not in wb.sheetnames

    def test_catalog_may_reuse_template_sheet_title(self, assembler, company):
        result = assembler.build(company, [make_catalog("Winter 25")])
        assert _load(result.buffer).sheetnames == ["Winter 25", "Order Summary"]

    def test_duplicate_catalog_names_get_suffix(self, assembler, company):
        result = assembler.build(company, [make_catalog("FW25"), make_catalog("FW25")])
        assert _load(result.buffer).sheetnames == ["FW25", "FW25 (2)", "Order Summary"]

    def test_written_sheet_contents(self, assembler, company):
        catalog = make_catalog("FW25", [make_product(sizeBreak="3"), make_product(name="Tee", sizeBreak="4")])
        ws = _load(assembler.build(company, [catalog]).buffer)["FW25"]

        assert ws["B2"].value == "Acme Co"
        assert ws["B3"].value == "FW25"
        assert ws["C7"].value == "Canvas Low Top"
        assert ws["W7"].value == "=SUM(Q7:V7)"
        assert ws["X7"].value == "=W7*O7"
        assert ws["Y7"].value == "=W7*P7"
        assert ws["R8"].value == "=SUM(Q8:Q8)"
        assert ws["Q6"].value == "XS"
        assert ws["W6"].value == "Units"

    def test_every_formula_is_a_plain_string(self, assembler, company):
        wb = _load(assembler.build(company, [make_catalog("FW25")]).buffer)
        for ws in wb.worksheets:
            for row in ws.iter_rows():
                for cell in row:
                    assert not isinstance(cell.value, ArrayFormula)

    def test_summary_sheet_is_filled(self, assembler, company):
        wb = _load(assembler.build(company, [make_catalog("FW25")]).buffer)
        summary = wb["Order Summary"]
        assert summary["A6"].value == "FW25"
        assert summary["A7"].value == "Grand Total"

    def test_catalog_without_products_gives_header_only_sheet(self, assembler, company):
        ws = _load(assembler.build(company, [make_catalog("FW25", products=[])]).buffer)["FW25"]

        assert ws.max_row == 6
        assert ws["B3"].value == "FW25"
        assert ws["Q6"].value == "Units"
        assert ws["C7"].value is None

    def test_one_row_per_product(self, assembler, company):
        products = [make_product(name=f"Style {i}") for i in range(1, 4)]
        ws = _load(assembler.build(company, [make_catalog("FW25", products)]).buffer)["FW25"]

        assert ws.max_row == 9
        assert [ws.cell(row=r, column=1).value for r in (7, 8, 9)] == [1, 2, 3]
        assert [ws.cell(row=r, column=3).value for r in (7, 8, 9)] == ["Style 1", "Style 2", "Style 3"]
        assert ws["C10"].value is None

    def test_images_are_prefetched_per_catalog(self, assembler, company, offline_fetcher):
        catalogs = [
            make_catalog("A", [make_product(image="https://cdn.example.com/a.jpg")]),
            make_catalog("B", [make_product(image="https://cdn.example.com/b.jpg")]),
        ]
        assembler.build(company, catalogs)

        assert offline_fetcher.fetch_many.call_count == 2
        assert list(offline_fetcher.fetch_many.call_args_list[0].args[0]) == ["https://cdn.example.com/a.jpg"]


class TestSeparateOutput:

    def test_two_catalogs_give_two_files(self, assembler, company):
        result = assembler.build(company, [make_catalog("FW25 Footwear"), make_catalog("FW25 Apparel")], "separate")

        assert result.output_type == "separate"
        assert [f.filename for f in result.files] == ["Acme_Co_FW25_Footwear.xlsx", "Acme_Co_FW25_Apparel.xlsx"]
        assert all(f.buffer for f in result.files)
        assert result.files[0].catalog_id == "gid://shopify/Catalog/FW25-Footwear"
        assert _load(result.files[1].buffer).sheetnames == ["FW25 Apparel", "Order Summary"]

    def test_single_catalog_behaves_like_combined(self, assembler, company):
        separate = assembler.build(company, [make_catalog("FW25")], "separate")
        combined = assembler.build(company, [make_catalog("FW25")], "combined")

        assert separate.output_type == "combined"
        assert separate.filename == combined.filename == "Acme_Co_FW25.xlsx"
        assert separate.files == []
        assert _load(separate.buffer).sheetnames == _load(combined.buffer).sheetnames


class TestInputValidation:

    def test_unknown_output_type(self, assembler, company):
        with pytest.raises(ValueError):
            assembler.build(company, [make_catalog()], "zipped")

    def test_empty_catalog_list(self, assembler, company):
        with pytest.raises(ValueError):
            assembler.build(company, [], "combined")


class TestTemplatePolicy:

    def test_strict_mode_fails_on_missing_template(self, tmp_path, company, offline_fetcher):
        assembler = LinesheetAssembler(TemplateStore(tmp_path / "missing.xlsx"), image_fetcher=offline_fetcher)
        with pytest.raises(ConfigurationError):
            assembler.build(company, [make_catalog()])

    def test_strict_mode_without_store(self, company, offline_fetcher):
        with pytest.raises(ConfigurationError):
            LinesheetAssembler(image_fetcher=offline_fetcher).build(company, [make_catalog()])

    def test_permissive_mode_generates_template(self, tmp_path, company, offline_fetcher):
        assembler = LinesheetAssembler(
            TemplateStore(tmp_path / "missing.xlsx"), image_fetcher=offline_fetcher, strict=False,
        )
        result = assembler.build(company, [make_catalog("FW25", [make_product(sizeBreak="")])])

        ws = _load(result.buffer)["FW25"]
        # Products without a size break fall back to size break 1 (20 sizes)
        assert ws["AK7"].value == "=SUM(Q7:AJ7)"
        assert ws["N7"].value == "1"


class TestSerializationRecovery:

    def test_retry_once_after_stripping_formulas(self, assembler, company):
        with patch.object(LinesheetAssembler, "_write_bytes", side_effect=[RuntimeError("bad formula"), b"ok"]) \
                as write_bytes, \
                patch("core.linesheet_generator.generate_linesheet.strip_formulas") as strip:
            result = assembler.build(company, [make_catalog()])

        assert result.buffer == b"ok"
        assert write_bytes.call_count == 2
        strip.assert_called_once()

    def test_stripping_replaces_formulas_with_cached_values(self, assembler, company):
        captured = {}

        def fail_then_capture(workbook):
            if not captured:
                captured["first"] = True
                raise RuntimeError("bad formula")
            captured["W7"] = workbook["FW25"]["W7"].value
            captured["A1"] = workbook["FW25"]["A1"].value
            return b"ok"

        with patch.object(LinesheetAssembler, "_write_bytes", side_effect=fail_then_capture):
            assembler.build(company, [make_catalog("FW25")])

        assert captured["W7"] is None
        assert captured["A1"] == "LINESHEET"

    def test_product_rows_never_take_template_cached_values(self, tmp_path, company, offline_fetcher,
                                                             template_workbook, layout):
        # Template sample row carries the same Units formula and a cached total
        template_workbook[layout.template_sheet]["W7"] = "=SUM(Q7:V7)"
        path = tmp_path / "sample_row.xlsx"
        template_workbook.save(path)
        assembler = LinesheetAssembler(TemplateStore(path), image_fetcher=offline_fetcher)

        cached = {"W7": 120, "X7": 4800, "E2": "Acme Co / Winter 25"}
        captured = {}

        def fail_then_capture(workbook):
            if not captured:
                captured["first"] = True
                raise RuntimeError("bad formula")
            for coordinate in ("W7", "X7", "E2"):
                captured[coordinate] = workbook["FW25"][coordinate].value
            return b"ok"

        with patch.object(TemplateStore, "cached_value", side_effect=lambda sheet, coord: cached.get(coord)), \
                patch.object(LinesheetAssembler, "_write_bytes", side_effect=fail_then_capture):
            assembler.build(company, [make_catalog("FW25", [make_product(sizeBreak="3")])])

        assert captured["W7"] is None
        assert captured["X7"] is None
        # Header formula copied unchanged from the template keeps its cached result
        assert captured["E2"] == "Acme Co / Winter 25"

    def test_generated_formula_outside_product_rows_is_not_recovered(self, template_store, template_workbook,
                                                                      layout):
        ws = template_workbook[layout.template_sheet]
        ws["E2"] = "=B2"
        lookup = LinesheetAssembler.recovery_lookup(
            template_workbook, template_store, {ws.title: layout.template_sheet}, {},
        )
        with patch.object(TemplateStore, "cached_value", return_value="stale"):
            assert lookup(ws.title, "E2") is None
            assert lookup("Unknown", "E2") is None

    def test_second_failure_raises(self, assembler, company):
        with patch.object(LinesheetAssembler, "_write_bytes", side_effect=RuntimeError("still bad")) as write_bytes:
            with pytest.raises(SerializationError):
                assembler.build(company, [make_catalog()])
        assert write_bytes.call_count == 2


class TestGenerateEntryPoint:

    def test_accepts_plain_dicts(self, assembler):
        payload_catalogs = [{
            "id": "gid://shopify/Catalog/1",
            "name": "FW25",
            "products": [{"name": "Shoe", "sizeBreak": 3, "wholesalePrice": "10.00", "suggRetailPrice": None}],
        }]
        result = generate({"name": "Acme Co"}, payload_catalogs, "combined", assembler=assembler)

        assert result.filename == "Acme_Co_FW25.xlsx"
        ws = _load(result.buffer)["FW25"]
        assert ws["O7"].value == 10
        assert ws["P7"].value == 0

    def test_default_assemblers_share_one_image_fetcher(self):
        first, second = default_assembler(), default_assembler()

        assert first is not second
        assert first.image_fetcher is second.image_fetcher is get_image_fetcher()

    def test_output_filename_helper(self, company):
        assert output_filename(company, [make_catalog("FW25")]) == "Acme_Co_FW25.xlsx"
        assert output_filename(company, [make_catalog("A"), make_catalog("B")]) == "Acme_Co_Linesheet.xlsx"
