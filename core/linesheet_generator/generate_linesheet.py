# core/linesheet_generator/generate_linesheet.py
import argparse
import io
import json
import logging
import sys
import threading
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

if __name__ == "__main__":
    # Resolve project root (core/linesheet_generator/generate_linesheet.py)
    root_path = Path(__file__).resolve().parents[2]
    if str(root_path) not in sys.path:
        sys.path.insert(0, str(root_path))

from openpyxl import Workbook
from openpyxl.utils.cell import coordinate_from_string

from core.linesheet_generator.assets.image_fetcher import ImageFetcher
from core.linesheet_generator.builders.product_row_writer import ProductRowWriter
from core.linesheet_generator.builders.summary_sheet_builder import SummarySheetBuilder
from core.linesheet_generator.builders.template_sheet_cloner import TemplateSheetCloner
from core.linesheet_generator.builders.workbook_builder import build_default_template
from core.linesheet_generator.config.models import LinesheetLayout
from core.linesheet_generator.config.template_store import TemplateStore, get_template_store
from core.linesheet_generator.data.models import Catalog, Company, GeneratedFile, GenerationResult
from core.linesheet_generator.errors import ConfigurationError, SerializationError
from core.linesheet_generator.utils.bundler import bundle_filename, bundle_files
from core.linesheet_generator.utils.formula_utils import (
    CachedValueLookup, normalize_formula_value, normalize_workbook_formulas, strip_formulas,
)
from core.linesheet_generator.utils.generation_session import GenerationSession
from core.linesheet_generator.utils.text import sanitize_filename_part
from core.utils.snitch import snitch, start_trace

logger = logging.getLogger(__name__)

OUTPUT_TYPES = ("combined", "separate")
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
# Template sheet is renamed while cloning so catalogs may reuse its title
_SCRATCH_TITLE = "__linesheet_template__"

RowSpan = Tuple[int, int]


def output_filename(company: Company, catalogs: Sequence[Catalog]) -> str:
    """'{company}_{catalog}.xlsx' for one catalog, '{company}_Linesheet.xlsx' otherwise."""
    company_part = sanitize_filename_part(company.name, fallback="Company")
    if len(catalogs) == 1:
        return f"{company_part}_{sanitize_filename_part(catalogs[0].name, fallback='Catalog')}.xlsx"
    return f"{company_part}_Linesheet.xlsx"


class LinesheetAssembler:
    """
    Builds linesheet workbooks from the template: one sheet per catalog plus
    the order summary, or one workbook per catalog in separate mode.
    """

    def __init__(self, template_store: Optional[TemplateStore] = None,
                 layout: Optional[LinesheetLayout] = None,
                 image_fetcher: Optional[ImageFetcher] = None,
                 strict: bool = True):
        """
        Args:
            template_store: Source of the template workbook
            layout: Layout override; defaults to the store's layout
            image_fetcher: Fetcher for product images
            strict: Fail on a missing/invalid template instead of falling back
                to a generated one, and give products without a size break no
                size columns
        """
        self.template_store = template_store
        self._layout = layout
        self.image_fetcher = image_fetcher or ImageFetcher()
        self.strict = strict
        self.default_size_break = "" if strict else "1"

    # --- Template loading ---

    def _load_template(self, stack: ExitStack) -> Tuple[Workbook, LinesheetLayout, Optional[TemplateStore]]:
        """Returns the workbook, its layout, and the store it came from (None for a generated template)."""
        if self.template_store is not None:
            try:
                workbook = stack.enter_context(self.template_store.open())
                return workbook, self._layout or self.template_store.layout, self.template_store
            except ConfigurationError as e:
                if self.strict:
                    raise
                logger.warning(f"Template unavailable ({e}); using a generated template (dev mode)")
        elif self.strict:
            raise ConfigurationError("No linesheet template configured")

        layout = self._layout or LinesheetLayout()
        return build_default_template(layout), layout, None

    # --- Building ---

    def populate(self, workbook: Workbook, layout: LinesheetLayout, company: Company,
                 catalogs: Sequence[Catalog],
                 session: GenerationSession) -> Tuple[Dict[str, str], Dict[str, RowSpan]]:
        """
        Turns a freshly loaded template workbook into the finished linesheet.

        Returns:
            Mapping of output sheet title -> template sheet it came from, and
            mapping of catalog sheet title -> (first, last) row rewritten for products.
        """
        template_ws = workbook[layout.template_sheet]
        summary_ws = workbook[layout.summary.sheet_name]
        template_ws.title = _SCRATCH_TITLE

        cloner = TemplateSheetCloner(template_ws, layout)
        sources = {summary_ws.title: layout.summary.sheet_name}
        product_rows: Dict[str, RowSpan] = {}
        region = layout.product_region

        for catalog in catalogs:
            ws = cloner.clone(workbook, catalog.name)
            sources[ws.title] = layout.template_sheet
            product_rows[ws.title] = (
                region.start_row, max(region.end_row, region.start_row + len(catalog.products) - 1),
            )
            cloner.stamp_header(ws, company, catalog)
            cloner.clear_product_region(ws)

            # All network I/O for the sheet happens before any row is written
            images = self.image_fetcher.fetch_many([p.image for p in catalog.products])
            writer = ProductRowWriter(
                ws, layout, image_bytes=images, session=session,
                default_size_break=self.default_size_break, catalog_name=catalog.name,
            )
            session.log_success(catalog.name, writer.write(catalog.products))

        SummarySheetBuilder(summary_ws, layout).build(catalogs, company)

        workbook.remove(template_ws)
        workbook.move_sheet(summary_ws, offset=len(workbook.sheetnames) - 1 - workbook.index(summary_ws))
        workbook.active = 0
        normalize_workbook_formulas(workbook)
        return sources, product_rows

    @staticmethod
    def recovery_lookup(workbook: Workbook, store: TemplateStore, sources: Dict[str, str],
                        product_rows: Dict[str, RowSpan]) -> CachedValueLookup:
        """
        Cached-value lookup for the formula-stripping retry.

        A cell only gets the template's cached value when its formula is the
        template's own formula at that coordinate, copied unchanged. Product
        rows and any formula written during generation resolve to None.
        """
        def lookup(title: str, coordinate: str) -> Any:
            source = sources.get(title)
            if source is None:
                return None
            first, last = product_rows.get(title, (0, -1))
            if first <= coordinate_from_string(coordinate)[1] <= last:
                return None
            current = normalize_formula_value(workbook[title][coordinate].value)
            if current != store.template_formula(source, coordinate):
                return None
            return store.cached_value(source, coordinate)

        return lookup

    def build_file(self, company: Company, catalogs: Sequence[Catalog],
                   session: GenerationSession) -> GeneratedFile:
        """Builds and serializes one workbook holding ``catalogs``."""
        with ExitStack() as stack:
            workbook, layout, store = self._load_template(stack)
            sources, product_rows = self.populate(workbook, layout, company, catalogs, session)

            lookup = None
            if store is not None:
                lookup = self.recovery_lookup(workbook, store, sources, product_rows)

            buffer = self._serialize(workbook, lookup, session)

        catalog_id = catalogs[0].id if len(catalogs) == 1 else None
        return GeneratedFile(buffer=buffer, filename=output_filename(company, catalogs), catalog_id=catalog_id)

    def build(self, company: Company, catalogs: Sequence[Catalog],
              output_type: str = "combined") -> GenerationResult:
        """
        Args:
            company: Buyer the linesheet is for
            catalogs: Catalogs with their products, one sheet (or file) each
            output_type: "combined" or "separate"

        Raises:
            ValueError: for an unknown output type or an empty catalog list
            ConfigurationError: when the template cannot be used (strict mode)
            SerializationError: when the workbook cannot be written even after recovery
        """
        if output_type not in OUTPUT_TYPES:
            raise ValueError(f"Unknown output type '{output_type}', expected one of {OUTPUT_TYPES}")
        if not catalogs:
            raise ValueError("At least one catalog is required")

        with GenerationSession(company.name, output_type, len(catalogs)) as session:
            if output_type == "separate" and len(catalogs) > 1:
                files = []
                for catalog in catalogs:
                    try:
                        files.append(self.build_file(company, [catalog], session))
                    except Exception as e:
                        session.log_failure(catalog.name, e)
                        raise
                return GenerationResult(output_type="separate", files=files)

            generated = self.build_file(company, catalogs, session)
            return GenerationResult(output_type="combined", buffer=generated.buffer, filename=generated.filename)

    # --- Serialization ---

    @staticmethod
    def _write_bytes(workbook: Workbook) -> bytes:
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    def _serialize(self, workbook: Workbook, cached_values: Optional[CachedValueLookup],
                   session: GenerationSession) -> bytes:
        try:
            return self._write_bytes(workbook)
        except Exception as e:
            logger.error(f"Workbook serialization failed ({e}); retrying with formulas replaced by cached values")

        session.formula_recovery_used = True
        strip_formulas(workbook, cached_values)
        try:
            return self._write_bytes(workbook)
        except Exception as e:
            raise SerializationError(f"Workbook could not be serialized after formula recovery: {e}") from e


_default_fetcher: Optional[ImageFetcher] = None
_default_fetcher_lock = threading.Lock()


def get_image_fetcher() -> ImageFetcher:
    """Process-wide ImageFetcher; its requests session (and connection pool) is shared by all requests."""
    global _default_fetcher
    with _default_fetcher_lock:
        if _default_fetcher is None:
            from core.system_config import sys_config
            _default_fetcher = ImageFetcher(
                timeout=sys_config.image_timeout,
                size_suffix=sys_config.image_size_suffix,
                max_workers=sys_config.image_workers,
            )
        return _default_fetcher


def default_assembler() -> LinesheetAssembler:
    """Assembler wired from sys_config; a new one per request over the shared template store and fetcher."""
    from core.system_config import sys_config

    return LinesheetAssembler(get_template_store(), image_fetcher=get_image_fetcher(), strict=not sys_config.dev_mode)


@snitch
def generate(company: Union[Company, Dict[str, Any]], catalogs: Sequence[Union[Catalog, Dict[str, Any]]],
             output_type: str = "combined",
             assembler: Optional[LinesheetAssembler] = None) -> GenerationResult:
    """
    Single entry point: builds the linesheet(s) for ``company`` and ``catalogs``.

    Dicts are accepted for company and catalogs and validated into models.
    """
    company = company if isinstance(company, Company) else Company.model_validate(company)
    catalogs: List[Catalog] = [c if isinstance(c, Catalog) else Catalog.model_validate(c) for c in catalogs]
    assembler = assembler or default_assembler()
    return assembler.build(company, catalogs, output_type)


# --- CLI ---

def main():
    parser = argparse.ArgumentParser(description="Generate a linesheet workbook from a JSON payload.")
    parser.add_argument("input", help="JSON file with 'company', 'catalogs' and optional 'outputType'")
    parser.add_argument("-o", "--output-dir", default=".", help="Directory for the generated file(s)")
    parser.add_argument("--output-type", choices=OUTPUT_TYPES, help="Overrides the payload's outputType")
    args = parser.parse_args()

    from core.logger_config import setup_logging
    from core.system_config import sys_config

    setup_logging(log_dir=sys_config.run_log_dir, level=sys_config.log_level)
    start_trace(file_log=True)

    with open(args.input, "r", encoding="utf-8") as f:
        payload = json.load(f)

    output_type = args.output_type or payload.get("outputType") or "combined"
    result = generate(payload.get("company") or {}, payload.get("catalogs") or [], output_type)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    if result.is_bundle:
        target = output_dir / bundle_filename((payload.get("company") or {}).get("name", ""))
        target.write_bytes(bundle_files(result.files))
    else:
        target = output_dir / result.filename
        target.write_bytes(result.buffer)
    logger.info(f"Linesheet written to {target}")


if __name__ == "__main__":
    main()
