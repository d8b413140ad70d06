"""
template_store.py

Process-wide, read-only access to the linesheet template.

The template file is read once and kept in memory as bytes; it is re-read only
when its modification time changes. Each request gets its own freshly parsed
workbook through ``TemplateStore.open()``, so no workbook object is ever shared
between requests.
"""

import io
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import openpyxl
from openpyxl import Workbook

from ..errors import ConfigurationError
from ..utils.formula_utils import is_formula, normalize_formula_value
from .layout_loader import LayoutConfigLoader
from .models import LinesheetLayout

logger = logging.getLogger(__name__)


class TemplateStore:
    """
    Holds the template bytes, its layout, and the template's cached formula values.
    """

    def __init__(self, template_path: Optional[Path] = None, layout: Optional[LinesheetLayout] = None,
                 data: Optional[bytes] = None):
        """
        Args:
            template_path: Path of the .xlsx template on disk
            layout: Explicit layout; when omitted it is resolved by LayoutConfigLoader
            data: In-memory template bytes (used instead of a path, e.g. in tests)
        """
        if template_path is None and data is None:
            raise ValueError("TemplateStore needs a template path or template bytes")

        self.template_path = Path(template_path) if template_path else None
        self._explicit_layout = layout
        self._layout: Optional[LinesheetLayout] = layout
        self._data: Optional[bytes] = data
        self._mtime: Optional[float] = None
        self._cached_values: Optional[Dict[str, Dict[str, Any]]] = None
        self._formulas: Optional[Dict[str, Dict[str, str]]] = None
        self._validated = False
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self.template_path.name if self.template_path else "<in-memory template>"

    @property
    def layout(self) -> LinesheetLayout:
        self.load()
        return self._layout

    def load(self) -> bytes:
        """
        Returns the template bytes, (re)reading the file when it changed on disk.

        Raises:
            ConfigurationError: if the file is missing, unreadable, not a workbook,
                or does not match the layout.
        """
        with self._lock:
            if self.template_path is not None:
                self._refresh_from_disk()
            if not self._validated:
                self._validate()
            return self._data

    def _refresh_from_disk(self) -> None:
        try:
            mtime = self.template_path.stat().st_mtime
        except OSError as e:
            raise ConfigurationError(f"Template not found: {self.template_path}") from e

        if self._data is not None and mtime == self._mtime:
            return

        if self._data is not None:
            logger.info(f"Template {self.name} changed on disk, reloading")
        try:
            self._data = self.template_path.read_bytes()
        except OSError as e:
            raise ConfigurationError(f"Could not read template {self.template_path}: {e}") from e

        self._mtime = mtime
        self._cached_values = None
        self._formulas = None
        self._validated = False
        if self._explicit_layout is None:
            self._layout = LayoutConfigLoader(self.template_path).load()
        logger.info(f"Loaded template {self.name} ({len(self._data)} bytes)")

    def _validate(self) -> None:
        if self._layout is None:
            self._layout = LinesheetLayout()
        workbook = self._parse(self._data)
        try:
            self._layout.validate_against(workbook)
        finally:
            workbook.close()
        self._validated = True

    def _parse(self, data: bytes, data_only: bool = False) -> Workbook:
        try:
            return openpyxl.load_workbook(io.BytesIO(data), data_only=data_only)
        except Exception as e:
            raise ConfigurationError(f"Template {self.name} is not a readable workbook: {e}") from e

    @contextmanager
    def open(self) -> Iterator[Workbook]:
        """Yields a fresh, request-scoped workbook parsed from the template."""
        workbook = self._parse(self.load())
        try:
            yield workbook
        finally:
            workbook.close()

    def cached_value(self, sheet_name: str, coordinate: str) -> Any:
        """
        Last value the spreadsheet application computed for a template cell.

        Only cells that were saved with a cached result have one; anything else is None.
        """
        self.load()
        with self._lock:
            if self._cached_values is None:
                workbook = self._parse(self._data, data_only=True)
                try:
                    self._cached_values = {
                        ws.title: {
                            cell.coordinate: cell.value
                            for row in ws.iter_rows() for cell in row
                            if cell.value is not None
                        }
                        for ws in workbook.worksheets
                    }
                finally:
                    workbook.close()
            return self._cached_values.get(sheet_name, {}).get(coordinate)

    def template_formula(self, sheet_name: str, coordinate: str) -> Optional[str]:
        """Formula text of a template cell (array formulas flattened), or None."""
        self.load()
        with self._lock:
            if self._formulas is None:
                workbook = self._parse(self._data)
                try:
                    self._formulas = {}
                    for ws in workbook.worksheets:
                        sheet_formulas = {}
                        for row in ws.iter_rows():
                            for cell in row:
                                value = normalize_formula_value(cell.value)
                                if is_formula(value):
                                    sheet_formulas[cell.coordinate] = value
                        self._formulas[ws.title] = sheet_formulas
                finally:
                    workbook.close()
            return self._formulas.get(sheet_name, {}).get(coordinate)


_default_store: Optional[TemplateStore] = None
_default_store_lock = threading.Lock()


def get_template_store() -> TemplateStore:
    """Accessor for the process-wide template store configured by sys_config."""
    global _default_store
    with _default_store_lock:
        if _default_store is None:
            from core.system_config import sys_config
            _default_store = TemplateStore(sys_config.template_path)
        return _default_store
