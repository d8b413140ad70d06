# core/linesheet_generator/config/layout_loader.py
"""
Layout Loader

Resolves the LinesheetLayout that belongs to a template. A template may ship
a sibling JSON file overriding any part of the default layout:

    templates/B2B_Linesheet_BASE.xlsx
    templates/B2B_Linesheet_BASE_layout.json   (optional)

The JSON mirrors LinesheetLayout, e.g.::

    {"template_sheet": "Spring 26", "product_region": {"start_row": 9}}

Absent keys keep their defaults.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..errors import ConfigurationError
from .models import LinesheetLayout

logger = logging.getLogger(__name__)


class LayoutConfigLoader:
    """
    Loads and validates the layout configuration sitting next to a template.
    """

    def __init__(self, template_path: Path):
        """
        Args:
            template_path: Path to the .xlsx template the layout describes
        """
        self.template_path = Path(template_path)
        self.raw_config: Dict[str, Any] = {}

    @property
    def layout_path(self) -> Path:
        return self.template_path.with_name(f"{self.template_path.stem}_layout.json")

    def load(self) -> LinesheetLayout:
        """
        Returns the template's layout, or the default layout when no sibling JSON exists.

        Raises:
            ConfigurationError: if the JSON exists but cannot be read or validated.
        """
        if not self.layout_path.exists():
            logger.debug(f"No layout override at {self.layout_path}, using default layout")
            return LinesheetLayout()

        logger.debug(f"Loading layout configuration from: {self.layout_path}")
        try:
            with open(self.layout_path, 'r', encoding='utf-8') as f:
                self.raw_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not read layout file {self.layout_path}: {e}") from e

        layout = parse_layout(self.raw_config)
        logger.info(f"Layout override loaded from {self.layout_path.name}")
        return layout


def parse_layout(data: Optional[Dict[str, Any]]) -> LinesheetLayout:
    """Builds a LinesheetLayout from a dict, converting validation errors to ConfigurationError."""
    try:
        return LinesheetLayout.model_validate(data or {})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid linesheet layout: {e}") from e
