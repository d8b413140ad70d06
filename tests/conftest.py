"""
Shared fixtures: a template workbook built on the fly, a template store on
disk, an image fetcher that never touches the network, and product factories.
"""
import io
from unittest.mock import MagicMock

import pytest
from PIL import Image as PILImage

from core.linesheet_generator.assets.image_fetcher import ImageFetcher
from core.linesheet_generator.builders.workbook_builder import WorkbookBuilder
from core.linesheet_generator.config.models import LinesheetLayout
from core.linesheet_generator.config.template_store import TemplateStore
from core.linesheet_generator.data.models import Catalog, Company, Product
from core.linesheet_generator.generate_linesheet import LinesheetAssembler


@pytest.fixture
def layout():
    return LinesheetLayout()


@pytest.fixture
def template_workbook(layout):
    return WorkbookBuilder(layout).build()


@pytest.fixture
def template_bytes(layout):
    return WorkbookBuilder(layout).to_bytes()


@pytest.fixture
def template_path(tmp_path, template_bytes):
    path = tmp_path / "B2B_Linesheet_BASE.xlsx"
    path.write_bytes(template_bytes)
    return path


@pytest.fixture
def template_store(template_path):
    return TemplateStore(template_path)


@pytest.fixture
def offline_fetcher():
    """ImageFetcher stand-in returning no images."""
    fetcher = MagicMock(spec=ImageFetcher)
    fetcher.fetch_many.side_effect = lambda refs: {ref: None for ref in refs}
    return fetcher


@pytest.fixture
def assembler(template_store, offline_fetcher):
    return LinesheetAssembler(template_store, image_fetcher=offline_fetcher)


@pytest.fixture
def company():
    return Company(name="Acme Co", metadata={"id": "gid://shopify/Company/1"})


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    PILImage.new("RGB", (400, 300), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def make_product(**overrides):
    data = {
        "name": "Canvas Low Top",
        "styleNumber": "CLT-001",
        "color": "Off-White",
        "colorCode": "OW",
        "season": "FW25",
        "evergreen": "Yes",
        "countryOfOrigin": "BR",
        "fabrication": "Canvas",
        "materialComposition": "100% cotton",
        "category": "Footwear",
        "subcategory": "Sneakers",
        "sizeBreak": "3",
        "image": "/api/placeholder/120/120",
        "wholesalePrice": 40,
        "suggRetailPrice": 80,
    }
    data.update(overrides)
    return Product.model_validate(data)


def make_catalog(name="FW25", products=None, **overrides):
    data = {"id": f"gid://shopify/Catalog/{name.replace(' ', '-')}", "name": name}
    data.update(overrides)
    catalog = Catalog.model_validate(data)
    catalog.products = list(products) if products is not None else [make_product()]
    return catalog
