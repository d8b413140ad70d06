"""
Route tests through FastAPI's TestClient with the assembler and commerce
client replaced by test doubles.
"""
import io
import zipfile
from unittest.mock import MagicMock

import openpyxl
import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.routers.linesheet import get_assembler, get_commerce_client
from core.commerce_client.client import CommerceClient
from core.linesheet_generator.config.template_store import TemplateStore
from core.linesheet_generator.errors import UpstreamDataError
from core.linesheet_generator.generate_linesheet import LinesheetAssembler


def _payload(*names, output_type="combined"):
    return {
        "company": {"name": "Acme Co"},
        "catalogIds": [f"gid://shopify/Catalog/{i}" for i, _ in enumerate(names, 1)],
        "catalogs": [
            {
                "id": f"gid://shopify/Catalog/{i}",
                "name": name,
                "products": [{"name": "Canvas Low Top", "sizeBreak": "3", "wholesalePrice": 40,
                              "suggRetailPrice": 80, "image": "/api/placeholder/120/120"}],
            }
            for i, name in enumerate(names, 1)
        ],
        "outputType": output_type,
    }


@pytest.fixture
def commerce_client():
    return MagicMock(spec=CommerceClient)


@pytest.fixture
def client(assembler, commerce_client):
    app.dependency_overrides[get_assembler] = lambda: assembler
    app.dependency_overrides[get_commerce_client] = lambda: commerce_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root_and_health(client):
    assert client.get("/").text == "Linesheet Generator API is running"
    assert client.get("/api/health").json() == {"status": "ok"}


def test_generate_combined_returns_xlsx(client):
    response = client.post("/api/generate-linesheet", json=_payload("FW25"))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")
    assert response.headers["content-disposition"] == 'attachment; filename="Acme_Co_FW25.xlsx"'
    wb = openpyxl.load_workbook(io.BytesIO(response.content))
    assert wb.sheetnames == ["FW25", "Order Summary"]


def test_generate_separate_returns_zip(client):
    response = client.post("/api/generate-linesheet", json=_payload("FW25 Footwear", "FW25 Apparel",
                                                                    output_type="separate"))

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert 'filename="Acme_Co_Linesheets.zip"' in response.headers["content-disposition"]
    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        assert archive.namelist() == ["Acme_Co_FW25_Footwear.xlsx", "Acme_Co_FW25_Apparel.xlsx"]


def test_separate_with_one_catalog_returns_xlsx(client):
    response = client.post("/api/generate-linesheet", json=_payload("FW25", output_type="separate"))

    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="Acme_Co_FW25.xlsx"'


@pytest.mark.parametrize("payload", [
    {"company": {"name": "Acme Co"}, "catalogs": []},
    {"company": {"name": "Acme Co"}},
    {"catalogs": [{"name": "FW25"}]},
])
def test_invalid_input_is_400(client, payload):
    response = client.post("/api/generate-linesheet", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"


def test_unknown_output_type_is_400(client):
    response = client.post("/api/generate-linesheet", json=_payload("FW25", output_type="zipped"))

    assert response.status_code == 400
    assert "outputType" in response.json()["message"]


def test_missing_template_is_configuration_error(client, tmp_path, offline_fetcher):
    broken = LinesheetAssembler(TemplateStore(tmp_path / "missing.xlsx"), image_fetcher=offline_fetcher)
    app.dependency_overrides[get_assembler] = lambda: broken

    response = client.post("/api/generate-linesheet", json=_payload("FW25"))

    assert response.status_code == 500
    assert response.json()["error"] == "configuration_error"


def test_catalogs_route_passes_location_id(client, commerce_client):
    commerce_client.fetch_location_catalogs.return_value = [{"id": "gid://shopify/Catalog/9001", "name": "FW25"}]

    response = client.get("/api/location/1001/catalogs")

    assert response.status_code == 200
    assert response.json()[0]["name"] == "FW25"
    commerce_client.fetch_location_catalogs.assert_called_once_with("1001")


def test_upstream_failure_is_502(client, commerce_client):
    commerce_client.fetch_location_b2b_data.side_effect = UpstreamDataError("GraphQL errors: boom")

    response = client.get("/api/location/1001/b2b-data")

    assert response.status_code == 502
    assert response.json() == {"error": "upstream_data_error", "message": "GraphQL errors: boom"}
