# core/commerce_client/client.py
"""
Commerce Client

Thin GraphQL client for the commerce platform's Admin API. Returns plain
dicts in the camelCase shape the linesheet models accept.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from core.linesheet_generator.errors import UpstreamDataError
from core.linesheet_generator.utils.math_utils import safe_float_convert

from . import mock_data
from .queries import (
    CATALOG_PRODUCTS_QUERY, COMPANY_LOCATION_QUERY, LOCATION_CATALOGS_QUERY, LOCATION_IN_CATALOG_QUERY,
    PRODUCT_METAFIELDS, PRODUCTS_BY_CATALOG_TAG_QUERY, catalog_search_filter,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = "/api/placeholder/120/120"
DEFAULT_TIMEOUT = 30.0
COLOR_OPTION_NAMES = ("color", "colorway")


def to_gid(value: Any, resource: str) -> str:
    """'123' -> 'gid://shopify/<resource>/123'; GIDs are returned unchanged."""
    text = str(value).strip()
    if text.startswith("gid://"):
        return text
    return f"gid://shopify/{resource}/{text}"


def numeric_id(value: Any) -> str:
    return str(value).rstrip("/").split("/")[-1]


def _metafield(node: Dict[str, Any], alias: str) -> str:
    field = node.get(alias) or {}
    return field.get("value") or ""


def _edges(container: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not container:
        return []
    return [edge.get("node") or {} for edge in container.get("edges") or []]


def format_product(node: Dict[str, Any], retail_from_compare_at: bool = False) -> Dict[str, Any]:
    """
    Flattens a product node into the linesheet product shape.

    Prices come from the first variant. The main query uses the variant price
    for both prices; the tag fallback uses compareAtPrice as retail.
    """
    variants = _edges(node.get("variants"))
    wholesale = retail = 0.0
    country = ""
    if variants:
        first = variants[0]
        wholesale = safe_float_convert(first.get("price"))
        if retail_from_compare_at:
            retail = safe_float_convert(first.get("compareAtPrice")) or wholesale
        else:
            retail = wholesale
        country = (first.get("inventoryItem") or {}).get("countryCodeOfOrigin") or ""

    color = ""
    for variant in variants:
        for option in variant.get("selectedOptions") or []:
            if str(option.get("name", "")).lower() in COLOR_OPTION_NAMES:
                color = option.get("value") or ""
                break
        if color:
            break

    product = {
        "id": node.get("id", ""),
        "name": node.get("title") or "",
        "image": (node.get("featuredImage") or {}).get("url") or PLACEHOLDER_IMAGE,
        "color": color,
        "countryOfOrigin": country,
        "wholesalePrice": wholesale,
        "suggRetailPrice": retail,
    }
    for alias in PRODUCT_METAFIELDS:
        product[alias] = _metafield(node, alias)

    product["evergreen"] = "Yes" if product["evergreen"].lower() == "true" else "No"
    if retail_from_compare_at and not product["category"]:
        product["category"] = node.get("productType") or ""
    return product


class CommerceClient:
    """
    Wraps the Admin GraphQL endpoint. With ``mock=True`` every call returns
    fixed sample data instead (logged as a warning on each call).
    """

    def __init__(self, store_url: str = "", api_token: str = "", api_version: str = "2024-01",
                 session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT,
                 mock: bool = False):
        self.store_url = (store_url or "").rstrip("/")
        self.api_token = api_token
        self.api_version = api_version
        self.session = session or requests.Session()
        self.timeout = timeout
        self.mock = mock

        if not mock and not (self.store_url and self.api_token):
            logger.error("Commerce credentials missing: set SHOPIFY_STORE_URL and SHOPIFY_ADMIN_API_TOKEN")

    @classmethod
    def from_config(cls) -> "CommerceClient":
        from core.system_config import sys_config
        return cls(
            store_url=sys_config.shopify_store_url,
            api_token=sys_config.shopify_api_token,
            api_version=sys_config.shopify_api_version,
            mock=sys_config.mock_data,
        )

    @property
    def graphql_url(self) -> str:
        return f"{self.store_url}/admin/api/{self.api_version}/graphql.json"

    def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Runs a GraphQL document and returns its ``data`` object.

        Raises:
            UpstreamDataError: on transport failures, non-2xx responses,
                GraphQL ``errors`` or a payload without ``data``.
        """
        if not (self.store_url and self.api_token):
            raise UpstreamDataError("Commerce API credentials are not configured")

        try:
            response = self.session.post(
                self.graphql_url,
                json={"query": query, "variables": variables or {}},
                headers={"Content-Type": "application/json", "X-Shopify-Access-Token": self.api_token},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise UpstreamDataError(f"Commerce API request failed: {e}") from e
        except ValueError as e:
            raise UpstreamDataError(f"Commerce API returned invalid JSON: {e}") from e

        if payload.get("errors"):
            raise UpstreamDataError(f"GraphQL errors: {payload['errors']}")
        data = payload.get("data")
        if data is None:
            raise UpstreamDataError("Commerce API response has no data")
        return data

    # --- Locations ---

    def fetch_company_location(self, location_id: str) -> Dict[str, Any]:
        if self.mock:
            return mock_data.mock_company_location(location_id)

        gid = to_gid(location_id, "CompanyLocation")
        logger.info(f"Fetching company location: {gid}")
        location = self.execute(COMPANY_LOCATION_QUERY, {"locationId": gid}).get("companyLocation")
        if not location:
            raise UpstreamDataError(f"Location not found: {gid}")

        company = location.get("company") or {}
        customer = (company.get("mainContact") or {}).get("customer") or {}
        contact = {k: customer.get(k) or "" for k in ("firstName", "lastName", "email", "phone")} if customer else {}
        address = location.get("shippingAddress") or {}

        return {
            "location": {
                "id": location.get("id"),
                "name": location.get("name"),
                "currency": location.get("currency"),
                "createdAt": location.get("createdAt"),
                "updatedAt": location.get("updatedAt"),
                "address": {k: address.get(k) or "" for k in
                            ("address1", "address2", "city", "province", "zip", "country")},
            },
            "company": {
                "id": company.get("id") or "",
                "name": company.get("name") or "",
                "externalId": company.get("externalId") or "",
                "contact": contact,
            },
        }

    def fetch_location_catalogs(self, location_id: str) -> List[Dict[str, Any]]:
        if self.mock:
            return mock_data.mock_location_catalogs(location_id)

        gid = to_gid(location_id, "CompanyLocation")
        logger.info(f"Fetching catalogs for company location: {gid}")
        location = self.execute(LOCATION_CATALOGS_QUERY, {"locationId": gid}).get("companyLocation") or {}
        catalogs = _edges(location.get("catalogs"))
        if not catalogs:
            logger.warning(f"No catalogs found for location: {gid}")

        return [
            {
                "id": c.get("id"),
                "name": c.get("title"),
                "status": c.get("status"),
                "priceListId": (c.get("priceList") or {}).get("id"),
                "priceListName": (c.get("priceList") or {}).get("name"),
                "products": [],
            }
            for c in catalogs
        ]

    def check_location_has_catalog(self, location_id: str, catalog_id: str) -> bool:
        """False when the location is not in the catalog or the check itself fails."""
        if self.mock:
            return any(c["id"] == to_gid(catalog_id, "Catalog") for c in mock_data.mock_location_catalogs(location_id))

        variables = {"locationId": to_gid(location_id, "CompanyLocation"), "catalogId": to_gid(catalog_id, "Catalog")}
        try:
            data = self.execute(LOCATION_IN_CATALOG_QUERY, variables)
        except UpstreamDataError as e:
            logger.error(f"Error checking location catalog: {e}")
            return False
        return bool((data.get("companyLocation") or {}).get("inCatalog"))

    # --- Products ---

    def fetch_catalog_products(self, catalog_id: str) -> List[Dict[str, Any]]:
        if self.mock:
            return mock_data.mock_catalog_products(to_gid(catalog_id, "Catalog"))

        gid = to_gid(catalog_id, "Catalog")
        logger.info(f"Fetching products for catalog: {gid}")
        catalog = self.execute(CATALOG_PRODUCTS_QUERY, {"catalogId": gid}).get("catalog") or {}
        nodes = _edges((catalog.get("publication") or {}).get("products"))
        if not nodes:
            logger.warning(f"No products found for catalog: {gid}")
        return [format_product(node) for node in nodes]

    def fetch_products_alternative(self, catalog_id: str) -> List[Dict[str, Any]]:
        """Products tagged (or metafield-linked) with the catalog's numeric id."""
        search = catalog_search_filter(numeric_id(catalog_id))
        logger.info(f"Using alternative product query for catalog {catalog_id}: {search}")
        data = self.execute(PRODUCTS_BY_CATALOG_TAG_QUERY, {"search": search})
        nodes = _edges(data.get("products"))
        if not nodes:
            logger.warning(f"No products found using alternative query for catalog: {catalog_id}")
        return [format_product(node, retail_from_compare_at=True) for node in nodes]

    def fetch_location_b2b_data(self, location_id: str) -> Dict[str, Any]:
        """
        Location, company and all catalogs with their products.

        A catalog whose products cannot be fetched by either query keeps an
        empty product list; location/catalog failures propagate.
        """
        data = self.fetch_company_location(location_id)
        catalogs = self.fetch_location_catalogs(location_id)

        for catalog in catalogs:
            try:
                catalog["products"] = self.fetch_catalog_products(catalog["id"])
            except UpstreamDataError as e:
                logger.error(f"Error fetching products for catalog {catalog['name']}: {e}")
                try:
                    catalog["products"] = self.fetch_products_alternative(catalog["id"])
                except UpstreamDataError as alt_error:
                    logger.error(f"Alternative product fetch also failed for catalog {catalog['name']}: {alt_error}")
                    catalog["products"] = []
            logger.info(f"Fetched {len(catalog['products'])} products for catalog {catalog['name']}")

        return {**data, "catalogs": catalogs}
