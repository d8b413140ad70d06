"""
Fixed sample data served when LINESHEET_MOCK_DATA is enabled.

Development only; every accessor logs a warning so mock output can never be
mistaken for live data.
"""
import copy
import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

_LOCATION = {
    "location": {
        "id": "gid://shopify/CompanyLocation/1001",
        "name": "Mock Boutique - Downtown",
        "currency": "USD",
        "createdAt": "2024-01-15T10:00:00Z",
        "updatedAt": "2024-06-01T10:00:00Z",
        "address": {
            "address1": "100 Market St", "address2": "", "city": "San Francisco",
            "province": "CA", "zip": "94105", "country": "United States",
        },
    },
    "company": {
        "id": "gid://shopify/Company/501",
        "name": "Mock Boutique",
        "externalId": "MOCK-501",
        "contact": {"firstName": "Sam", "lastName": "Rivera", "email": "buyer@example.com", "phone": ""},
    },
}

_CATALOGS = [
    {"id": "gid://shopify/Catalog/9001", "name": "FW25 Footwear", "status": "ACTIVE",
     "priceListId": "gid://shopify/PriceList/1", "priceListName": "Wholesale USD", "products": []},
    {"id": "gid://shopify/Catalog/9002", "name": "FW25 Apparel", "status": "ACTIVE",
     "priceListId": "gid://shopify/PriceList/1", "priceListName": "Wholesale USD", "products": []},
]

_PRODUCTS = {
    "gid://shopify/Catalog/9001": [
        {"id": "gid://shopify/Product/1", "name": "Canvas Low Top", "image": "/api/placeholder/120/120",
         "styleNumber": "CLT-001", "color": "Off-White", "colorCode": "OW", "season": "FW25",
         "evergreen": "Yes", "countryOfOrigin": "BR", "fabrication": "Organic cotton canvas",
         "materialComposition": "100% organic cotton", "category": "Footwear", "subcategory": "Sneakers",
         "sizeBreak": "1", "wholesalePrice": 39.0, "suggRetailPrice": 79.0},
        {"id": "gid://shopify/Product/2", "name": "Suede High Top", "image": "/api/placeholder/120/120",
         "styleNumber": "SHT-014", "color": "Tobacco", "colorCode": "TB", "season": "FW25",
         "evergreen": "No", "countryOfOrigin": "BR", "fabrication": "Suede",
         "materialComposition": "Suede upper, rubber sole", "category": "Footwear", "subcategory": "Boots",
         "sizeBreak": "2", "wholesalePrice": 54.5, "suggRetailPrice": 109.0},
    ],
    "gid://shopify/Catalog/9002": [
        {"id": "gid://shopify/Product/3", "name": "Logo Hoodie", "image": "/api/placeholder/120/120",
         "styleNumber": "LHD-220", "color": "Heather Grey", "colorCode": "HG", "season": "FW25",
         "evergreen": "Yes", "countryOfOrigin": "PT", "fabrication": "Fleece",
         "materialComposition": "80% cotton, 20% polyester", "category": "Apparel", "subcategory": "Tops",
         "sizeBreak": "3", "wholesalePrice": 32.0, "suggRetailPrice": 68.0},
        {"id": "gid://shopify/Product/4", "name": "Crew Socks", "image": "/api/placeholder/120/120",
         "styleNumber": "CSK-003", "color": "Black", "colorCode": "BK", "season": "FW25",
         "evergreen": "Yes", "countryOfOrigin": "PT", "fabrication": "Knit",
         "materialComposition": "75% cotton, 23% nylon, 2% elastane", "category": "Accessories",
         "subcategory": "Socks", "sizeBreak": "4", "wholesalePrice": 6.0, "suggRetailPrice": 14.0},
    ],
}


def _warn(what: str):
    logger.warning(f"MOCK DATA: serving sample {what} (LINESHEET_MOCK_DATA is enabled)")


def mock_company_location(location_id: str) -> Dict[str, Any]:
    _warn(f"location for {location_id}")
    return copy.deepcopy(_LOCATION)


def mock_location_catalogs(location_id: str) -> List[Dict[str, Any]]:
    _warn(f"catalogs for {location_id}")
    return copy.deepcopy(_CATALOGS)


def mock_catalog_products(catalog_id: str) -> List[Dict[str, Any]]:
    _warn(f"products for {catalog_id}")
    return copy.deepcopy(_PRODUCTS.get(catalog_id, []))
