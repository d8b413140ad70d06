"""GraphQL documents for the commerce Admin API."""

METAFIELD_NAMESPACE = "cariuma-v2"

# Product attributes stored as metafields: alias -> metafield key
PRODUCT_METAFIELDS = {
    "styleNumber": "style_number",
    "colorCode": "color_code",
    "season": "season",
    "evergreen": "evergreen",
    "fabrication": "fabrication",
    "materialComposition": "material_composition",
    "category": "category",
    "subcategory": "subcategory",
    "sizeBreak": "size_break",
}

_METAFIELD_SELECTION = "\n".join(
    f'{alias}: metafield(namespace: "{METAFIELD_NAMESPACE}", key: "{key}") {{ value }}'
    for alias, key in PRODUCT_METAFIELDS.items()
)

_PRODUCT_FIELDS = f"""
    id
    title
    handle
    featuredImage {{ url }}
    productType
    {_METAFIELD_SELECTION}
    variants(first: 1) {{
      edges {{
        node {{
          id
          price
          compareAtPrice
          selectedOptions {{ name value }}
          inventoryItem {{ countryCodeOfOrigin }}
        }}
      }}
    }}
"""

COMPANY_LOCATION_QUERY = """
query GetCompanyLocation($locationId: ID!) {
  companyLocation(id: $locationId) {
    id
    name
    createdAt
    updatedAt
    currency
    company {
      id
      name
      externalId
      mainContact {
        id
        customer { firstName lastName email phone }
      }
    }
    shippingAddress { address1 address2 city province zip country }
  }
}
"""

LOCATION_CATALOGS_QUERY = """
query GetLocationCatalogs($locationId: ID!) {
  companyLocation(id: $locationId) {
    id
    name
    catalogs(first: 20) {
      edges {
        node {
          id
          title
          status
          priceList { id name }
        }
      }
    }
  }
}
"""

LOCATION_IN_CATALOG_QUERY = """
query CheckLocationCatalog($locationId: ID!, $catalogId: ID!) {
  companyLocation(id: $locationId) {
    inCatalog(catalogId: $catalogId)
  }
}
"""

CATALOG_PRODUCTS_QUERY = f"""
query GetCatalogProducts($catalogId: ID!) {{
  catalog(id: $catalogId) {{
    id
    title
    publication {{
      products(first: 100) {{
        edges {{
          node {{
            {_PRODUCT_FIELDS}
          }}
        }}
      }}
    }}
  }}
}}
"""

# Fallback when the catalog publication cannot be read: products tagged with the catalog
PRODUCTS_BY_CATALOG_TAG_QUERY = f"""
query GetProductsByCatalog($search: String!) {{
  products(first: 100, query: $search) {{
    edges {{
      node {{
        tags
        {_PRODUCT_FIELDS}
      }}
    }}
  }}
}}
"""


def catalog_search_filter(catalog_numeric_id: str) -> str:
    return f"tag:catalog-{catalog_numeric_id} OR metafield_key_value:catalog_id={catalog_numeric_id}"
