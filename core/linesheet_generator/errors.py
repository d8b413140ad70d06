# core/linesheet_generator/errors.py
"""
Error taxonomy for linesheet generation.

Fatal errors (ConfigurationError, UpstreamDataError, SerializationError) propagate
to the route layer and become non-2xx responses. AssetFetchError and
PartialProductError are recovered where they happen and only show up as
degraded output.
"""
from typing import Optional


class LinesheetError(Exception):
    """Base class carrying a short machine-readable code for API responses."""

    code = "linesheet_error"
    http_status = 500

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ConfigurationError(LinesheetError):
    """Missing/unreadable template, missing required sheet or layout mismatch."""

    code = "configuration_error"
    http_status = 500


class UpstreamDataError(LinesheetError):
    """The commerce data source failed or returned an unusable payload."""

    code = "upstream_data_error"
    http_status = 502


class AssetFetchError(LinesheetError):
    """An image could not be retrieved. Never fatal."""

    code = "asset_fetch_error"


class SerializationError(LinesheetError):
    """The workbook could not be written, even after the formula-stripping retry."""

    code = "serialization_error"
    http_status = 500


class PartialProductError(LinesheetError):
    """A single product row failed; the remaining products are still written."""

    code = "partial_product_error"

    def __init__(self, message: str, row: int, product_name: str = ""):
        super().__init__(message)
        self.row = row
        self.product_name = product_name
