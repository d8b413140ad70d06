from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import BaseModel, Field, field_validator

from ..utils.math_utils import safe_float_convert
from .size_breaks import normalize_size_break


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


class Product(BaseModel):
    """One product row of a linesheet. Wire names are camelCase."""
    name: str = ""
    styleNumber: str = Field("", alias="style_number")
    color: str = ""
    colorCode: str = Field("", alias="color_code")
    season: str = ""
    evergreen: str = ""
    countryOfOrigin: str = Field("", alias="country_of_origin")
    fabrication: str = ""
    materialComposition: str = Field("", alias="material_composition")
    category: str = ""
    subcategory: str = ""
    sizeBreak: str = Field("", alias="size_break")
    image: str = ""
    wholesalePrice: float = Field(0.0, alias="wholesale_price")
    suggRetailPrice: float = Field(0.0, alias="sugg_retail_price")

    class Config:
        populate_by_name = True

    @field_validator(
        "name", "styleNumber", "color", "colorCode", "season", "evergreen",
        "countryOfOrigin", "fabrication", "materialComposition", "category",
        "subcategory", "image", mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator("sizeBreak", mode="before")
    @classmethod
    def _coerce_size_break(cls, value: Any) -> str:
        return normalize_size_break(value)

    @field_validator("wholesalePrice", "suggRetailPrice", mode="before")
    @classmethod
    def _coerce_price(cls, value: Any) -> float:
        return safe_float_convert(value)

    @property
    def evergreen_display(self) -> str:
        """Evergreen flag as written to the sheet; blank means 'No'."""
        flag = self.evergreen.strip()
        if not flag:
            return "No"
        if flag.lower() == "true":
            return "Yes"
        if flag.lower() == "false":
            return "No"
        return flag


class Catalog(BaseModel):
    id: str = ""
    name: str = ""
    seasonYear: str = Field("", alias="season_year")
    startShip: str = Field("", alias="start_ship")
    completeShip: str = Field("", alias="complete_ship")
    products: List[Product] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    @field_validator("id", "name", "seasonYear", "startShip", "completeShip", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator("products", mode="before")
    @classmethod
    def _coerce_products(cls, value: Any) -> Any:
        return value or []


class Company(BaseModel):
    name: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _as_text(value)


class GeneratedFile(NamedTuple):
    """A serialized workbook ready for delivery."""
    buffer: bytes
    filename: str
    catalog_id: Optional[str] = None


class GenerationResult(BaseModel):
    """
    Result of one ``generate`` call.

    Single-workbook output sets ``buffer``/``filename``; separate output sets
    ``files`` (one per catalog) for the caller to bundle.
    """
    output_type: str = "combined"
    buffer: Optional[bytes] = None
    filename: Optional[str] = None
    files: List[GeneratedFile] = Field(default_factory=list)

    @property
    def is_bundle(self) -> bool:
        return self.output_type == "separate" and bool(self.files)
