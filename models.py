"""Data models for the peptide price scraper."""

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors import ScrapeConfigError


class ScrapeConfig(BaseModel):
    """Validated selector configuration for one vendor.

    Built from the camelCase JSON stored on the vendor row.
    """

    model_config = ConfigDict(populate_by_name=True)

    product_selector: str = Field(alias="productSelector", min_length=1)
    name_selector: str = Field(alias="nameSelector", min_length=1)
    price_selector: str = Field(alias="priceSelector", min_length=1)
    search_url: Optional[str] = Field(default=None, alias="searchUrl")
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("product_selector", "name_selector", "price_selector", mode="before")
    @classmethod
    def _strip_selector(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @classmethod
    def from_raw(cls, raw: Optional[dict]) -> "ScrapeConfig":
        """Validate a raw scrape_config dict, raising ScrapeConfigError on failure."""
        try:
            return cls.model_validate(raw or {})
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            kinds = {err["type"] for err in e.errors()}
            if kinds <= {"missing", "string_too_short", "string_type"}:
                raise ScrapeConfigError(
                    f"Missing selector configuration: {', '.join(fields)}"
                ) from e
            raise ScrapeConfigError(f"Invalid scrape_config: {', '.join(fields)}") from e


class Vendor(BaseModel):
    id: int | str
    slug: str
    name: str
    website_url: str
    scrape_config: dict = Field(default_factory=dict)
    is_active: bool = True
    last_scraped_at: Optional[str] = None

    @field_validator("scrape_config", mode="before")
    @classmethod
    def _decode_config(cls, value: Any) -> Any:
        # SQLite stores the config as JSON text
        if value is None:
            return {}
        if isinstance(value, str):
            return json.loads(value) if value.strip() else {}
        return value

    @classmethod
    def from_row(cls, row: dict) -> "Vendor":
        """Validate a vendors table row, raising ScrapeConfigError on failure."""
        try:
            return cls.model_validate(row)
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ScrapeConfigError(f"Invalid vendor record: {details}") from e

    def selector_config(self) -> ScrapeConfig:
        return ScrapeConfig.from_raw(self.scrape_config)


@dataclass
class ScrapedProduct:
    name: str  # canonical peptide name
    price: float
    in_stock: bool = True
    url: Optional[str] = None
    original_name: Optional[str] = None
    quantity: Optional[float] = None  # in mg when unit == 'mg'
    unit: Optional[str] = None  # 'mg' | 'iu' | 'ml'
    price_per_mg: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ScrapeOutcome:
    products: list[ScrapedProduct] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class VendorResult:
    vendor: str
    found: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)
    status: str = "success"  # 'success' | 'partial' | 'failed'
    duration_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "vendor": self.vendor,
            "found": self.found,
            "updated": self.updated,
            "errors": self.errors,
        }
