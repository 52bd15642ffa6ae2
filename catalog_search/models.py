"""Pydantic models for request/response payloads."""
from __future__ import annotations

import hashlib
import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import settings

SORT_MODES = ("relevance", "price_low", "price_high", "rating", "newest", "popular", "name")
SEARCH_MODES = ("text", "semantic", "hybrid")
TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return None


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    items = value if isinstance(value, (list, tuple, set)) else [value]
    tokens: list[str] = []
    for item in items:
        if item is None:
            continue
        tokens.extend(part.strip() for part in str(item).split(","))
    return [token for token in dict.fromkeys(tokens) if token]


class SearchParams(BaseModel):
    """Normalised search request. Bad input is clamped, never rejected."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    query: str = ""
    page: int = 1
    limit: int = settings.default_page_size
    sort_by: str = Field("relevance", alias="sortBy")
    order: Literal["asc", "desc"] = "desc"

    category: list[str] = Field(default_factory=list)
    sub_category: list[str] = Field(default_factory=list, alias="subCategory")
    brand: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    flavors: list[str] = Field(default_factory=list)
    origin_country: list[str] = Field(default_factory=list, alias="originCountry")
    region: list[str] = Field(default_factory=list)
    type: list[str] = Field(default_factory=list)
    sub_type: list[str] = Field(default_factory=list, alias="subType")

    min_price: float | None = Field(None, alias="minPrice")
    max_price: float | None = Field(None, alias="maxPrice")
    min_abv: float | None = Field(None, alias="minAbv")
    max_abv: float | None = Field(None, alias="maxAbv")
    min_rating: float | None = Field(None, alias="minRating")

    is_alcoholic: bool | None = Field(None, alias="isAlcoholic")
    is_featured: bool | None = Field(None, alias="isFeatured")
    on_sale: bool = Field(False, alias="onSale")
    in_stock: bool = Field(True, alias="inStock")
    tenant_id: str | None = Field(None, alias="tenantId")

    search_mode: str = Field("hybrid", alias="searchMode")
    use_cache: bool = Field(True, alias="useCache")
    include_facets: bool = Field(True, alias="includeFacets")

    @field_validator("query", mode="before")
    @classmethod
    def _trim_query(cls, value: Any) -> str:
        return str(value).strip() if value is not None else ""

    @field_validator("page", mode="before")
    @classmethod
    def _clamp_page(cls, value: Any) -> int:
        page = _as_int(value)
        return max(1, page) if page is not None else 1

    @field_validator("limit", mode="before")
    @classmethod
    def _clamp_limit(cls, value: Any) -> int:
        limit = _as_int(value)
        if limit is None:
            limit = settings.default_page_size
        return min(settings.max_page_size, max(1, limit))

    @field_validator("sort_by", mode="before")
    @classmethod
    def _known_sort(cls, value: Any) -> str:
        return value if value in SORT_MODES else "relevance"

    @field_validator("order", mode="before")
    @classmethod
    def _known_order(cls, value: Any) -> str:
        return "asc" if value == "asc" else "desc"

    @field_validator(
        "category",
        "sub_category",
        "brand",
        "tags",
        "flavors",
        "origin_country",
        "region",
        "type",
        "sub_type",
        mode="before",
    )
    @classmethod
    def _split_lists(cls, value: Any) -> list[str]:
        return _as_list(value)

    @field_validator("min_price", "max_price", "min_abv", "max_abv", "min_rating", mode="before")
    @classmethod
    def _parse_number(cls, value: Any) -> float | None:
        return _as_float(value)

    @field_validator("is_alcoholic", "is_featured", mode="before")
    @classmethod
    def _parse_optional_flag(cls, value: Any) -> bool | None:
        return _as_bool(value)

    @field_validator("on_sale", mode="before")
    @classmethod
    def _parse_off_flag(cls, value: Any) -> bool:
        return bool(_as_bool(value))

    @field_validator("in_stock", "use_cache", "include_facets", mode="before")
    @classmethod
    def _parse_on_flag(cls, value: Any) -> bool:
        return _as_bool(value) is not False

    @field_validator("tenant_id", mode="before")
    @classmethod
    def _blank_tenant(cls, value: Any) -> str | None:
        if value is None:
            return None
        return str(value).strip() or None

    @field_validator("search_mode", mode="before")
    @classmethod
    def _known_mode(cls, value: Any) -> str:
        return value if value in SEARCH_MODES else "hybrid"

    def cache_key(self) -> str:
        payload = json.dumps(self.model_dump(by_alias=True), sort_keys=True, separators=(",", ":"))
        return "search:" + hashlib.sha1(payload.encode("utf-8")).hexdigest()


class PriceRange(BaseModel):
    min: float
    max: float
    currency: str | None = None


class Availability(BaseModel):
    status: str
    stockLevel: str
    totalStock: int
    availableFrom: int


class SizeOffer(BaseModel):
    size: str | None = None
    volumeMl: float | None = None
    price: float
    stock: int
    tenant: str | None = None


class ProductRecord(BaseModel):
    id: str
    name: str | None = None
    slug: str | None = None
    description: str | None = None
    shortDescription: str | None = None
    type: str | None = None
    subType: str | None = None
    isAlcoholic: bool | None = None
    abv: float | None = None
    volumeMl: float | None = None
    originCountry: str | None = None
    region: str | None = None
    brand: dict[str, Any] | None = None
    category: dict[str, Any] | None = None
    subCategory: dict[str, Any] | None = None
    tags: list[dict[str, Any]] = Field(default_factory=list)
    flavors: list[dict[str, Any]] = Field(default_factory=list)
    images: list[dict[str, Any]] = Field(default_factory=list)
    primaryImage: dict[str, Any] | None = None
    priceRange: PriceRange
    availability: Availability
    sizes: list[SizeOffer] = Field(default_factory=list)
    hasDiscount: bool = False
    discount: float = 0
    averageRating: float = 0
    reviewCount: int = 0
    totalSold: int = 0
    relevanceScore: float | None = None
    createdAt: str | None = None


class Pagination(BaseModel):
    currentPage: int
    totalPages: int
    totalResults: int
    resultsPerPage: int
    hasNextPage: bool
    hasPreviousPage: bool


class SearchData(BaseModel):
    products: list[ProductRecord]
    pagination: Pagination
    facets: dict[str, list[Any]] | None = None


class SearchMeta(BaseModel):
    searchTime: float
    query: str
    cache: bool = False
    searchMode: str = "hybrid"


class SearchResponse(BaseModel):
    success: bool
    data: SearchData
    meta: SearchMeta
    fromCache: bool = False


class SuggestionResponse(BaseModel):
    query: str
    suggestions: list[str]


class PopularResponse(BaseModel):
    queries: list[str]
