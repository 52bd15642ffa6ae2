"""Shared fixtures: a small drinks catalog covering the join edge cases."""
from __future__ import annotations

import pytest

from catalog_search.cache import InMemoryCache
from catalog_search.config import Settings
from catalog_search.search_service import ProductSearchService
from catalog_search.store import InMemoryCatalog


def oid(n: int) -> str:
    return f"{n:024x}"


TENANT_COMMISSION = oid(0x100)
TENANT_FLAT = oid(0x101)
TENANT_PENDING = oid(0x102)
TENANT_LAPSED = oid(0x103)

CATEGORY_WHISKY = oid(0x200)
CATEGORY_WINE = oid(0x201)
SUB_SCOTCH = oid(0x300)
SUB_RED = oid(0x301)
SUB_WHISKY_RESERVE = oid(0x303)
SUB_WINE_RESERVE = oid(0x304)
BRAND_JOHNNIE = oid(0x400)
BRAND_GHOST = oid(0x401)
TAG_GIFT = oid(0x500)
FLAVOR_SMOKY = oid(0x600)

BLUE_LABEL = oid(0x701)
BLUE_RESERVE = oid(0x702)
SOMETHING_BLUE = oid(0x703)
PENDING_PRODUCT = oid(0x704)
NO_VENDOR = oid(0x705)
OUT_OF_STOCK = oid(0x706)
CHATEAU = oid(0x707)
COXGNAC = oid(0x708)


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _product(pid: str, name: str, **fields) -> dict:
    doc = {
        "id": pid,
        "name": name,
        "slug": name.lower().replace(" ", "-"),
        "status": "approved",
        "averageRating": 0,
        "totalSold": 0,
        "reviewCount": 0,
        "images": [],
    }
    doc.update(fields)
    return doc


def _variant(vid: int, product: str, tenant: str, status: str = "active") -> dict:
    return {"id": oid(vid), "product": product, "tenant": tenant, "status": status, "currency": "NGN"}


def _size(sid: int, variant: int, price: float, stock: int, availability: str = "available", **fields) -> dict:
    doc = {
        "id": oid(sid),
        "subproduct": oid(variant),
        "size": "75cl",
        "volumeMl": 750,
        "sellingPrice": price,
        "stock": stock,
        "availability": availability,
        "status": "active",
    }
    doc.update(fields)
    return doc


def make_catalog() -> dict:
    return {
        "tenants": [
            {
                "id": TENANT_COMMISSION,
                "name": "Harbour Cellars",
                "status": "approved",
                "subscriptionStatus": "active",
                "revenueModel": "commission",
                "commissionPercentage": 10,
            },
            {
                "id": TENANT_FLAT,
                "name": "Corner Shop",
                "status": "approved",
                "subscriptionStatus": "trialing",
                "revenueModel": "markup",
                "markupPercentage": 25,
            },
            {
                "id": TENANT_PENDING,
                "name": "Pending Wines",
                "status": "pending",
                "subscriptionStatus": "active",
            },
            {
                "id": TENANT_LAPSED,
                "name": "Lapsed Liquor",
                "status": "approved",
                "subscriptionStatus": "canceled",
            },
        ],
        "categories": [
            {"id": CATEGORY_WHISKY, "name": "Whisky", "slug": "whisky", "status": "published"},
            {"id": CATEGORY_WINE, "name": "Wine", "slug": "wine", "status": "published"},
        ],
        "subCategories": [
            {"id": SUB_SCOTCH, "name": "Scotch", "slug": "scotch", "parent": CATEGORY_WHISKY, "status": "published"},
            {"id": SUB_RED, "name": "Red", "slug": "red", "parent": CATEGORY_WINE, "status": "published"},
            {
                "id": SUB_WHISKY_RESERVE,
                "name": "Reserve",
                "slug": "whisky-reserve",
                "parent": CATEGORY_WHISKY,
                "status": "published",
            },
            {
                "id": SUB_WINE_RESERVE,
                "name": "Reserve",
                "slug": "wine-reserve",
                "parent": CATEGORY_WINE,
                "status": "published",
            },
        ],
        "brands": [
            {"id": BRAND_JOHNNIE, "name": "Johnnie Walker", "slug": "johnnie-walker", "status": "active"},
            {"id": BRAND_GHOST, "name": "Ghost", "slug": "ghost", "status": "inactive"},
        ],
        "tags": [{"id": TAG_GIFT, "name": "gift", "slug": "gift"}],
        "flavors": [{"id": FLAVOR_SMOKY, "name": "Smoky", "value": "smoky", "color": "#555"}],
        "products": [
            _product(
                BLUE_LABEL,
                "Blue Label",
                type="whisky",
                category=CATEGORY_WHISKY,
                subCategory=SUB_SCOTCH,
                brand=BRAND_JOHNNIE,
                tags=[TAG_GIFT],
                flavors=[FLAVOR_SMOKY],
                originCountry="Scotland",
                abv=40,
                isAlcoholic=True,
                isFeatured=True,
                averageRating=4.5,
                totalSold=100,
                createdAt="2024-01-01T00:00:00Z",
                images=[{"url": "a.jpg"}, {"url": "b.jpg", "isPrimary": True}],
            ),
            _product(
                BLUE_RESERVE,
                "Blue Label Reserve",
                type="whisky",
                category=CATEGORY_WHISKY,
                subCategory=SUB_WHISKY_RESERVE,
                brand=BRAND_JOHNNIE,
                originCountry="Scotland",
                abv=43,
                isAlcoholic=True,
                averageRating=4.0,
                totalSold=50,
                createdAt="2024-03-01T00:00:00Z",
                images=[{"url": "r.jpg"}],
            ),
            _product(
                SOMETHING_BLUE,
                "Something Blue",
                type="gin",
                originCountry="England",
                abv=37.5,
                isAlcoholic=True,
                averageRating=3.0,
                totalSold=10,
                createdAt="2024-02-01T00:00:00Z",
            ),
            _product(PENDING_PRODUCT, "Blue Label Pending", type="whisky", status="pending"),
            _product(NO_VENDOR, "Blue Vendorless", type="whisky"),
            _product(
                OUT_OF_STOCK,
                "Red Blend",
                type="wine",
                category=CATEGORY_WINE,
                subCategory=SUB_RED,
                isAlcoholic=True,
                createdAt="2023-12-01T00:00:00Z",
            ),
            _product(
                CHATEAU,
                "Chateau Rouge",
                type="wine",
                description="Dry red wine from Bordeaux",
                category=CATEGORY_WINE,
                subCategory=SUB_WINE_RESERVE,
                originCountry="France",
                abv=13.5,
                isAlcoholic=True,
                averageRating=4.2,
                totalSold=30,
                createdAt="2024-04-01T00:00:00Z",
            ),
            _product(
                COXGNAC,
                "Coxgnac Aged",
                type="brandy",
                originCountry="France",
                abv=40,
                isAlcoholic=True,
                averageRating=3.5,
                totalSold=5,
                createdAt="2023-06-01T00:00:00Z",
            ),
        ],
        "variants": [
            _variant(0x801, BLUE_LABEL, TENANT_COMMISSION),
            _variant(0x802, BLUE_LABEL, TENANT_FLAT),
            _variant(0x803, BLUE_RESERVE, TENANT_FLAT),
            _variant(0x804, SOMETHING_BLUE, TENANT_FLAT),
            _variant(0x805, PENDING_PRODUCT, TENANT_FLAT),
            _variant(0x806, NO_VENDOR, TENANT_PENDING),
            _variant(0x807, NO_VENDOR, TENANT_LAPSED),
            _variant(0x808, OUT_OF_STOCK, TENANT_FLAT),
            _variant(0x809, CHATEAU, TENANT_COMMISSION),
            _variant(0x80A, BLUE_RESERVE, TENANT_FLAT, status="inactive"),
            _variant(0x80B, COXGNAC, TENANT_FLAT),
        ],
        "sizes": [
            _size(0x901, 0x801, 1000, 30),
            _size(0x902, 0x802, 1200, 40, availability="in_stock"),
            _size(0x903, 0x802, 2000, 0, availability="out_of_stock", size="1L"),
            _size(0x904, 0x803, 1500, 5, availability="low_stock"),
            _size(0x905, 0x804, 800, 12),
            _size(0x906, 0x805, 900, 10),
            _size(0x907, 0x806, 700, 10),
            _size(0x908, 0x807, 700, 10),
            _size(0x909, 0x808, 3000, 0),
            _size(0x90A, 0x809, 5000, 60, discount={"type": "percentage", "value": 15}),
            _size(0x90B, 0x80A, 100, 100),
            _size(0x90C, 0x80B, 4000, 3),
        ],
    }


@pytest.fixture
def catalog() -> InMemoryCatalog:
    return InMemoryCatalog(make_catalog())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> InMemoryCache:
    return InMemoryCache(clock=clock)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(cache_ttl_seconds=300, cache_backend="memory", store_backend="memory")


@pytest.fixture
def service(catalog: InMemoryCatalog, cache: InMemoryCache, test_settings: Settings) -> ProductSearchService:
    return ProductSearchService(catalog, cache, test_settings)
