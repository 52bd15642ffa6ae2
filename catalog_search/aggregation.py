"""Join matched products to their sellable offers and roll up price/stock.

A product survives only when at least one of its variants qualifies, and a
variant qualifies only when at least one of its sizes does. The two checks
live in ``size_qualifies`` and ``variant_qualifies`` so each can be tested on
its own; ``join_products`` composes them.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .store import CatalogStore

logger = logging.getLogger(__name__)

VARIANT_STATUS = "active"
SIZE_STATUS = "active"
SIZE_AVAILABILITY = {"available", "in_stock", "low_stock"}
TENANT_STATUS = "approved"
TENANT_SUBSCRIPTIONS = {"active", "trialing"}
DEFAULT_CURRENCY = "NGN"


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def size_qualifies(size: dict, in_stock: bool) -> bool:
    if size.get("status") != SIZE_STATUS:
        return False
    if size.get("availability") not in SIZE_AVAILABILITY:
        return False
    if in_stock and _number(size.get("stock")) <= 0:
        return False
    return True


def tenant_qualifies(tenant: Optional[dict]) -> bool:
    if not tenant:
        return False
    return (
        tenant.get("status") == TENANT_STATUS
        and tenant.get("subscriptionStatus") in TENANT_SUBSCRIPTIONS
    )


def variant_qualifies(
    variant: dict,
    tenant: Optional[dict],
    sizes: Sequence[dict],
    tenant_id: Optional[str] = None,
) -> bool:
    """``sizes`` must already be filtered through ``size_qualifies``."""
    if variant.get("status") != VARIANT_STATUS:
        return False
    if tenant_id is not None and str(variant.get("tenant")) != tenant_id:
        return False
    return tenant_qualifies(tenant) and len(sizes) > 0


def website_price(selling_price: float, tenant: Optional[dict]) -> float:
    """Displayed price after the vendor's revenue model is applied."""
    price = selling_price
    if tenant and tenant.get("revenueModel") == "commission" and tenant.get("commissionPercentage"):
        price = price * (1 + _number(tenant["commissionPercentage"]) / 100)
    return round(price, 2)


def stock_level(total_stock: int) -> str:
    if total_stock > 50:
        return "high"
    if total_stock > 10:
        return "medium"
    if total_stock > 0:
        return "low"
    return "out"


@dataclass
class Offer:
    """One qualifying variant together with its vendor and sizes."""

    variant: dict
    tenant: dict
    sizes: List[dict]


@dataclass
class ProductRollup:
    product: dict
    offers: List[Offer]
    price_min: float = 0.0
    price_max: float = 0.0
    currency: str = DEFAULT_CURRENCY
    total_stock: int = 0
    has_discount: bool = False
    discount: float = 0.0
    sizes: List[Dict[str, Any]] = field(default_factory=list)
    relevance_score: Optional[float] = None
    match_priority: int = 0

    @property
    def id(self) -> str:
        return str(self.product["id"])

    @property
    def availability(self) -> Dict[str, Any]:
        return {
            "status": "in_stock" if self.total_stock > 0 else "out_of_stock",
            "stockLevel": stock_level(self.total_stock),
            "totalStock": self.total_stock,
            "availableFrom": len(self.offers),
        }


def rollup_product(product: dict, offers: Sequence[Offer]) -> ProductRollup:
    rollup = ProductRollup(product=product, offers=list(offers))
    prices: List[float] = []
    for offer in offers:
        for size in offer.sizes:
            price = website_price(_number(size.get("sellingPrice")), offer.tenant)
            stock = int(_number(size.get("stock")))
            prices.append(price)
            rollup.total_stock += stock
            discount_value = _number((size.get("discount") or {}).get("value"))
            if discount_value > 0:
                rollup.has_discount = True
                rollup.discount = max(rollup.discount, discount_value)
            rollup.sizes.append(
                {
                    "size": size.get("displayName") or size.get("size"),
                    "volumeMl": size.get("volumeMl"),
                    "price": price,
                    "stock": stock,
                    "tenant": str(offer.tenant.get("id")),
                }
            )
    if prices:
        rollup.price_min = min(prices)
        rollup.price_max = max(prices)
    if offers:
        first = offers[0]
        rollup.currency = (
            first.variant.get("currency") or first.tenant.get("defaultCurrency") or DEFAULT_CURRENCY
        )
    return rollup


def join_products(
    products: Sequence[dict],
    store: CatalogStore,
    in_stock: bool = True,
    tenant_id: Optional[str] = None,
) -> List[ProductRollup]:
    """Attach qualifying offers to ``products``; drop products with none."""
    if not products:
        return []
    product_ids = [str(product["id"]) for product in products]
    variants = [v for v in store.find_variants(product_ids) if v.get("status") == VARIANT_STATUS]
    tenants = store.get_documents("tenants", {str(v.get("tenant")) for v in variants})
    sizes_by_variant: Dict[str, List[dict]] = {}
    for size in store.find_sizes([str(v["id"]) for v in variants]):
        if size_qualifies(size, in_stock):
            sizes_by_variant.setdefault(str(size.get("subproduct")), []).append(size)

    offers_by_product: Dict[str, List[Offer]] = {}
    for variant in variants:
        tenant = tenants.get(str(variant.get("tenant")))
        sizes = sizes_by_variant.get(str(variant["id"]), [])
        if variant_qualifies(variant, tenant, sizes, tenant_id):
            offers_by_product.setdefault(str(variant.get("product")), []).append(
                Offer(variant=variant, tenant=tenant, sizes=sizes)
            )

    rollups = [
        rollup_product(product, offers_by_product[str(product["id"])])
        for product in products
        if str(product["id"]) in offers_by_product
    ]
    logger.debug("join kept=%s of %s products", len(rollups), len(products))
    return rollups
