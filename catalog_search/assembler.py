"""Post-join filtering, ordering, pagination and payload assembly."""
from __future__ import annotations

import math
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .aggregation import ProductRollup
from .models import SearchParams
from .store import CatalogStore

SortKey = Tuple[Callable[[ProductRollup], Any], bool]

REFERENCE_FIELDS = {
    "brand": "brands",
    "category": "categories",
    "subCategory": "subCategories",
}
REFERENCE_LIST_FIELDS = {
    "tags": "tags",
    "flavors": "flavors",
}


def _num(name: str) -> Callable[[ProductRollup], float]:
    def key(rollup: ProductRollup) -> float:
        value = rollup.product.get(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0.0
        return float(value)

    return key


def _name(rollup: ProductRollup) -> str:
    return str(rollup.product.get("name") or "").casefold()


def _created(rollup: ProductRollup) -> str:
    # ISO-8601 timestamps order correctly as strings.
    return str(rollup.product.get("createdAt") or "")


def _score(rollup: ProductRollup) -> float:
    return rollup.relevance_score or 0.0


def _priority(rollup: ProductRollup) -> int:
    return rollup.match_priority


def apply_price_filter(
    rollups: Iterable[ProductRollup], min_price: Optional[float], max_price: Optional[float]
) -> List[ProductRollup]:
    """Keep products whose price range overlaps [min_price, max_price]."""
    kept = []
    for rollup in rollups:
        if min_price is not None and rollup.price_max < min_price:
            continue
        if max_price is not None and rollup.price_min > max_price:
            continue
        kept.append(rollup)
    return kept


def apply_on_sale_filter(rollups: Iterable[ProductRollup]) -> List[ProductRollup]:
    return [rollup for rollup in rollups if rollup.has_discount]


def sort_keys(sort_by: str, order: str, has_query: bool) -> List[SortKey]:
    descending = order != "asc"
    if sort_by == "relevance":
        if has_query:
            return [(_score, True), (_priority, True), (_num("averageRating"), True)]
        return [(_num("averageRating"), True), (_num("totalSold"), True)]
    if sort_by == "price_low":
        return [(lambda r: r.price_min, False)]
    if sort_by == "price_high":
        return [(lambda r: r.price_max, True)]
    if sort_by == "rating":
        return [(_num("averageRating"), descending), (_num("reviewCount"), True)]
    if sort_by == "newest":
        return [(_created, True)]
    if sort_by == "popular":
        return [(_num("totalSold"), True), (_num("averageRating"), True)]
    if sort_by == "name":
        return [(_name, descending)]
    return [(_score, True)]


def sort_rollups(rollups: Sequence[ProductRollup], keys: Sequence[SortKey]) -> List[ProductRollup]:
    # Stable sorts applied from the least significant key; id last so that
    # equal keys always come back in the same order.
    ordered = sorted(rollups, key=lambda r: r.id)
    for key, reverse in reversed(keys):
        ordered.sort(key=key, reverse=reverse)
    return ordered


def paginate(rollups: Sequence[ProductRollup], page: int, limit: int) -> List[ProductRollup]:
    start = (page - 1) * limit
    return list(rollups[start : start + limit])


def pagination_envelope(total: int, page: int, limit: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalResults": total,
        "resultsPerPage": limit,
        "hasNextPage": page < total_pages,
        "hasPreviousPage": page > 1,
    }


def _ref_id(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("id")
    return str(value) if value is not None else None


def load_references(rollups: Sequence[ProductRollup], store: CatalogStore) -> Dict[str, Dict[str, dict]]:
    """Fetch every brand/category/tag/... referenced by ``rollups`` in one pass."""
    wanted: Dict[str, set[str]] = {}
    for rollup in rollups:
        for field, collection in REFERENCE_FIELDS.items():
            ref = _ref_id(rollup.product.get(field))
            if ref:
                wanted.setdefault(collection, set()).add(ref)
        for field, collection in REFERENCE_LIST_FIELDS.items():
            for item in rollup.product.get(field) or []:
                ref = _ref_id(item)
                if ref:
                    wanted.setdefault(collection, set()).add(ref)
    return {collection: store.get_documents(collection, ids) for collection, ids in wanted.items()}


def _summary(doc: Optional[dict], ref: Optional[str]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return {"id": ref} if ref else None
    summary = {"id": str(doc["id"]), "name": doc.get("name"), "slug": doc.get("slug")}
    for extra in ("value", "color", "displayName"):
        if doc.get(extra) is not None:
            summary[extra] = doc[extra]
    return summary


def _primary_image(images: Sequence[dict]) -> Optional[dict]:
    for image in images:
        if image.get("isPrimary"):
            return image
    return images[0] if images else None


def serialize_product(
    rollup: ProductRollup,
    references: Dict[str, Dict[str, dict]],
    include_score: bool,
) -> Dict[str, Any]:
    product = rollup.product
    images = list(product.get("images") or [])
    record: Dict[str, Any] = {
        "id": rollup.id,
        "name": product.get("name"),
        "slug": product.get("slug"),
        "description": product.get("description"),
        "shortDescription": product.get("shortDescription"),
        "type": product.get("type"),
        "subType": product.get("subType"),
        "isAlcoholic": product.get("isAlcoholic"),
        "abv": product.get("abv"),
        "volumeMl": product.get("volumeMl"),
        "originCountry": product.get("originCountry"),
        "region": product.get("region"),
        "images": images,
        "primaryImage": _primary_image(images),
        "priceRange": {"min": rollup.price_min, "max": rollup.price_max, "currency": rollup.currency},
        "availability": rollup.availability,
        "sizes": list(rollup.sizes),
        "hasDiscount": rollup.has_discount,
        "discount": rollup.discount,
        "averageRating": product.get("averageRating") or 0,
        "reviewCount": product.get("reviewCount") or 0,
        "totalSold": product.get("totalSold") or 0,
        "createdAt": product.get("createdAt"),
    }
    for field, collection in REFERENCE_FIELDS.items():
        ref = _ref_id(product.get(field))
        record[field] = _summary(references.get(collection, {}).get(ref or ""), ref)
    for field, collection in REFERENCE_LIST_FIELDS.items():
        docs = references.get(collection, {})
        refs = [_ref_id(item) for item in product.get(field) or []]
        record[field] = [_summary(docs.get(ref), ref) for ref in refs if ref]
    if include_score:
        record["relevanceScore"] = rollup.relevance_score
    return record


def _unique(items: Iterable[Optional[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    seen: Dict[str, Dict[str, Any]] = {}
    for item in items:
        if item and item.get("id") not in seen:
            seen[item["id"]] = item
    return list(seen.values())


def build_facets(
    rollups: Sequence[ProductRollup], references: Dict[str, Dict[str, dict]]
) -> Dict[str, List[Any]]:
    def refs(field: str, collection: str) -> List[Dict[str, Any]]:
        docs = references.get(collection, {})
        values = []
        for rollup in rollups:
            raw = rollup.product.get(field)
            items = raw if isinstance(raw, list) else [raw]
            values.extend(_summary(docs.get(_ref_id(item) or ""), _ref_id(item)) for item in items)
        return _unique(values)

    def plain(field: str) -> List[str]:
        values = (rollup.product.get(field) for rollup in rollups)
        return sorted({value for value in values if isinstance(value, str) and value})

    return {
        "categories": refs("category", "categories"),
        "subCategories": refs("subCategory", "subCategories"),
        "brands": refs("brand", "brands"),
        "tags": refs("tags", "tags"),
        "flavors": refs("flavors", "flavors"),
        "countries": plain("originCountry"),
        "types": plain("type"),
    }


def build_response(
    params: SearchParams,
    page_items: Sequence[Dict[str, Any]],
    total: int,
    search_time_ms: float,
    facets: Optional[Dict[str, List[Any]]] = None,
) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "products": list(page_items),
        "pagination": pagination_envelope(total, params.page, params.limit),
    }
    if facets is not None:
        data["facets"] = facets
    return {
        "success": True,
        "data": data,
        "meta": {
            "searchTime": round(search_time_ms, 2),
            "query": params.query,
            "cache": False,
            "searchMode": params.search_mode,
        },
        "fromCache": False,
    }
