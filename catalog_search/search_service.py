"""Product search: filter resolution, text matching, offer join and ranking."""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, Mapping, Optional

from .aggregation import join_products
from .analytics import SearchAnalytics
from .assembler import (
    apply_on_sale_filter,
    apply_price_filter,
    build_facets,
    build_response,
    load_references,
    paginate,
    serialize_product,
    sort_keys,
    sort_rollups,
)
from .cache import CacheBackend
from .config import Settings
from .filters import SEARCHABLE_STATUS, build_filter_predicate
from .models import SearchParams
from .predicates import FieldEquals, TextPattern, all_of, any_of
from .scoring import relevance_score
from .store import CatalogStore, CatalogStoreError
from .text_match import build_strategies, match_priority

logger = logging.getLogger(__name__)

SUGGESTION_MIN_LENGTH = 2


class ProductSearchService:
    def __init__(
        self,
        store: CatalogStore,
        cache: CacheBackend,
        settings: Settings,
        analytics: Optional[SearchAnalytics] = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.settings = settings
        self.analytics = analytics or SearchAnalytics()

    def search(self, params: SearchParams | Mapping[str, Any]) -> Dict[str, Any]:
        if not isinstance(params, SearchParams):
            params = SearchParams.model_validate(dict(params))

        cache_key = params.cache_key()
        t0 = perf_counter()
        if params.use_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info(
                    "timing: total=%.2fms cache_hit=1 q=%r page=%s",
                    (perf_counter() - t0) * 1000,
                    params.query,
                    params.page,
                )
                return {**cached, "fromCache": True}

        if params.search_mode == "semantic":
            logger.debug("semantic search mode requested; serving text results q=%r", params.query)

        try:
            response = self._compute(params, t0)
        except CatalogStoreError:
            logger.exception(
                "search failed q=%r page=%s limit=%s sort=%s params=%s",
                params.query,
                params.page,
                params.limit,
                params.sort_by,
                params.model_dump(by_alias=True, exclude_defaults=True),
            )
            raise

        if params.use_cache:
            self.cache.set(cache_key, response, self.settings.cache_ttl_seconds)
            logger.debug("cache_store q=%r ttl=%s", params.query, self.settings.cache_ttl_seconds)
        return response

    def _compute(self, params: SearchParams, t0: float) -> Dict[str, Any]:
        base = build_filter_predicate(params, self.store)
        t1 = perf_counter()

        strategies = build_strategies(params.query) if params.query else None
        predicate = all_of(base, strategies.candidate) if strategies else base
        candidates = self.store.find_products(predicate)
        t2 = perf_counter()

        rollups = join_products(candidates, self.store, params.in_stock, params.tenant_id)
        if params.min_price is not None or params.max_price is not None:
            rollups = apply_price_filter(rollups, params.min_price, params.max_price)
        if params.on_sale:
            rollups = apply_on_sale_filter(rollups)
        t3 = perf_counter()

        if strategies:
            for rollup in rollups:
                rollup.relevance_score = relevance_score(rollup.product, strategies)
                rollup.match_priority = match_priority(strategies, rollup.product)
        ordered = sort_rollups(rollups, sort_keys(params.sort_by, params.order, strategies is not None))
        page = paginate(ordered, params.page, params.limit)

        references = load_references(ordered if params.include_facets else page, self.store)
        records = [serialize_product(rollup, references, strategies is not None) for rollup in page]
        facets = build_facets(ordered, references) if params.include_facets else None
        t4 = perf_counter()

        response = build_response(params, records, len(ordered), (t4 - t0) * 1000, facets)
        logger.info(
            "timing: total=%.2fms filter=%.2fms match=%.2fms join=%.2fms assemble=%.2fms "
            "q=%r candidates=%s results=%s",
            (t4 - t0) * 1000,
            (t1 - t0) * 1000,
            (t2 - t1) * 1000,
            (t3 - t2) * 1000,
            (t4 - t3) * 1000,
            params.query,
            len(candidates),
            len(ordered),
        )
        self.analytics.track(params.query, len(ordered))
        return response

    def suggest(self, query: str, limit: int = 8) -> List[str]:
        """Product and brand names containing ``query``, then matching past searches."""
        term = (query or "").strip()
        if len(term) < SUGGESTION_MIN_LENGTH:
            return []
        predicate = all_of(
            FieldEquals("status", SEARCHABLE_STATUS),
            any_of([TextPattern("name", "contains", term), TextPattern("type", "contains", term)]),
        )
        try:
            products = self.store.find_products(predicate)
            names: List[str] = [p["name"] for p in products[:limit] if p.get("name")]
            names.extend(self.store.search_names("brands", term, max(1, limit // 2)))
        except CatalogStoreError:
            logger.exception("suggestions failed q=%r", term)
            raise
        names.extend(self.analytics.suggestions(term, limit))
        unique: Dict[str, str] = {}
        for name in names:
            unique.setdefault(name.casefold(), name)
        return list(unique.values())[:limit]
