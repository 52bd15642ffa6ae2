"""Catalog store backed by Elasticsearch (one index per collection)."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from elasticsearch import ApiError, Elasticsearch, TransportError, helpers
from elasticsearch.helpers import ScanError

from .predicates import AllOf, AnyOf, FieldEquals, FieldIn, FieldRange, Predicate, TextPattern
from .store import RESOLVABLE_STATUS, CatalogStoreError, name_keys

logger = logging.getLogger(__name__)

# Free-text fields are mapped as analysed text with a ``.raw`` keyword
# sub-field; everything else is a plain keyword/numeric field.
ANALYZED_FIELDS = {"name", "shortDescription", "description", "producer"}
# Values longer than the ``.raw`` sub-field's ignore_above are not indexed as
# keywords; substring matches on these fields also try the analysed text.
LONG_TEXT_FIELDS = {"shortDescription", "description"}
WILDCARD_SPECIAL = ("\\", "*", "?")


def index_name(prefix: str, collection: str) -> str:
    return f"{prefix}-{collection.lower()}"


def escape_wildcard(text: str) -> str:
    for char in WILDCARD_SPECIAL:
        text = text.replace(char, "\\" + char)
    return text


def _keyword(field: str) -> str:
    return f"{field}.raw" if field in ANALYZED_FIELDS else field


def _text_query(predicate: TextPattern) -> Dict[str, Any]:
    target = _keyword(predicate.field)
    if predicate.mode == "exact":
        return {"term": {target: {"value": predicate.text, "case_insensitive": True}}}
    if predicate.mode == "prefix":
        return {"prefix": {target: {"value": predicate.text, "case_insensitive": True}}}
    if predicate.mode == "word" and predicate.field in ANALYZED_FIELDS:
        return {"match_phrase": {predicate.field: predicate.text}}
    wildcard = {
        "wildcard": {
            target: {"value": f"*{escape_wildcard(predicate.text)}*", "case_insensitive": True}
        }
    }
    if predicate.field in LONG_TEXT_FIELDS:
        return {
            "bool": {
                "should": [wildcard, {"match_phrase": {predicate.field: predicate.text}}],
                "minimum_should_match": 1,
            }
        }
    return wildcard


def compile_predicate(predicate: Predicate) -> Dict[str, Any]:
    """Translate a predicate into Elasticsearch query DSL."""
    if isinstance(predicate, AllOf):
        return {"bool": {"filter": [compile_predicate(child) for child in predicate.children]}}
    if isinstance(predicate, AnyOf):
        return {
            "bool": {
                "should": [compile_predicate(child) for child in predicate.children],
                "minimum_should_match": 1,
            }
        }
    if isinstance(predicate, FieldEquals):
        return {"term": {predicate.field: predicate.value}}
    if isinstance(predicate, FieldIn):
        return {"terms": {predicate.field: list(predicate.values)}}
    if isinstance(predicate, FieldRange):
        bounds: Dict[str, float] = {}
        if predicate.gte is not None:
            bounds["gte"] = predicate.gte
        if predicate.lte is not None:
            bounds["lte"] = predicate.lte
        return {"range": {predicate.field: bounds}}
    if isinstance(predicate, TextPattern):
        return _text_query(predicate)
    raise TypeError(f"Cannot compile predicate {predicate!r}")


def _status_filter(collection: str) -> List[Dict[str, Any]]:
    required = RESOLVABLE_STATUS.get(collection)
    if not required:
        return []
    return [
        {
            "bool": {
                "should": [
                    {"term": {"status": required}},
                    {"bool": {"must_not": {"exists": {"field": "status"}}}},
                ],
                "minimum_should_match": 1,
            }
        }
    ]


class ElasticsearchCatalog:
    def __init__(self, es: Elasticsearch, prefix: str, timeout: float) -> None:
        self.es = es
        self.prefix = prefix
        self.timeout = timeout

    def _scan(self, collection: str, query: Dict[str, Any]) -> List[dict]:
        index = index_name(self.prefix, collection)
        logger.debug("ES scan index=%s query=%s", index, query)
        try:
            hits = helpers.scan(
                self.es,
                index=index,
                query={"query": query},
                request_timeout=self.timeout,
                preserve_order=True,
            )
            return [hit["_source"] for hit in hits]
        except (ApiError, TransportError, ScanError) as exc:
            raise CatalogStoreError(f"Elasticsearch read from {index} failed: {exc}") from exc

    def find_products(self, predicate: Predicate) -> List[dict]:
        return self._scan("products", compile_predicate(predicate))

    def find_variants(self, product_ids: Sequence[str]) -> List[dict]:
        if not product_ids:
            return []
        return self._scan("variants", {"terms": {"product": list(product_ids)}})

    def find_sizes(self, variant_ids: Sequence[str]) -> List[dict]:
        if not variant_ids:
            return []
        return self._scan("sizes", {"terms": {"subproduct": list(variant_ids)}})

    def get_documents(self, collection: str, ids: Iterable[str]) -> Dict[str, dict]:
        wanted = list(ids)
        if not wanted:
            return {}
        docs = self._scan(collection, {"ids": {"values": wanted}})
        return {str(doc["id"]): doc for doc in docs}

    def resolve_names(
        self, collection: str, names: Sequence[str], parent: Optional[str] = None
    ) -> List[str]:
        should = [
            {"term": {"name.raw": {"value": name, "case_insensitive": True}}} for name in names
        ]
        if collection == "flavors":
            should.extend({"term": {"value": {"value": name.lower()}}} for name in names)
        filters: List[Dict[str, Any]] = [{"bool": {"should": should, "minimum_should_match": 1}}]
        if parent is not None:
            filters.append({"term": {"parent": parent}})
        filters.extend(_status_filter(collection))
        docs = self._scan(collection, {"bool": {"filter": filters}})
        wanted = {name.casefold() for name in names}
        return [str(doc["id"]) for doc in docs if name_keys(collection, doc) & wanted]

    def search_names(self, collection: str, text: str, limit: int) -> List[str]:
        index = index_name(self.prefix, collection)
        try:
            response = self.es.options(request_timeout=self.timeout).search(
                index=index,
                query={
                    "bool": {
                        "filter": [
                            _text_query(TextPattern("name", "contains", text)),
                            *_status_filter(collection),
                        ]
                    }
                },
                size=limit,
                source=["name"],
            )
        except (ApiError, TransportError) as exc:
            raise CatalogStoreError(f"Elasticsearch search on {index} failed: {exc}") from exc
        hits = response.get("hits", {}).get("hits", [])
        return [hit["_source"]["name"] for hit in hits if hit.get("_source", {}).get("name")]
