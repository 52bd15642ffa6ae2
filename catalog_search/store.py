"""Read-only catalog store interface and the in-memory implementation."""
from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from .data_files import COLLECTIONS, load_catalog
from .predicates import Predicate

logger = logging.getLogger(__name__)

# Reference documents must carry this status (when they carry one at all) to
# be resolvable by name.
RESOLVABLE_STATUS = {
    "categories": "published",
    "subCategories": "published",
    "brands": "active",
}


class CatalogStoreError(RuntimeError):
    """The underlying data store failed or could not be reached."""


class CatalogStore(Protocol):
    def find_products(self, predicate: Predicate) -> List[dict]: ...

    def find_variants(self, product_ids: Sequence[str]) -> List[dict]: ...

    def find_sizes(self, variant_ids: Sequence[str]) -> List[dict]: ...

    def get_documents(self, collection: str, ids: Iterable[str]) -> Dict[str, dict]: ...

    def resolve_names(
        self, collection: str, names: Sequence[str], parent: Optional[str] = None
    ) -> List[str]: ...

    def search_names(self, collection: str, text: str, limit: int) -> List[str]: ...


def name_keys(collection: str, doc: dict) -> set[str]:
    """Lower-cased names a reference document can be looked up by."""
    keys = {str(doc.get("name", "")).casefold()}
    if collection == "flavors" and doc.get("value"):
        keys.add(str(doc["value"]).casefold())
    keys.discard("")
    return keys


def is_resolvable(collection: str, doc: dict) -> bool:
    required = RESOLVABLE_STATUS.get(collection)
    status = doc.get("status")
    return required is None or status is None or status == required


class InMemoryCatalog:
    """Catalog held in process memory; used for local runs and tests."""

    def __init__(self, collections: Dict[str, List[dict]]) -> None:
        unknown = set(collections) - set(COLLECTIONS)
        if unknown:
            raise ValueError(f"Unknown collections: {sorted(unknown)}")
        self._docs: Dict[str, Dict[str, dict]] = {
            name: {str(doc["id"]): doc for doc in collections.get(name, [])} for name in COLLECTIONS
        }
        self._variants_by_product: Dict[str, List[dict]] = defaultdict(list)
        for variant in self._docs["variants"].values():
            self._variants_by_product[str(variant.get("product"))].append(variant)
        self._sizes_by_variant: Dict[str, List[dict]] = defaultdict(list)
        for size in self._docs["sizes"].values():
            self._sizes_by_variant[str(size.get("subproduct"))].append(size)
        logger.info(
            "Loaded in-memory catalog: %s",
            ", ".join(f"{name}={len(docs)}" for name, docs in self._docs.items()),
        )

    @classmethod
    def from_file(cls, path: str | Path, source_url: str | None = None) -> "InMemoryCatalog":
        return cls(load_catalog(path, source_url))

    def find_products(self, predicate: Predicate) -> List[dict]:
        return [doc for doc in self._docs["products"].values() if predicate.matches(doc)]

    def find_variants(self, product_ids: Sequence[str]) -> List[dict]:
        return [variant for pid in product_ids for variant in self._variants_by_product.get(pid, [])]

    def find_sizes(self, variant_ids: Sequence[str]) -> List[dict]:
        return [size for vid in variant_ids for size in self._sizes_by_variant.get(vid, [])]

    def get_documents(self, collection: str, ids: Iterable[str]) -> Dict[str, dict]:
        docs = self._docs[collection]
        return {key: docs[key] for key in ids if key in docs}

    def resolve_names(
        self, collection: str, names: Sequence[str], parent: Optional[str] = None
    ) -> List[str]:
        wanted = {name.casefold() for name in names}
        resolved: List[str] = []
        for key, doc in self._docs[collection].items():
            if not is_resolvable(collection, doc):
                continue
            if parent is not None and str(doc.get("parent")) != parent:
                continue
            if name_keys(collection, doc) & wanted:
                resolved.append(key)
        return resolved

    def search_names(self, collection: str, text: str, limit: int) -> List[str]:
        needle = text.casefold()
        names: List[str] = []
        for doc in self._docs[collection].values():
            name = doc.get("name")
            if not is_resolvable(collection, doc):
                continue
            if isinstance(name, str) and needle in name.casefold():
                names.append(name)
                if len(names) >= limit:
                    break
        return names
