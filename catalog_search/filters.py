"""Turn user-supplied filter values into store predicates."""
from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional, Sequence

from .models import SearchParams
from .predicates import FieldEquals, FieldIn, FieldRange, Predicate, all_of
from .store import CatalogStore

logger = logging.getLogger(__name__)

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")
SEARCHABLE_STATUS = "approved"

NameResolver = Callable[[List[str]], List[str]]


def is_object_id(token: str) -> bool:
    return bool(OBJECT_ID_PATTERN.match(token))


def resolve_filter_ids(tokens: Sequence[str], resolver: NameResolver) -> List[str]:
    """Pass identifiers through and resolve names with a single lookup.

    Returns the de-duplicated union, in first-seen order. Names that do not
    resolve contribute nothing.
    """
    ids: List[str] = []
    names: List[str] = []
    for token in tokens:
        (ids if is_object_id(token) else names).append(token)
    if names:
        resolved = resolver(names)
        if len(resolved) < len(names):
            logger.debug("filter names partially resolved names=%s ids=%s", names, resolved)
        ids.extend(resolved)
    return list(dict.fromkeys(ids))


def _resolve_parent_category(params: SearchParams, store: CatalogStore) -> Optional[str]:
    if len(params.category) != 1:
        return None
    token = params.category[0]
    if is_object_id(token):
        return token
    resolved = store.resolve_names("categories", [token])
    return resolved[0] if resolved else None


def _in_clause(field: str, values: Sequence[str]) -> Optional[Predicate]:
    if not values:
        return None
    return FieldIn(field, tuple(values))


def build_filter_predicate(params: SearchParams, store: CatalogStore) -> Predicate:
    """Base predicate every candidate product must satisfy."""
    clauses: List[Optional[Predicate]] = [FieldEquals("status", SEARCHABLE_STATUS)]

    if params.category:
        ids = resolve_filter_ids(params.category, lambda names: store.resolve_names("categories", names))
        clauses.append(_in_clause("category", ids))
    if params.sub_category:
        parent = _resolve_parent_category(params, store)
        ids = resolve_filter_ids(
            params.sub_category,
            lambda names: store.resolve_names("subCategories", names, parent=parent),
        )
        clauses.append(_in_clause("subCategory", ids))
    if params.brand:
        ids = resolve_filter_ids(params.brand, lambda names: store.resolve_names("brands", names))
        clauses.append(_in_clause("brand", ids))
    if params.tags:
        ids = resolve_filter_ids(params.tags, lambda names: store.resolve_names("tags", names))
        clauses.append(_in_clause("tags", ids))
    if params.flavors:
        ids = resolve_filter_ids(params.flavors, lambda names: store.resolve_names("flavors", names))
        clauses.append(_in_clause("flavors", ids))

    if params.min_abv is not None or params.max_abv is not None:
        clauses.append(FieldRange("abv", gte=params.min_abv, lte=params.max_abv))
    if params.is_alcoholic is not None:
        clauses.append(FieldEquals("isAlcoholic", params.is_alcoholic))
    clauses.append(_in_clause("originCountry", params.origin_country))
    clauses.append(_in_clause("region", params.region))
    clauses.append(_in_clause("type", params.type))
    clauses.append(_in_clause("subType", params.sub_type))
    if params.is_featured is not None:
        clauses.append(FieldEquals("isFeatured", params.is_featured))
    if params.min_rating:
        clauses.append(FieldRange("averageRating", gte=params.min_rating))

    return all_of(*(clause for clause in clauses if clause is not None))
