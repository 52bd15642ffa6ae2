"""Multi-strategy text matching for product queries.

Seven strategies are built for every query, most specific first. They are
structural predicates only. ``MatchStrategies.candidate`` (any term in any
searchable field, also for one-word queries) gates which products are
considered; the rest feed the relevance weights and the match priority used
to break score ties.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from .predicates import AllOf, AnyOf, Predicate, TextPattern, any_of, text_in_fields

TERM_SPLIT = re.compile(r"\s+")

AND_FIELDS = ["name", "shortDescription", "description"]
OR_FIELDS = [
    "name",
    "shortDescription",
    "description",
    "type",
    "subType",
    "originCountry",
    "region",
    "producer",
]
FUZZY_MIN_LENGTH = 3

STRATEGY_PRIORITIES = {
    "exact": 100,
    "starts_with": 90,
    "word_boundary": 80,
    "multi_word_and": 70,
    "multi_word_or": 60,
    "substring": 50,
    "fuzzy": 40,
}


@dataclass(frozen=True)
class MatchStrategies:
    term: str
    terms: Tuple[str, ...]
    exact: Predicate
    starts_with: Predicate
    word_boundary: Predicate
    multi_word_and: Optional[Predicate]
    multi_word_or: Predicate
    substring: Predicate
    fuzzy: Optional[Predicate]

    @property
    def candidate(self) -> Predicate:
        """Predicate used to select candidate products."""
        return self.multi_word_or

    def ordered(self) -> Iterator[Tuple[str, int, Predicate]]:
        for name, priority in STRATEGY_PRIORITIES.items():
            predicate = getattr(self, name)
            if predicate is not None:
                yield name, priority, predicate


def split_terms(query: str) -> List[str]:
    return [term for term in TERM_SPLIT.split(query.strip()) if term]


def build_strategies(query: str) -> MatchStrategies:
    term = query.strip()
    if not term:
        raise ValueError("Cannot build match strategies for an empty query")
    terms = split_terms(term)

    multi_word_and: Optional[Predicate] = None
    if len(terms) > 1:
        multi_word_and = AllOf(tuple(text_in_fields(t, AND_FIELDS) for t in terms))

    fuzzy: Optional[Predicate] = None
    if len(term) >= FUZZY_MIN_LENGTH:
        fuzzy = any_of(TextPattern("name", "contains", term[:-cut]) for cut in (1, 2))

    return MatchStrategies(
        term=term,
        terms=tuple(terms),
        exact=TextPattern("name", "exact", term),
        starts_with=TextPattern("name", "prefix", term),
        word_boundary=TextPattern("name", "word", term),
        multi_word_and=multi_word_and,
        multi_word_or=AnyOf(tuple(text_in_fields(t, OR_FIELDS) for t in terms)),
        substring=TextPattern("name", "contains", term),
        fuzzy=fuzzy,
    )


def matched_strategies(strategies: MatchStrategies, product: dict) -> List[str]:
    """Names of the strategies ``product`` satisfies, most specific first."""
    return [name for name, _, predicate in strategies.ordered() if predicate.matches(product)]


def match_priority(strategies: MatchStrategies, product: dict) -> int:
    """Priority of the most specific strategy ``product`` satisfies, 0 if none."""
    matched = matched_strategies(strategies, product)
    return STRATEGY_PRIORITIES[matched[0]] if matched else 0
