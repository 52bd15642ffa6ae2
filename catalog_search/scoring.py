"""Relevance scoring for text queries."""
from __future__ import annotations

from .predicates import TextPattern
from .text_match import MatchStrategies

RELEVANCE_WEIGHTS = {
    "name_exact": 100,
    "name_prefix": 50,
    "name_contains": 30,
    "type_contains": 20,
    "rating_multiplier": 2,
    "sold_divisor": 10,
}


def _number(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def relevance_score(product: dict, strategies: MatchStrategies) -> float:
    """Additive ranking key; larger is more relevant. Not normalised."""
    score = 0.0
    if strategies.exact.matches(product):
        score += RELEVANCE_WEIGHTS["name_exact"]
    if strategies.starts_with.matches(product):
        score += RELEVANCE_WEIGHTS["name_prefix"]
    if strategies.substring.matches(product):
        score += RELEVANCE_WEIGHTS["name_contains"]
    if TextPattern("type", "contains", strategies.term).matches(product):
        score += RELEVANCE_WEIGHTS["type_contains"]
    score += _number(product.get("averageRating")) * RELEVANCE_WEIGHTS["rating_multiplier"]
    score += _number(product.get("totalSold")) / RELEVANCE_WEIGHTS["sold_divisor"]
    return round(score, 2)
