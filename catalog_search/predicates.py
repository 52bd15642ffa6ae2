"""Backend-independent boolean predicates over catalog documents.

Predicates are plain data. ``matches`` evaluates them against an in-memory
document; the Elasticsearch store compiles the very same objects into query
DSL (see ``es_store.compile_predicate``), so both backends agree on what a
filter means.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

TEXT_MODES = ("exact", "prefix", "word", "contains")


def _values(doc: dict, name: str) -> list[Any]:
    value = doc.get(name)
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [item for item in value if item is not None]
    return [value]


def _as_key(value: Any) -> Any:
    # Reference fields may be stored as embedded {"id": ...} objects.
    if isinstance(value, dict):
        return value.get("id")
    return value


class Predicate:
    """Base class for all predicates."""

    def matches(self, doc: dict) -> bool:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass(frozen=True)
class FieldEquals(Predicate):
    field: str
    value: Any

    def matches(self, doc: dict) -> bool:
        return any(_as_key(item) == self.value for item in _values(doc, self.field))


@dataclass(frozen=True)
class FieldIn(Predicate):
    field: str
    values: tuple[Any, ...]

    def matches(self, doc: dict) -> bool:
        wanted = set(self.values)
        return any(_as_key(item) in wanted for item in _values(doc, self.field))


@dataclass(frozen=True)
class FieldRange(Predicate):
    field: str
    gte: float | None = None
    lte: float | None = None

    def matches(self, doc: dict) -> bool:
        value = doc.get(self.field)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if self.gte is not None and value < self.gte:
            return False
        if self.lte is not None and value > self.lte:
            return False
        return True


@dataclass(frozen=True)
class TextPattern(Predicate):
    """Case-insensitive text match of a literal string against one field."""

    field: str
    mode: str
    text: str
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.mode not in TEXT_MODES:
            raise ValueError(f"Unknown text match mode: {self.mode!r}")
        escaped = re.escape(self.text)
        if self.mode == "exact":
            pattern = rf"^{escaped}$"
        elif self.mode == "prefix":
            pattern = rf"^{escaped}"
        elif self.mode == "word":
            pattern = rf"(?<!\w){escaped}(?!\w)"
        else:
            pattern = escaped
        object.__setattr__(self, "_regex", re.compile(pattern, re.IGNORECASE))

    def matches(self, doc: dict) -> bool:
        return any(
            isinstance(item, str) and self._regex.search(item) is not None
            for item in _values(doc, self.field)
        )


@dataclass(frozen=True)
class AllOf(Predicate):
    children: tuple[Predicate, ...]

    def matches(self, doc: dict) -> bool:
        return all(child.matches(doc) for child in self.children)


@dataclass(frozen=True)
class AnyOf(Predicate):
    children: tuple[Predicate, ...]

    def matches(self, doc: dict) -> bool:
        return any(child.matches(doc) for child in self.children)


def all_of(*children: Predicate) -> AllOf:
    return AllOf(tuple(children))


def any_of(children: Iterable[Predicate]) -> AnyOf:
    return AnyOf(tuple(children))


def text_in_fields(text: str, fields: Sequence[str], mode: str = "contains") -> AnyOf:
    """Match ``text`` in any of ``fields``."""
    return any_of(TextPattern(name, mode, text) for name in fields)
