"""In-process tracking of what shoppers search for."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Dict, List

MIN_QUERY_LENGTH = 2


@dataclass
class QueryStats:
    query: str
    count: int
    first_searched: float
    last_searched: float
    avg_results: float


class SearchAnalytics:
    def __init__(self) -> None:
        self._queries: Dict[str, QueryStats] = {}
        self._lock = threading.Lock()

    def track(self, query: str, results_count: int) -> None:
        normalized = (query or "").strip().lower()
        if len(normalized) < MIN_QUERY_LENGTH:
            return
        now = time.time()
        with self._lock:
            stats = self._queries.get(normalized)
            if stats is None:
                self._queries[normalized] = QueryStats(normalized, 1, now, now, float(results_count))
                return
            stats.avg_results = (stats.avg_results * stats.count + results_count) / (stats.count + 1)
            stats.count += 1
            stats.last_searched = now

    def popular(self, limit: int = 10) -> List[str]:
        with self._lock:
            ranked = sorted(self._queries.values(), key=lambda s: (-s.count, s.query))
        return [stats.query for stats in ranked[:limit]]

    def suggestions(self, partial: str, limit: int = 5) -> List[str]:
        needle = (partial or "").strip().lower()
        with self._lock:
            matches = [s for s in self._queries.values() if needle in s.query]
        matches.sort(key=lambda s: (-s.count, s.query))
        return [stats.query for stats in matches[:limit]]
