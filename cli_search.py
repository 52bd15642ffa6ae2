"""Terminal client that reuses the in-process search logic."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict, Iterable

from catalog_search.cache import InMemoryCache
from catalog_search.config import settings
from catalog_search.models import SORT_MODES
from catalog_search.search_service import ProductSearchService
from catalog_search.store import InMemoryCatalog

GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"


def build_service(catalog_path: Path) -> ProductSearchService:
    store = InMemoryCatalog.from_file(catalog_path)
    return ProductSearchService(store, InMemoryCache(), settings)


def perform_query(service: ProductSearchService, query: str, filters: Dict[str, Any]) -> dict:
    return service.search({"query": query, "useCache": False, "includeFacets": False, **filters})


def interactive_shell(service: ProductSearchService, filters: Dict[str, Any]) -> None:
    print("Interactive product search. Type 'exit' to quit.")
    while True:
        try:
            query = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if not query:
            continue
        if query.lower() in {"exit", "quit"}:
            return
        pretty_print_response(query, perform_query(service, query, filters))


def pretty_print_response(query: str, payload: dict) -> None:
    data = payload.get("data", {})
    products = data.get("products", [])
    pagination = data.get("pagination", {})
    eta = float(payload.get("meta", {}).get("searchTime", 0))
    color = GREEN if eta < 200 else RED
    eta_label = f"{color}{eta:.1f} ms{RESET}"
    print(
        f"Query: {query} | results: {pagination.get('totalResults', 0)} "
        f"| page {pagination.get('currentPage', 1)}/{pagination.get('totalPages', 0)} | ETA: {eta_label}"
    )
    for idx, item in enumerate(products, start=1):
        score = item.get("relevanceScore")
        score_repr = f"{score:.2f}" if isinstance(score, (int, float)) else "-"
        price = item.get("priceRange", {})
        print(
            f"  {idx:02d}. score={score_repr} | {item.get('name')} | "
            f"{price.get('min')}-{price.get('max')} {price.get('currency')} | "
            f"{item.get('availability', {}).get('stockLevel')}"
        )


def batch_mode(service: ProductSearchService, file_path: Path, filters: Dict[str, Any]) -> None:
    with file_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            query = line.strip()
            if not query:
                continue
            pretty_print_response(query, perform_query(service, query, filters))


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CLI client for the catalog search service")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument("--batch", type=Path, help="File with queries to execute line by line")
    parser.add_argument("--catalog", type=Path, default=Path(settings.catalog_path), help="Catalog JSON file")
    parser.add_argument("--category", action="append", help="Category name or id (repeatable)")
    parser.add_argument("--brand", action="append", help="Brand name or id (repeatable)")
    parser.add_argument("--sort", choices=SORT_MODES, default="relevance")
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--limit", type=int, default=settings.default_page_size)
    parser.add_argument("--include-out-of-stock", action="store_true")
    args = parser.parse_args(list(argv) if argv is not None else None)

    service = build_service(args.catalog)
    filters: Dict[str, Any] = {
        "category": args.category,
        "brand": args.brand,
        "sortBy": args.sort,
        "page": args.page,
        "limit": args.limit,
        "inStock": not args.include_out_of_stock,
    }

    if args.batch:
        batch_mode(service, args.batch, filters)
        return 0
    if args.query:
        pretty_print_response(args.query, perform_query(service, args.query, filters))
        return 0
    interactive_shell(service, filters)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
