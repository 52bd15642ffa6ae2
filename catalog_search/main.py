"""FastAPI application wiring the catalog search service."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException, Query, Request

from .cache import build_cache
from .config import settings
from .models import PopularResponse, SearchParams, SearchResponse, SuggestionResponse
from .search_service import ProductSearchService
from .store import CatalogStore, CatalogStoreError, InMemoryCatalog

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

# Force a predictable logging setup even when run under uvicorn; ``force=True``
# replaces uvicorn's default handlers.
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "elastic_transport"):
    logging.getLogger(name).setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)
logger.info("Logging configured at %s", settings.log_level.upper())

UNAVAILABLE = "Search temporarily unavailable"

app = FastAPI(title="Catalog Search Service")


async def _build_store() -> CatalogStore:
    if settings.store_backend == "elasticsearch":
        from .es_client import get_client
        from .es_store import ElasticsearchCatalog
        from .importer import import_if_empty
        from .indexing import ensure_indices

        es = get_client()
        await ensure_indices(es)
        if settings.load_on_startup:
            imported = await import_if_empty(es)
            if imported:
                logger.info("Imported %s catalog documents on startup", imported)
        return ElasticsearchCatalog(es, settings.es_index_prefix, settings.store_timeout_seconds)
    return await asyncio.to_thread(
        InMemoryCatalog.from_file, settings.catalog_path, settings.catalog_source_url or None
    )


async def _sweep_cache(service: ProductSearchService, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            evicted = await asyncio.to_thread(service.cache.expire)
        except Exception:
            logger.exception("Cache sweep failed")
            continue
        if evicted:
            logger.info("Cache sweep evicted %s entries", evicted)


@app.on_event("startup")
async def startup_event() -> None:
    store = await _build_store()
    service = ProductSearchService(store, build_cache(settings), settings)
    app.state.service = service
    app.state.sweeper = asyncio.create_task(
        _sweep_cache(service, settings.cache_sweep_interval_seconds)
    )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    sweeper = getattr(app.state, "sweeper", None)
    if sweeper is not None:
        sweeper.cancel()


def get_service(request: Request) -> ProductSearchService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail=UNAVAILABLE)
    return service


def _collect_params(request: Request) -> Dict[str, Any]:
    """Query string to a raw parameter dict; repeated keys become lists."""
    raw: Dict[str, Any] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        raw[key] = values if len(values) > 1 else values[0]
    if "query" not in raw and "q" in raw:
        raw["query"] = raw["q"]
    raw.pop("q", None)
    return raw


@app.get("/health")
async def health(service: ProductSearchService = Depends(get_service)) -> dict:
    status: Dict[str, Any] = {
        "store": settings.store_backend,
        "cache": type(service.cache).__name__,
    }
    if settings.store_backend == "elasticsearch":
        from .es_client import get_client
        from .indexing import catalog_is_empty

        es = get_client()
        cluster = await asyncio.to_thread(es.cluster.health)
        status["elasticsearch"] = cluster.get("status")
        status["empty"] = await catalog_is_empty(es)
    return status


@app.get("/api/products", response_model=SearchResponse)
@app.get("/api/search/products", response_model=SearchResponse)
async def search(request: Request, service: ProductSearchService = Depends(get_service)) -> dict:
    params = SearchParams.model_validate(_collect_params(request))
    try:
        return await asyncio.to_thread(service.search, params)
    except CatalogStoreError:
        raise HTTPException(status_code=503, detail=UNAVAILABLE)


@app.get("/api/products/suggestions", response_model=SuggestionResponse)
async def suggestions(
    q: str = Query("", description="Partial query"),
    limit: int = Query(8, ge=1, le=20),
    service: ProductSearchService = Depends(get_service),
) -> SuggestionResponse:
    try:
        names = await asyncio.to_thread(service.suggest, q, limit)
    except CatalogStoreError:
        raise HTTPException(status_code=503, detail=UNAVAILABLE)
    return SuggestionResponse(query=q, suggestions=names)


@app.get("/api/search/popular", response_model=PopularResponse)
async def popular(
    limit: int = Query(10, ge=1, le=50),
    service: ProductSearchService = Depends(get_service),
) -> PopularResponse:
    return PopularResponse(queries=service.analytics.popular(limit))


@app.post("/reindex")
async def reindex() -> dict:
    if settings.store_backend != "elasticsearch":
        raise HTTPException(status_code=400, detail="Reindexing requires the Elasticsearch store")
    from .es_client import get_client
    from .importer import reindex_data

    count = await reindex_data(get_client())
    return {"indexed": count}
