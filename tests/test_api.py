"""HTTP surface tests; the service is injected so no store or cache server is needed."""

import asyncio
import logging
from types import SimpleNamespace

import pytest
from conftest import BLUE_LABEL, BLUE_RESERVE, make_catalog
from fastapi.testclient import TestClient

from catalog_search.main import _sweep_cache, app, get_service
from catalog_search.search_service import ProductSearchService
from catalog_search.store import CatalogStoreError, InMemoryCatalog


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_search_endpoint(client):
    """Search returns the ranked envelope and accepts ``q``."""
    response = client.get("/api/products", params={"q": "blue label", "limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["fromCache"] is False
    assert [p["id"] for p in body["data"]["products"]] == [BLUE_LABEL, BLUE_RESERVE]
    assert body["data"]["pagination"]["totalResults"] == 3
    assert body["meta"]["query"] == "blue label"


def test_repeated_filters_and_alias_route(client):
    """Repeated query keys become list filters on both routes."""
    response = client.get("/api/search/products?brand=Johnnie%20Walker&category=Whisky&category=Wine")

    assert response.status_code == 200
    assert {p["id"] for p in response.json()["data"]["products"]} == {BLUE_LABEL, BLUE_RESERVE}


def test_second_request_is_served_from_cache(client):
    """An identical request is answered from the cache."""
    client.get("/api/products", params={"query": "blue"})
    again = client.get("/api/products", params={"query": "blue"})

    assert again.json()["fromCache"] is True


def test_bad_parameters_are_clamped_not_rejected(client):
    """Malformed paging and sort values still return 200."""
    response = client.get("/api/products", params={"page": "zero", "limit": "-5", "sortBy": "nope"})

    assert response.status_code == 200
    assert response.json()["data"]["pagination"]["resultsPerPage"] == 1


def test_suggestions_and_popular(client):
    """Suggestion and popular-query routes reflect past searches."""
    client.get("/api/products", params={"q": "blue"})

    suggestions = client.get("/api/products/suggestions", params={"q": "blue"}).json()
    assert suggestions["query"] == "blue"
    assert "Blue Label" in suggestions["suggestions"]

    assert client.get("/api/search/popular").json() == {"queries": ["blue"]}
    assert client.get("/api/products/suggestions", params={"limit": 99}).status_code == 422


class BrokenCatalog(InMemoryCatalog):
    def find_products(self, predicate):
        raise CatalogStoreError("timeout")


def test_store_failure_maps_to_503(cache, test_settings):
    """A store outage becomes a generic 503."""
    service = ProductSearchService(BrokenCatalog(make_catalog()), cache, test_settings)
    app.dependency_overrides[get_service] = lambda: service
    try:
        response = TestClient(app).get("/api/products", params={"q": "blue"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json() == {"detail": "Search temporarily unavailable"}


def test_reindex_requires_elasticsearch(client):
    """Reindexing is refused on the in-memory store."""
    assert client.post("/reindex").status_code == 400


class StopSweep(BaseException):
    pass


def test_cache_sweep_survives_errors(caplog):
    """A failing sweep is logged and the loop keeps running."""
    calls = []

    def expire():
        calls.append(len(calls))
        if len(calls) == 1:
            raise RuntimeError("redis went away")
        raise StopSweep

    service = SimpleNamespace(cache=SimpleNamespace(expire=expire))
    with caplog.at_level(logging.ERROR, logger="catalog_search.main"):
        with pytest.raises(StopSweep):
            asyncio.run(_sweep_cache(service, 0))

    assert len(calls) == 2
    assert "Cache sweep failed" in caplog.text
