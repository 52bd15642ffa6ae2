"""Bulk loading of the catalog snapshot into Elasticsearch."""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from elasticsearch import Elasticsearch, helpers

from .config import settings
from .data_files import load_catalog
from .es_store import index_name

logger = logging.getLogger(__name__)


def _iter_actions(index: str, documents: Iterable[dict]) -> Iterable[dict]:
    for document in documents:
        yield {
            "_index": index,
            "_id": str(document["id"]),
            "_source": document,
        }


async def import_catalog(es: Elasticsearch) -> int:
    catalog = load_catalog(settings.catalog_path, settings.catalog_source_url or None)
    total = 0
    for collection, documents in catalog.items():
        if not documents:
            continue
        index = index_name(settings.es_index_prefix, collection)
        actions = list(_iter_actions(index, documents))
        await asyncio.to_thread(helpers.bulk, es, actions, refresh="wait_for")
        logger.info("Indexed %s documents into %s", len(actions), index)
        total += len(actions)
    return total


async def import_if_empty(es: Elasticsearch) -> int:
    from .indexing import catalog_is_empty

    if not await catalog_is_empty(es):
        return 0
    return await import_catalog(es)


async def reindex_data(es: Elasticsearch) -> int:
    from .indexing import drop_indices, ensure_indices

    await drop_indices(es)
    await ensure_indices(es)
    return await import_catalog(es)
