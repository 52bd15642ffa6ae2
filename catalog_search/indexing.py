"""Index creation and maintenance helpers."""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from elasticsearch import Elasticsearch
from elasticsearch.exceptions import BadRequestError, NotFoundError

from .config import settings
from .data_files import COLLECTIONS
from .es_store import index_name

logger = logging.getLogger(__name__)


def _load_mapping(mapping_path: Path) -> dict:
    with mapping_path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def index_body(mapping: dict, collection: str) -> dict:
    """Settings plus the collection's mappings (shared reference mapping as fallback)."""
    collections = mapping.get("collections", {})
    return {
        "settings": mapping.get("settings", {}),
        "mappings": collections.get(collection) or collections.get("reference", {}),
    }


async def ensure_indices(es: Elasticsearch) -> None:
    """Create one index per catalog collection if it is missing."""

    mapping_path = Path(settings.mapping_path)
    mapping = _load_mapping(mapping_path)
    for collection in COLLECTIONS:
        index = index_name(settings.es_index_prefix, collection)
        exists = await asyncio.to_thread(es.indices.exists, index=index)
        if exists:
            continue
        logger.info("Creating index %s using %s", index, mapping_path)
        body = index_body(mapping, collection)
        try:
            await asyncio.to_thread(
                es.indices.create, index=index, settings=body["settings"], mappings=body["mappings"]
            )
        except BadRequestError as exc:
            if getattr(exc, "error", "") == "resource_already_exists_exception":
                logger.info("Index %s already exists", index)
                continue
            logger.exception("Failed to create index %s: %s", index, exc)
            raise


async def drop_indices(es: Elasticsearch) -> None:
    for collection in COLLECTIONS:
        try:
            await asyncio.to_thread(es.indices.delete, index=index_name(settings.es_index_prefix, collection))
        except NotFoundError:
            continue


async def catalog_is_empty(es: Elasticsearch) -> bool:
    try:
        stats = await asyncio.to_thread(es.count, index=index_name(settings.es_index_prefix, "products"))
        return stats.get("count", 0) == 0
    except NotFoundError:
        return True
