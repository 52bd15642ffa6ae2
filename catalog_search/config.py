"""Application configuration and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    es_host: str = _get_env("ES_HOST", "http://localhost:9200")
    es_index_prefix: str = _get_env("ES_INDEX_PREFIX", "catalog")
    mapping_path: str = _get_env("MAPPING_PATH", "catalog-mapping.json")
    catalog_path: str = _get_env("CATALOG_PATH", "catalog.json")
    catalog_source_url: str = _get_env("CATALOG_SOURCE_URL", "")
    store_backend: str = _get_env("STORE_BACKEND", "memory")
    store_timeout_seconds: float = float(_get_env("STORE_TIMEOUT_SECONDS", "5"))
    cache_backend: str = _get_env("CACHE_BACKEND", "redis")
    redis_host: str = _get_env("REDIS_HOST", "localhost")
    redis_port: int = int(_get_env("REDIS_PORT", "6379"))
    cache_ttl_seconds: int = int(_get_env("CACHE_TTL_SECONDS", "300"))
    cache_sweep_interval_seconds: int = int(_get_env("CACHE_SWEEP_INTERVAL_SECONDS", "60"))
    cache_max_entries: int = int(_get_env("CACHE_MAX_ENTRIES", "100"))
    load_on_startup: bool = _get_env("LOAD_ON_STARTUP", "true").lower() in {"1", "true", "yes"}
    default_page_size: int = int(_get_env("DEFAULT_PAGE_SIZE", "20"))
    max_page_size: int = int(_get_env("MAX_PAGE_SIZE", "100"))
    log_level: str = _get_env("LOG_LEVEL", "INFO")


settings = Settings()
