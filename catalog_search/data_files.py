"""Loading the catalog snapshot from disk."""
from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from urllib.error import URLError
from urllib.request import urlopen

logger = logging.getLogger(__name__)

COLLECTIONS = (
    "products",
    "variants",
    "sizes",
    "tenants",
    "brands",
    "categories",
    "subCategories",
    "tags",
    "flavors",
)


def ensure_data_file(path: str | Path, source_url: str | None = None) -> Path:
    """Ensure a data file exists locally, downloading it when a URL is provided."""
    file_path = Path(path)
    if file_path.exists():
        return file_path
    if not source_url:
        raise FileNotFoundError(f"Catalog file missing and no download URL provided: {file_path}")
    logger.info("Downloading %s from %s", file_path, source_url)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with urlopen(source_url) as response, file_path.open("wb") as handle:
            shutil.copyfileobj(response, handle)
    except (OSError, URLError) as exc:
        raise RuntimeError(f"Failed to download {source_url} -> {file_path}") from exc
    return file_path


def load_catalog(path: str | Path, source_url: str | None = None) -> dict[str, list[dict]]:
    """Read a catalog snapshot: one JSON object with a list per collection.

    Missing collections come back empty. A Git LFS pointer is treated as an
    empty catalog rather than a parse error.
    """
    file_path = ensure_data_file(path, source_url)
    with file_path.open("r", encoding="utf-8") as fh:
        first_line = fh.readline()
        if first_line.startswith("version https://git-lfs.github.com/spec/v1"):
            logger.warning("Catalog file %s is a Git LFS pointer; real data not downloaded", file_path)
            return {name: [] for name in COLLECTIONS}
        fh.seek(0)
        raw = json.load(fh)
    unknown = set(raw) - set(COLLECTIONS)
    if unknown:
        logger.warning("Ignoring unknown catalog collections: %s", sorted(unknown))
    return {name: list(raw.get(name) or []) for name in COLLECTIONS}
