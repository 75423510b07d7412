"""
===============================================================================
IMPORTER MODULES - INTERNAL USE ONLY
===============================================================================

These are internal modules for the Forge Steel importer.
DO NOT RUN THESE MODULES DIRECTLY!

USE THE MAIN IMPORT SCRIPT:
    python forgesteel_importer.py input.ds-hero output.json

See forgesteel_importer.py for proper usage instructions.
===============================================================================
"""

import json
import logging
import os
from pathlib import Path

from importer.catalog import Catalog

logger = logging.getLogger(__name__)

CACHE_DIR = Path.home() / ".cache" / "forgesteel-importer" / "catalog"


class InvalidCharacterError(ValueError):
    """The file parsed as JSON but is not a Forge Steel hero."""


def load_forgesteel_character(file_path):
    """Loads a Forge Steel character from a .ds-hero file.

    Raises:
        FileNotFoundError: The file does not exist
        json.JSONDecodeError: The file is not JSON
        InvalidCharacterError: The document has no name or no class
    """
    with open(file_path, "r", encoding="utf-8") as f:
        hero = json.load(f)

    if not isinstance(hero, dict) or not hero.get("name") or not hero.get("class"):
        raise InvalidCharacterError(f"Not a valid Forge Steel character file: {file_path}")
    return hero


def load_catalog(catalog_path):
    """Loads the Codex catalog from a JSON file or a directory of JSON files.

    The local path is tried first, then the cache directory. If neither holds any
    tables an empty catalog is returned and every lookup will miss.

    Args:
        catalog_path: Catalog JSON file, or directory searched recursively for .json files
    """
    catalog_path = Path(catalog_path)
    tables = {}
    index = {}

    if catalog_path.is_file():
        logger.debug(f"Loading catalog file {catalog_path}")
        _load_catalog_file(str(catalog_path), tables, index)
    elif catalog_path.is_dir():
        logger.debug(f"Loading catalog directory {catalog_path}")
        for root, _, files in os.walk(catalog_path):
            for file in sorted(files):
                if file.endswith(".json"):
                    _load_catalog_file(os.path.join(root, file), tables, index)

    if not tables and CACHE_DIR.is_dir():
        logger.debug(f"Loading catalog from cache {CACHE_DIR}")
        for file in sorted(CACHE_DIR.glob("*.json")):
            _load_catalog_file(str(file), tables, index)

    if not tables:
        logger.warning(f"Could not load a catalog from {catalog_path} or the cache")
    else:
        row_count = sum(len(rows) for rows in tables.values())
        logger.debug(f"Catalog stats: {len(tables)} tables, {row_count} rows")

    return Catalog(tables, index)


def _add_row(tables, table_name, row_id, row):
    """Adds a row, preferring a visible row over a hidden one with the same id."""
    rows = tables.setdefault(table_name, {})
    existing = rows.get(row_id)
    if existing is None or (existing.get("hidden") and not row.get("hidden")):
        rows[row_id] = row
    else:
        logger.debug(f"Duplicate {table_name} row {row_id} ignored")


def _load_catalog_file(file_path, tables, index):
    """Merges one catalog file into ``tables`` and ``index``.

    Accepted shapes: a whole catalog ``{"tables": ..., "index": ...}``, one table
    ``{"table": name, "rows": {id: row}}``, or a single row ``{"table": name, "id": ...}``.
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError:
        logger.warning(f"Could not decode JSON from {file_path}")
        return

    if not isinstance(data, dict):
        logger.warning(f"Ignoring catalog file without a JSON object: {file_path}")
        return

    if "tables" in data:
        for table_name, rows in (data.get("tables") or {}).items():
            for row_id, row in rows.items():
                _add_row(tables, table_name, row_id, row)
        for table_name, entries in (data.get("index") or {}).items():
            index.setdefault(table_name, {}).update(entries)
    elif "table" in data and "rows" in data:
        for row_id, row in data["rows"].items():
            _add_row(tables, data["table"], row_id, row)
    elif "table" in data and "id" in data:
        row = {key: value for key, value in data.items() if key not in ("table", "id")}
        _add_row(tables, data["table"], data["id"], row)
    else:
        logger.warning(f"Unrecognised catalog file: {file_path}")
