"""
In-memory Codex catalog.

Holds the Codex tables (rows keyed by id), an exact name index, and the expansion of
class/subclass/domain rows into levelled trees of choice slots.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from importer.models import TargetLevel, parse_target_levels
from importer.text_normalizer import TextNormalizer

logger = logging.getLogger(__name__)

# Table names
SKILLS = "Skills"
LANGUAGES = "Languages"
FEATS = "feats"
CLASSES = "classes"
SUBCLASSES = "subclasses"
DEITY_DOMAINS = "DeityDomains"
DEITIES = "Deities"
KITS = "kits"
RACES = "races"
CULTURE_ASPECTS = "cultureAspects"
BACKGROUNDS = "backgrounds"
INCITING_INCIDENTS = "incitingIncidents"

Row = Dict[str, Any]


class Catalog:
    """Codex tables with the two-tier name lookup the importer relies on.

    Args:
        tables: ``{table name: {row id: row}}``; rows carry at least ``name`` and may
            carry ``hidden`` and ``levels`` (``[{level, features}]``)
        index: Optional curated ``{table name: {name: row id}}`` entries added to the
            exact index built from the rows
    """

    def __init__(
        self,
        tables: Optional[Dict[str, Dict[str, Row]]] = None,
        index: Optional[Dict[str, Dict[str, str]]] = None,
    ):
        self.tables: Dict[str, Dict[str, Row]] = tables or {}
        self._index: Dict[str, Dict[str, str]] = {}

        for table_name, rows in self.tables.items():
            table_index = self._index.setdefault(table_name, {})
            for row_id, row in rows.items():
                if row.get("hidden") or not row.get("name"):
                    continue
                table_index.setdefault(self._index_key(row["name"]), row_id)

        for table_name, entries in (index or {}).items():
            table_index = self._index.setdefault(table_name, {})
            for name, row_id in entries.items():
                table_index[self._index_key(name)] = row_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Catalog":
        """Build a catalog from ``{"tables": ..., "index": ...}`` or a bare tables dict."""
        if "tables" in data:
            return cls(data.get("tables"), data.get("index"))
        return cls(data)

    @staticmethod
    def _index_key(name: str) -> str:
        return TextNormalizer.translate(name).strip().lower()

    def get_table(self, table_name: str) -> Dict[str, Row]:
        return self.tables.get(table_name, {})

    def get_existing_item(self, table_name: str, name: str) -> Optional[Row]:
        """Exact lookup through the index; ``None`` when the name is not indexed."""
        row_id = self._index.get(table_name, {}).get(self._index_key(name))
        if row_id is None:
            return None
        return self.get_table(table_name).get(row_id)

    def lookup(self, table_name: str, name: Optional[str]) -> Tuple[Optional[str], Optional[Row]]:
        """Resolve a Forge Steel name to a Codex row.

        The exact index is tried first. If it misses, every non-hidden row of the table
        is compared with ``TextNormalizer.strings_match`` and the first match wins.

        Args:
            table_name: Codex table to search
            name: Forge Steel name

        Returns:
            ``(row id, row)`` or ``(None, None)`` when nothing matches
        """
        if not name:
            return None, None

        translated = TextNormalizer.translate(name)
        row_id = self._index.get(table_name, {}).get(self._index_key(name))
        if row_id is not None and row_id in self.get_table(table_name):
            return row_id, self.get_table(table_name)[row_id]

        logger.debug(f"Fallthrough lookup for '{name}' in {table_name}")
        for row_id, row in self.get_table(table_name).items():
            if row.get("hidden"):
                continue
            if TextNormalizer.strings_match(translated, row.get("name")):
                return row_id, row

        return None, None

    def expand_leveled_features(self, row: Optional[Row], level_cap: int) -> List[TargetLevel]:
        """Levelled choice slots of a class, subclass, domain or similar row.

        Buckets above ``level_cap`` are left out. Rows without levels but with a flat
        ``features`` list (culture aspects, backgrounds) expand to one level-1 bucket.
        """
        if not row:
            return []

        if "levels" in row:
            raw_levels = [
                raw_level
                for raw_level in row.get("levels") or []
                if raw_level.get("level", 1) <= level_cap
            ]
            return parse_target_levels(raw_levels)

        if row.get("features"):
            return parse_target_levels([{"level": 1, "features": row["features"]}])

        return []
