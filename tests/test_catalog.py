"""Tests for the in-memory Codex catalog."""
import logging

from importer.catalog import KITS, LANGUAGES, RACES, SKILLS, CLASSES, Catalog


class TestLookup:
    """Tests for the two-tier name lookup."""

    def test_exact_index(self, catalog):
        row_id, row = catalog.lookup(SKILLS, "History")
        assert row_id == "skill-hist"
        assert row["name"] == "History"

    def test_translated_name(self, catalog):
        assert catalog.lookup(SKILLS, "Perform")[0] == "skill-perf"
        assert catalog.lookup(LANGUAGES, "Anjali")[0] == "lang-anjal"
        assert catalog.lookup(RACES, "Elf (high)")[0] == "race-elf-high"

    def test_fuzzy_fallthrough(self, catalog, caplog):
        with caplog.at_level(logging.DEBUG, logger="importer.catalog"):
            row_id, _ = catalog.lookup(KITS, "Rapid\u2013Fire")
        assert row_id == "kit-rapid"
        assert "Fallthrough" in caplog.text

    def test_hidden_rows_are_skipped(self, catalog):
        assert catalog.lookup(SKILLS, "Sneak") == (None, None)

    def test_not_found(self, catalog):
        assert catalog.lookup(SKILLS, "Juggling") == (None, None)
        assert catalog.lookup(SKILLS, None) == (None, None)
        assert catalog.lookup("NoSuchTable", "History") == (None, None)

    def test_curated_index(self, catalog_data):
        catalog_data["index"] = {SKILLS: {"Acting": "skill-perf"}}
        catalog = Catalog.from_dict(catalog_data)
        assert catalog.lookup(SKILLS, "acting")[0] == "skill-perf"

    def test_get_existing_item(self, catalog):
        assert catalog.get_existing_item(SKILLS, "climb")["name"] == "Climb"
        assert catalog.get_existing_item(SKILLS, "Clamber") is None


class TestExpandLeveledFeatures:
    """Tests for expanding catalog rows into levelled slot trees."""

    def test_level_cap(self, catalog):
        row = catalog.get_table(CLASSES)["class-censor"]
        levels = catalog.expand_leveled_features(row, 2)
        assert [level.level for level in levels] == [1, 2]
        assert levels[1].features[0].guid == "censor-perk"

    def test_nested_features_are_parsed(self, catalog):
        row = catalog.get_table(CLASSES)["class-censor"]
        wrapper = catalog.expand_leveled_features(row, 1)[0].features[4]
        assert wrapper.children[0].guid == "war-skill"
        assert wrapper.children[0].categories == {"exploration"}

    def test_flat_features_become_level_one(self, catalog):
        row = catalog.get_table("backgrounds")["bg-artisan"]
        levels = catalog.expand_leveled_features(row, 1)
        assert len(levels) == 1
        assert levels[0].features[1].categories == {"crafting"}

    def test_missing_row(self, catalog):
        assert catalog.expand_leveled_features(None, 5) == []
