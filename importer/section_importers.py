"""
Section importers: turn a Forge Steel hero into a Codex character record.

Each section (attributes, ancestry, culture, career, class) is imported on its own.
A missing or malformed section is reported and skipped; the other sections still
import. Every choice the resolver places is merged into one running level-choices
table.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from importer.catalog import (
    BACKGROUNDS,
    CLASSES,
    CULTURE_ASPECTS,
    INCITING_INCIDENTS,
    KITS,
    LANGUAGES,
    RACES,
    SUBCLASSES,
    Catalog,
)
from importer.choice_resolver import ALL_DOMAINS_DEITY, collect_skill_choice_index
from importer.extractors import (
    extract_domains,
    extract_kits,
    find_selected_subclass,
    selected_domains,
    translate_class_ability_selections,
)
from importer.import_log import IssueKind, LogContext
from importer.leveled_resolver import LeveledChoiceResolver
from importer.models import (
    FeatureKind,
    ResolutionResult,
    SourceFeatureNode,
    SourceLevel,
    TargetType,
    parse_source_levels,
)
from importer.text_normalizer import TextNormalizer

logger = logging.getLogger(__name__)

# Level cap used when scanning a class definition for its deity slot
DEFAULT_SEARCH_LEVEL_CAP = 10

ANCESTRY_LEVEL_CAP = 1

CHARACTERISTICS = {
    "Might": "mgt",
    "Agility": "agl",
    "Reason": "rea",
    "Intuition": "inu",
    "Presence": "prs",
}

CULTURE_ASPECT_NAMES = ["environment", "organization", "upbringing"]

MAX_KITS = 2
MAX_DOMAINS = 2


def lookup_record(catalog: Catalog, table_name: str, name: Optional[str], ctx: LogContext) -> Dict[str, Any]:
    """Codex lookup record ``{tableName, name, id}``; ``id`` is ``None`` when unresolved."""
    row_id, _ = catalog.lookup(table_name, name)
    if row_id is None:
        ctx.warn(IssueKind.UNRESOLVED_NAME, f"'{name}' not found in {table_name}.", name)
    return {"tableName": table_name, "name": TextNormalizer.translate(name), "id": row_id}


class CharacterImporter:
    """Imports one Forge Steel hero.

    Args:
        hero: Parsed ``.ds-hero`` document
        catalog: Codex catalog
        ctx: Logging context (a fresh one when omitted)
        level_cap: Override for the class level used when expanding Codex trees
    """

    def __init__(
        self,
        hero: Dict[str, Any],
        catalog: Catalog,
        ctx: Optional[LogContext] = None,
        level_cap: Optional[int] = None,
    ):
        self.hero = hero
        self.catalog = catalog
        self.ctx = ctx or LogContext()
        self.level_cap = level_cap
        self.level_choices = ResolutionResult()
        self.character: Dict[str, Any] = {
            "name": hero.get("name", "Unknown"),
            "attributes": {},
            "ancestry": None,
            "culture": {},
            "career": {},
            "classes": [],
            "kits": {},
            "levelChoices": {},
            "issues": [],
        }

    def import_character(self) -> Dict[str, Any]:
        self.ctx.info(f"Importing '{self.character['name']}'.")
        self._import_section("Attributes", self._import_attributes)
        self._import_section("Ancestry", self._import_ancestry)
        self._import_section("Culture", self._import_culture)
        self._import_section("Career", self._import_career)
        self._import_section("Class", self._import_class)

        self.character["levelChoices"] = self.level_choices.choices
        self.character["issues"] = [issue.to_dict() for issue in self.ctx.issues]
        self.ctx.info(f"Import complete with {len(self.ctx.issues)} issue(s).")
        return self.character

    def _import_section(self, section: str, import_func: Callable[[LogContext], None]) -> None:
        """Run one section importer; a section of the wrong shape is reported and skipped."""
        ctx = self.ctx.nested()
        try:
            import_func(ctx)
        except (AttributeError, TypeError, ValueError) as e:
            ctx.warn(IssueKind.MALFORMED_SECTION, f"{section} section could not be read: {e}")

    def _import_class(self, ctx: LogContext) -> None:
        ClassImporter(
            self.hero.get("class"),
            self.character,
            self.level_choices,
            self.catalog,
            ctx,
            self.level_cap,
        ).import_class()

    def _resolve_against(self, row, features: List[SourceFeatureNode], level_cap: int, ctx: LogContext) -> None:
        levels = self.catalog.expand_leveled_features(row, level_cap)
        if not levels:
            ctx.debug("No Codex choices to resolve against.")
            return
        resolver = LeveledChoiceResolver(levels, self.catalog, ctx)
        self.level_choices.merge(resolver.process(features))

    def _import_attributes(self, ctx: LogContext) -> None:
        ctx.info("Attributes.")
        fs_class = self.hero.get("class")
        characteristics = fs_class.get("characteristics") if isinstance(fs_class, dict) else None
        if not characteristics or not isinstance(characteristics, list):
            ctx.warn(IssueKind.MALFORMED_SECTION, "class.characteristics not found in import.")
            return

        for entry in characteristics:
            if not isinstance(entry, dict):
                ctx.warn(IssueKind.MALFORMED_SECTION, f"Characteristic entry of unexpected shape: {entry!r}.")
                continue
            key = CHARACTERISTICS.get(entry.get("characteristic"))
            if key is None:
                ctx.warn(
                    IssueKind.MALFORMED_SECTION,
                    f"Unknown characteristic '{entry.get('characteristic')}'.",
                    entry.get("characteristic"),
                )
                continue
            value = entry.get("value", 0)
            if not isinstance(value, int):
                ctx.warn(IssueKind.MALFORMED_SECTION, f"Characteristic {key} has a non-integer value {value!r}.", key)
                continue
            ctx.added(f"attribute {key} {value:+d}.")
            self.character["attributes"][key] = value

    def _import_ancestry(self, ctx: LogContext) -> None:
        ctx.info("Ancestry.")
        ancestry = self.hero.get("ancestry")
        if not isinstance(ancestry, dict) or not ancestry:
            ctx.warn(IssueKind.MALFORMED_SECTION, "Ancestry not found in import.")
            return

        record = lookup_record(self.catalog, RACES, ancestry.get("name"), ctx)
        self.character["ancestry"] = record
        if record["id"] is None:
            return

        features = [
            SourceFeatureNode.from_dict(feature)
            for feature in ancestry.get("features") or []
            if isinstance(feature, dict)
        ]
        if features:
            row = self.catalog.get_table(RACES).get(record["id"])
            self._resolve_against(row, features, ANCESTRY_LEVEL_CAP, ctx.nested())

    def _import_culture(self, ctx: LogContext) -> None:
        ctx.info("Culture.")
        culture = self.hero.get("culture")
        if not isinstance(culture, dict) or not culture:
            ctx.warn(IssueKind.MALFORMED_SECTION, "Culture not found in import.")
            return

        language = self._primary_language(culture)
        if language:
            record = lookup_record(self.catalog, LANGUAGES, language, ctx)
            self.character["culture"]["language"] = record
            if record["id"] is not None:
                ctx.added(f"culture language '{language}'.")

        for aspect_name in CULTURE_ASPECT_NAMES:
            aspect = culture.get(aspect_name)
            if not isinstance(aspect, dict) or not aspect:
                ctx.warn(IssueKind.MALFORMED_SECTION, f"Culture aspect '{aspect_name}' not found in import.")
                continue
            self._import_culture_aspect(aspect_name, aspect, ctx.nested())

    @staticmethod
    def _primary_language(culture: Dict[str, Any]) -> Optional[str]:
        languages = culture.get("languages")
        if isinstance(languages, list) and languages and isinstance(languages[0], str):
            return languages[0]
        language_feature = culture.get("language")
        if isinstance(language_feature, dict):
            names = SourceFeatureNode.from_dict(language_feature).selected_names()
            return names[0] if names else None
        return None

    def _import_culture_aspect(self, aspect_name: str, aspect: Dict[str, Any], ctx: LogContext) -> None:
        ctx.info(f"Culture aspect {aspect_name} '{aspect.get('name')}'.")
        record = lookup_record(self.catalog, CULTURE_ASPECTS, aspect.get("name"), ctx)
        self.character["culture"][aspect_name] = record
        if record["id"] is None:
            return

        feature = SourceFeatureNode.from_dict(aspect)
        if feature.kind == FeatureKind.SKILL_CHOICE and feature.selected:
            row = self.catalog.get_table(CULTURE_ASPECTS).get(record["id"])
            self._resolve_against(row, [feature], ANCESTRY_LEVEL_CAP, ctx.nested())

    def _import_career(self, ctx: LogContext) -> None:
        ctx.info("Career.")
        career = self.hero.get("career")
        if not isinstance(career, dict) or not career:
            ctx.warn(IssueKind.MALFORMED_SECTION, "Career not found in import.")
            return

        record = lookup_record(self.catalog, BACKGROUNDS, career.get("name"), ctx)
        self.character["career"]["background"] = record

        if record["id"] is not None:
            features = [
                SourceFeatureNode.from_dict(feature)
                for feature in career.get("features") or []
                if isinstance(feature, dict)
            ]
            if features:
                row = self.catalog.get_table(BACKGROUNDS).get(record["id"])
                self._resolve_against(row, features, ANCESTRY_LEVEL_CAP, ctx.nested())

        incidents = career.get("incitingIncidents")
        if isinstance(incidents, dict) and incidents.get("selectedID"):
            self._import_inciting_incident(incidents, ctx.nested())

    def _import_inciting_incident(self, incidents: Dict[str, Any], ctx: LogContext) -> None:
        selected_id = str(incidents["selectedID"]).lower()
        for option in incidents.get("options") or []:
            if str(option.get("id", "")).lower() == selected_id:
                ctx.info(f"Inciting incident '{option.get('name')}'.")
                self.character["career"]["incitingIncident"] = lookup_record(
                    self.catalog, INCITING_INCIDENTS, option.get("name"), ctx
                )
                return
        ctx.warn(
            IssueKind.MALFORMED_SECTION,
            f"Selected inciting incident '{incidents['selectedID']}' is not among the options.",
        )


class ClassImporter:
    """Imports the class, its kits, deity and domains, subclass and class features."""

    def __init__(
        self,
        fs_class: Optional[Dict[str, Any]],
        character: Dict[str, Any],
        level_choices: ResolutionResult,
        catalog: Catalog,
        ctx: LogContext,
        level_cap: Optional[int] = None,
    ):
        self.fs_class = fs_class if isinstance(fs_class, dict) else {}
        self.character = character
        self.level_choices = level_choices
        self.catalog = catalog
        self.ctx = ctx
        self.level_cap = level_cap
        self._kit_count = 0

    def import_class(self) -> None:
        self.ctx.info("Class.")
        class_name = self.fs_class.get("name")
        class_level = self.fs_class.get("level")
        if not class_name or not class_level:
            self.ctx.warn(IssueKind.MALFORMED_SECTION, "Class information not found in import.")
            return

        class_id, class_row = self.catalog.lookup(CLASSES, class_name)
        if class_id is None:
            self.ctx.warn(IssueKind.UNRESOLVED_NAME, f"Class '{class_name}' not found in {CLASSES}.", class_name)
            return

        self.ctx.added(f"class '{class_name}' level {class_level}.")
        self.character["classes"].append({"classid": class_id, "level": class_level})

        levels = parse_source_levels(self.fs_class.get("featuresByLevel"))
        self._process_kits(levels)

        level_cap = self.level_cap or class_level
        class_tree = self.catalog.expand_leveled_features(class_row, level_cap)
        if not class_tree:
            self.ctx.warn(IssueKind.MALFORMED_SECTION, f"Class '{class_name}' has no Codex levels to import into.")
            return

        domain_features = extract_domains(levels)
        resolver = LeveledChoiceResolver(class_tree, self.catalog, self.ctx.nested(), domain_features=domain_features)
        if self.ctx.logger.isEnabledFor(logging.DEBUG):
            self.ctx.debug(f"Skill slots by category: {collect_skill_choice_index(resolver.available_features)}")

        uses_subclass = self._domains_use_subclass(class_row, level_cap)
        if uses_subclass:
            deity_node = SourceFeatureNode(kind=FeatureKind.DEITY, raw_type="Deity", name=ALL_DOMAINS_DEITY)
            self.level_choices.merge(resolver.process_feature(deity_node))
            self._process_domains_as_subclass(resolver, levels, level_cap, domain_features)
        else:
            self._process_subclass(resolver, level_cap)

        self._process_class_features(resolver, levels, uses_subclass)

    def _domains_use_subclass(self, class_row, level_cap: int) -> bool:
        """True when the class's deity slot takes its domains as subclasses."""
        probe_tree = self.catalog.expand_leveled_features(class_row, max(level_cap, DEFAULT_SEARCH_LEVEL_CAP))
        probe = LeveledChoiceResolver(probe_tree, self.catalog, self.ctx.nested())
        slot = probe.find_feature(TargetType.DEITY_CHOICE.value)
        if slot is None:
            return False
        self.ctx.debug(f"Deity slot '{slot.name}' useSubclass={slot.use_subclass}")
        return slot.use_subclass

    def _process_kits(self, levels: List[SourceLevel]) -> None:
        for kit_name in extract_kits(levels):
            self.ctx.info(f"Kit '{kit_name}'.")
            kit_id, _ = self.catalog.lookup(KITS, kit_name)
            if kit_id is None:
                self.ctx.warn(IssueKind.UNRESOLVED_NAME, f"Kit '{kit_name}' not found in {KITS}.", kit_name)
                continue

            self._kit_count += 1
            if self._kit_count > MAX_KITS:
                self.ctx.warn(IssueKind.UNMATCHED_SLOT, f"No kit slot left for '{kit_name}'.", kit_name)
                continue

            key = "kitid" if self._kit_count == 1 else f"kitid{self._kit_count}"
            self.ctx.added(f"kit {self._kit_count} '{kit_name}'.")
            self.character["kits"][key] = kit_id

    def _process_domains_as_subclass(
        self,
        resolver: LeveledChoiceResolver,
        levels: List[SourceLevel],
        level_cap: int,
        domain_features: Dict[str, List[SourceLevel]],
    ) -> None:
        domain_count = 0
        for domain in selected_domains(levels):
            subclass_name = f"{domain.name} Domain"
            self.ctx.info(f"Domain '{domain.name}' as subclass.")
            domain_id, domain_row = self.catalog.lookup(SUBCLASSES, subclass_name)
            if domain_id is None:
                self.ctx.warn(
                    IssueKind.UNRESOLVED_NAME, f"'{subclass_name}' not found in {SUBCLASSES}.", subclass_name
                )
                continue

            domain_count += 1
            if domain_count > MAX_DOMAINS:
                self.ctx.warn(IssueKind.UNMATCHED_SLOT, "Too many domains.", domain.name)
                return

            slot_name = f"{'2nd' if domain_count == 2 else '1st'} Domain"
            slot = resolver.find_feature(
                TargetType.SUBCLASS_CHOICE.value,
                predicate=lambda node: TextNormalizer.strings_match(node.name, slot_name),
            )
            if slot is None:
                self.ctx.warn(IssueKind.UNMATCHED_SLOT, f"No '{slot_name}' subclass slot.", domain.name)
                continue

            self.ctx.added(f"'{subclass_name}' to '{slot_name}'.")
            self.level_choices.append_choice(slot.guid, domain_id)

            domain_tree = self.catalog.expand_leveled_features(domain_row, level_cap)
            domain_levels = list(domain.features_by_level) + list(domain_features.get(domain.name, []))
            if domain_tree and domain_levels:
                domain_resolver = LeveledChoiceResolver(domain_tree, self.catalog, self.ctx.nested())
                self.level_choices.merge(domain_resolver.process_leveled(domain_levels))

    def _process_subclass(self, resolver: LeveledChoiceResolver, level_cap: int) -> None:
        subclass_name, subclass_levels = find_selected_subclass(self.fs_class.get("subclasses"))
        if not subclass_name:
            self.ctx.debug("No subclass selected.")
            return

        self.ctx.info(f"Subclass '{subclass_name}'.")
        subclass_node = SourceFeatureNode(kind=FeatureKind.SUBCLASS, raw_type="Subclass", name=subclass_name)
        self.level_choices.merge(resolver.process_feature(subclass_node))

        _, subclass_row = self.catalog.lookup(SUBCLASSES, subclass_name)
        if subclass_row is None:
            return

        subclass_tree = self.catalog.expand_leveled_features(subclass_row, level_cap)
        if subclass_tree and subclass_levels:
            subclass_resolver = LeveledChoiceResolver(subclass_tree, self.catalog, self.ctx.nested())
            self.level_choices.merge(subclass_resolver.process_leveled(subclass_levels))

        self._process_kits(subclass_levels)

    def _process_class_features(
        self, resolver: LeveledChoiceResolver, levels: List[SourceLevel], uses_subclass: bool
    ) -> None:
        if not levels:
            self.ctx.warn(IssueKind.MALFORMED_SECTION, "No class features found in import.")
            return

        self.ctx.info("Class features.")
        features = translate_class_ability_selections(levels, self.fs_class.get("abilities"))
        if uses_subclass:
            # Domains were already placed in the subclass slots
            features = [feature for feature in features if feature.kind != FeatureKind.DOMAIN]
        self.level_choices.merge(resolver.process(features))


def import_character(
    hero: Dict[str, Any],
    catalog: Catalog,
    ctx: Optional[LogContext] = None,
    level_cap: Optional[int] = None,
) -> Dict[str, Any]:
    """Import a parsed Forge Steel hero into a Codex character record."""
    return CharacterImporter(hero, catalog, ctx, level_cap).import_character()
