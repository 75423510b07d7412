"""
Choice resolution: matching Forge Steel selections to Codex choice slots.

A ``ChoiceResolver`` holds one scope of available Codex slots (usually a whole class,
subclass or ancestry tree flattened into a list) and writes every selection it can
place into a ``ResolutionResult``. Selections that cannot be placed are dropped and
reported through the ``LogContext``; nothing here raises for bad data.
"""

import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from importer.catalog import DEITIES, DEITY_DOMAINS, FEATS, LANGUAGES, SKILLS, SUBCLASSES, Catalog
from importer.import_log import IssueKind, LogContext
from importer.models import (
    MAX_SEARCH_DEPTH,
    FeatureKind,
    Filter,
    ResolutionResult,
    SourceFeatureNode,
    SourceLevel,
    TargetFeatureNode,
    TargetType,
)
from importer.text_normalizer import TextNormalizer

logger = logging.getLogger(__name__)

# Deity entry recorded when a character takes domains rather than a single god
ALL_DOMAINS_DEITY = "All Domains"

# Which Codex table and slot type a table-backed selection resolves through
TABLE_CHOICES = {
    FeatureKind.LANGUAGE_CHOICE: (LANGUAGES, TargetType.LANGUAGE_CHOICE),
    FeatureKind.SKILL_CHOICE: (SKILLS, TargetType.SKILL_CHOICE),
    FeatureKind.PERK: (FEATS, TargetType.FEAT_CHOICE),
    FeatureKind.DEITY: (DEITIES, TargetType.DEITY_CHOICE),
    FeatureKind.SUBCLASS: (SUBCLASSES, TargetType.SUBCLASS_CHOICE),
}

SlotPredicate = Callable[[TargetFeatureNode], bool]


def category_key(categories: Iterable[str]) -> str:
    """Sorted, lower-cased, comma-joined category list, e.g. ``"crafting,lore"``."""
    return ",".join(sorted(str(category).lower() for category in categories))


def categories_match(node: TargetFeatureNode, requested: Sequence[str]) -> bool:
    """True if no categories were requested or the slot carries at least one of them."""
    if not requested:
        return True
    return any(category.lower() in node.categories for category in requested)


def collect_skill_choice_index(
    features: Iterable[TargetFeatureNode], depth: int = 0
) -> Dict[str, str]:
    """Map the category key of every skill slot in a tree to its guid.

    Unlike the slot search this walks the whole tree; a later slot with the same
    category key replaces an earlier one.
    """
    index: Dict[str, str] = {}
    if depth > MAX_SEARCH_DEPTH:
        logger.warning(f"Skill slot walk abandoned at depth {depth}")
        return index

    for node in features:
        if TextNormalizer.strings_match(node.type_name, TargetType.SKILL_CHOICE.value):
            index[category_key(node.categories)] = node.guid
        if node.children:
            index.update(collect_skill_choice_index(node.children, depth + 1))
    return index


class ChoiceResolver:
    """Resolves Forge Steel selections against one scope of Codex slots.

    Args:
        available_features: Codex slots in scope, in declaration order
        catalog: Catalog used to turn names into Codex ids
        ctx: Logging context; warnings land in its issue list
        result: Result to write into; a fresh one is created when omitted
        filter: Optional sticky prefix filter on slot fields
        domain_features: Domain Feature selections grouped by domain name, as
            produced by ``extract_domains``
    """

    def __init__(
        self,
        available_features: List[TargetFeatureNode],
        catalog: Catalog,
        ctx: Optional[LogContext] = None,
        result: Optional[ResolutionResult] = None,
        filter: Optional[Filter] = None,
        domain_features: Optional[Dict[str, List[SourceLevel]]] = None,
    ):
        self.available_features = available_features or []
        self.catalog = catalog
        self.ctx = ctx or LogContext()
        self.result = result if result is not None else ResolutionResult()
        self.filter = filter or Filter()
        self.domain_features = domain_features or {}

        self._handlers = {
            FeatureKind.CHOICE: self._process_feature_choice,
            FeatureKind.CLASS_ABILITY: self._process_feature_choice,
            FeatureKind.DOMAIN: self._process_domain,
            FeatureKind.MULTIPLE_FEATURES: self._process_multiple_features,
        }

    def process(self, features: Iterable[SourceFeatureNode]) -> ResolutionResult:
        for feature in features:
            self.process_feature(feature)
        return self.result

    def process_feature(self, feature: SourceFeatureNode, depth: int = 0) -> ResolutionResult:
        """Dispatch one source feature by kind and record whatever it resolves to."""
        if depth > MAX_SEARCH_DEPTH:
            self.ctx.warn(
                IssueKind.MALFORMED_SECTION,
                f"Feature nesting deeper than {MAX_SEARCH_DEPTH} at '{feature.name}', skipping.",
                feature.name,
            )
            return self.result

        self.ctx.debug(f"Feature '{feature.name}' ({feature.raw_type or 'no type'})")

        if feature.kind in TABLE_CHOICES:
            self._process_table_choice(feature)
        elif feature.kind in self._handlers:
            self._handlers[feature.kind](feature, depth)
        elif feature.kind == FeatureKind.DOMAIN_FEATURE:
            self.ctx.debug("Domain Feature selections are resolved with their domain.")
        else:
            self.ctx.debug(f"Nothing to resolve for feature type '{feature.raw_type}'.")

        return self.result

    # ------------------------------------------------------------------
    # Slot search
    # ------------------------------------------------------------------

    def find_matching_feature(
        self,
        type_name: str,
        features: Optional[List[TargetFeatureNode]] = None,
        categories: Sequence[str] = (),
        predicate: Optional[SlotPredicate] = None,
        passed: bool = False,
        depth: int = 0,
    ) -> Optional[TargetFeatureNode]:
        """First slot of ``type_name`` in scope, searching the top level before nesting.

        A node is eligible once it, or one of its ancestors, passes the filter. Among
        eligible nodes the slot must have the requested type, share a category with
        ``categories`` (when any are given) and satisfy ``predicate``.

        Args:
            type_name: Codex slot type, e.g. ``CharacterSkillChoice``
            features: Nodes to search; defaults to everything in scope
            categories: Requested categories; empty matches any slot
            predicate: Extra test on the slot, e.g. "has this option"
            passed: Whether an ancestor already passed the filter
            depth: Current nesting depth

        Returns:
            The matched slot or ``None``
        """
        if features is None:
            features = self.available_features

        if depth > MAX_SEARCH_DEPTH:
            self.ctx.warn(
                IssueKind.MALFORMED_SECTION,
                f"Slot search for {type_name} exceeded depth {MAX_SEARCH_DEPTH}.",
            )
            return None

        candidates = [(node, passed or self.filter.passes(node)) for node in features]

        for node, node_passed in candidates:
            if (
                node_passed
                and TextNormalizer.strings_match(type_name, node.type_name)
                and categories_match(node, categories)
                and (predicate is None or predicate(node))
            ):
                return node

        for node, node_passed in candidates:
            if not node.children:
                continue
            found = self.find_matching_feature(
                type_name, node.children, categories, predicate, node_passed, depth + 1
            )
            if found is not None:
                return found

        return None

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _process_feature_choice(self, feature: SourceFeatureNode, depth: int = 0) -> None:
        for selection in feature.selected:
            if isinstance(selection, str):
                name, description = selection, None
            else:
                name, description = selection.name, selection.description

            choice_name = TextNormalizer.translate_feature_choice(name, description)
            slot = self.find_matching_feature(
                TargetType.FEATURE_CHOICE.value,
                predicate=lambda node: node.find_option(choice_name) is not None,
            )
            if slot is None:
                self.ctx.warn(
                    IssueKind.UNMATCHED_SLOT,
                    f"No feature choice offers '{choice_name}' for '{feature.name}'.",
                    choice_name,
                )
                continue

            option = slot.find_option(choice_name)
            self.ctx.added(f"feature choice '{choice_name}' to '{slot.name}'.")
            self.result.add_choice(slot.guid, option.guid)
            self.result.record_feature(slot)

    def _process_table_choice(self, feature: SourceFeatureNode) -> None:
        table_name, slot_type = TABLE_CHOICES[feature.kind]
        categories = feature.list_options if feature.kind == FeatureKind.SKILL_CHOICE else ()

        names = feature.selected_names()
        if not names and feature.kind in (FeatureKind.DEITY, FeatureKind.SUBCLASS) and feature.name:
            names = [feature.name]

        for name in names:
            self._resolve_table_selection(name, table_name, slot_type, categories)

    def _resolve_table_selection(
        self,
        name: str,
        table_name: str,
        slot_type: TargetType,
        categories: Sequence[str] = (),
    ) -> Optional[TargetFeatureNode]:
        row_id, _ = self.catalog.lookup(table_name, name)
        if row_id is None:
            self.ctx.warn(
                IssueKind.UNRESOLVED_NAME, f"'{name}' not found in {table_name}.", name
            )
            return None

        slot = self.find_matching_feature(slot_type.value, categories=categories)
        if slot is None:
            scope = f" for categories '{category_key(categories)}'" if categories else ""
            self.ctx.warn(
                IssueKind.UNMATCHED_SLOT, f"No {slot_type.value} slot{scope} for '{name}'.", name
            )
            return None

        self.ctx.added(f"{table_name} entry '{name}'.")
        self.result.add_choice(slot.guid, row_id)
        self.result.record_feature(slot)
        return slot

    def _process_multiple_features(self, feature: SourceFeatureNode, depth: int = 0) -> None:
        for child in feature.children:
            self.process_feature(child, depth + 1)

    def _process_domain(self, feature: SourceFeatureNode, depth: int = 0) -> None:
        domains = [node for node in feature.selected_nodes() if node.name]
        if not domains:
            self.ctx.debug("No domains selected.")
            return

        domains_key = self._deity_domains_key()

        for domain in domains:
            self.ctx.info(f"Domain '{domain.name}'")
            domain_ctx = self.ctx.nested()

            domain_id, _ = self.catalog.lookup(DEITY_DOMAINS, domain.name)
            if domain_id is None:
                domain_ctx.warn(
                    IssueKind.UNRESOLVED_NAME,
                    f"'{domain.name}' not found in {DEITY_DOMAINS}.",
                    domain.name,
                )
            else:
                domain_ctx.added(f"domain '{domain.name}'.")
                self.result.append_choice(domains_key, domain_id)

            self._process_domain_features(domain, depth, domain_ctx)

    def _deity_domains_key(self) -> str:
        """Record the all-domains deity and return the key domains are listed under."""
        slot = self.find_matching_feature(TargetType.DEITY_CHOICE.value)
        if slot is None:
            # Nothing on the Codex side can resolve this key; kept so the domains are
            # not lost, and flagged so the caller can see it.
            key = f"forge-steel-deity-{int(time.time())}-domains"
            self.ctx.warn(
                IssueKind.AMBIGUOUS_FALLBACK,
                f"No deity slot in scope, recording domains under '{key}'.",
            )
            return key

        deity_id, _ = self.catalog.lookup(DEITIES, ALL_DOMAINS_DEITY)
        if deity_id is None:
            self.ctx.warn(
                IssueKind.UNRESOLVED_NAME,
                f"'{ALL_DOMAINS_DEITY}' not found in {DEITIES}.",
                ALL_DOMAINS_DEITY,
            )
        else:
            self.ctx.added(f"deity '{ALL_DOMAINS_DEITY}'.")
            self.result.add_choice(slot.guid, deity_id)
            self.result.record_feature(slot)

        return f"{slot.guid}-domains"

    def _process_domain_features(
        self, domain: SourceFeatureNode, depth: int, ctx: LogContext
    ) -> None:
        levels = list(domain.features_by_level) + list(self.domain_features.get(domain.name, []))
        if not levels:
            return

        nested = ChoiceResolver(
            self.available_features,
            self.catalog,
            ctx,
            result=self.result,
            filter=Filter.by_name(f"{domain.name} Domain"),
            domain_features=self.domain_features,
        )
        for level in levels:
            for feature in level.features:
                nested.process_feature(feature, depth + 1)
