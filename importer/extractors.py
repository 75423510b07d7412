"""
Helpers that reshape parts of the Forge Steel class before resolution.

None of these look at the Codex side; they only pull kits, domains, the selected
subclass and class ability names out of the source tree.
"""

import logging
from typing import Any, Dict, List, Optional

from importer.models import FeatureKind, SourceFeatureNode, SourceLevel, parse_source_levels

logger = logging.getLogger(__name__)


def _features_of_kind(levels: List[SourceLevel], kind: FeatureKind) -> List[SourceFeatureNode]:
    return [feature for level in levels for feature in level.features if feature.kind == kind]


def domain_slug(domain_name: str) -> str:
    """Prefix of the ids Forge Steel gives a domain's features, e.g. ``domain-war``."""
    return "domain-" + "-".join(domain_name.lower().split())


def extract_kits(levels: List[SourceLevel]) -> List[str]:
    """Names of every kit selected anywhere in the levels, in source order."""
    kits = []
    for feature in _features_of_kind(levels, FeatureKind.KIT):
        kits.extend(feature.selected_names())
    return kits


def extract_domain_features(domain_name: str, levels: List[SourceLevel]) -> List[SourceLevel]:
    """Domain Feature selections belonging to one domain, grouped by source level."""
    slug = domain_slug(domain_name)
    domain_levels = []

    for level in levels:
        selected = []
        for feature in level.features:
            if feature.kind != FeatureKind.DOMAIN_FEATURE:
                continue
            for selection in feature.selected_nodes():
                if selection.id and selection.id.lower().startswith(slug):
                    selected.append(selection)
        if selected:
            domain_levels.append(SourceLevel(level=level.level, features=selected))

    return domain_levels


def extract_domains(levels: List[SourceLevel]) -> Dict[str, List[SourceLevel]]:
    """Selected domain names mapped to their Domain Feature selections by level.

    Domains with no Domain Feature selections are left out.
    """
    domains: Dict[str, List[SourceLevel]] = {}
    for feature in _features_of_kind(levels, FeatureKind.DOMAIN):
        for domain in feature.selected_nodes():
            if not domain.name:
                continue
            domain_levels = extract_domain_features(domain.name, levels)
            if domain_levels:
                domains[domain.name] = domain_levels
    return domains


def selected_domains(levels: List[SourceLevel]) -> List[SourceFeatureNode]:
    """Every domain the character picked, in source order."""
    return [
        domain
        for feature in _features_of_kind(levels, FeatureKind.DOMAIN)
        for domain in feature.selected_nodes()
        if domain.name
    ]


def translate_class_ability_selections(
    levels: List[SourceLevel], abilities: Optional[List[Dict[str, Any]]]
) -> List[SourceFeatureNode]:
    """Flatten the class levels, turning Class Ability ids into named selections.

    Forge Steel stores picked class abilities only as ids; the resolver matches by
    name, so each id is looked up in the class's ``abilities`` list. Unknown ids are
    logged and dropped. Every other feature passes through unchanged.
    """
    abilities_by_id = {ability.get("id"): ability for ability in abilities or [] if ability.get("id")}
    features = []

    for level in levels:
        for feature in level.features:
            if feature.kind != FeatureKind.CLASS_ABILITY:
                features.append(feature)
                continue

            selected = []
            for ability_id in feature.selected_ids:
                ability = abilities_by_id.get(ability_id)
                if ability is None:
                    logger.debug(f"Class ability id '{ability_id}' not in class abilities")
                    continue
                selected.append(
                    SourceFeatureNode(
                        kind=FeatureKind.UNKNOWN,
                        raw_type="ability",
                        id=ability_id,
                        name=ability.get("name"),
                        description=ability.get("description"),
                    )
                )

            features.append(
                SourceFeatureNode(
                    kind=FeatureKind.CLASS_ABILITY,
                    raw_type=feature.raw_type,
                    id=feature.id,
                    name=feature.name,
                    description=feature.description,
                    selected=selected,
                )
            )

    return features


def find_selected_subclass(subclasses: Optional[List[Dict[str, Any]]]):
    """Name and levels of the subclass marked ``selected``, or ``(None, [])``."""
    for subclass in subclasses or []:
        if subclass.get("selected"):
            return subclass.get("name"), parse_source_levels(subclass.get("featuresByLevel"))
    return None, []
