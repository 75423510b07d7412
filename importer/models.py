"""
Typed views of the two trees the importer reconciles.

Forge Steel selections (``SourceFeatureNode``) come from the ``.ds-hero`` document;
Codex choice slots (``TargetFeatureNode``) come from the catalog's expanded class,
subclass and domain definitions. Both are parsed once at the boundary so the
resolver never probes raw dictionaries. Values of the wrong shape are read as
empty, and nesting deeper than ``MAX_SEARCH_DEPTH`` is cut off.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Union

from importer.text_normalizer import TextNormalizer

logger = logging.getLogger(__name__)

MAX_SEARCH_DEPTH = 32


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


class FeatureKind(str, Enum):
    """Forge Steel feature types the importer understands (matched case-insensitively)."""

    CHOICE = "choice"
    LANGUAGE_CHOICE = "language choice"
    PERK = "perk"
    SKILL_CHOICE = "skill choice"
    CLASS_ABILITY = "class ability"
    DOMAIN = "domain"
    DOMAIN_FEATURE = "domain feature"
    MULTIPLE_FEATURES = "multiple features"
    SUBCLASS = "subclass"
    DEITY = "deity"
    KIT = "kit"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw_type: Optional[str]) -> "FeatureKind":
        try:
            return cls((raw_type or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN


class TargetType(str, Enum):
    """Codex choice slot types."""

    FEATURE_CHOICE = "CharacterFeatureChoice"
    LANGUAGE_CHOICE = "CharacterLanguageChoice"
    FEAT_CHOICE = "CharacterFeatChoice"
    SKILL_CHOICE = "CharacterSkillChoice"
    DEITY_CHOICE = "CharacterDeityChoice"
    SUBCLASS_CHOICE = "CharacterSubclassChoice"
    DEITY_DOMAIN_CHOICE = "CharacterDeityDomainChoice"


SelectedValue = Union[str, "SourceFeatureNode"]


@dataclass
class SourceFeatureNode:
    """A feature in the Forge Steel character, with whatever the player selected."""

    kind: FeatureKind
    raw_type: str = ""
    name: Optional[str] = None
    id: Optional[str] = None
    description: Optional[str] = None
    selected: List[SelectedValue] = field(default_factory=list)
    selected_ids: List[str] = field(default_factory=list)
    list_options: List[str] = field(default_factory=list)
    children: List["SourceFeatureNode"] = field(default_factory=list)
    features_by_level: List["SourceLevel"] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], depth: int = 0) -> "SourceFeatureNode":
        """Build a node from a Forge Steel feature dictionary.

        Selections that are plain strings (languages, skills) stay strings; selections
        that are objects (options, perks, domains, kits) become nested nodes.

        Args:
            data: Feature dictionary; anything else reads as an empty feature
            depth: Nesting depth of this feature, used to cut off runaway trees
        """
        data = _as_dict(data)
        payload = data.get("data")
        if payload is not None and not isinstance(payload, dict):
            logger.debug(f"Ignoring feature data of unexpected shape on '{data.get('name')}': {payload!r}")
        payload = _as_dict(payload)

        raw_children = _as_list(payload.get("features"))
        raw_levels = data.get("featuresByLevel")
        raw_selected = _as_list(payload.get("selected"))
        if depth >= MAX_SEARCH_DEPTH:
            if raw_children or raw_levels or any(isinstance(item, dict) for item in raw_selected):
                logger.warning(
                    f"Feature '{data.get('name')}' nested deeper than {MAX_SEARCH_DEPTH}, dropping its nested features."
                )
            raw_children, raw_levels = [], None
            raw_selected = [item for item in raw_selected if not isinstance(item, dict)]

        selected: List[SelectedValue] = []
        for item in raw_selected:
            if isinstance(item, str):
                selected.append(item)
            elif isinstance(item, dict):
                selected.append(cls.from_dict(item, depth + 1))
            else:
                logger.debug(f"Ignoring selection of unexpected shape: {item!r}")

        raw_type = data.get("type") if isinstance(data.get("type"), str) else ""
        return cls(
            kind=FeatureKind.parse(raw_type),
            raw_type=raw_type,
            name=data.get("name"),
            id=data.get("id"),
            description=data.get("description"),
            selected=selected,
            selected_ids=[str(item) for item in _as_list(payload.get("selectedIDs"))],
            list_options=[str(item) for item in _as_list(payload.get("listOptions"))],
            children=[cls.from_dict(child, depth + 1) for child in raw_children],
            features_by_level=parse_source_levels(raw_levels, depth + 1),
        )

    def selected_names(self) -> List[str]:
        """Names of the selections, in source order, skipping unnamed objects."""
        names = []
        for value in self.selected:
            name = value if isinstance(value, str) else value.name
            if name:
                names.append(name)
        return names

    def selected_nodes(self) -> List["SourceFeatureNode"]:
        return [value for value in self.selected if isinstance(value, SourceFeatureNode)]


@dataclass
class SourceLevel:
    """Forge Steel features granted at one level."""

    level: int
    features: List[SourceFeatureNode] = field(default_factory=list)


def parse_source_levels(raw_levels: Optional[Iterable[Dict[str, Any]]], depth: int = 0) -> List[SourceLevel]:
    """Parse a Forge Steel ``featuresByLevel`` list, skipping entries that are not objects."""
    levels = []
    for raw_level in _as_list(raw_levels):
        if not isinstance(raw_level, dict):
            logger.debug(f"Ignoring level of unexpected shape: {raw_level!r}")
            continue
        levels.append(
            SourceLevel(
                level=raw_level.get("level", 1),
                features=[
                    SourceFeatureNode.from_dict(feature, depth)
                    for feature in _as_list(raw_level.get("features"))
                    if isinstance(feature, dict)
                ],
            )
        )
    return levels


@dataclass
class FeatureOption:
    """One option offered by a Codex choice slot."""

    name: str
    guid: str


@dataclass
class TargetFeatureNode:
    """A Codex choice slot (or a wrapper feature holding nested slots)."""

    type_name: str
    guid: str
    name: str = ""
    description: str = ""
    categories: Set[str] = field(default_factory=set)
    options: List[FeatureOption] = field(default_factory=list)
    children: List["TargetFeatureNode"] = field(default_factory=list)
    use_subclass: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any], depth: int = 0) -> "TargetFeatureNode":
        data = _as_dict(data)
        raw_children = [child for child in _as_list(data.get("features")) if isinstance(child, dict)]
        if depth >= MAX_SEARCH_DEPTH and raw_children:
            logger.warning(
                f"Codex feature '{data.get('name')}' nested deeper than {MAX_SEARCH_DEPTH}, dropping its nested features."
            )
            raw_children = []
        return cls(
            type_name=data.get("typeName") or "",
            guid=data.get("guid") or "",
            name=data.get("name") or "",
            description=data.get("description") or "",
            categories=normalize_categories(data.get("categories")),
            options=[
                FeatureOption(name=option.get("name") or "", guid=option.get("guid") or "")
                for option in _as_list(data.get("options"))
                if isinstance(option, dict)
            ],
            children=[cls.from_dict(child, depth + 1) for child in raw_children],
            use_subclass=bool(data.get("useSubclass", False)),
        )

    def find_option(self, name: str) -> Optional[FeatureOption]:
        for option in self.options:
            if TextNormalizer.strings_match(name, option.name):
                return option
        return None


@dataclass
class TargetLevel:
    """Codex choice slots unlocked at one level."""

    level: int
    features: List[TargetFeatureNode] = field(default_factory=list)


def normalize_categories(raw_categories: Any) -> Set[str]:
    """Lower-cased category set from either a list of names or a ``{name: bool}`` map."""
    if not raw_categories:
        return set()
    if isinstance(raw_categories, dict):
        return {
            str(name).lower()
            for name, enabled in raw_categories.items()
            if enabled and name != "_luaTable"
        }
    if isinstance(raw_categories, str):
        return {raw_categories.lower()}
    return {str(name).lower() for name in raw_categories}


def parse_target_levels(raw_levels: Optional[Iterable[Dict[str, Any]]]) -> List[TargetLevel]:
    levels = []
    for raw_level in _as_list(raw_levels):
        if not isinstance(raw_level, dict):
            logger.debug(f"Ignoring Codex level of unexpected shape: {raw_level!r}")
            continue
        levels.append(
            TargetLevel(
                level=raw_level.get("level", 1),
                features=[
                    TargetFeatureNode.from_dict(feature)
                    for feature in _as_list(raw_level.get("features"))
                    if isinstance(feature, dict)
                ],
            )
        )
    return levels


@dataclass
class Filter:
    """Prefix predicate over target slots, e.g. ``Filter({"name": "War Domain"})``.

    A node passes when each filtered field starts with the expected text under
    name normalization. An empty filter passes everything.
    """

    fields: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def by_name(cls, prefix: str) -> "Filter":
        return cls({"name": prefix})

    def __bool__(self) -> bool:
        return bool(self.fields)

    def passes(self, node: TargetFeatureNode) -> bool:
        for field_name, expected in self.fields.items():
            actual = getattr(node, field_name, None)
            if not isinstance(actual, str):
                return False
            if not TextNormalizer.starts_with(actual, expected):
                return False
        return True


ChoiceValue = Union[str, List[str]]


@dataclass
class ResolutionResult:
    """Slot guid -> selected option id(s), plus the matched slots themselves.

    A slot written once holds a single id; the second write turns it into a list
    of both ids and later writes append.
    """

    choices: Dict[str, ChoiceValue] = field(default_factory=dict)
    feature_data: Dict[str, TargetFeatureNode] = field(default_factory=dict)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        yield self.choices
        yield self.feature_data

    def __len__(self) -> int:
        return len(self.choices)

    def add_choice(self, guid: str, value: str) -> None:
        existing = self.choices.get(guid)
        if existing is None:
            self.choices[guid] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            self.choices[guid] = [existing, value]

    def append_choice(self, guid: str, value: str) -> None:
        """Add to a slot that is always list-valued."""
        existing = self.choices.get(guid)
        if existing is None:
            self.choices[guid] = [value]
        elif isinstance(existing, list):
            existing.append(value)
        else:
            self.choices[guid] = [existing, value]

    def record_feature(self, node: TargetFeatureNode) -> None:
        self.feature_data[node.guid] = node

    def merge(self, other: "ResolutionResult") -> "ResolutionResult":
        """Fold another result into this one.

        New slots are copied as they are; slots already present accumulate the
        incoming ids. Matched slot data is last-write-wins.
        """
        for guid, value in other.choices.items():
            if guid not in self.choices:
                self.choices[guid] = list(value) if isinstance(value, list) else value
                continue
            for item in value if isinstance(value, list) else [value]:
                self.add_choice(guid, item)
        self.feature_data.update(other.feature_data)
        return self
