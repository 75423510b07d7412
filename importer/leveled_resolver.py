"""
Levelled resolution: runs the choice resolver over whole Forge Steel feature trees.

Forge Steel and Codex do not grant choices at the same levels, so every source
feature is matched against the entire available Codex tree rather than the bucket
with the same level number.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Union

from importer.catalog import Catalog
from importer.choice_resolver import ChoiceResolver
from importer.import_log import LogContext
from importer.models import (
    Filter,
    ResolutionResult,
    SourceFeatureNode,
    SourceLevel,
    TargetFeatureNode,
    TargetLevel,
)

logger = logging.getLogger(__name__)

TargetTree = Sequence[Union[TargetLevel, TargetFeatureNode]]


def _flatten_target(target: Optional[TargetTree]) -> List[TargetFeatureNode]:
    features: List[TargetFeatureNode] = []
    for item in target or []:
        if isinstance(item, TargetLevel):
            features.extend(item.features)
        else:
            features.append(item)
    return features


class LeveledChoiceResolver:
    """Reusable resolver over one available Codex tree.

    Each ``process*`` call returns the result of that call alone and also folds it
    into ``result``, the running total for this resolver. The filter can be changed
    between calls to scope later passes (for instance to one domain's slots).
    """

    def __init__(
        self,
        available_levels: TargetTree,
        catalog: Catalog,
        ctx: Optional[LogContext] = None,
        filter: Optional[Filter] = None,
        domain_features: Optional[Dict[str, List[SourceLevel]]] = None,
    ):
        self.available_features = _flatten_target(available_levels)
        self.catalog = catalog
        self.ctx = ctx or LogContext()
        self.filter = filter
        self.domain_features = domain_features or {}
        self.result = ResolutionResult()

        if not self.available_features:
            self.ctx.debug("No Codex features available to resolve against.")

    def set_filter(self, filter: Optional[Filter]) -> None:
        self.filter = filter

    def clear_filter(self) -> None:
        self.filter = None

    def _resolver(self, call_result: ResolutionResult) -> ChoiceResolver:
        return ChoiceResolver(
            self.available_features,
            self.catalog,
            self.ctx,
            result=call_result,
            filter=self.filter,
            domain_features=self.domain_features,
        )

    def find_feature(self, type_name: str, **kwargs) -> Optional[TargetFeatureNode]:
        """Slot search over the whole available tree under the current filter."""
        return self._resolver(ResolutionResult()).find_matching_feature(type_name, **kwargs)

    def process_feature(self, feature: SourceFeatureNode) -> ResolutionResult:
        return self.process([feature])

    def process(self, features: Iterable[SourceFeatureNode]) -> ResolutionResult:
        call_result = ResolutionResult()
        self._resolver(call_result).process(features)
        self.result.merge(call_result)
        return call_result

    def process_leveled(self, levels: Iterable[SourceLevel]) -> ResolutionResult:
        """Resolve every feature of every source level bucket, in the order given."""
        call_result = ResolutionResult()
        resolver = self._resolver(call_result)
        for level in levels:
            self.ctx.debug(f"Level {level.level}")
            resolver.process(level.features)
        self.result.merge(call_result)
        return call_result


def resolve_leveled(
    source_tree: Iterable[SourceLevel],
    target_tree: TargetTree,
    catalog: Catalog,
    filter: Optional[Filter] = None,
    ctx: Optional[LogContext] = None,
    domain_features: Optional[Dict[str, List[SourceLevel]]] = None,
) -> ResolutionResult:
    """Resolve a levelled Forge Steel tree against a Codex tree.

    The result unpacks as ``choices, feature_data = resolve_leveled(...)``.
    """
    resolver = LeveledChoiceResolver(target_tree, catalog, ctx, filter, domain_features)
    return resolver.process_leveled(source_tree)


def resolve_one(
    source_node: SourceFeatureNode,
    target_tree: TargetTree,
    catalog: Catalog,
    filter: Optional[Filter] = None,
    ctx: Optional[LogContext] = None,
    domain_features: Optional[Dict[str, List[SourceLevel]]] = None,
) -> ResolutionResult:
    """Resolve a single Forge Steel feature against a Codex tree."""
    resolver = LeveledChoiceResolver(target_tree, catalog, ctx, filter, domain_features)
    return resolver.process_feature(source_node)
