"""Aggregate index built once per scan from the scanners' entity lists."""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .analyzers.assets import BLUEPRINT_ASSET_TYPE
from .errors import ScanIssue
from .logging import get_logger
from .models import (
    DECLARATION_KINDS,
    AssetEntity,
    CallableEntity,
    DeclarationEntity,
    ModuleRef,
    PluginEntity,
    ProjectDescriptor,
    ProjectSummary,
    UsageResult,
)

RELATION_PARENT = "parent"
RELATION_RETURN_TYPE = "return_type"
RELATION_PARAMETER = "parameter"

_logger = get_logger("index")


@dataclass(frozen=True)
class UsageEdge:
    """A textual reference from a declaration or callable to a type token."""

    source: str
    relation: str
    target: str
    file: str


class AggregateIndex:
    """Read-only, name-keyed view over one scan generation.

    Entities are merged in the order given; a later entity with the same key
    replaces an earlier one and the replacement is counted as a collision.
    Declarations are keyed by name, callables by ``(owner, name)``, assets by
    name for lookup (every asset file stays listed by path), plugins by name.
    """

    def __init__(
        self,
        project: ProjectDescriptor,
        *,
        declarations: Sequence[DeclarationEntity] = (),
        callables: Sequence[CallableEntity] = (),
        assets: Sequence[AssetEntity] = (),
        plugins: Sequence[PluginEntity] = (),
        module_declarations: Mapping[str, Sequence[str]] | None = None,
        issues: Sequence[ScanIssue] = (),
    ) -> None:
        self.project = project
        self.issues: Tuple[ScanIssue, ...] = tuple(issues)
        self.collisions: Dict[str, int] = {}

        self._declarations = self._merge("declarations", declarations, lambda d: d.name)
        self._callables = self._merge("callables", callables, lambda c: (c.owner, c.name))
        self._assets_by_name = self._merge("assets", assets, lambda a: a.name)
        self._plugins = self._merge("plugins", plugins, lambda p: p.name)

        self._assets_by_path: Dict[str, AssetEntity] = {asset.path: asset for asset in assets}
        self._modules = self._classify_modules(project.modules, module_declarations or {})

        self._callables_by_owner: Dict[str, List[CallableEntity]] = defaultdict(list)
        for entity in self._callables.values():
            self._callables_by_owner[entity.owner].append(entity)

        self._parents: Dict[str, str] = {
            name: entity.parent for name, entity in self._declarations.items() if entity.parent
        }
        self._edges = self._build_edges()

    # ------------------------------------------------------------------
    # Lookups

    def declarations(self, kind: str | None = None) -> List[DeclarationEntity]:
        entities = list(self._declarations.values())
        if kind is None:
            return entities
        return [entity for entity in entities if entity.kind == kind.upper()]

    def find_declaration(self, name: str) -> Optional[DeclarationEntity]:
        return self._declarations.get(name)

    def callables(self, *, externally_invokable: bool | None = None) -> List[CallableEntity]:
        entities = list(self._callables.values())
        if externally_invokable is None:
            return entities
        return [entity for entity in entities if entity.blueprint_callable == externally_invokable]

    def callables_of(self, owner: str) -> List[CallableEntity]:
        return list(self._callables_by_owner.get(owner, []))

    def find_callables(self, name: str) -> List[CallableEntity]:
        return [entity for entity in self._callables.values() if entity.name == name]

    def assets(self, asset_type: str | None = None) -> List[AssetEntity]:
        entities = list(self._assets_by_path.values())
        if asset_type is None:
            return entities
        return [entity for entity in entities if entity.type.lower() == asset_type.lower()]

    def blueprints(self) -> List[AssetEntity]:
        return self.assets(BLUEPRINT_ASSET_TYPE)

    def find_asset(self, name: str) -> Optional[AssetEntity]:
        return self._assets_by_name.get(name)

    def asset_at(self, path: str) -> Optional[AssetEntity]:
        return self._assets_by_path.get(path)

    def plugins(self, *, enabled: bool | None = None) -> List[PluginEntity]:
        entities = list(self._plugins.values())
        if enabled is None:
            return entities
        return [entity for entity in entities if entity.enabled == enabled]

    def find_plugin(self, name: str) -> Optional[PluginEntity]:
        return self._plugins.get(name)

    def plugins_by_category(self, category: str) -> List[PluginEntity]:
        lowered = category.lower()
        return [
            entity
            for entity in self._plugins.values()
            if entity.category is not None and entity.category.lower() == lowered
        ]

    def is_plugin_installed(self, name: str) -> bool:
        plugin = self._plugins.get(name)
        return plugin is not None and plugin.installed

    def modules(self) -> List[ModuleRef]:
        return list(self._modules.values())

    def find_module(self, name: str) -> Optional[ModuleRef]:
        return self._modules.get(name)

    @property
    def edges(self) -> Tuple[UsageEdge, ...]:
        return self._edges

    # ------------------------------------------------------------------
    # Search

    def search_declarations(self, query: str) -> List[DeclarationEntity]:
        needle = query.lower()
        return [
            entity
            for entity in self._declarations.values()
            if needle in entity.name.lower() or needle in entity.kind.lower()
        ]

    def search_callables(self, query: str) -> List[CallableEntity]:
        needle = query.lower()
        return [
            entity
            for entity in self._callables.values()
            if needle in entity.name.lower() or needle in entity.owner.lower()
        ]

    def search_assets(self, query: str) -> List[AssetEntity]:
        needle = query.lower()
        return [
            entity
            for entity in self._assets_by_path.values()
            if needle in entity.name.lower()
            or needle in entity.path.lower()
            or needle in entity.type.lower()
        ]

    def search_plugins(self, query: str) -> List[PluginEntity]:
        needle = query.lower()
        return [
            entity
            for entity in self._plugins.values()
            if needle in entity.name.lower()
            or needle in (entity.friendly_name or "").lower()
            or needle in (entity.category or "").lower()
        ]

    # ------------------------------------------------------------------
    # Graph queries

    def hierarchy(self, name: str) -> List[str]:
        """Return ``[name, parent, grandparent, ...]`` for declarations in the index.

        The walk stops at a declaration without a parent, at a parent that was not
        indexed, or at the first repeated name. It never exceeds the number of
        indexed declarations.
        """
        chain: List[str] = []
        seen = set()
        limit = len(self._declarations)
        current = self._declarations.get(name)
        while current is not None and current.name not in seen and len(chain) < limit:
            chain.append(current.name)
            seen.add(current.name)
            parent = self._parents.get(current.name)
            if parent is None:
                break
            current = self._declarations.get(parent)
        return chain

    def usages(self, name: str) -> UsageResult:
        """Return every file that textually references ``name``.

        Direct subclasses match on the exact parent name; callables match when the
        name is a substring of their return type or any parameter type, so unrelated
        types sharing a substring are reported as well.
        """
        files = set()
        for edge in self._edges:
            if edge.relation == RELATION_PARENT:
                if edge.target == name:
                    files.add(edge.file)
            elif name in edge.target:
                files.add(edge.file)
        return UsageResult(name=name, files=sorted(files))

    # ------------------------------------------------------------------
    # Statistics

    def summary(self) -> ProjectSummary:
        by_kind = {kind: 0 for kind in DECLARATION_KINDS}
        by_kind.update(Counter(entity.kind for entity in self._declarations.values()))

        assets = list(self._assets_by_path.values())
        categories = Counter(
            plugin.category for plugin in self._plugins.values() if plugin.category
        )
        issue_counts = Counter(issue.kind.value for issue in self.issues)

        return ProjectSummary(
            project_name=self.project.name,
            engine_association=self.project.engine_association,
            platforms=list(self.project.target_platforms),
            modules={
                "total": len(self._modules),
                "list": list(self._modules),
            },
            declarations={
                "total": len(self._declarations),
                "by_kind": by_kind,
            },
            callables={
                "total": len(self._callables),
                "externally_invokable": sum(
                    1 for entity in self._callables.values() if entity.blueprint_callable
                ),
            },
            assets={
                "total": len(assets),
                "by_type": dict(Counter(asset.type for asset in assets)),
                "total_bytes": sum(asset.size for asset in assets),
            },
            blueprints={"total": len(self.blueprints())},
            plugins={
                "total": len(self._plugins),
                "enabled": sum(1 for plugin in self._plugins.values() if plugin.enabled),
                "categories": dict(categories),
            },
            collisions=dict(self.collisions),
            issues=dict(issue_counts),
        )

    # ------------------------------------------------------------------
    # Internal helpers

    def _merge(self, label: str, entities: Iterable, key) -> Dict:
        merged: Dict = {}
        collisions = 0
        for entity in entities:
            entity_key = key(entity)
            if entity_key in merged:
                collisions += 1
                _logger.debug("Duplicate %s key %r; keeping the later entity", label, entity_key)
            merged[entity_key] = entity
        self.collisions[label] = collisions
        return merged

    @staticmethod
    def _classify_modules(
        modules: Iterable[ModuleRef], found: Mapping[str, Sequence[str]]
    ) -> Dict[str, ModuleRef]:
        classified: Dict[str, ModuleRef] = {}
        for module in modules:
            names = tuple(dict.fromkeys(found.get(module.name, ())))
            classified[module.name] = replace(module, declarations=names)
        return classified

    def _build_edges(self) -> Tuple[UsageEdge, ...]:
        edges: List[UsageEdge] = []
        for entity in self._declarations.values():
            if entity.parent:
                edges.append(UsageEdge(entity.name, RELATION_PARENT, entity.parent, entity.file))
        for entity in self._callables.values():
            edges.append(UsageEdge(entity.name, RELATION_RETURN_TYPE, entity.return_type, entity.file))
            for parameter in entity.parameters:
                edges.append(UsageEdge(entity.name, RELATION_PARAMETER, parameter.type, entity.file))
        return tuple(edges)


__all__ = [
    "AggregateIndex",
    "RELATION_PARAMETER",
    "RELATION_PARENT",
    "RELATION_RETURN_TYPE",
    "UsageEdge",
]
