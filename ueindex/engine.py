"""Scan pipeline and query surface over the aggregate index."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .analyzers import Analyzer, AnalyzerResult, discover_analyzers
from .config import IndexConfig, load_config
from .delegate import DelegateGateway, DelegateResult, LiveDelegate
from .errors import IndexNotReady
from .index import AggregateIndex
from .logging import get_logger, log_scan_issues
from .manifest import ManifestParser, ValidationReport, validate_project_structure
from .models import (
    AssetEntity,
    CallableEntity,
    DeclarationEntity,
    ModuleRef,
    PluginEntity,
    ProjectDescriptor,
    ProjectSummary,
    UsageResult,
)


class ProjectIndexer:
    """Runs the manifest parser and scanners, then answers queries from the result.

    A scan either completes and replaces the index wholesale or fails and leaves
    no index behind. Only manifest and configuration failures propagate.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        config: IndexConfig | None = None,
        analyzers: Optional[Iterable[Analyzer]] = None,
        delegate: LiveDelegate | None = None,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        self._config_override = config
        self._analyzer_overrides = list(analyzers) if analyzers is not None else None
        self._delegates = DelegateGateway(delegate)
        self._index: Optional[AggregateIndex] = None
        self._lock = threading.Lock()
        self.logger = get_logger("engine")

    # ------------------------------------------------------------------
    # Scanning

    def scan(self) -> AggregateIndex:
        """Rebuild the index from disk."""
        with self._lock:
            self._index = None
            self.logger.info("Scanning Unreal project at %s", self.root)

            config = self._load_config()
            project = ManifestParser(config.directories).parse(self.root)
            self.logger.debug(
                "Manifest %s lists %d modules and %d plugin references",
                Path(project.manifest_path).name,
                len(project.modules),
                len(project.plugins),
            )

            analyzers = [
                analyzer for analyzer in self._select_analyzers(config) if analyzer.supports(project)
            ]
            merged = self._execute_analyzers(project, analyzers, config.scan.max_workers)

            index = AggregateIndex(
                project,
                declarations=merged.declarations,
                callables=merged.callables,
                assets=merged.assets,
                plugins=merged.plugins,
                module_declarations=merged.module_declarations,
                issues=merged.issues,
            )
            for label, count in index.collisions.items():
                if count:
                    self.logger.warning("%d duplicate %s names; later entries kept", count, label)
            log_scan_issues(self.logger, index.issues)

            self._index = index
            self.logger.info(
                "Indexed %d declarations, %d callables, %d assets, %d plugins",
                len(index.declarations()),
                len(index.callables()),
                len(index.assets()),
                len(index.plugins()),
            )
            return index

    def validate(self) -> ValidationReport:
        """Check the project layout without scanning."""
        config = self._load_config()
        return validate_project_structure(self.root, config.directories)

    @property
    def is_ready(self) -> bool:
        return self._index is not None

    @property
    def index(self) -> AggregateIndex:
        if self._index is None:
            raise IndexNotReady(f"No completed scan for {self.root}; call scan() first")
        return self._index

    @property
    def project(self) -> ProjectDescriptor:
        return self.index.project

    # ------------------------------------------------------------------
    # Queries

    def summary(self) -> ProjectSummary:
        return self.index.summary()

    def modules(self) -> List[ModuleRef]:
        return self.index.modules()

    def find_declaration(self, name: str) -> Optional[DeclarationEntity]:
        return self.index.find_declaration(name)

    def declarations(self, kind: str | None = None) -> List[DeclarationEntity]:
        return self.index.declarations(kind)

    def search_declarations(self, query: str) -> List[DeclarationEntity]:
        return self.index.search_declarations(query)

    def callables(self, *, externally_invokable: bool | None = None) -> List[CallableEntity]:
        return self.index.callables(externally_invokable=externally_invokable)

    def callables_of(self, owner: str) -> List[CallableEntity]:
        return self.index.callables_of(owner)

    def search_callables(self, query: str) -> List[CallableEntity]:
        return self.index.search_callables(query)

    def find_asset(self, name: str) -> Optional[AssetEntity]:
        return self.index.find_asset(name)

    def assets(self, asset_type: str | None = None) -> List[AssetEntity]:
        return self.index.assets(asset_type)

    def blueprints(self) -> List[AssetEntity]:
        return self.index.blueprints()

    def search_assets(self, query: str) -> List[AssetEntity]:
        return self.index.search_assets(query)

    def find_plugin(self, name: str) -> Optional[PluginEntity]:
        return self.index.find_plugin(name)

    def plugins(self, *, enabled: bool | None = None) -> List[PluginEntity]:
        return self.index.plugins(enabled=enabled)

    def plugins_by_category(self, category: str) -> List[PluginEntity]:
        return self.index.plugins_by_category(category)

    def search_plugins(self, query: str) -> List[PluginEntity]:
        return self.index.search_plugins(query)

    def is_plugin_installed(self, name: str) -> bool:
        return self.index.is_plugin_installed(name)

    def hierarchy(self, name: str) -> List[str]:
        return self.index.hierarchy(name)

    def usages(self, name: str) -> UsageResult:
        return self.index.usages(name)

    # ------------------------------------------------------------------
    # Live delegate

    @property
    def delegates(self) -> DelegateGateway:
        return self._delegates

    def get_live_entity(self, kind: str, name: str) -> DelegateResult:
        return self._delegates.get_live_entity(kind, name)

    def mutate_live_entity(self, kind: str, name: str, changes: Mapping[str, Any]) -> DelegateResult:
        return self._delegates.mutate_live_entity(kind, name, changes)

    # ------------------------------------------------------------------
    # Internal helpers

    def _load_config(self) -> IndexConfig:
        if self._config_override is not None:
            return self._config_override
        return load_config(self.root)

    def _select_analyzers(self, config: IndexConfig) -> List[Analyzer]:
        if self._analyzer_overrides is not None:
            return list(self._analyzer_overrides)
        enabled = config.analyzers.enabled or None
        return discover_analyzers(config, enabled)

    def _execute_analyzers(
        self,
        project: ProjectDescriptor,
        analyzers: Sequence[Analyzer],
        max_workers: int,
    ) -> AnalyzerResult:
        merged = AnalyzerResult()
        if not analyzers:
            return merged

        workers = max(1, min(max_workers, len(analyzers)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ueindex-scan") as executor:
            futures = [executor.submit(analyzer.analyze, project) for analyzer in analyzers]
            # Merge in analyzer order so last-write-wins is reproducible.
            for analyzer, future in zip(analyzers, futures):
                self.logger.debug("Merging results from %s", analyzer.__class__.__name__)
                merged.extend(future.result())
        return merged


__all__ = ["ProjectIndexer"]
