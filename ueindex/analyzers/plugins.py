"""Scanner for project plugins and their .uplugin manifests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, ValidationError, field_validator

from .base import Analyzer, AnalyzerResult
from ..config import IndexConfig
from ..errors import IssueKind, ScanIssue
from ..logging import get_logger
from ..manifest import ModuleDocument, ManifestDocument, module_refs
from ..models import PluginEntity, ProjectDescriptor

PLUGIN_MANIFEST_SUFFIX = ".uplugin"

_logger = get_logger("analyzers.plugins")


class PluginDocument(ManifestDocument):
    """Shape of a .uplugin file; unknown keys are ignored."""

    file_version: Optional[int] = Field(default=None, alias="FileVersion")
    version: Optional[Union[int, str]] = Field(default=None, alias="Version")
    version_name: Optional[str] = Field(default=None, alias="VersionName")
    friendly_name: Optional[str] = Field(default=None, alias="FriendlyName")
    description: Optional[str] = Field(default=None, alias="Description")
    category: Optional[str] = Field(default=None, alias="Category")
    created_by: Optional[str] = Field(default=None, alias="CreatedBy")
    created_by_url: Optional[str] = Field(default=None, alias="CreatedByURL")
    docs_url: Optional[str] = Field(default=None, alias="DocsURL")
    marketplace_url: Optional[str] = Field(default=None, alias="MarketplaceURL")
    support_url: Optional[str] = Field(default=None, alias="SupportURL")
    engine_version: Optional[str] = Field(default=None, alias="EngineVersion")
    can_contain_content: bool = Field(default=False, alias="CanContainContent")
    is_beta_version: bool = Field(default=False, alias="IsBetaVersion")
    is_experimental_version: bool = Field(default=False, alias="IsExperimentalVersion")
    installed: bool = Field(default=True, alias="Installed")
    enabled_by_default: Optional[bool] = Field(default=None, alias="EnabledByDefault")
    modules: List[ModuleDocument] = Field(default_factory=list, alias="Modules")

    @field_validator("modules", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class PluginManifestError(ValueError):
    """Raised when a plugin manifest cannot be read or does not match the expected shape."""


def load_plugin_document(path: Path) -> PluginDocument:
    try:
        payload = json.loads(path.read_text(encoding="utf-8-sig"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PluginManifestError(f"Failed to parse {path.name}: {exc}") from exc
    if not isinstance(payload, dict):
        raise PluginManifestError(f"{path.name} must contain a JSON object at the root")
    try:
        return PluginDocument.model_validate(payload)
    except ValidationError as exc:
        raise PluginManifestError(f"{path.name} does not match the plugin manifest shape: {exc}") from exc


def find_plugin_manifest(plugin_dir: Path) -> Optional[Path]:
    """Prefer ``<Dir>/<Dir>.uplugin``, else the first ``*.uplugin`` by name."""
    preferred = plugin_dir / f"{plugin_dir.name}{PLUGIN_MANIFEST_SUFFIX}"
    if preferred.is_file():
        return preferred
    candidates = sorted(
        entry
        for entry in plugin_dir.iterdir()
        if entry.suffix.lower() == PLUGIN_MANIFEST_SUFFIX and entry.is_file()
    )
    return candidates[0] if candidates else None


class PluginScanner(Analyzer):
    """Builds one plugin entity per plugin directory with a valid manifest."""

    name = "plugins"

    def __init__(self, config: IndexConfig | None = None) -> None:
        self.plugins_dir = config.directories.plugins if config is not None else "Plugins"
        self.source_dir = config.directories.source if config is not None else "Source"

    def supports(self, project: ProjectDescriptor) -> bool:
        return (Path(project.root) / self.plugins_dir).is_dir()

    def analyze(self, project: ProjectDescriptor) -> AnalyzerResult:
        result = AnalyzerResult()
        plugins_root = Path(project.root) / self.plugins_dir
        enabled_overrides: Dict[str, bool] = {ref.name: ref.enabled for ref in project.plugins}

        try:
            directories = sorted(entry for entry in plugins_root.iterdir() if entry.is_dir())
        except OSError as exc:
            _logger.debug("Cannot list plugin directory %s: %s", plugins_root, exc)
            result.issues.append(
                ScanIssue(IssueKind.DIRECTORY_UNREADABLE, str(plugins_root), str(exc))
            )
            return result

        for plugin_dir in directories:
            plugin = self._scan_plugin(plugin_dir, enabled_overrides, result.issues)
            if plugin is not None:
                result.plugins.append(plugin)

        _logger.debug("Found %d plugins under %s", len(result.plugins), plugins_root)
        return result

    def _scan_plugin(
        self,
        plugin_dir: Path,
        enabled_overrides: Dict[str, bool],
        issues: List[ScanIssue],
    ) -> Optional[PluginEntity]:
        name = plugin_dir.name
        try:
            manifest_path = find_plugin_manifest(plugin_dir)
        except OSError as exc:
            issues.append(ScanIssue(IssueKind.DIRECTORY_UNREADABLE, str(plugin_dir), str(exc)))
            return None
        if manifest_path is None:
            _logger.debug("No %s file in %s; skipping", PLUGIN_MANIFEST_SUFFIX, plugin_dir)
            return None

        try:
            document = load_plugin_document(manifest_path)
        except PluginManifestError as exc:
            _logger.warning("Skipping plugin %s: %s", name, exc)
            issues.append(ScanIssue(IssueKind.PLUGIN_MANIFEST_INVALID, str(manifest_path), str(exc)))
            return None

        if name in enabled_overrides:
            enabled = enabled_overrides[name]
        elif document.enabled_by_default is not None:
            enabled = document.enabled_by_default
        else:
            enabled = True

        return PluginEntity(
            name=name,
            path=str(plugin_dir),
            enabled=enabled,
            installed=document.installed,
            version=str(document.version) if document.version is not None else None,
            version_name=document.version_name,
            friendly_name=document.friendly_name,
            description=document.description,
            category=document.category,
            created_by=document.created_by,
            created_by_url=document.created_by_url,
            docs_url=document.docs_url,
            marketplace_url=document.marketplace_url,
            support_url=document.support_url,
            engine_version=document.engine_version,
            can_contain_content=document.can_contain_content,
            is_beta_version=document.is_beta_version,
            is_experimental_version=document.is_experimental_version,
            modules=module_refs(document.modules, plugin_dir / self.source_dir),
        )


__all__ = [
    "PLUGIN_MANIFEST_SUFFIX",
    "PluginDocument",
    "PluginManifestError",
    "PluginScanner",
    "find_plugin_manifest",
    "load_plugin_document",
]
