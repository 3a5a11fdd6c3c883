"""Project manifest (.uproject) discovery, validation and projection."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import DirectoryConfig
from .errors import ManifestAmbiguous, ManifestMalformed, ManifestNotFound
from .logging import get_logger
from .models import BuildConfiguration, ModuleRef, PluginRef, ProjectDescriptor

MANIFEST_SUFFIX = ".uproject"
DEFAULT_PLATFORMS: Tuple[str, ...] = ("Windows",)
BUILD_TYPES: Tuple[str, ...] = ("Development", "Shipping", "DebugGame")

_logger = get_logger("manifest")


class ManifestDocument(BaseModel):
    """Base for manifest shapes: PascalCase aliases, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ModuleDocument(ManifestDocument):
    """Module entry shared by project and plugin manifests."""

    name: str = Field(alias="Name")
    type: str = Field(default="Runtime", alias="Type")
    loading_phase: str = Field(default="Default", alias="LoadingPhase")
    additional_dependencies: List[str] = Field(default_factory=list, alias="AdditionalDependencies")

    @field_validator("additional_dependencies", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class PluginReferenceDocument(ManifestDocument):
    name: str = Field(alias="Name")
    enabled: bool = Field(default=True, alias="Enabled")
    marketplace_url: Optional[str] = Field(default=None, alias="MarketplaceURL")


class ProjectDocument(ManifestDocument):
    """Shape of a .uproject file; unknown keys are ignored."""

    file_version: Optional[int] = Field(default=None, alias="FileVersion")
    engine_association: str = Field(default="", alias="EngineAssociation")
    category: Optional[str] = Field(default=None, alias="Category")
    description: Optional[str] = Field(default=None, alias="Description")
    modules: List[ModuleDocument] = Field(default_factory=list, alias="Modules")
    plugins: List[PluginReferenceDocument] = Field(default_factory=list, alias="Plugins")
    target_platforms: Optional[List[str]] = Field(default=None, alias="TargetPlatforms")

    @field_validator("modules", "plugins", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


@dataclass
class ValidationReport:
    """Result of a structural sanity check on a project root."""

    valid: bool
    issues: List[str] = field(default_factory=list)


def find_manifest(root: Path) -> Path:
    """Return the single manifest in ``root`` (not recursive)."""
    try:
        candidates = sorted(
            entry
            for entry in root.iterdir()
            if entry.suffix.lower() == MANIFEST_SUFFIX and entry.is_file()
        )
    except OSError as exc:
        raise ManifestNotFound(f"Cannot list project root {root}: {exc}") from exc

    if not candidates:
        raise ManifestNotFound(f"No {MANIFEST_SUFFIX} file found in {root}")
    if len(candidates) > 1:
        names = ", ".join(path.name for path in candidates)
        raise ManifestAmbiguous(f"Multiple {MANIFEST_SUFFIX} files found in {root}: {names}")
    return candidates[0]


def load_project_document(path: Path) -> ProjectDocument:
    try:
        payload = json.loads(path.read_text(encoding="utf-8-sig"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ManifestMalformed(f"Failed to parse {path.name}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ManifestMalformed(f"{path.name} must contain a JSON object at the root")
    try:
        return ProjectDocument.model_validate(payload)
    except ValidationError as exc:
        raise ManifestMalformed(f"{path.name} does not match the project manifest shape: {exc}") from exc


def build_configurations(platforms: Tuple[str, ...]) -> Tuple[BuildConfiguration, ...]:
    """Cross every target platform with the fixed build types."""
    return tuple(
        BuildConfiguration(name=f"{platform}_{build_type}", platform=platform, configuration=build_type)
        for platform in platforms
        for build_type in BUILD_TYPES
    )


def module_refs(
    documents: List[ModuleDocument], source_root: Path
) -> Tuple[ModuleRef, ...]:
    return tuple(
        ModuleRef(
            name=document.name,
            type=document.type,
            loading_phase=document.loading_phase,
            dependencies=tuple(document.additional_dependencies),
            path=str(source_root / document.name),
        )
        for document in documents
    )


class ManifestParser:
    """Loads exactly one project manifest and projects it into a descriptor."""

    def __init__(self, directories: DirectoryConfig | None = None) -> None:
        self.directories = directories or DirectoryConfig()

    def parse(self, root: str | Path) -> ProjectDescriptor:
        root_path = Path(root).expanduser().resolve()
        if not root_path.is_dir():
            raise ManifestNotFound(f"Project path is not a directory: {root}")

        manifest_path = find_manifest(root_path)
        document = load_project_document(manifest_path)
        _logger.debug("Loaded manifest %s with %d modules", manifest_path.name, len(document.modules))

        if document.target_platforms is None:
            platforms = DEFAULT_PLATFORMS
        else:
            platforms = tuple(document.target_platforms)
        plugins_root = root_path / self.directories.plugins
        plugins = tuple(
            PluginRef(
                name=plugin.name,
                enabled=plugin.enabled,
                marketplace_url=plugin.marketplace_url,
                installed=True,
                path=str(plugins_root / plugin.name),
            )
            for plugin in document.plugins
        )

        return ProjectDescriptor(
            root=str(root_path),
            name=manifest_path.stem,
            manifest_path=str(manifest_path),
            engine_association=document.engine_association,
            modules=module_refs(document.modules, root_path / self.directories.source),
            plugins=plugins,
            target_platforms=platforms,
            build_configurations=build_configurations(platforms),
            description=document.description,
            category=document.category,
        )


def validate_project_structure(
    root: str | Path, directories: DirectoryConfig | None = None
) -> ValidationReport:
    """Check the manifest and the conventional directory layout without scanning."""
    directories = directories or DirectoryConfig()
    root_path = Path(root).expanduser().resolve()
    issues: List[str] = []

    try:
        manifest_path = find_manifest(root_path)
    except ManifestNotFound as exc:
        return ValidationReport(valid=False, issues=[str(exc)])

    try:
        document = load_project_document(manifest_path)
    except ManifestMalformed as exc:
        return ValidationReport(valid=False, issues=[str(exc)])

    if not document.modules:
        issues.append(f"No modules defined in {manifest_path.name}")

    source_root = root_path / directories.source
    if not source_root.is_dir():
        issues.append(f"{directories.source} directory not found")
    if not (root_path / directories.content).is_dir():
        issues.append(f"{directories.content} directory not found")

    for module in document.modules:
        if not (source_root / module.name).is_dir():
            issues.append(f"Module directory not found: {module.name}")

    return ValidationReport(valid=not issues, issues=issues)


__all__ = [
    "BUILD_TYPES",
    "ManifestDocument",
    "ManifestParser",
    "ModuleDocument",
    "ProjectDocument",
    "ValidationReport",
    "build_configurations",
    "find_manifest",
    "load_project_document",
    "module_refs",
    "validate_project_structure",
]
