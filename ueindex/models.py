"""Core data models shared across ueindex components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

# Declaration kinds, named after the reflection markers that introduce them.
KIND_CLASS = "UCLASS"
KIND_STRUCT = "USTRUCT"
KIND_ENUM = "UENUM"
KIND_INTERFACE = "UINTERFACE"
DECLARATION_KINDS: Tuple[str, ...] = (KIND_CLASS, KIND_STRUCT, KIND_ENUM, KIND_INTERFACE)


@dataclass(frozen=True)
class ModuleRef:
    """A code module declared by the project or by a plugin."""

    name: str
    type: str
    loading_phase: str
    dependencies: Tuple[str, ...] = ()
    path: Optional[str] = None
    declarations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PluginRef:
    """A plugin reference listed in the project manifest."""

    name: str
    enabled: bool
    marketplace_url: Optional[str] = None
    installed: bool = True
    path: Optional[str] = None


@dataclass(frozen=True)
class BuildConfiguration:
    name: str
    platform: str
    configuration: str


@dataclass(frozen=True)
class ProjectDescriptor:
    """Normalized view of the project manifest used to drive the scanners."""

    root: str
    name: str
    manifest_path: str
    engine_association: str
    modules: Tuple[ModuleRef, ...]
    plugins: Tuple[PluginRef, ...]
    target_platforms: Tuple[str, ...]
    build_configurations: Tuple[BuildConfiguration, ...]
    description: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class EnumValue:
    name: str
    value: Optional[int] = None


@dataclass(frozen=True)
class DeclarationEntity:
    """A reflected type recovered from source text."""

    name: str
    kind: str
    parent: Optional[str]
    specifiers: Tuple[str, ...]
    file: str
    line: int
    module: Optional[str] = None
    blueprint_type: bool = False
    blueprintable: bool = False
    values: Tuple[EnumValue, ...] = ()


@dataclass(frozen=True)
class Parameter:
    name: str
    type: str


@dataclass(frozen=True)
class CallableEntity:
    """A reflected function recovered from source text."""

    name: str
    owner: str
    return_type: str
    parameters: Tuple[Parameter, ...]
    specifiers: Tuple[str, ...]
    file: str
    line: int
    module: Optional[str] = None
    blueprint_callable: bool = False


@dataclass(frozen=True)
class AssetEntity:
    """A content file cataloged by name and location conventions."""

    name: str
    path: str
    type: str
    size: int
    dependencies: Tuple[str, ...] = ()
    referenced_by: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PluginEntity:
    """A plugin discovered on disk and described by its own manifest."""

    name: str
    path: str
    enabled: bool = True
    installed: bool = True
    version: Optional[str] = None
    version_name: Optional[str] = None
    friendly_name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    created_by: Optional[str] = None
    created_by_url: Optional[str] = None
    docs_url: Optional[str] = None
    marketplace_url: Optional[str] = None
    support_url: Optional[str] = None
    engine_version: Optional[str] = None
    can_contain_content: bool = False
    is_beta_version: bool = False
    is_experimental_version: bool = False
    modules: Tuple[ModuleRef, ...] = ()


@dataclass
class UsageResult:
    name: str
    files: List[str]

    @property
    def count(self) -> int:
        return len(self.files)


@dataclass
class ProjectSummary:
    """Summary statistics for one scan generation."""

    project_name: str
    engine_association: str
    platforms: List[str]
    modules: Dict[str, object]
    declarations: Dict[str, object]
    callables: Dict[str, int]
    assets: Dict[str, object]
    blueprints: Dict[str, int]
    plugins: Dict[str, object]
    collisions: Dict[str, int] = field(default_factory=dict)
    issues: Dict[str, int] = field(default_factory=dict)
