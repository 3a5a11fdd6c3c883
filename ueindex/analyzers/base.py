"""Base classes for scanner plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List

from ..errors import ScanIssue
from ..models import AssetEntity, CallableEntity, DeclarationEntity, PluginEntity, ProjectDescriptor


@dataclass
class AnalyzerResult:
    """Transient entity lists handed to the aggregate index after a scan pass."""

    declarations: List[DeclarationEntity] = field(default_factory=list)
    callables: List[CallableEntity] = field(default_factory=list)
    assets: List[AssetEntity] = field(default_factory=list)
    plugins: List[PluginEntity] = field(default_factory=list)
    module_declarations: Dict[str, List[str]] = field(default_factory=dict)
    issues: List[ScanIssue] = field(default_factory=list)

    def extend(self, other: "AnalyzerResult") -> None:
        self.declarations.extend(other.declarations)
        self.callables.extend(other.callables)
        self.assets.extend(other.assets)
        self.plugins.extend(other.plugins)
        for module, names in other.module_declarations.items():
            self.module_declarations.setdefault(module, []).extend(names)
        self.issues.extend(other.issues)


class Analyzer(ABC):
    """Contract for best-effort scanners that turn a project subtree into entities."""

    name: str = ""

    @abstractmethod
    def supports(self, project: ProjectDescriptor) -> bool:
        """Return True when this analyzer has anything to scan for the project."""

    @abstractmethod
    def analyze(self, project: ProjectDescriptor) -> AnalyzerResult:
        """Scan the project and return its entities; per-item failures become issues."""
