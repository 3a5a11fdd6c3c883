"""Configuration loading for ueindex (.ueindex.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

CONFIG_FILENAME = ".ueindex.yml"

DEFAULT_SOURCE_EXTENSIONS = (".h", ".hpp", ".cpp")


class ConfigError(RuntimeError):
    """Raised when .ueindex.yml exists but is not a readable YAML mapping."""


@dataclass
class AnalyzerConfig:
    """Which scanners run, plus exclusions that apply to them."""

    enabled: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)


@dataclass
class ScanConfig:
    """Tuning knobs for the heuristic scanners."""

    max_workers: int = 4
    declaration_lookahead: int = 10
    callable_lookahead: int = 5
    enum_body_window: int = 50
    source_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_SOURCE_EXTENSIONS))


@dataclass
class DirectoryConfig:
    """Project-relative directory names for each scanned subtree."""

    source: str = "Source"
    content: str = "Content"
    plugins: str = "Plugins"


@dataclass
class IndexConfig:
    """Settings for one project root, from .ueindex.yml or defaults."""

    root: Path
    analyzers: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    directories: DirectoryConfig = field(default_factory=DirectoryConfig)
    exclude_paths: List[str] = field(default_factory=list)

    @property
    def all_exclude_paths(self) -> List[str]:
        return [*self.exclude_paths, *self.analyzers.exclude_paths]


def load_config(location: Path) -> IndexConfig:
    """Load ``.ueindex.yml`` from a project directory or file path.

    A missing file yields defaults. Individual values of the wrong type fall
    back to their defaults; only an unparseable file or a non-mapping document
    raises ``ConfigError``.
    """
    config_file = _locate(Path(location))
    root = config_file.parent.resolve()
    if not config_file.is_file():
        return IndexConfig(root=root)

    document = _load_yaml(config_file)
    if not isinstance(document, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    return IndexConfig(
        root=root,
        analyzers=_parse_analyzers(_section(document, "analyzers")),
        scan=_parse_scan(_section(document, "scan")),
        directories=_parse_directories(_section(document, "directories")),
        exclude_paths=_as_str_list(document.get("exclude_paths")),
    )


def _locate(location: Path) -> Path:
    location = location.expanduser()
    if location.is_dir():
        return (location / CONFIG_FILENAME).resolve()
    if location.name == CONFIG_FILENAME:
        return location.resolve()
    return (location.parent / CONFIG_FILENAME).resolve()


def _load_yaml(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        return yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc


def _section(document: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = document.get(key)
    return value if isinstance(value, dict) else {}


def _parse_analyzers(section: Mapping[str, Any]) -> AnalyzerConfig:
    return AnalyzerConfig(
        enabled=_as_str_list(section.get("enabled")),
        exclude_paths=_as_str_list(section.get("exclude_paths")),
    )


def _parse_scan(section: Mapping[str, Any]) -> ScanConfig:
    scan = ScanConfig()
    for name in ("max_workers", "declaration_lookahead", "callable_lookahead", "enum_body_window"):
        setattr(scan, name, _as_positive_int(section.get(name), getattr(scan, name)))
    extensions = _as_str_list(section.get("source_extensions"))
    if extensions:
        scan.source_extensions = [_normalise_extension(ext) for ext in extensions]
    return scan


def _parse_directories(section: Mapping[str, Any]) -> DirectoryConfig:
    directories = DirectoryConfig()
    for name in ("source", "content", "plugins"):
        value = _as_str(section.get(name))
        if value:
            setattr(directories, name, value.strip("/"))
    return directories


def _normalise_extension(value: str) -> str:
    value = value.strip().lower()
    return value if value.startswith(".") else f".{value}"


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    return str(value)


def _as_positive_int(value: Any, default: int) -> int:
    """Coerce ints and numeric strings, clamped to at least 1."""
    if isinstance(value, bool):
        return default
    try:
        number = int(value) if isinstance(value, (int, str)) else None
    except ValueError:
        return default
    return default if number is None else max(1, number)


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float)) and not isinstance(item, bool)]
    return []


__all__ = [
    "AnalyzerConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "DirectoryConfig",
    "IndexConfig",
    "ScanConfig",
    "load_config",
]
