"""Built-in scanners and lookup of third-party ones."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, Iterator, List, Sequence, Tuple

from .assets import AssetCataloger
from .base import Analyzer, AnalyzerResult
from .plugins import PluginScanner
from .source import SourceClassifier
from ..config import IndexConfig

_ENTRY_POINT_GROUP = "ueindex.analyzers"

AnalyzerFactory = Callable[[IndexConfig], Analyzer]

_BUILTIN_FACTORIES: Dict[str, AnalyzerFactory] = {
    "source": SourceClassifier,
    "assets": AssetCataloger,
    "plugins": PluginScanner,
}


def discover_analyzers(
    config: IndexConfig, enabled: Sequence[str] | None = None
) -> List[Analyzer]:
    """Build the scanners for one project.

    Built-ins come first, then anything registered under the
    ``ueindex.analyzers`` entry-point group. Names are matched
    case-insensitively and a built-in name cannot be taken over by a plugin.
    ``enabled`` restricts the result; naming a scanner that does not exist is
    a ``ValueError``.
    """
    wanted = None if enabled is None else {name.lower() for name in enabled}
    selected: Dict[str, Analyzer] = {}

    for name, factory in _candidates():
        if name in selected or (wanted is not None and name not in wanted):
            continue
        instance = factory(config)
        if not isinstance(instance, Analyzer):
            raise TypeError(f"Scanner '{name}' is not an Analyzer: {instance!r}")
        selected[name] = instance

    if wanted is not None:
        unknown = sorted(wanted - selected.keys())
        if unknown:
            raise ValueError(f"No such scanner(s): {', '.join(unknown)}")

    return list(selected.values())


def _candidates() -> Iterator[Tuple[str, AnalyzerFactory]]:
    for name, factory in _BUILTIN_FACTORIES.items():
        yield name, factory
    for entry in metadata.entry_points().select(group=_ENTRY_POINT_GROUP):
        yield entry.name.lower(), _entry_point_factory(entry)


def _entry_point_factory(entry: metadata.EntryPoint) -> AnalyzerFactory:
    def build(config: IndexConfig) -> Analyzer:
        try:
            target = entry.load()
        except Exception as exc:
            raise RuntimeError(f"Cannot load scanner plugin '{entry.name}': {exc}") from exc
        if isinstance(target, Analyzer):
            return target
        if callable(target):
            return target(config)
        raise TypeError(f"Scanner plugin '{entry.name}' must be an Analyzer or a factory")

    return build


__all__ = [
    "Analyzer",
    "AnalyzerResult",
    "AssetCataloger",
    "PluginScanner",
    "SourceClassifier",
    "discover_analyzers",
]
