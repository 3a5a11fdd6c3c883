"""Catalogs content assets by extension and naming conventions."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Tuple

from .base import Analyzer, AnalyzerResult
from ..config import IndexConfig
from ..errors import IssueKind, ScanIssue
from ..logging import get_logger
from ..models import AssetEntity, ProjectDescriptor
from ..walker import build_ignore_rules, walk_files

ASSET_EXTENSIONS = {".uasset", ".umap", ".ubulk", ".uplugin", ".upluginmanifest"}

GENERIC_ASSET_TYPE = "Generic"
BLUEPRINT_ASSET_TYPE = "Blueprint"

_TYPES_BY_EXTENSION = {
    ".umap": "Level",
    ".uplugin": "Plugin",
    ".upluginmanifest": "Plugin",
}

# Checked in order; the first directory segment that matches wins.
_TYPES_BY_DIRECTORY: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("blueprints", "blueprint"), BLUEPRINT_ASSET_TYPE),
    (("materials", "material"), "Material"),
    (("textures", "texture"), "Texture"),
    (("meshes", "mesh", "staticmeshes", "skeletalmeshes"), "Mesh"),
    (("animations", "animation", "anims"), "Animation"),
    (("audio", "sound", "sounds"), "Audio"),
    (("particles", "fx", "vfx", "niagara"), "Particle System"),
    (("ui", "widgets", "hud"), "Widget"),
)

_TYPES_BY_PREFIX: Tuple[Tuple[str, str], ...] = (
    ("WBP_", "Widget"),
    ("W_", "Widget"),
    ("BP_", BLUEPRINT_ASSET_TYPE),
    ("MI_", "Material"),
    ("M_", "Material"),
    ("T_", "Texture"),
    ("SM_", "Mesh"),
    ("SK_", "Mesh"),
    ("AM_", "Animation"),
    ("A_", "Animation"),
    ("NS_", "Particle System"),
    ("P_", "Particle System"),
)

_logger = get_logger("analyzers.assets")


def classify_asset(relative_path: str) -> str:
    """Return the asset type for a content-relative path.

    Extension rules win over directory names, which win over filename prefixes.
    The result depends only on the path string.
    """
    path = PurePosixPath(relative_path)
    extension = path.suffix.lower()
    if extension in _TYPES_BY_EXTENSION:
        return _TYPES_BY_EXTENSION[extension]

    segments = [segment.lower() for segment in path.parent.parts]
    for segment in segments:
        for names, asset_type in _TYPES_BY_DIRECTORY:
            if segment in names:
                return asset_type

    stem = path.stem
    for prefix, asset_type in _TYPES_BY_PREFIX:
        if stem.startswith(prefix):
            return asset_type

    return GENERIC_ASSET_TYPE


def is_asset_file(path: Path) -> bool:
    return path.suffix.lower() in ASSET_EXTENSIONS


class AssetCataloger(Analyzer):
    """Walks the content tree and records one entity per recognised asset file."""

    name = "assets"

    def __init__(self, config: IndexConfig | None = None) -> None:
        self.content_dir = config.directories.content if config is not None else "Content"
        self._rules = build_ignore_rules(config.all_exclude_paths) if config is not None else []

    def supports(self, project: ProjectDescriptor) -> bool:
        return (Path(project.root) / self.content_dir).is_dir()

    def analyze(self, project: ProjectDescriptor) -> AnalyzerResult:
        result = AnalyzerResult()
        root = Path(project.root)
        content_root = root / self.content_dir

        for path, rel_path in walk_files(
            content_root, is_asset_file, rules=self._rules, base=root, issues=result.issues
        ):
            try:
                size = path.stat().st_size
            except OSError as exc:
                _logger.debug("Skipping asset %s: %s", rel_path, exc)
                result.issues.append(ScanIssue(IssueKind.FILE_UNREADABLE, rel_path, str(exc)))
                continue
            result.assets.append(
                AssetEntity(
                    name=PurePosixPath(rel_path).stem,
                    path=rel_path,
                    type=classify_asset(rel_path),
                    size=size,
                )
            )

        _logger.debug("Cataloged %d assets under %s", len(result.assets), content_root)
        return result


__all__ = [
    "ASSET_EXTENSIONS",
    "AssetCataloger",
    "BLUEPRINT_ASSET_TYPE",
    "GENERIC_ASSET_TYPE",
    "classify_asset",
    "is_asset_file",
]
