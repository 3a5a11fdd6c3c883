"""Static indexer for Unreal Engine project trees."""

from .engine import ProjectIndexer
from .errors import (
    IndexNotReady,
    IssueKind,
    ManifestAmbiguous,
    ManifestError,
    ManifestMalformed,
    ManifestNotFound,
    ScanIssue,
)
from .manifest import ManifestParser, validate_project_structure

__all__ = [
    "IndexNotReady",
    "IssueKind",
    "ManifestAmbiguous",
    "ManifestError",
    "ManifestMalformed",
    "ManifestNotFound",
    "ManifestParser",
    "ProjectIndexer",
    "ScanIssue",
    "validate_project_structure",
]
