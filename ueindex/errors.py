"""Exceptions and non-fatal issue records raised or collected during a scan."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ManifestError(RuntimeError):
    """Base class for failures that abort a whole scan."""


class ManifestNotFound(ManifestError):
    """Raised when the project root holds no manifest file."""


class ManifestAmbiguous(ManifestNotFound):
    """Raised when the project root holds more than one manifest candidate."""


class ManifestMalformed(ManifestError):
    """Raised when the manifest is not valid JSON or does not match the expected shape."""


class IndexNotReady(RuntimeError):
    """Raised when querying an engine that has no completed scan."""


class IssueKind(str, Enum):
    DIRECTORY_UNREADABLE = "directory_unreadable"
    FILE_UNREADABLE = "file_unreadable"
    FILE_UNPARSEABLE = "file_unparseable"
    PLUGIN_MANIFEST_INVALID = "plugin_manifest_invalid"


@dataclass(frozen=True)
class ScanIssue:
    """A skipped item from a best-effort scan pass."""

    kind: IssueKind
    path: str
    detail: str = ""


__all__ = [
    "IndexNotReady",
    "IssueKind",
    "ManifestAmbiguous",
    "ManifestError",
    "ManifestMalformed",
    "ManifestNotFound",
    "ScanIssue",
]
