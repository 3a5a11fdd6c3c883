"""Recursive, best-effort directory traversal shared by every scanner."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

from .errors import IssueKind, ScanIssue
from .logging import get_logger

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".vs",
    ".idea",
    "Binaries",
    "DerivedDataCache",
    "Intermediate",
    "Saved",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}

_logger = get_logger("walker")


@dataclass
class IgnoreRule:
    """Represents a gitignore-style exclusion parsed from .ueindex.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            if self.directory_only and rel_path.startswith(f"{self.pattern}/"):
                return True
            return False

        for part in rel_path.split("/"):
            if fnmatchcase(part, self.pattern):
                return True
        return False


def build_ignore_rule(pattern: str) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern or pattern.startswith("#"):
        return None

    negate = pattern.startswith("!")
    if negate:
        pattern = pattern[1:]

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def build_ignore_rules(patterns: Iterable[str]) -> List[IgnoreRule]:
    rules: List[IgnoreRule] = []
    for pattern in patterns:
        rule = build_ignore_rule(pattern)
        if rule is not None:
            rules.append(rule)
    return rules


def should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def walk_files(
    root: Path,
    admit: Callable[[Path], bool] | None = None,
    *,
    rules: Sequence[IgnoreRule] = (),
    base: Path | None = None,
    issues: Optional[List[ScanIssue]] = None,
) -> Iterator[Tuple[Path, str]]:
    """Yield ``(absolute path, path relative to root)`` for admitted files, depth-first.

    Directories are recursed into in sorted order and never yielded. Directories
    that cannot be listed are skipped (and recorded in ``issues`` when given);
    the walk continues with their siblings. ``rules`` are matched against paths
    relative to ``base`` (defaults to ``root``) so project-level exclusions apply
    inside any subtree.
    """
    root = Path(root)
    if not root.is_dir():
        return
    rule_base = Path(base) if base is not None else root

    def _on_error(exc: OSError) -> None:
        path = str(exc.filename or root)
        _logger.debug("Skipping unreadable directory %s: %s", path, exc)
        if issues is not None:
            issues.append(ScanIssue(IssueKind.DIRECTORY_UNREADABLE, path, str(exc)))

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        current_dir = Path(dirpath)
        rel_dir = _relative(current_dir, root)
        rule_dir = _relative(current_dir, rule_base)

        kept = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS:
                continue
            if rules and should_ignore(_join(rule_dir, name), True, rules):
                continue
            kept.append(name)
        dirnames[:] = kept

        for filename in sorted(filenames):
            if filename in _EXCLUDED_FILES:
                continue
            if rules and should_ignore(_join(rule_dir, filename), False, rules):
                continue
            path = current_dir / filename
            if admit is not None and not admit(path):
                continue
            yield path, _join(rel_dir, filename)


def _relative(path: Path, base: Path) -> str:
    if path == base:
        return ""
    try:
        return path.relative_to(base).as_posix()
    except ValueError:
        return path.as_posix()


def _join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name


__all__ = [
    "IgnoreRule",
    "build_ignore_rule",
    "build_ignore_rules",
    "should_ignore",
    "walk_files",
]
