"""Heuristic classifier for reflected declarations in module source trees.

The classifier is a small line-state scanner: a reflection marker line
(``UCLASS``/``USTRUCT``/``UENUM``/``UINTERFACE`` or ``UFUNCTION``) opens a
bounded lookahead window in which the first line matching the kind's header
pattern becomes the declaration. Nothing here parses C++; shapes the rules do
not recognise are dropped silently.
"""

from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from .base import Analyzer, AnalyzerResult
from ..config import IndexConfig
from ..errors import IssueKind, ScanIssue
from ..logging import get_logger
from ..models import (
    KIND_CLASS,
    KIND_ENUM,
    KIND_INTERFACE,
    KIND_STRUCT,
    CallableEntity,
    DeclarationEntity,
    EnumValue,
    ModuleRef,
    Parameter,
    ProjectDescriptor,
)
from ..walker import build_ignore_rules, walk_files

_DECLARATION_MARKER = re.compile(r"^(UCLASS|USTRUCT|UENUM|UINTERFACE)\s*(?=\(|$)")
_CALLABLE_MARKER = re.compile(r"^UFUNCTION\s*(?=\(|$)")

_RECORD_HEADER = r"^{keyword}\s+(?:\w+_API\s+)?([A-Za-z_]\w*)(?:\s+final)?\s*(?::\s*(?:(?:public|protected|private|virtual)\s+)*([\w:]+))?"
_CLASS_HEADER = re.compile(_RECORD_HEADER.format(keyword="class"))
_STRUCT_HEADER = re.compile(_RECORD_HEADER.format(keyword="struct"))
_ENUM_HEADER = re.compile(r"^enum\s+(?:class\s+|struct\s+)?([A-Za-z_]\w*)")

_CALLABLE_NAME = re.compile(r"((?:[A-Za-z_]\w*::)*)([A-Za-z_]\w*)\s*\(")
_RETURN_TYPE_CHARS = re.compile(r"^[\w\s:<>,\*&]+$")
_TRAILING_IDENTIFIER = re.compile(r"^(.*?)([A-Za-z_]\w*)$", re.DOTALL)
_ENUM_ENTRY = re.compile(r"^([A-Za-z_]\w*)\s*(?:=\s*(.+))?$")
_UMETA = re.compile(r"UMETA\s*\([^)]*\)")

_LEADING_QUALIFIERS = {
    "virtual",
    "static",
    "inline",
    "explicit",
    "friend",
    "constexpr",
    "FORCEINLINE",
    "FORCENOINLINE",
}
_NON_CALLABLE_NAMES = {"if", "for", "while", "switch", "return", "sizeof", "catch"}
_COMMENT_PREFIXES = ("//", "/*", "*")

_HEADERS_BY_KIND = {
    KIND_CLASS: _CLASS_HEADER,
    KIND_INTERFACE: _CLASS_HEADER,
    KIND_STRUCT: _STRUCT_HEADER,
    KIND_ENUM: _ENUM_HEADER,
}

_logger = get_logger("analyzers.source")


def split_top_level(text: str) -> List[str]:
    """Split on commas outside parentheses and quotes.

    Angle brackets are not tracked, so template arguments are split too.
    """
    parts: List[str] = []
    current: List[str] = []
    depth = 0
    quote: Optional[str] = None
    for char in text:
        if quote:
            if char == quote:
                quote = None
        elif char in {'"', "'"}:
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth = max(0, depth - 1)
        elif char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    tail = "".join(current).strip()
    if tail or parts:
        parts.append(tail)
    return parts


def _balanced_group(text: str, start: int) -> Tuple[str, int]:
    """Return the contents of the parenthesised group opening at ``start`` and its end index.

    The end index is -1 when the group is not closed within ``text``.
    """
    depth = 0
    quote: Optional[str] = None
    for index in range(start, len(text)):
        char = text[index]
        if quote:
            if char == quote:
                quote = None
            continue
        if char in {'"', "'"}:
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return text[start + 1 : index], index + 1
    return text[start + 1 :], -1


def extract_specifiers(line: str) -> Tuple[Tuple[str, ...], str]:
    """Return the marker's specifier tokens and whatever follows its argument list."""
    start = line.find("(")
    if start < 0:
        return (), ""
    inner, end = _balanced_group(line, start)
    specifiers = tuple(token for token in split_top_level(inner) if token)
    return specifiers, line[end:].strip() if end >= 0 else ""


def match_declaration_header(kind: str, line: str) -> Optional[Tuple[str, Optional[str]]]:
    """Match a ``class``/``struct``/``enum`` header line, returning ``(name, parent)``."""
    pattern = _HEADERS_BY_KIND[kind]
    match = pattern.match(line)
    if not match:
        return None
    # Forward declarations are not headers.
    if line.rstrip().endswith(";") and "{" not in line:
        return None
    parent = match.group(2) if kind != KIND_ENUM else None
    return match.group(1), parent


def match_callable_header(line: str) -> Optional[Tuple[str, str, str, str]]:
    """Match ``returnType name(parameters)``; returns ``(return_type, name, params, qualifier)``."""
    match = _CALLABLE_NAME.search(line)
    if not match:
        return None
    qualifier = match.group(1).rstrip(":")
    name = match.group(2)
    if name in _NON_CALLABLE_NAMES:
        return None

    tokens = line[: match.start()].split()
    while tokens and tokens[0] in _LEADING_QUALIFIERS:
        tokens.pop(0)
    return_type = " ".join(tokens)
    if not return_type or not _RETURN_TYPE_CHARS.match(return_type):
        return None

    params, end = _balanced_group(line, match.end() - 1)
    if end < 0:
        return None
    return return_type, name, params, qualifier


def parse_parameters(text: str) -> Tuple[Parameter, ...]:
    """Split a parameter list into ``(name, type)`` pairs.

    Each comma-separated chunk is split into its trailing identifier (the name)
    and everything before it (the type). Default values are dropped. A chunk
    without a separate type keeps the whole text as the type and an empty name.
    """
    text = text.strip()
    if not text or text == "void":
        return ()
    parameters: List[Parameter] = []
    for chunk in split_top_level(text):
        declaration = chunk.split("=", 1)[0].strip()
        if not declaration:
            continue
        match = _TRAILING_IDENTIFIER.match(declaration)
        if match and match.group(1).strip():
            parameters.append(Parameter(name=match.group(2), type=match.group(1).strip()))
        else:
            parameters.append(Parameter(name="", type=declaration))
    return tuple(parameters)


def parse_enum_entries(text: str) -> List[EnumValue]:
    """Parse the ``Name [= integer]`` entries found on one enum body line."""
    text = _UMETA.sub("", text.split("//", 1)[0])
    entries: List[EnumValue] = []
    for token in split_top_level(text):
        match = _ENUM_ENTRY.match(token.strip())
        if not match:
            continue
        value: Optional[int] = None
        if match.group(2) is not None:
            try:
                value = int(match.group(2).strip(), 0)
            except ValueError:
                value = None
        entries.append(EnumValue(name=match.group(1), value=value))
    return entries


class SourceClassifier(Analyzer):
    """Recovers reflected declarations and callables from module source trees."""

    name = "source"

    def __init__(self, config: IndexConfig | None = None) -> None:
        self.config = config
        scan = config.scan if config is not None else None
        self.declaration_lookahead = scan.declaration_lookahead if scan else 10
        self.callable_lookahead = scan.callable_lookahead if scan else 5
        self.enum_body_window = scan.enum_body_window if scan else 50
        self.max_workers = scan.max_workers if scan else 4
        extensions = scan.source_extensions if scan else (".h", ".hpp", ".cpp")
        self.extensions = {ext.lower() for ext in extensions}
        self._rules = build_ignore_rules(config.all_exclude_paths) if config is not None else []

    def supports(self, project: ProjectDescriptor) -> bool:
        return bool(project.modules)

    def analyze(self, project: ProjectDescriptor) -> AnalyzerResult:
        result = AnalyzerResult()
        root = Path(project.root)
        for module in project.modules:
            result.extend(self.scan_module(module, root))
        _logger.debug(
            "Classified %d declarations and %d callables across %d modules",
            len(result.declarations),
            len(result.callables),
            len(project.modules),
        )
        return result

    def scan_module(self, module: ModuleRef, project_root: Path) -> AnalyzerResult:
        """Classify every recognised source file under one module."""
        result = AnalyzerResult(module_declarations={module.name: []})
        if not module.path:
            return result

        files = [
            path
            for path, _ in walk_files(
                Path(module.path),
                self._admit,
                rules=self._rules,
                base=project_root,
                issues=result.issues,
            )
        ]
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            outcomes = list(
                executor.map(lambda path: self._classify_file(path, project_root, module.name), files)
            )

        for declarations, callables, issue in outcomes:
            if issue is not None:
                result.issues.append(issue)
                continue
            result.declarations.extend(declarations)
            result.callables.extend(callables)
            result.module_declarations[module.name].extend(d.name for d in declarations)
        return result

    def classify_text(
        self, text: str, file: str, module: str | None = None
    ) -> Tuple[List[DeclarationEntity], List[CallableEntity]]:
        """Run the line rules over one file's text."""
        lines = text.splitlines()
        declarations: List[DeclarationEntity] = []
        callables: List[CallableEntity] = []
        owner = ""

        for index, raw in enumerate(lines):
            stripped = raw.strip()
            marker = _DECLARATION_MARKER.match(stripped)
            if marker:
                declaration = self._read_declaration(lines, index, marker.group(1), file, module)
                if declaration is not None:
                    declarations.append(declaration)
                    if declaration.kind != KIND_ENUM:
                        owner = declaration.name
                continue
            if _CALLABLE_MARKER.match(stripped):
                callable_entity = self._read_callable(lines, index, owner, file, module)
                if callable_entity is not None:
                    callables.append(callable_entity)

        return declarations, callables

    # ------------------------------------------------------------------
    # Internal helpers

    def _admit(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def _classify_file(
        self, path: Path, project_root: Path, module: str
    ) -> Tuple[List[DeclarationEntity], List[CallableEntity], Optional[ScanIssue]]:
        rel_path = _relative_to(path, project_root)
        try:
            data = path.read_bytes()
        except OSError as exc:
            _logger.debug("Skipping unreadable source file %s: %s", rel_path, exc)
            return [], [], ScanIssue(IssueKind.FILE_UNREADABLE, rel_path, str(exc))
        # NUL bytes mean UTF-16/32 or binary content, not a text header.
        if b"\x00" in data:
            _logger.debug("Skipping non-UTF-8 source file %s", rel_path)
            return [], [], ScanIssue(IssueKind.FILE_UNPARSEABLE, rel_path, "not UTF-8 text")
        text = data.decode("utf-8-sig", errors="replace")
        declarations, callables = self.classify_text(text, rel_path, module)
        return declarations, callables, None

    def _candidates(
        self, lines: Sequence[str], index: int, window: int
    ) -> Iterable[Tuple[int, str]]:
        """Yield the marker's trailing text, then following non-comment lines until the next marker."""
        _, remainder = extract_specifiers(lines[index].strip())
        if remainder:
            yield index, remainder
        for offset in range(index + 1, min(index + 1 + window, len(lines))):
            line = lines[offset].strip()
            if _DECLARATION_MARKER.match(line) or _CALLABLE_MARKER.match(line):
                return
            if line.startswith(_COMMENT_PREFIXES):
                continue
            yield offset, line

    def _read_declaration(
        self,
        lines: Sequence[str],
        index: int,
        kind: str,
        file: str,
        module: str | None,
    ) -> Optional[DeclarationEntity]:
        specifiers, _ = extract_specifiers(lines[index].strip())
        for header_index, line in self._candidates(lines, index, self.declaration_lookahead):
            header = match_declaration_header(kind, line)
            if header is None:
                continue
            name, parent = header
            values: Tuple[EnumValue, ...] = ()
            if kind == KIND_ENUM:
                values = tuple(self._read_enum_values(lines, header_index, line))
            return DeclarationEntity(
                name=name,
                kind=kind,
                parent=parent,
                specifiers=specifiers,
                file=file,
                line=header_index + 1,
                module=module,
                blueprint_type="BlueprintType" in specifiers,
                blueprintable="Blueprintable" in specifiers,
                values=values,
            )
        return None

    def _read_enum_values(self, lines: Sequence[str], header_index: int, header: str) -> List[EnumValue]:
        values: List[EnumValue] = []
        # The header may open the body inline: "enum class EFoo : uint8 { A, B };"
        if "{" in header:
            body = header.split("{", 1)[1]
            values.extend(parse_enum_entries(body.split("}", 1)[0]))
            if "}" in body:
                return values

        last = min(header_index + 1 + self.enum_body_window, len(lines))
        for offset in range(header_index + 1, last):
            line = lines[offset].strip()
            if line.startswith("}"):
                break
            if line.startswith("{"):
                line = line[1:]
            if "}" in line:
                values.extend(parse_enum_entries(line.split("}", 1)[0]))
                break
            values.extend(parse_enum_entries(line))
        return values

    def _read_callable(
        self,
        lines: Sequence[str],
        index: int,
        owner: str,
        file: str,
        module: str | None,
    ) -> Optional[CallableEntity]:
        specifiers, _ = extract_specifiers(lines[index].strip())
        last = min(index + 1 + self.callable_lookahead, len(lines))
        for header_index, line in self._candidates(lines, index, self.callable_lookahead):
            header = match_callable_header(_join_wrapped(lines, header_index, line, last))
            if header is None:
                continue
            return_type, name, params, qualifier = header
            return CallableEntity(
                name=name,
                owner=qualifier or owner,
                return_type=return_type,
                parameters=parse_parameters(params),
                specifiers=specifiers,
                file=file,
                line=header_index + 1,
                module=module,
                blueprint_callable=any(
                    token in specifiers for token in ("BlueprintCallable", "BlueprintPure")
                ),
            )
        return None


def _join_wrapped(lines: Sequence[str], index: int, text: str, last: int) -> str:
    """Append following lines while ``text`` has an unclosed parenthesis."""
    offset = index + 1
    while text.count("(") > text.count(")") and offset < last:
        text = f"{text} {lines[offset].strip()}"
        offset += 1
    return text


def _relative_to(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


__all__ = [
    "SourceClassifier",
    "extract_specifiers",
    "match_callable_header",
    "match_declaration_header",
    "parse_enum_entries",
    "parse_parameters",
    "split_top_level",
]
