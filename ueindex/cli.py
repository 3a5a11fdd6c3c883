"""CLI entrypoints for ueindex commands."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, is_dataclass
from typing import Any

from .config import ConfigError
from .engine import ProjectIndexer
from .errors import ManifestError
from .logging import configure_logging

SEARCH_KINDS = ("all", "declarations", "callables", "assets", "plugins")


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--path",
        default=".",
        help="Path to the Unreal project root (defaults to current directory).",
    )


def _add_command(
    subparsers: argparse._SubParsersAction, name: str, help_text: str
) -> argparse.ArgumentParser:
    command = subparsers.add_parser(name, help=help_text)
    _add_verbose_option(command, suppress_default=True)
    _add_path_option(command)
    return command


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ueindex",
        description="Statically index an Unreal Engine project tree.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    _add_command(subparsers, "summary", "Print summary statistics for the project.")

    search_parser = _add_command(subparsers, "search", "Search indexed entities by substring.")
    search_parser.add_argument("query", help="Case-insensitive substring to look for.")
    search_parser.add_argument(
        "--kind",
        choices=SEARCH_KINDS,
        default="all",
        help="Restrict the search to one entity kind.",
    )

    hierarchy_parser = _add_command(
        subparsers, "hierarchy", "Print the parent chain of a declaration."
    )
    hierarchy_parser.add_argument("name", help="Declaration name, e.g. AMyCharacter.")

    usages_parser = _add_command(
        subparsers, "usages", "List files that reference a declaration."
    )
    usages_parser.add_argument("name", help="Declaration name to look up.")

    plugins_parser = _add_command(subparsers, "plugins", "List plugins found under Plugins/.")
    plugins_parser.add_argument("--category", help="Only list plugins in this category.")
    plugins_parser.add_argument(
        "--enabled-only",
        action="store_true",
        help="Only list enabled plugins.",
    )

    _add_command(
        subparsers, "validate", "Check the manifest and directory layout without scanning."
    )

    serve_parser = _add_command(subparsers, "serve", "Scan the project and serve queries over HTTP.")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for ueindex commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    indexer = ProjectIndexer(args.path)

    if args.command == "validate":
        try:
            report = indexer.validate()
        except ConfigError as exc:
            parser.exit(1, f"{exc}\n")
        _emit(report)
        if not report.valid:
            parser.exit(1)
        return

    if args.command == "serve":
        from .service import run_service

        try:
            run_service(args.path, host=args.host, port=args.port)
        except (ManifestError, ConfigError) as exc:
            parser.exit(1, f"ueindex serve failed: {exc}\n")
        return

    try:
        indexer.scan()
    except (ManifestError, ConfigError) as exc:
        parser.exit(1, f"ueindex {args.command} failed: {exc}\n")

    if args.command == "summary":
        _emit(indexer.summary())
    elif args.command == "search":
        _emit(_search(indexer, args.query, args.kind))
    elif args.command == "hierarchy":
        chain = indexer.hierarchy(args.name)
        if not chain:
            parser.exit(1, f"Declaration not found: {args.name}\n")
        _emit({"name": args.name, "hierarchy": chain})
    elif args.command == "usages":
        _emit(indexer.usages(args.name))
    elif args.command == "plugins":
        if args.category:
            plugins = indexer.plugins_by_category(args.category)
        else:
            plugins = indexer.plugins()
        if args.enabled_only:
            plugins = [plugin for plugin in plugins if plugin.enabled]
        _emit(plugins)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _search(indexer: ProjectIndexer, query: str, kind: str) -> dict[str, list[Any]]:
    results: dict[str, list[Any]] = {}
    if kind in ("all", "declarations"):
        results["declarations"] = indexer.search_declarations(query)
    if kind in ("all", "callables"):
        results["callables"] = indexer.search_callables(query)
    if kind in ("all", "assets"):
        results["assets"] = indexer.search_assets(query)
    if kind in ("all", "plugins"):
        results["plugins"] = indexer.search_plugins(query)
    return results


def _to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return value


def _emit(value: Any) -> None:
    print(json.dumps(_to_jsonable(value), indent=2))


if __name__ == "__main__":
    main(sys.argv[1:])
