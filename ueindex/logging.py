"""Logging helpers shared by the scanners, the CLI and the service."""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import IO, Iterable

_ROOT = "ueindex"
_CONSOLE_FORMAT = "[ueindex] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``ueindex.<name>``, or the package logger when ``name`` is empty."""
    return logging.getLogger(f"{_ROOT}.{name}" if name else _ROOT)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Install console (stderr by default) and optional file handlers on the package logger.

    Existing handlers are replaced, so calling this again reconfigures instead of
    duplicating output.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_ROOT)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(level)
        sink.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(sink)

    return logger


def log_scan_issues(logger: logging.Logger, issues: Iterable) -> None:
    """Log one INFO line per issue kind and each skipped path at DEBUG."""
    issues = list(issues)
    if not issues:
        return
    for kind, count in sorted(Counter(issue.kind.value for issue in issues).items()):
        logger.info("Skipped %d item(s): %s", count, kind.replace("_", " "))
    for issue in issues:
        logger.debug("%s: %s %s", issue.kind.value, issue.path, issue.detail)


__all__ = ["configure_logging", "get_logger", "log_scan_issues"]
