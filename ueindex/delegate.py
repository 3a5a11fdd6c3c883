"""Optional live-editor delegate consulted by callers, never by the scan pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, FrozenSet, Mapping, Optional, Union

from .logging import get_logger

CAPABILITY_READ = "read"
CAPABILITY_MUTATE = "mutate"

_logger = get_logger("delegate")


@dataclass(frozen=True)
class DelegateUnavailable:
    """Expected outcome when no live delegate can serve a request."""

    reason: str = "no live delegate attached"


DelegateResult = Union[Any, DelegateUnavailable]


class LiveDelegate(ABC):
    """Contract for an external editor connection providing live entities."""

    @abstractmethod
    def capabilities(self) -> FrozenSet[str]:
        """Return the capability names this delegate can serve right now."""

    @abstractmethod
    def try_get_live_entity(self, kind: str, name: str) -> DelegateResult:
        """Return the live entity or ``DelegateUnavailable``."""

    @abstractmethod
    def try_mutate_live_entity(
        self, kind: str, name: str, changes: Mapping[str, Any]
    ) -> DelegateResult:
        """Apply ``changes`` to a live entity, or return ``DelegateUnavailable``."""


class NullDelegate(LiveDelegate):
    """Delegate used when no editor is attached; every call is unavailable."""

    def capabilities(self) -> FrozenSet[str]:
        return frozenset()

    def try_get_live_entity(self, kind: str, name: str) -> DelegateResult:
        return DelegateUnavailable()

    def try_mutate_live_entity(
        self, kind: str, name: str, changes: Mapping[str, Any]
    ) -> DelegateResult:
        return DelegateUnavailable()


class DelegateGateway:
    """Routes caller requests to an optional delegate.

    Capabilities are queried once, on first use, and cached. Requests for a
    capability the delegate did not advertise return ``DelegateUnavailable``
    without calling it.
    """

    def __init__(self, delegate: LiveDelegate | None = None) -> None:
        self._delegate = delegate
        self._capabilities: Optional[FrozenSet[str]] = None

    @property
    def attached(self) -> bool:
        return self._delegate is not None

    def capabilities(self) -> FrozenSet[str]:
        if self._capabilities is None:
            if self._delegate is None:
                self._capabilities = frozenset()
            else:
                self._capabilities = frozenset(self._delegate.capabilities())
                _logger.debug("Live delegate capabilities: %s", sorted(self._capabilities))
        return self._capabilities

    def get_live_entity(self, kind: str, name: str) -> DelegateResult:
        if self._delegate is None:
            return DelegateUnavailable()
        if CAPABILITY_READ not in self.capabilities():
            return DelegateUnavailable(f"delegate does not support '{CAPABILITY_READ}'")
        return self._delegate.try_get_live_entity(kind, name)

    def mutate_live_entity(self, kind: str, name: str, changes: Mapping[str, Any]) -> DelegateResult:
        if self._delegate is None:
            return DelegateUnavailable()
        if CAPABILITY_MUTATE not in self.capabilities():
            return DelegateUnavailable(f"delegate does not support '{CAPABILITY_MUTATE}'")
        return self._delegate.try_mutate_live_entity(kind, name, dict(changes))


__all__ = [
    "CAPABILITY_MUTATE",
    "CAPABILITY_READ",
    "DelegateGateway",
    "DelegateResult",
    "DelegateUnavailable",
    "LiveDelegate",
    "NullDelegate",
]
