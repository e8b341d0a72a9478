"""Deduplicating registry for style and script payloads."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from threading import Lock


@dataclass(slots=True)
class AssetCollector:
    """Thread-safe record of the payloads already emitted within one scope.

    A scope is whatever the caller shares the collector across, typically one
    page. Payloads are compared by exact text.
    """

    _styles: list[str] = field(default_factory=list)
    _scripts: list[str] = field(default_factory=list)
    _seen_styles: set[str] = field(default_factory=set)
    _seen_scripts: set[str] = field(default_factory=set)
    _lock: Lock = field(default_factory=Lock)

    def add_style(self, payload: str) -> bool:
        """Record a style payload; return True when it was not seen before."""
        if not payload:
            return False
        with self._lock:
            if payload in self._seen_styles:
                return False
            self._seen_styles.add(payload)
            self._styles.append(payload)
            return True

    def add_script(self, payload: str) -> bool:
        """Record a script module; return True when it was not seen before."""
        if not payload:
            return False
        with self._lock:
            if payload in self._seen_scripts:
                return False
            self._seen_scripts.add(payload)
            self._scripts.append(payload)
            return True

    def collect_styles(self, payloads: Iterable[str]) -> list[str]:
        """Return the payloads that were new to this scope, in order."""
        return [payload for payload in payloads if self.add_style(payload)]

    def collect_scripts(self, payloads: Iterable[str]) -> list[str]:
        return [payload for payload in payloads if self.add_script(payload)]

    @property
    def styles(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._styles)

    @property
    def scripts(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._scripts)

    def clear(self) -> None:
        """Reset the collector to its initial empty state."""
        with self._lock:
            self._styles.clear()
            self._scripts.clear()
            self._seen_styles.clear()
            self._seen_scripts.clear()


__all__ = ["AssetCollector"]
