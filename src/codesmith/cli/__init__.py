"""Public CLI exports for codesmith."""

from __future__ import annotations

from .app import app, main
from .commands import list_themes, render
from .state import debug_enabled, emit_error, emit_warning, get_cli_state


__all__ = [
    "app",
    "debug_enabled",
    "emit_error",
    "emit_warning",
    "get_cli_state",
    "list_themes",
    "main",
    "render",
]
