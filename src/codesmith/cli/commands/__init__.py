"""Command implementations exposed by the codesmith CLI."""

from __future__ import annotations

from .render import render
from .themes import list_themes


__all__ = ["list_themes", "render"]
