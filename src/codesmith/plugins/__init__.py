"""Built-in plugins registered by the default renderer."""

from __future__ import annotations

from .frames import frames
from .syntax import PygmentsBackend, SyntaxBackend, syntax_highlighting
from .text_markers import text_markers


__all__ = [
    "PygmentsBackend",
    "SyntaxBackend",
    "frames",
    "syntax_highlighting",
    "text_markers",
]
