"""Custom exception hierarchy for the code block rendering pipeline."""

from __future__ import annotations


class CodesmithError(RuntimeError):
    """Base exception for code block rendering failures."""


class ValidationError(CodesmithError):
    """Raised when block input is malformed (e.g. an unterminated meta token)."""


class StateError(CodesmithError):
    """Raised when the block model is mutated outside the stage allowing it."""


class ThemeLoadError(CodesmithError):
    """Raised when a color theme cannot be loaded or normalised."""


class StyleResolutionError(CodesmithError):
    """Raised when style setting layers cannot be merged or resolved."""


class ConfigError(CodesmithError):
    """Raised when the renderer configuration is invalid."""


class PluginError(CodesmithError):
    """Raised when a plugin hook fails while the pipeline executes."""

    def __init__(self, plugin_name: str, stage: str, cause: BaseException) -> None:
        self.plugin_name = plugin_name
        self.stage = stage
        detail = str(cause).strip() or cause.__class__.__name__
        super().__init__(f"Plugin '{plugin_name}' failed in stage '{stage}': {detail}")


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "CodesmithError",
    "ConfigError",
    "PluginError",
    "StateError",
    "StyleResolutionError",
    "ThemeLoadError",
    "ValidationError",
    "exception_hint",
    "exception_messages",
]
