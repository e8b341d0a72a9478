"""Syntax highlighting plugin backed by Pygments."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from bs4.element import PageElement
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.token import _TokenType
from pygments.util import ClassNotFound

from codesmith.core.annotations import InlineAnnotation
from codesmith.core.cache import OnceCache
from codesmith.core.diagnostics import record_event
from codesmith.core.nodes import new_tag
from codesmith.core.plugins import Plugin, PluginHooks
from codesmith.core.styles import token_var


if TYPE_CHECKING:  # pragma: no cover - typing only
    from codesmith.core.block import Line
    from codesmith.core.pipeline import HookContext
    from codesmith.core.themes import Theme, TokenStyle


logger = logging.getLogger(__name__)

PLUGIN_NAME = "syntax-highlighting"
FALLBACK_LANGUAGE = "text"


@dataclass(frozen=True, slots=True)
class TokenSpan:
    """Token covering ``[start, end)`` of a single line."""

    start: int
    end: int
    token_type: _TokenType


@runtime_checkable
class SyntaxBackend(Protocol):
    """Tokenizer used by the syntax highlighting plugin."""

    def supports(self, language: str) -> bool: ...

    def analyze(
        self, code: str, language: str, theme: Theme | None = None
    ) -> list[list[TokenSpan]]: ...


class PygmentsBackend:
    """Tokenize code with Pygments lexers, one lexer instance per language."""

    def __init__(self, *, cache: OnceCache[str, Lexer] | None = None) -> None:
        self._lexers: OnceCache[str, Lexer] = (
            cache if cache is not None else OnceCache(maxsize=64)
        )

    def _lexer(self, language: str) -> Lexer:
        def _build() -> Lexer:
            if not language or language == FALLBACK_LANGUAGE:
                return TextLexer(stripnl=False, ensurenl=False)
            return get_lexer_by_name(language, stripnl=False, ensurenl=False)

        return self._lexers.get_or_create(language, _build)

    def supports(self, language: str) -> bool:
        try:
            self._lexer(language)
        except ClassNotFound:
            return False
        return True

    def analyze(
        self, code: str, language: str, theme: Theme | None = None
    ) -> list[list[TokenSpan]]:
        """Return token spans per line; the result has one entry per line."""
        try:
            lexer = self._lexer(language)
        except ClassNotFound:
            lexer = self._lexer(FALLBACK_LANGUAGE)

        lines: list[list[TokenSpan]] = [[]]
        column = 0
        for token_type, value in lexer.get_tokens(code):
            parts = value.split("\n")
            for position, part in enumerate(parts):
                if position > 0:
                    lines.append([])
                    column = 0
                if part:
                    lines[-1].append(TokenSpan(column, column + len(part), token_type))
                    column += len(part)

        expected = code.count("\n") + 1
        del lines[expected:]
        while len(lines) < expected:
            lines.append([])
        return lines


def _style_declarations(index: int, style: TokenStyle, foreground: str) -> list[str]:
    declarations: list[str] = []
    # The default foreground is inherited from the code element.
    if style.color and style.color != foreground:
        declarations.append(f"{token_var(index)}:{style.color}")
    if style.italic:
        declarations.append(f"{token_var(index, '-fs')}:italic")
    if style.bold:
        declarations.append(f"{token_var(index, '-fw')}:bold")
    if style.underline:
        declarations.append(f"{token_var(index, '-td')}:underline")
    return declarations


def token_style_attribute(token_type: _TokenType, themes: Sequence[Theme]) -> str:
    """Return the inline ``style`` value for a token rendered under ``themes``."""
    declarations: list[str] = []
    for index, theme in enumerate(themes):
        declarations.extend(
            _style_declarations(index, theme.style_for_token(token_type), theme.foreground)
        )
    return ";".join(declarations)


class TokenAnnotation(InlineAnnotation):
    """Inline annotation coloring a token for every configured theme."""

    def __init__(self, start: int, end: int, token_type: _TokenType, style: str) -> None:
        super().__init__(start, end, priority=0, name="token")
        self.token_type = token_type
        self.style = style

    def render(self, nodes: list[PageElement], line: Line) -> list[PageElement]:
        if not nodes:
            return nodes
        return [new_tag("span", {"style": self.style}, children=nodes)]


def _annotate(context: HookContext, backend: SyntaxBackend) -> None:
    block = context.block
    assert block is not None
    language = block.language
    if language and not backend.supports(language):
        record_event(
            context.emitter,
            "language_fallback",
            {"language": language, "fallback": FALLBACK_LANGUAGE},
        )
        logger.debug("No lexer found for '%s'", language)
        language = FALLBACK_LANGUAGE

    primary = context.themes[0] if context.themes else None
    spans_per_line = backend.analyze(block.code, language or FALLBACK_LANGUAGE, primary)
    styles: dict[_TokenType, str] = {}
    for line, spans in zip(block.lines, spans_per_line, strict=False):
        pending: TokenSpan | None = None
        pending_style = ""
        for span in spans:
            if not line.text[span.start : span.end].strip():
                continue
            style = styles.get(span.token_type)
            if style is None:
                style = token_style_attribute(span.token_type, context.themes)
                styles[span.token_type] = style
            if not style:
                continue
            if pending is not None and pending_style == style and pending.end == span.start:
                pending = TokenSpan(pending.start, span.end, pending.token_type)
                continue
            if pending is not None:
                line.add_annotation(
                    TokenAnnotation(pending.start, pending.end, pending.token_type, pending_style)
                )
            pending, pending_style = span, style
        if pending is not None:
            line.add_annotation(
                TokenAnnotation(pending.start, pending.end, pending.token_type, pending_style)
            )


def syntax_highlighting(backend: SyntaxBackend | None = None) -> Plugin:
    """Return the syntax highlighting plugin."""
    selected = backend or PygmentsBackend()

    def perform_syntax_analysis(context: HookContext) -> None:
        _annotate(context, selected)

    return Plugin(
        name=PLUGIN_NAME,
        hooks=PluginHooks(perform_syntax_analysis=perform_syntax_analysis),
    )


__all__ = [
    "PLUGIN_NAME",
    "PygmentsBackend",
    "SyntaxBackend",
    "TokenAnnotation",
    "TokenSpan",
    "syntax_highlighting",
    "token_style_attribute",
]
