"""Text markers plugin: highlight, inserted and deleted lines or text.

Line markers
: ``{1, 3-5}`` (marked), ``mark={...}``, ``ins={...}`` and ``del={...}``.

Inline markers
: bare ``"text"`` or ``/regex/`` (marked), and ``mark=``, ``ins=`` or
  ``del=`` followed by a quoted string or a regular expression. When a regular
  expression has capture groups only the groups are marked.

Overlapping markers never nest: ``del`` wins over ``ins``, which wins over
``mark``.
"""

from __future__ import annotations

from collections.abc import Iterator
import re
from typing import TYPE_CHECKING, Any

from bs4.element import PageElement

from codesmith.core.annotations import InlineAnnotation, LineClassAnnotation
from codesmith.core.nodes import new_tag
from codesmith.core.plugins import Plugin, PluginHooks
from codesmith.core.style_settings import by_theme
from codesmith.core.styles import LINE_CLASS, WRAPPER_CLASS


if TYPE_CHECKING:  # pragma: no cover - typing only
    from codesmith.core.block import Block, Line
    from codesmith.core.metadata import MetaOptions
    from codesmith.core.pipeline import HookContext


PLUGIN_NAME = "text-markers"
MARKER_PRIORITY = 10

# Strongest last.
MARKER_TYPES: tuple[str, ...] = ("mark", "ins", "del")

TEXT_MARKERS_STYLE_SETTINGS: dict[str, Any] = {
    "text_markers": {
        "mark_background": by_theme(dark="#ffffff17", light="#0000001a"),
        "mark_border_color": by_theme(dark="#ffffff55", light="#00000055"),
        "ins_background": by_theme(dark="#1e571599", light="#a0eb8cb8"),
        "ins_border_color": by_theme(dark="#38a226d0", light="#2f8a1fd0"),
        "del_background": by_theme(dark="#862d2799", light="#ff9c8e80"),
        "del_border_color": by_theme(dark="#d65b50d0", light="#cf4437d0"),
        "line_marker_width": "0.15rem",
        "inline_marker_border_radius": "0.2rem",
    }
}


def _text_marker_styles() -> str:
    root = f".{WRAPPER_CLASS}"
    rules: list[str] = []
    for kind in MARKER_TYPES:
        background = f"var(--cs-text-markers-{kind}-background)"
        border = f"var(--cs-text-markers-{kind}-border-color)"
        rules.append(
            f"{root} .{LINE_CLASS}.highlight.{kind}{{background:{background};"
            f"box-shadow:inset var(--cs-text-markers-line-marker-width) 0 {border}}}"
        )
        rules.append(
            f"{root} .{LINE_CLASS} {kind}{{background:{background};color:inherit;"
            "text-decoration:none;"
            "border-radius:var(--cs-text-markers-inline-marker-border-radius);"
            f"box-shadow:0 0 0 1px {border}}}"
        )
    return "".join(rules)


TEXT_MARKERS_BASE_STYLES = _text_marker_styles()


class TextMarkerAnnotation(InlineAnnotation):
    """Wrap a character range in ``<mark>``, ``<ins>`` or ``<del>``."""

    def __init__(self, kind: str, start: int, end: int) -> None:
        if kind not in MARKER_TYPES:
            raise ValueError(f"Unknown marker type '{kind}'")
        super().__init__(start, end, priority=MARKER_PRIORITY, name=PLUGIN_NAME)
        self.kind = kind

    def render(self, nodes: list[PageElement], line: Line) -> list[PageElement]:
        if not nodes:
            return nodes
        return [new_tag(self.kind, children=nodes)]


def _line_markers(options: MetaOptions, line_count: int) -> dict[int, str]:
    """Return the strongest marker type per 0-based line index."""
    markers: dict[int, str] = {}
    for kind in MARKER_TYPES:
        keys: list[str | None] = [kind, None] if kind == "mark" else [kind]
        for key in keys:
            for number in options.value_ranges(key):
                if 1 <= number <= line_count:
                    markers[number - 1] = kind
    return markers


def _regex_spans(pattern: re.Pattern[str], text: str) -> Iterator[tuple[int, int]]:
    for match in pattern.finditer(text):
        if pattern.groups:
            for index in range(1, pattern.groups + 1):
                start, end = match.span(index)
                if start >= 0 and end > start:
                    yield start, end
        elif match.end() > match.start():
            yield match.start(), match.end()


def _text_spans(needle: str, text: str) -> Iterator[tuple[int, int]]:
    if not needle:
        return
    start = text.find(needle)
    while start != -1:
        yield start, start + len(needle)
        start = text.find(needle, start + len(needle))


def _inline_segments(options: MetaOptions, text: str) -> list[tuple[str, int, int]]:
    """Return non-overlapping ``(kind, start, end)`` segments for one line."""
    strength = [-1] * len(text)
    for rank, kind in enumerate(MARKER_TYPES):
        keys: list[str | None] = [kind, None] if kind == "mark" else [kind]
        for key in keys:
            spans: list[tuple[int, int]] = []
            for needle in options.get_strings(key):
                spans.extend(_text_spans(needle, text))
            for pattern in options.get_regexps(key):
                spans.extend(_regex_spans(pattern, text))
            for start, end in spans:
                for position in range(start, end):
                    strength[position] = max(strength[position], rank)

    segments: list[tuple[str, int, int]] = []
    position = 0
    while position < len(text):
        rank = strength[position]
        end = position
        while end < len(text) and strength[end] == rank:
            end += 1
        if rank >= 0:
            segments.append((MARKER_TYPES[rank], position, end))
        position = end
    return segments


def annotate_block(block: Block) -> None:
    """Attach marker annotations described by the block meta options."""
    options = block.meta_options
    line_markers = _line_markers(options, block.line_count)
    for index, line in enumerate(block.lines):
        kind = line_markers.get(index)
        if kind is not None:
            line.add_annotation(
                LineClassAnnotation(
                    ("highlight", kind), priority=MARKER_PRIORITY, name=PLUGIN_NAME
                )
            )
        for segment_kind, start, end in _inline_segments(options, line.text):
            line.add_annotation(TextMarkerAnnotation(segment_kind, start, end))


def text_markers() -> Plugin:
    """Return the text markers plugin."""

    def annotate_code(context: HookContext) -> None:
        assert context.block is not None
        annotate_block(context.block)

    return Plugin(
        name=PLUGIN_NAME,
        hooks=PluginHooks(annotate_code=annotate_code),
        default_style_settings=TEXT_MARKERS_STYLE_SETTINGS,
        base_styles=TEXT_MARKERS_BASE_STYLES,
    )


__all__ = [
    "MARKER_TYPES",
    "PLUGIN_NAME",
    "TextMarkerAnnotation",
    "annotate_block",
    "text_markers",
]
