"""Turn annotated lines and blocks into output trees."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from bs4.element import NavigableString, PageElement, Tag

from .annotations import Annotation
from .exceptions import ValidationError
from .nodes import new_tag, split_node, text_length
from .styles import BLOCK_CLASS, LINE_CLASS, WRAPPER_CLASS


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .block import Block, Line


def _ordered(annotations: Sequence[Annotation]) -> list[Annotation]:
    """Return annotations from outermost to innermost."""
    return sorted(annotations, key=lambda annotation: annotation.sort_key())


def _partition(
    pieces: list[PageElement], start: int, end: int
) -> tuple[list[PageElement], list[PageElement], list[PageElement]]:
    """Split ``pieces`` into the nodes before, inside and after ``[start, end)``."""
    before: list[PageElement] = []
    inside: list[PageElement] = []
    after: list[PageElement] = []
    offset = 0
    for piece in pieces:
        piece_start = offset
        piece_end = offset + text_length(piece)
        offset = piece_end
        if piece_end <= start:
            before.append(piece)
            continue
        if piece_start >= end:
            after.append(piece)
            continue

        current: PageElement | None = piece
        if piece_start < start:
            head, current = split_node(piece, start - piece_start)
            if head is not None:
                before.append(head)
        if current is not None and piece_end > end:
            current_start = max(piece_start, start)
            current, tail = split_node(current, end - current_start)
            if tail is not None:
                after.append(tail)
        if current is not None:
            inside.append(current)
    return before, inside, after


def _apply_inline(
    annotation: Annotation, pieces: list[PageElement], line: Line
) -> list[PageElement]:
    inline_range = annotation.inline_range
    assert inline_range is not None
    before, inside, after = _partition(pieces, inline_range.start, inline_range.end)
    rendered = annotation.render(inside, line)
    return [*before, *rendered, *after]


def render_line(line: Line) -> Tag:
    """Render a line into its ``div.cs-line`` wrapper.

    Inline annotations are applied innermost first, so each annotation wraps
    the output of the annotations nested inside it; line annotations are
    applied to the wrapper afterwards, following the same order.
    """
    pieces: list[PageElement] = [NavigableString(line.text)] if line.text else []
    for annotation in reversed(_ordered(line.get_annotations(inline=True))):
        pieces = _apply_inline(annotation, pieces, line)

    wrapper = new_tag("div", classes=[LINE_CLASS], children=pieces)
    for annotation in reversed(_ordered(line.get_annotations(inline=False))):
        rendered = annotation.render([wrapper], line)
        if len(rendered) != 1 or not isinstance(rendered[0], Tag):
            raise ValidationError(
                f"Line annotation '{annotation.name}' must render exactly one element"
            )
        wrapper = rendered[0]
    return wrapper


def render_block(block: Block, line_nodes: Sequence[PageElement]) -> Tag:
    """Wrap rendered lines into the block structure."""
    attrs = {"data-language": block.language or None}
    code = new_tag("code", children=line_nodes)
    pre = new_tag("pre", attrs, children=[code])
    return new_tag("div", attrs, classes=[BLOCK_CLASS], children=[pre])


def render_group(block_nodes: Sequence[PageElement]) -> Tag:
    """Wrap rendered blocks into the output node of the group."""
    return new_tag("div", classes=[WRAPPER_CLASS], children=block_nodes)


__all__ = ["render_block", "render_group", "render_line"]
