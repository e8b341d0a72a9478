"""Annotation primitives attached to the lines of a code block.

Annotations are the unit of visual decoration. Every annotation knows how to
render a list of output nodes into replacement nodes; the engine decides which
nodes it receives and in which order annotations are applied:

- inline annotations receive the nodes covering their :class:`InlineRange`,
- line annotations receive the single wrapper node of their line.

Ordering is explicit. An annotation with a higher ``priority`` wraps one with a
lower priority; among equal priorities the annotation registered first ends up
outermost.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from bs4.element import PageElement, Tag

from .exceptions import ValidationError
from .nodes import add_classes, new_tag


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .block import Line


@dataclass(frozen=True, slots=True)
class InlineRange:
    """Half-open character range ``[start, end)`` within a line."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValidationError(f"Invalid inline range [{self.start}, {self.end})")

    @property
    def length(self) -> int:
        """Number of characters covered by the range."""
        return self.end - self.start

    def overlaps(self, other: InlineRange) -> bool:
        """Return True when both ranges share at least one character."""
        return self.start < other.end and other.start < self.end


class Annotation(ABC):
    """Base class for renderable decorations."""

    inline_range: InlineRange | None = None

    def __init__(self, *, priority: int = 0, name: str | None = None) -> None:
        self.priority = priority
        self.name = name or type(self).__name__
        self.sequence: int | None = None
        self.plugin_index: int | None = None

    @property
    def is_inline(self) -> bool:
        """Return True for annotations bound to a character range."""
        return self.inline_range is not None

    def sort_key(self) -> tuple[int, int, int]:
        """Key ordering annotations from outermost to innermost.

        Higher priorities come first, then annotations of earlier registered
        plugins, then earlier attached ones. Annotations attached outside any
        plugin sort before plugin annotations of the same priority.
        """
        return (
            -self.priority,
            self.plugin_index if self.plugin_index is not None else -1,
            self.sequence if self.sequence is not None else 0,
        )

    @abstractmethod
    def render(self, nodes: list[PageElement], line: Line) -> list[PageElement]:
        """Return the nodes replacing ``nodes`` in the rendered output."""


class InlineAnnotation(Annotation):
    """Annotation bound to a character range of its line."""

    def __init__(
        self, start: int, end: int, *, priority: int = 0, name: str | None = None
    ) -> None:
        super().__init__(priority=priority, name=name)
        self.inline_range = InlineRange(start, end)


class LineAnnotation(Annotation):
    """Annotation applying to the wrapper of a whole line."""


class WrapAnnotation(InlineAnnotation):
    """Wrap the covered nodes in a single element."""

    def __init__(
        self,
        start: int,
        end: int,
        *,
        tag: str = "span",
        classes: Iterable[str] = (),
        attrs: Mapping[str, Any] | None = None,
        priority: int = 0,
        name: str | None = None,
    ) -> None:
        super().__init__(start, end, priority=priority, name=name)
        self.tag = tag
        self.classes = tuple(classes)
        self.attrs = dict(attrs or {})

    def render(self, nodes: list[PageElement], line: Line) -> list[PageElement]:
        if not nodes:
            return nodes
        return [new_tag(self.tag, self.attrs, classes=self.classes, children=nodes)]


class LineClassAnnotation(LineAnnotation):
    """Add classes (and optional attributes) to the line wrapper."""

    def __init__(
        self,
        classes: Iterable[str],
        *,
        attrs: Mapping[str, Any] | None = None,
        priority: int = 0,
        name: str | None = None,
    ) -> None:
        super().__init__(priority=priority, name=name)
        self.classes = tuple(classes)
        self.attrs = dict(attrs or {})

    def render(self, nodes: list[PageElement], line: Line) -> list[PageElement]:
        for node in nodes:
            if isinstance(node, Tag):
                add_classes(node, self.classes)
                for key, value in self.attrs.items():
                    node[key] = value
        return nodes


__all__ = [
    "Annotation",
    "InlineAnnotation",
    "InlineRange",
    "LineAnnotation",
    "LineClassAnnotation",
    "WrapAnnotation",
]
