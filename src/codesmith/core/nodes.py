"""BeautifulSoup helpers used to build and reshape rendered output trees."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, cast

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, Tag


_FACTORY = BeautifulSoup("", "html.parser")


def new_tag(
    name: str,
    attrs: Mapping[str, Any] | None = None,
    *,
    classes: Iterable[str] = (),
    children: Iterable[PageElement | str] = (),
) -> Tag:
    """Create a detached tag with optional attributes, classes and children."""
    payload: dict[str, Any] = {
        key: value for key, value in (attrs or {}).items() if value is not None
    }
    tag = _FACTORY.new_tag(name, attrs=payload)
    add_classes(tag, classes)
    for child in children:
        tag.append(NavigableString(child) if isinstance(child, str) else child)
    return tag


def gather_classes(value: Any) -> list[str]:
    """Return a list of classes extracted from a BeautifulSoup attribute."""
    if isinstance(value, str):
        return value.split()
    if isinstance(value, Iterable) and not isinstance(value, (bytes, bytearray)):
        return [cast(str, item) for item in value if isinstance(item, str)]
    return []


def add_classes(tag: Tag, classes: Iterable[str]) -> Tag:
    """Append classes to a tag, skipping duplicates and empty names."""
    current = gather_classes(tag.get("class"))
    for name in classes:
        if name and name not in current:
            current.append(name)
    if current:
        tag["class"] = current
    return tag


def text_length(node: PageElement) -> int:
    """Return the length of the visible text held by ``node``."""
    if isinstance(node, NavigableString):
        return len(str(node))
    if isinstance(node, Tag):
        return len(node.get_text())
    return 0


def _clone_shell(tag: Tag) -> Tag:
    """Return an empty copy of ``tag`` keeping its name and attributes."""
    attrs = {
        key: list(value) if isinstance(value, list) else value for key, value in tag.attrs.items()
    }
    return _FACTORY.new_tag(tag.name, attrs=attrs)


def split_node(node: PageElement, offset: int) -> tuple[PageElement | None, PageElement | None]:
    """Split ``node`` at a text offset.

    Tags are cloned so that both halves keep the original wrapper. Either side
    is ``None`` when the offset falls on a boundary.
    """
    length = text_length(node)
    if offset <= 0:
        return None, node
    if offset >= length:
        return node, None

    if isinstance(node, NavigableString):
        text = str(node)
        return NavigableString(text[:offset]), NavigableString(text[offset:])

    tag = cast(Tag, node)
    left = _clone_shell(tag)
    right = _clone_shell(tag)
    consumed = 0
    for child in list(tag.contents):
        child.extract()
        child_length = text_length(child)
        if consumed + child_length <= offset:
            left.append(child)
        elif consumed >= offset:
            right.append(child)
        else:
            head, tail = split_node(child, offset - consumed)
            if head is not None:
                left.append(head)
            if tail is not None:
                right.append(tail)
        consumed += child_length
    return left, right


def detach(node: PageElement) -> PageElement:
    """Remove ``node`` from its parent (if any) and return it."""
    if node.parent is not None:
        node.extract()
    return node


__all__ = [
    "add_classes",
    "detach",
    "gather_classes",
    "new_tag",
    "split_node",
    "text_length",
]
