"""Block and line model mutated by plugins while the pipeline runs."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
import itertools
import re
from typing import TYPE_CHECKING, Any

from .annotations import Annotation, InlineRange
from .exceptions import StateError, ValidationError
from .metadata import MetaOptions, parse_meta


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .documents import Document, Group


_LINE_BREAK = re.compile(r"\r?\n")


def normalise_language(language: str | None) -> str:
    """Return the canonical (stripped, lowercase) language identifier."""
    return (language or "").strip().lower()


@dataclass(slots=True)
class BlockState:
    """Flags describing which parts of a block may still be edited."""

    can_edit_language: bool = True
    can_edit_metadata: bool = True
    can_edit_code: bool = True
    can_edit_annotations: bool = True

    def freeze(self) -> None:
        """Make the block fully read-only."""
        self.can_edit_language = False
        self.can_edit_metadata = False
        self.can_edit_code = False
        self.can_edit_annotations = False


class Line:
    """Single line of code together with the annotations attached to it."""

    def __init__(self, text: str, block: Block) -> None:
        if "\n" in text:
            raise ValidationError("Line text cannot contain line breaks")
        self._text = text
        self._block = block
        self._annotations: list[Annotation] = []

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Line({self._text!r})"

    @property
    def text(self) -> str:
        return self._text

    @property
    def block(self) -> Block:
        return self._block

    @property
    def annotations(self) -> tuple[Annotation, ...]:
        """All annotations in registration order."""
        return tuple(self._annotations)

    def get_annotations(
        self, *, inline: bool | None = None, name: str | None = None
    ) -> list[Annotation]:
        """Return annotations filtered by kind and name."""
        return [
            annotation
            for annotation in self._annotations
            if (inline is None or annotation.is_inline == inline)
            and (name is None or annotation.name == name)
        ]

    def add_annotation(self, annotation: Annotation) -> Annotation:
        """Attach ``annotation`` to the line."""
        self._block.require("can_edit_annotations", "add annotations")
        inline_range = annotation.inline_range
        if inline_range is not None and inline_range.end > len(self._text):
            raise ValidationError(
                f"Annotation range [{inline_range.start}, {inline_range.end}) exceeds "
                f"line length {len(self._text)}"
            )
        if annotation.sequence is None:
            annotation.sequence = self._block.next_sequence()
        if annotation.plugin_index is None:
            annotation.plugin_index = self._block.active_plugin
        self._annotations.append(annotation)
        return annotation

    def delete_annotation(self, annotation: Annotation) -> None:
        """Remove a previously attached annotation."""
        self._block.require("can_edit_annotations", "delete annotations")
        try:
            self._annotations.remove(annotation)
        except ValueError as exc:
            raise ValidationError("Annotation is not attached to this line") from exc

    def edit_text(self, start: int | None, end: int | None, new_text: str) -> str:
        """Replace ``text[start:end]`` and adjust inline annotations.

        Annotations entirely inside the replaced range are dropped, annotations
        after it are shifted, partially overlapping ones are clipped.
        """
        self._block.require("can_edit_code", "edit line text")
        if "\n" in new_text:
            raise ValidationError("Line text cannot contain line breaks")
        length = len(self._text)
        edit_start = length if start is None else min(max(start, 0), length)
        edit_end = length if end is None else min(max(end, edit_start), length)
        delta = len(new_text) - (edit_end - edit_start)
        self._text = self._text[:edit_start] + new_text + self._text[edit_end:]

        kept: list[Annotation] = []
        for annotation in self._annotations:
            current = annotation.inline_range
            if current is None or current.end <= edit_start:
                kept.append(annotation)
                continue
            if current.start >= edit_end:
                annotation.inline_range = InlineRange(current.start + delta, current.end + delta)
            elif current.start <= edit_start and current.end >= edit_end:
                annotation.inline_range = InlineRange(current.start, current.end + delta)
            elif current.start >= edit_start and current.end <= edit_end:
                continue
            elif current.start < edit_start:
                annotation.inline_range = InlineRange(current.start, edit_start)
            else:
                annotation.inline_range = InlineRange(
                    edit_start + len(new_text), current.end + delta
                )
            kept.append(annotation)
        self._annotations = kept
        return self._text


class Block:
    """One code snippet and the mutable state the pipeline works on."""

    def __init__(
        self,
        code: str = "",
        language: str | None = "",
        meta: str | None = "",
        locale: str | None = None,
        props: Mapping[str, Any] | None = None,
    ) -> None:
        self._meta = meta or ""
        self._meta_options = parse_meta(self._meta)
        self._language = normalise_language(language)
        self.locale = locale
        self.props: dict[str, Any] = dict(props or {})
        self.state = BlockState()
        self.group: Group | None = None
        self.index: int | None = None
        self._sequence = itertools.count()
        # Registration index of the plugin whose hook is running.
        self.active_plugin: int | None = None
        self._plugin_data: dict[str, dict[str, Any]] = {}
        self._lines = [Line(text, self) for text in _LINE_BREAK.split(code or "")]

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Block(language={self._language!r}, lines={len(self._lines)})"

    def require(self, flag: str, action: str) -> None:
        """Raise :class:`StateError` unless the given state flag is set."""
        if not getattr(self.state, flag):
            raise StateError(f"Cannot {action}: the block no longer allows it at this stage")

    def next_sequence(self) -> int:
        """Return the next annotation registration number for this block."""
        return next(self._sequence)

    @property
    def code(self) -> str:
        return "\n".join(line.text for line in self._lines)

    @property
    def language(self) -> str:
        return self._language

    @language.setter
    def language(self, value: str) -> None:
        self.require("can_edit_language", "change the language")
        self._language = normalise_language(value)

    @property
    def meta(self) -> str:
        return self._meta

    @meta.setter
    def meta(self, value: str) -> None:
        self.require("can_edit_metadata", "change the metadata")
        options = parse_meta(value)
        self._meta = value or ""
        self._meta_options = options

    @property
    def meta_options(self) -> MetaOptions:
        return self._meta_options

    @property
    def document(self) -> Document | None:
        return self.group.document if self.group is not None else None

    @property
    def lines(self) -> tuple[Line, ...]:
        return tuple(self._lines)

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def get_line(self, index: int) -> Line:
        """Return the line at a 0-based index."""
        try:
            return self._lines[index]
        except IndexError as exc:
            raise ValidationError(f"Line index {index} is out of range") from exc

    def get_lines(self, start: int = 0, end: int | None = None) -> list[Line]:
        return self._lines[start:end]

    def insert_line(self, index: int, text: str) -> Line:
        """Insert a new line before ``index``."""
        return self.insert_lines(index, [text])[0]

    def insert_lines(self, index: int, texts: Iterable[str]) -> list[Line]:
        self.require("can_edit_code", "insert lines")
        if index < 0 or index > len(self._lines):
            raise ValidationError(f"Line index {index} is out of range")
        created = [Line(text, self) for text in texts]
        self._lines[index:index] = created
        return created

    def delete_line(self, index: int) -> None:
        self.delete_lines([index])

    def delete_lines(self, indices: Iterable[int]) -> None:
        """Delete the lines at the given 0-based indices."""
        self.require("can_edit_code", "delete lines")
        targets = sorted(set(indices), reverse=True)
        for index in targets:
            if index < 0 or index >= len(self._lines):
                raise ValidationError(f"Line index {index} is out of range")
        for index in targets:
            del self._lines[index]
        if not self._lines:
            self._lines.append(Line("", self))

    def plugin_data(self, plugin_name: str) -> dict[str, Any]:
        """Return the mutable data slot reserved for ``plugin_name``."""
        return self._plugin_data.setdefault(plugin_name, {})

    def attach(self, group: Group, index: int) -> None:
        """Bind the block to its group; a block belongs to exactly one group."""
        if self.group is not None and self.group is not group:
            raise ValidationError("Block already belongs to another group")
        self.group = group
        self.index = index


__all__ = ["Block", "BlockState", "Line", "normalise_language"]
