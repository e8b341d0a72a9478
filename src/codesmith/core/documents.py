"""Document and group containers for the blocks rendered together."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .assets import AssetCollector
from .block import Block
from .exceptions import ValidationError


@dataclass(frozen=True, slots=True)
class DocumentPosition:
    """Location of a group among the groups of its document."""

    group_index: int
    total_groups: int


class Group:
    """Ordered blocks sharing an output wrapper and an asset scope."""

    def __init__(self, blocks: Iterable[Block], *, assets: AssetCollector | None = None) -> None:
        self._blocks = tuple(blocks)
        if not self._blocks:
            raise ValidationError("A group requires at least one block")
        for index, block in enumerate(self._blocks):
            block.attach(self, index)
        self.assets = assets if assets is not None else AssetCollector()
        self.document: Document | None = None
        self.position: DocumentPosition | None = None

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Group(blocks={len(self._blocks)})"

    def __iter__(self) -> Iterator[Block]:
        return iter(self._blocks)

    def __len__(self) -> int:
        return len(self._blocks)

    @property
    def blocks(self) -> tuple[Block, ...]:
        return self._blocks

    def attach(self, document: Document, position: DocumentPosition) -> None:
        """Bind the group to a document; a group belongs to exactly one document."""
        if self.document is not None and self.document is not document:
            raise ValidationError("Group already belongs to another document")
        self.document = document
        self.position = position


@dataclass(frozen=True, slots=True)
class Document:
    """Source document the rendered groups were found in.

    ``root`` is an opaque reference to the host document tree; the core never
    inspects it.
    """

    source_path: Path | None = None
    root: Any = None
    groups: tuple[Group, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        groups = tuple(self.groups)
        object.__setattr__(self, "groups", groups)
        if self.source_path is not None and not isinstance(self.source_path, Path):
            object.__setattr__(self, "source_path", Path(self.source_path))
        for index, group in enumerate(groups):
            group.attach(self, DocumentPosition(group_index=index, total_groups=len(groups)))

    @classmethod
    def for_group(cls, group: Group, *, source_path: Path | str | None = None) -> Document:
        """Wrap a standalone group into a single-group document."""
        return cls(source_path=Path(source_path) if source_path else None, groups=(group,))


__all__ = ["Document", "DocumentPosition", "Group"]
