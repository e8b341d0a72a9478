"""Parsing helpers for the metadata string that follows a code fence language.

A meta string is a whitespace-separated list of options::

    title="My file.js" {1, 4-6} ins=/added/ "needle" wrap frame=terminal

Supported value kinds:

`string`
: ``key=value``, ``key="quoted value"``, ``key='quoted value'`` or a bare
  quoted string without key.

`regexp`
: ``key=/pattern/`` or a bare ``/pattern/``.

`range`
: ``key={1, 3-5}`` or a bare ``{1, 3-5}``.

`boolean`
: a bare word (``wrap``) or ``key=true`` / ``key=false``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
import re
from typing import Literal

from .exceptions import ValidationError


MetaValueKind = Literal["string", "regexp", "range", "boolean"]

_QUOTES = ("'", '"')


@dataclass(frozen=True, slots=True)
class MetaOption:
    """Single option extracted from a meta string."""

    key: str | None
    kind: MetaValueKind
    value: str | bool | re.Pattern[str]
    raw: str


class MetaOptions:
    """Ordered, read-only view over the options found in a meta string."""

    def __init__(self, options: Iterable[MetaOption] = (), raw: str = "") -> None:
        self._options: tuple[MetaOption, ...] = tuple(options)
        self.raw = raw

    def __iter__(self) -> Iterator[MetaOption]:
        return iter(self._options)

    def __len__(self) -> int:
        return len(self._options)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"MetaOptions({self.raw!r})"

    def list(
        self,
        keys: Iterable[str | None] | None = None,
        kind: MetaValueKind | None = None,
    ) -> list[MetaOption]:
        """Return options filtered by key and/or value kind, in source order."""
        wanted = set(keys) if keys is not None else None
        return [
            option
            for option in self._options
            if (wanted is None or option.key in wanted) and (kind is None or option.kind == kind)
        ]

    def keys(self) -> list[str]:
        """Return the distinct option keys in source order."""
        seen: dict[str, None] = {}
        for option in self._options:
            if option.key is not None:
                seen.setdefault(option.key, None)
        return list(seen)

    def _last(self, key: str, kind: MetaValueKind) -> MetaOption | None:
        matches = self.list([key], kind)
        return matches[-1] if matches else None

    def get_string(self, key: str) -> str | None:
        """Return the last string value for ``key``."""
        option = self._last(key, "string")
        return str(option.value) if option is not None else None

    def get_strings(self, key: str | None) -> list[str]:
        """Return every string value for ``key`` (``None`` selects keyless strings)."""
        return [str(option.value) for option in self.list([key], "string")]

    def get_boolean(self, key: str) -> bool | None:
        """Return the last boolean value for ``key``."""
        option = self._last(key, "boolean")
        return bool(option.value) if option is not None else None

    def get_integer(self, key: str) -> int | None:
        """Return the last value for ``key`` converted to an integer."""
        value = self.get_string(key)
        if value is None:
            return None
        try:
            return int(value)
        except ValueError as exc:
            raise ValidationError(f"Meta option '{key}' expects an integer, got '{value}'") from exc

    def get_range(self, key: str | None) -> str | None:
        """Return the last raw range value for ``key``."""
        matches = self.list([key], "range")
        return str(matches[-1].value) if matches else None

    def get_ranges(self, key: str | None) -> list[str]:
        """Return every raw range value for ``key``."""
        return [str(option.value) for option in self.list([key], "range")]

    def get_regexps(self, key: str | None) -> list[re.Pattern[str]]:
        """Return every compiled regular expression for ``key``."""
        return [
            option.value
            for option in self.list([key], "regexp")
            if isinstance(option.value, re.Pattern)
        ]

    def value_ranges(self, key: str | None) -> list[int]:
        """Return the sorted 1-based line numbers described by ``key`` ranges."""
        numbers: set[int] = set()
        for value in self.get_ranges(key):
            numbers.update(parse_line_ranges(value))
        return sorted(numbers)


def _read_delimited(meta: str, start: int, closing: str, what: str) -> tuple[str, int]:
    """Read a delimited value starting after the opening delimiter.

    Returns the unescaped content and the index right after the closing
    delimiter.
    """
    # Regular expressions keep their own escapes, only the delimiter is unescaped.
    unescaped = (closing,) if what == "regular expression" else (closing, "\\")
    chars: list[str] = []
    index = start
    while index < len(meta):
        char = meta[index]
        if char == "\\" and index + 1 < len(meta):
            following = meta[index + 1]
            if following in unescaped:
                chars.append(following)
            else:
                chars.extend((char, following))
            index += 2
            continue
        if char == closing:
            return "".join(chars), index + 1
        chars.append(char)
        index += 1
    raise ValidationError(f"Unterminated {what} in meta string: {meta!r}")


def _read_word(meta: str, start: int, *, stop_at_equals: bool) -> tuple[str, int]:
    index = start
    while index < len(meta) and not meta[index].isspace():
        if stop_at_equals and meta[index] == "=":
            break
        index += 1
    return meta[start:index], index


def _compile(pattern: str, meta: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ValidationError(
            f"Invalid regular expression /{pattern}/ in meta string: {meta!r}"
        ) from exc


def _read_value(meta: str, index: int, key: str | None) -> tuple[MetaOption, int]:
    """Read a value at ``index`` and return the option with the next index."""
    char = meta[index]
    if char in _QUOTES:
        value, end = _read_delimited(meta, index + 1, char, "quoted value")
        return MetaOption(key, "string", value, meta[index:end]), end
    if char == "/":
        pattern, end = _read_delimited(meta, index + 1, "/", "regular expression")
        return MetaOption(key, "regexp", _compile(pattern, meta), meta[index:end]), end
    if char == "{":
        value, end = _read_delimited(meta, index + 1, "}", "range")
        return MetaOption(key, "range", value.strip(), meta[index:end]), end

    word, end = _read_word(meta, index, stop_at_equals=False)
    lowered = word.lower()
    if key is not None and lowered in ("true", "false"):
        return MetaOption(key, "boolean", lowered == "true", word), end
    return MetaOption(key, "string", word, word), end


def parse_meta(meta: str | None) -> MetaOptions:
    """Tokenize a meta string into :class:`MetaOptions`.

    Raises :class:`ValidationError` for unterminated quotes, regular
    expressions or ranges.
    """
    text = meta or ""
    options: list[MetaOption] = []
    index = 0
    while index < len(text):
        if text[index].isspace():
            index += 1
            continue

        if text[index] in (*_QUOTES, "/", "{"):
            option, index = _read_value(text, index, None)
            options.append(option)
            continue

        key, index = _read_word(text, index, stop_at_equals=True)
        if index < len(text) and text[index] == "=":
            index += 1
            if index >= len(text) or text[index].isspace():
                options.append(MetaOption(key, "string", "", f"{key}="))
                continue
            option, end = _read_value(text, index, key)
            options.append(
                MetaOption(option.key, option.kind, option.value, f"{key}={option.raw}")
            )
            index = end
            continue

        options.append(MetaOption(key, "boolean", True, key))

    return MetaOptions(options, raw=text)


_RANGE_PART = re.compile(r"^(\d+)\s*(?:-\s*(\d+))?$")


def parse_line_ranges(value: str) -> list[int]:
    """Expand a range expression such as ``"1, 3-5"`` into line numbers."""
    numbers: list[int] = []
    for chunk in value.split(","):
        part = chunk.strip()
        if not part:
            continue
        match = _RANGE_PART.match(part)
        if match is None:
            raise ValidationError(f"Invalid line range '{part}'")
        start = int(match.group(1))
        end = int(match.group(2) or start)
        if end < start:
            start, end = end, start
        numbers.extend(range(start, end + 1))
    return numbers


__all__ = [
    "MetaOption",
    "MetaOptions",
    "MetaValueKind",
    "parse_line_ranges",
    "parse_meta",
]
