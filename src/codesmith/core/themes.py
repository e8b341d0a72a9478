"""Color themes: normalisation, light/dark classification and caching.

Themes can be supplied in several shapes:

`built-in name`
: any Pygments style name (``"github-dark"``, ``"monokai"``, ...).

`Pygments style class`
: a :class:`pygments.style.Style` subclass.

`raw mapping`
: a VS Code compatible theme object with ``colors`` and/or ``tokenColors``.

`Theme`
: an already normalised instance, used as is.

Every shape is normalised into a :class:`Theme`: hex colors keyed by VS Code
color names, token styles keyed by Pygments token types, and a ``type`` of
``"dark"`` or ``"light"``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
import hashlib
import json
from pathlib import Path
from typing import Any, Literal

from pygments.style import Style
from pygments.styles import get_all_styles, get_style_by_name
from pygments.token import Token, _TokenType
from pygments.util import ClassNotFound
from slugify import slugify
import yaml

from .cache import OnceCache
from .colors import is_dark, normalise_color
from .diagnostics import DiagnosticEmitter, record_event
from .exceptions import ThemeLoadError


ThemeType = Literal["dark", "light"]

_DEFAULT_BACKGROUNDS: dict[str, str] = {"dark": "#1e1e1e", "light": "#ffffff"}
_DEFAULT_FOREGROUNDS: dict[str, str] = {"dark": "#d4d4d4", "light": "#24292e"}

_TYPE_ALIASES: dict[str, ThemeType] = {
    "dark": "dark",
    "vs-dark": "dark",
    "hc-black": "dark",
    "light": "light",
    "vs": "light",
    "hc-light": "light",
}

# TextMate scope prefixes mapped onto the closest Pygments token type.
_SCOPE_TOKENS: dict[str, _TokenType] = {
    "comment": Token.Comment,
    "string": Token.Literal.String,
    "string.regexp": Token.Literal.String.Regex,
    "constant": Token.Name.Constant,
    "constant.numeric": Token.Literal.Number,
    "constant.language": Token.Keyword.Constant,
    "constant.character.escape": Token.Literal.String.Escape,
    "keyword": Token.Keyword,
    "keyword.operator": Token.Operator,
    "storage": Token.Keyword.Declaration,
    "storage.type": Token.Keyword.Type,
    "entity.name.function": Token.Name.Function,
    "entity.name.function.decorator": Token.Name.Decorator,
    "meta.decorator": Token.Name.Decorator,
    "entity.name.type": Token.Name.Class,
    "entity.name.class": Token.Name.Class,
    "entity.name.namespace": Token.Name.Namespace,
    "entity.name.tag": Token.Name.Tag,
    "entity.other.attribute-name": Token.Name.Attribute,
    "support.function": Token.Name.Builtin,
    "support.type": Token.Name.Builtin,
    "support.class": Token.Name.Class,
    "variable": Token.Name.Variable,
    "variable.language": Token.Name.Builtin.Pseudo,
    "punctuation": Token.Punctuation,
    "markup.heading": Token.Generic.Heading,
    "markup.bold": Token.Generic.Strong,
    "markup.italic": Token.Generic.Emph,
    "markup.inserted": Token.Generic.Inserted,
    "markup.deleted": Token.Generic.Deleted,
    "invalid": Token.Error,
}


@dataclass(frozen=True, slots=True)
class TokenStyle:
    """Resolved visual style of a syntax token."""

    color: str | None = None
    italic: bool = False
    bold: bool = False
    underline: bool = False


def _scope_to_token(scope: str) -> _TokenType | None:
    """Return the token type for the longest matching scope prefix."""
    parts = scope.strip().split(".")
    while parts:
        token = _SCOPE_TOKENS.get(".".join(parts))
        if token is not None:
            return token
        parts.pop()
    return None


def _normalise_or_fail(value: Any, where: str) -> str:
    try:
        return normalise_color(value)
    except ValueError as exc:
        raise ThemeLoadError(f"Invalid color for '{where}': {value!r}") from exc


def _parse_font_style(value: Any) -> dict[str, bool]:
    words = str(value or "").split()
    return {
        "italic": "italic" in words,
        "bold": "bold" in words,
        "underline": "underline" in words,
    }


class Theme:
    """Normalised color theme."""

    def __init__(
        self,
        name: str,
        *,
        colors: Mapping[str, str] | None = None,
        token_styles: Mapping[_TokenType, TokenStyle] | None = None,
        type: str | None = None,
        style_overrides: Mapping[str, Any] | None = None,
        fingerprint: str | None = None,
    ) -> None:
        self.name = name or "unnamed"
        normalised = {
            key: _normalise_or_fail(value, key) for key, value in (colors or {}).items()
        }

        theme_type: ThemeType | None = None
        if type is not None:
            theme_type = _TYPE_ALIASES.get(str(type).lower())
            if theme_type is None:
                raise ThemeLoadError(f"Unknown theme type '{type}' in theme '{self.name}'")
        background = normalised.get("editor.background")
        if theme_type is None:
            theme_type = "dark" if background is None or is_dark(background) else "light"

        normalised.setdefault("editor.background", _DEFAULT_BACKGROUNDS[theme_type])
        normalised.setdefault("editor.foreground", _DEFAULT_FOREGROUNDS[theme_type])
        self.type: ThemeType = theme_type
        self.colors: dict[str, str] = dict(sorted(normalised.items()))
        self.token_styles: dict[_TokenType, TokenStyle] = dict(token_styles or {})
        self.style_overrides: dict[str, Any] = dict(style_overrides or {})
        self.fingerprint = fingerprint or self._content_fingerprint()

    def _content_fingerprint(self) -> str:
        payload = {
            "name": self.name,
            "type": self.type,
            "colors": self.colors,
            "tokens": sorted(
                (str(token_type), repr(style)) for token_type, style in self.token_styles.items()
            ),
            "overrides": self.style_overrides,
        }
        canonical = json.dumps(payload, sort_keys=True, default=str)
        return "theme:" + hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Theme(name={self.name!r}, type={self.type!r})"

    @property
    def is_dark(self) -> bool:
        return self.type == "dark"

    @property
    def background(self) -> str:
        return self.colors["editor.background"]

    @property
    def foreground(self) -> str:
        return self.colors["editor.foreground"]

    @property
    def css_name(self) -> str:
        """Slug used in generated selectors."""
        return slugify(self.name) or "theme"

    def color(self, key: str, default: str | None = None) -> str | None:
        """Return a theme color by VS Code color key."""
        return self.colors.get(key, default)

    def style_for_token(self, token_type: _TokenType) -> TokenStyle:
        """Return the style of ``token_type``, inheriting from parent types."""
        current: _TokenType | None = token_type
        found: TokenStyle | None = None
        while current is not None:
            style = self.token_styles.get(current)
            if style is not None:
                if found is None:
                    found = style
                if style.color is not None:
                    if found.color is None:
                        found = TokenStyle(style.color, found.italic, found.bold, found.underline)
                    return found
            current = current.parent
        return found or TokenStyle()

    @classmethod
    def from_pygments(cls, style: str | type[Style], *, name: str | None = None) -> Theme:
        """Build a theme from a Pygments style name or class."""
        if isinstance(style, str):
            try:
                style_cls = get_style_by_name(style)
            except ClassNotFound as exc:
                raise ThemeLoadError(f"Unknown built-in theme '{style}'") from exc
            theme_name = name or style
            fingerprint = f"builtin:{style}"
        else:
            style_cls = style
            theme_name = name or getattr(style_cls, "name", None) or style_cls.__name__
            fingerprint = f"pygments:{style_cls.__module__}.{style_cls.__qualname__}"

        colors: dict[str, str] = {}
        if style_cls.background_color:
            colors["editor.background"] = style_cls.background_color
        if style_cls.highlight_color:
            colors["editor.selectionBackground"] = style_cls.highlight_color
        line_number = getattr(style_cls, "line_number_color", None)
        if line_number and line_number not in ("inherit", "transparent"):
            colors["editorLineNumber.foreground"] = line_number

        token_styles: dict[_TokenType, TokenStyle] = {}
        for token_type, definition in style_cls:
            color = definition.get("color")
            style_entry = TokenStyle(
                color=_normalise_or_fail(color, str(token_type)) if color else None,
                italic=bool(definition.get("italic")),
                bold=bool(definition.get("bold")),
                underline=bool(definition.get("underline")),
            )
            if style_entry != TokenStyle():
                token_styles[token_type] = style_entry

        root_style = token_styles.get(Token.Text) or token_styles.get(Token)
        if root_style is not None and root_style.color:
            colors["editor.foreground"] = root_style.color

        return cls(
            theme_name,
            colors=colors,
            token_styles=token_styles,
            fingerprint=fingerprint,
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], *, fingerprint: str | None = None) -> Theme:
        """Build a theme from a VS Code compatible theme object."""
        if not isinstance(raw, Mapping):
            raise ThemeLoadError("Theme objects must be mappings")
        raw_colors = raw.get("colors")
        raw_tokens = raw.get("tokenColors", raw.get("token_colors"))
        if raw_colors is None and raw_tokens is None:
            raise ThemeLoadError("Theme objects require 'colors' or 'tokenColors'")
        if raw_colors is not None and not isinstance(raw_colors, Mapping):
            raise ThemeLoadError("Theme 'colors' must be a mapping")
        if raw_tokens is not None and (
            isinstance(raw_tokens, (str, bytes)) or not isinstance(raw_tokens, Iterable)
        ):
            raise ThemeLoadError("Theme 'tokenColors' must be a list")

        name = str(raw.get("name") or raw.get("displayName") or "custom")
        colors: dict[str, str] = {
            str(key): _normalise_or_fail(value, str(key))
            for key, value in (raw_colors or {}).items()
            if value is not None
        }
        token_styles: dict[_TokenType, TokenStyle] = {}
        for index, entry in enumerate(raw_tokens or ()):
            if not isinstance(entry, Mapping) or not isinstance(entry.get("settings"), Mapping):
                raise ThemeLoadError(f"Invalid tokenColors entry #{index} in theme '{name}'")
            settings = entry["settings"]
            foreground = settings.get("foreground")
            color = _normalise_or_fail(foreground, f"tokenColors[{index}]") if foreground else None
            style_entry = TokenStyle(color=color, **_parse_font_style(settings.get("fontStyle")))

            scopes = entry.get("scope")
            if scopes is None:
                if color is not None:
                    colors.setdefault("editor.foreground", color)
                background = settings.get("background")
                if background:
                    colors.setdefault(
                        "editor.background", _normalise_or_fail(background, "background")
                    )
                continue
            if isinstance(scopes, str):
                scopes = scopes.split(",")
            for scope in scopes:
                token_type = _scope_to_token(str(scope))
                if token_type is not None:
                    token_styles[token_type] = style_entry

        if fingerprint is None:
            canonical = json.dumps(raw, sort_keys=True, default=str)
            fingerprint = "raw:" + hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]

        return cls(
            name,
            colors=colors,
            token_styles=token_styles,
            type=raw.get("type"),
            style_overrides=raw.get("styleOverrides", raw.get("style_overrides")),
            fingerprint=fingerprint,
        )

    @classmethod
    def from_file(cls, path: Path | str) -> Theme:
        """Load a JSON, JSONC or YAML theme file."""
        source = Path(path)
        try:
            text = source.read_text(encoding="utf-8")
        except OSError as exc:
            raise ThemeLoadError(f"Unable to read theme file '{source}'") from exc
        try:
            if source.suffix.lower() in {".yaml", ".yml"}:
                payload = yaml.safe_load(text)
            else:
                payload = json.loads(strip_json_comments(text))
        except (ValueError, yaml.YAMLError) as exc:
            raise ThemeLoadError(f"Invalid theme file '{source}'") from exc
        if not isinstance(payload, Mapping):
            raise ThemeLoadError(f"Theme file '{source}' must contain an object")
        return cls.from_mapping(payload)


def strip_json_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments and trailing commas from JSONC."""
    output: list[str] = []
    index = 0
    in_string = False
    while index < len(text):
        char = text[index]
        if in_string:
            output.append(char)
            if char == "\\" and index + 1 < len(text):
                output.append(text[index + 1])
                index += 2
                continue
            if char == '"':
                in_string = False
            index += 1
            continue
        if char == '"':
            in_string = True
            output.append(char)
            index += 1
            continue
        if text.startswith("//", index):
            newline = text.find("\n", index)
            index = len(text) if newline == -1 else newline
            continue
        if text.startswith("/*", index):
            closing = text.find("*/", index + 2)
            index = len(text) if closing == -1 else closing + 2
            continue
        if char == ",":
            lookahead = index + 1
            while lookahead < len(text) and text[lookahead].isspace():
                lookahead += 1
            if lookahead < len(text) and text[lookahead] in "]}":
                index += 1
                continue
        output.append(char)
        index += 1
    return "".join(output)


def builtin_theme_names() -> list[str]:
    """Return the names accepted as built-in themes."""
    return sorted(set(get_all_styles()))


class ThemeManager:
    """Load themes once per fingerprint and reuse them across render calls."""

    def __init__(
        self,
        *,
        emitter: DiagnosticEmitter | None = None,
        cache: OnceCache[str, Theme] | None = None,
    ) -> None:
        self.emitter = emitter
        self.cache: OnceCache[str, Theme] = cache if cache is not None else OnceCache()

    @staticmethod
    def fingerprint(theme_input: Any) -> str:
        """Return the cache key identifying a theme input."""
        if isinstance(theme_input, Theme):
            return theme_input.fingerprint
        if isinstance(theme_input, str):
            return f"builtin:{theme_input}"
        if isinstance(theme_input, type) and issubclass(theme_input, Style):
            return f"pygments:{theme_input.__module__}.{theme_input.__qualname__}"
        if isinstance(theme_input, Mapping):
            try:
                canonical = json.dumps(theme_input, sort_keys=True, default=str)
            except (TypeError, ValueError) as exc:
                raise ThemeLoadError("Theme objects must be JSON-compatible") from exc
            return "raw:" + hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]
        raise ThemeLoadError(f"Unsupported theme input of type {type(theme_input).__name__}")

    def load(self, theme_input: Any) -> Theme:
        """Return the normalised theme for ``theme_input``."""
        key = self.fingerprint(theme_input)
        return self.cache.get_or_create(key, lambda: self._build(theme_input, key))

    def load_all(self, theme_inputs: Iterable[Any]) -> list[Theme]:
        return [self.load(theme_input) for theme_input in theme_inputs]

    def _build(self, theme_input: Any, key: str) -> Theme:
        if isinstance(theme_input, Theme):
            theme = theme_input
        elif isinstance(theme_input, Mapping):
            theme = Theme.from_mapping(theme_input, fingerprint=key)
        else:
            theme = Theme.from_pygments(theme_input)
        record_event(self.emitter, "theme_loaded", {"name": theme.name, "type": theme.type})
        return theme


__all__ = [
    "Theme",
    "ThemeManager",
    "ThemeType",
    "TokenStyle",
    "builtin_theme_names",
    "strip_json_comments",
]
