"""Layered style settings resolved into CSS variables.

Settings are declared as plain nested mappings and converted into a small
tagged tree before merging:

`ScalarValue`
: a leaf (string, number, boolean) or a resolver callable receiving a
  :class:`StyleResolverContext`.

`ListValue`
: an ordered list leaf. Lists from successive layers concatenate unless a
  layer wraps its list with :func:`replace`.

`MapValue`
: a nested namespace merged key by key.

Layers are merged in ascending priority (engine defaults, plugin defaults,
theme overrides, user overrides). Keys only introduced by override layers are
kept and reported as unknown.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
import re
from typing import TYPE_CHECKING, Any, Union

from .exceptions import StyleResolutionError


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .themes import Theme


CSS_VAR_PREFIX = "--cs-"
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


@dataclass(frozen=True, slots=True)
class ScalarValue:
    value: Any


@dataclass(frozen=True, slots=True)
class ListValue:
    items: tuple[Any, ...]
    replace: bool = False


@dataclass(frozen=True, slots=True)
class MapValue:
    entries: Mapping[str, StyleValue] = field(default_factory=dict)


StyleValue = Union[ScalarValue, ListValue, MapValue]


@dataclass(frozen=True, slots=True)
class Replace:
    """Marker asking a list value to replace lower layers instead of extending them."""

    items: tuple[Any, ...]


def replace(items: Iterable[Any]) -> Replace:
    """Wrap a list so that it replaces, rather than extends, lower layers."""
    return Replace(tuple(items))


@dataclass(frozen=True, slots=True)
class by_theme:  # noqa: N801 - used like a function in settings declarations
    """Resolver picking a value from the type of the active theme."""

    dark: Any
    light: Any

    def __call__(self, context: StyleResolverContext) -> Any:
        theme = context.theme
        if theme is None:
            raise StyleResolutionError(f"Setting '{context.key}' depends on a theme")
        return self.dark if theme.is_dark else self.light


def setting_key(key: str) -> str:
    """Return the snake_case form of a dotted setting key."""
    return ".".join(
        _CAMEL_BOUNDARY.sub("_", part).replace("-", "_").lower() for part in key.split(".")
    )


def to_style_value(raw: Any, path: str = "") -> StyleValue:
    """Convert plain Python data into a tagged style value.

    Mapping keys are normalised with :func:`setting_key`, so ``editorTab``,
    ``editor-tab`` and ``editor_tab`` name the same setting.
    """
    if isinstance(raw, (ScalarValue, ListValue, MapValue)):
        return raw
    if isinstance(raw, Replace):
        return ListValue(raw.items, replace=True)
    if isinstance(raw, Mapping):
        entries: dict[str, StyleValue] = {}
        for key, value in raw.items():
            if not isinstance(key, str) or not key:
                raise StyleResolutionError(f"Invalid style setting key {key!r} at '{path}'")
            name = setting_key(key)
            child_path = f"{path}.{name}" if path else name
            if name in entries:
                raise StyleResolutionError(f"Duplicate style setting key '{child_path}'")
            entries[name] = to_style_value(value, child_path)
        return MapValue(entries)
    if isinstance(raw, (list, tuple)):
        return ListValue(tuple(raw))
    return ScalarValue(raw)


@dataclass(frozen=True, slots=True)
class StyleLayer:
    """One source of style settings."""

    name: str
    values: MapValue
    defines_defaults: bool = False


def layer(name: str, values: Mapping[str, Any] | None, *, defaults: bool = False) -> StyleLayer:
    """Build a layer from a plain mapping."""
    converted = to_style_value(dict(values or {}))
    assert isinstance(converted, MapValue)
    return StyleLayer(name=name, values=converted, defines_defaults=defaults)


def _kind(value: StyleValue) -> str:
    if isinstance(value, MapValue):
        return "map"
    if isinstance(value, ListValue):
        return "list"
    return "scalar"


def _merge(base: StyleValue | None, override: StyleValue, path: str) -> StyleValue:
    if base is None:
        return override
    if isinstance(base, MapValue) and isinstance(override, MapValue):
        merged = dict(base.entries)
        for key, value in override.entries.items():
            child_path = f"{path}.{key}" if path else key
            merged[key] = _merge(merged.get(key), value, child_path)
        return MapValue(merged)
    if isinstance(base, MapValue) or isinstance(override, MapValue):
        raise StyleResolutionError(
            f"Cannot merge a {_kind(override)} into a {_kind(base)} at '{path}'"
        )
    if isinstance(base, ListValue) and isinstance(override, ListValue):
        if override.replace:
            return ListValue(override.items)
        return ListValue(base.items + override.items)
    return override


def _leaf_keys(value: MapValue, prefix: str = "") -> Iterable[str]:
    for key, child in value.entries.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(child, MapValue):
            yield from _leaf_keys(child, path)
        else:
            yield path


@dataclass(frozen=True, slots=True)
class MergedSettings:
    """Merged settings tree before per-theme resolution."""

    tree: MapValue
    unknown_keys: frozenset[str]

    def leaves(self) -> dict[str, StyleValue]:
        """Return leaf values keyed by dotted path, sorted by key."""
        result: dict[str, StyleValue] = {}

        def _walk(value: MapValue, prefix: str) -> None:
            for key, child in value.entries.items():
                path = f"{prefix}.{key}" if prefix else key
                if isinstance(child, MapValue):
                    _walk(child, path)
                else:
                    result[path] = child

        _walk(self.tree, "")
        return dict(sorted(result.items()))


def merge_layers(layers: Sequence[StyleLayer]) -> MergedSettings:
    """Deep-merge layers given in ascending priority."""
    known: set[str] = set()
    for entry in layers:
        if entry.defines_defaults:
            known.update(_leaf_keys(entry.values))

    unknown: set[str] = set()
    merged: StyleValue = MapValue({})
    for entry in layers:
        if not entry.defines_defaults:
            unknown.update(key for key in _leaf_keys(entry.values) if key not in known)
        merged = _merge(merged, entry.values, "")
    assert isinstance(merged, MapValue)
    return MergedSettings(tree=merged, unknown_keys=frozenset(unknown))


def css_var_name(key: str) -> str:
    """Return the CSS custom property name for a dotted setting key."""
    parts = []
    for part in key.split("."):
        kebab = _CAMEL_BOUNDARY.sub("-", part).replace("_", "-").lower()
        parts.append(kebab)
    return CSS_VAR_PREFIX + "-".join(parts)


def css_value(value: Any) -> str:
    """Serialise a resolved value for use in CSS."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(css_value(item) for item in value)
    return str(value)


@dataclass(frozen=True, slots=True)
class ResolvedSetting:
    key: str
    value: Any
    css_var: str


class StyleResolverContext:
    """Context handed to resolver callables."""

    def __init__(self, resolver: _Resolver, key: str) -> None:
        self._resolver = resolver
        self.key = key

    @property
    def theme(self) -> Theme | None:
        return self._resolver.theme

    def resolve(self, key: str) -> Any:
        """Return the resolved value of another setting."""
        return self._resolver.resolve(key)


class _Resolver:
    def __init__(self, leaves: Mapping[str, StyleValue], theme: Theme | None) -> None:
        self.leaves = leaves
        self.theme = theme
        self.values: dict[str, Any] = {}
        self._active: list[str] = []

    def resolve(self, key: str) -> Any:
        if key not in self.leaves:
            key = setting_key(key)
        if key in self.values:
            return self.values[key]
        if key in self._active:
            cycle = " -> ".join([*self._active, key])
            raise StyleResolutionError(f"Circular style setting reference: {cycle}")
        leaf = self.leaves.get(key)
        if leaf is None:
            raise StyleResolutionError(f"Unknown style setting '{key}'")
        self._active.append(key)
        try:
            if isinstance(leaf, ListValue):
                value: Any = tuple(self._evaluate(item, key) for item in leaf.items)
            else:
                value = self._evaluate(leaf.value, key)  # type: ignore[union-attr]
        finally:
            self._active.pop()
        self.values[key] = value
        return value

    def _evaluate(self, value: Any, key: str) -> Any:
        if not callable(value):
            return value
        try:
            result = value(StyleResolverContext(self, key))
        except StyleResolutionError:
            raise
        except Exception as exc:
            raise StyleResolutionError(
                f"Resolver for style setting '{key}' failed: {exc}"
            ) from exc
        if isinstance(result, (Mapping, ListValue, MapValue)) or callable(result):
            raise StyleResolutionError(f"Resolver for '{key}' must return a plain value")
        return result


@dataclass(frozen=True)
class ResolvedStyleSettings:
    """Flat, sorted view over settings resolved for one theme."""

    settings: Mapping[str, ResolvedSetting]
    unknown_keys: frozenset[str] = frozenset()
    theme: Theme | None = None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and setting_key(key) in self.settings

    def __getitem__(self, key: str) -> Any:
        try:
            return self.settings[setting_key(key)].value
        except KeyError as exc:
            raise StyleResolutionError(f"Unknown style setting '{key}'") from exc

    def get(self, key: str, default: Any = None) -> Any:
        entry = self.settings.get(setting_key(key))
        return entry.value if entry is not None else default

    def var(self, key: str) -> str:
        """Return a ``var(...)`` reference for a setting."""
        entry = self.settings.get(setting_key(key))
        if entry is None:
            raise StyleResolutionError(f"Unknown style setting '{key}'")
        return f"var({entry.css_var})"

    def variables(self) -> dict[str, str]:
        """Return CSS custom properties, sorted by setting key."""
        return {entry.css_var: css_value(entry.value) for entry in self.settings.values()}

    def declarations(self) -> str:
        return ";".join(f"{name}:{value}" for name, value in self.variables().items())


def resolve(layers: Sequence[StyleLayer], theme: Theme | None = None) -> ResolvedStyleSettings:
    """Merge ``layers`` and resolve every leaf against ``theme``."""
    merged = merge_layers(layers)
    return resolve_merged(merged, theme)


def resolve_merged(merged: MergedSettings, theme: Theme | None = None) -> ResolvedStyleSettings:
    leaves = merged.leaves()
    resolver = _Resolver(leaves, theme)
    settings: dict[str, ResolvedSetting] = {}
    owners: dict[str, str] = {}
    for key in leaves:
        css_var = css_var_name(key)
        if css_var in owners:
            raise StyleResolutionError(
                f"Style settings '{owners[css_var]}' and '{key}' both map to {css_var}"
            )
        owners[css_var] = key
        settings[key] = ResolvedSetting(key=key, value=resolver.resolve(key), css_var=css_var)
    return ResolvedStyleSettings(settings=settings, unknown_keys=merged.unknown_keys, theme=theme)


@dataclass(frozen=True)
class ThemedStyleSettings:
    """Settings resolved once per configured theme, in theme order."""

    themes: tuple[Theme, ...]
    per_theme: tuple[ResolvedStyleSettings, ...]

    @property
    def base(self) -> ResolvedStyleSettings:
        """Settings of the first theme, used as the default appearance."""
        return self.per_theme[0]

    @property
    def unknown_keys(self) -> frozenset[str]:
        keys: set[str] = set()
        for settings in self.per_theme:
            keys.update(settings.unknown_keys)
        return frozenset(keys)

    def for_theme(self, theme: Theme | int) -> ResolvedStyleSettings:
        if isinstance(theme, int):
            return self.per_theme[theme]
        for candidate, settings in zip(self.themes, self.per_theme, strict=True):
            if candidate.fingerprint == theme.fingerprint:
                return settings
        raise StyleResolutionError(f"Theme '{theme.name}' is not part of these settings")

    def differing_variables(self, index: int) -> dict[str, str]:
        """Return the variables of theme ``index`` that differ from the base theme."""
        base = self.base.variables()
        return {
            name: value
            for name, value in self.per_theme[index].variables().items()
            if base.get(name) != value
        }


def build_layers(
    defaults: Sequence[StyleLayer],
    theme: Theme | None,
    user_overrides: Mapping[str, Any] | None,
) -> list[StyleLayer]:
    """Assemble the four-layer stack for one theme."""
    stack = list(defaults)
    if theme is not None and theme.style_overrides:
        stack.append(layer(f"theme:{theme.name}", theme.style_overrides))
    if user_overrides:
        stack.append(layer("user", user_overrides))
    return stack


def resolve_for_themes(
    defaults: Sequence[StyleLayer],
    themes: Sequence[Theme],
    user_overrides: Mapping[str, Any] | None = None,
    *,
    resolve_theme: Callable[[Theme], ResolvedStyleSettings] | None = None,
) -> ThemedStyleSettings:
    """Resolve settings for every theme.

    ``resolve_theme`` lets callers route each theme through a cache.
    """
    if not themes:
        raise StyleResolutionError("At least one theme is required")

    def _default_resolve(theme: Theme) -> ResolvedStyleSettings:
        return resolve(build_layers(defaults, theme, user_overrides), theme)

    resolver = resolve_theme or _default_resolve
    return ThemedStyleSettings(
        themes=tuple(themes),
        per_theme=tuple(resolver(theme) for theme in themes),
    )


__all__ = [
    "CSS_VAR_PREFIX",
    "ListValue",
    "MapValue",
    "MergedSettings",
    "Replace",
    "ResolvedSetting",
    "ResolvedStyleSettings",
    "ScalarValue",
    "StyleLayer",
    "StyleResolverContext",
    "StyleValue",
    "ThemedStyleSettings",
    "build_layers",
    "by_theme",
    "css_value",
    "css_var_name",
    "layer",
    "merge_layers",
    "replace",
    "resolve",
    "resolve_for_themes",
    "resolve_merged",
    "setting_key",
]
