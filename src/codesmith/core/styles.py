"""Engine default style settings and CSS generation.

Base styles only reference CSS variables, so they are identical for every
theme and emitted once. Theme styles assign the variables: the first theme
applies to the wrapper directly, alternate themes are selected through a
``prefers-color-scheme`` media query and/or explicit selectors.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
from typing import Any

from .colors import mix, with_alpha
from .style_settings import StyleLayer, StyleResolverContext, ThemedStyleSettings, layer


logger = logging.getLogger(__name__)

WRAPPER_CLASS = "codesmith"
BLOCK_CLASS = "cs-block"
LINE_CLASS = "cs-line"
TOKEN_VAR_PREFIX = "--cs-t"
DEFAULT_THEME_SELECTOR = "[data-theme='{name}']"


def _theme_color(key: str, fallback: Any) -> Any:
    def _resolve(ctx: StyleResolverContext) -> str:
        theme = ctx.theme
        if theme is None:
            return fallback(ctx) if callable(fallback) else fallback
        value = theme.color(key)
        if value is not None:
            return value
        return fallback(ctx) if callable(fallback) else fallback

    return _resolve


def _blend(amount: float) -> Any:
    def _resolve(ctx: StyleResolverContext) -> str:
        return mix(ctx.resolve("code_background"), ctx.resolve("code_foreground"), amount)

    return _resolve


CORE_STYLE_SETTINGS: dict[str, Any] = {
    "border_radius": "0.3rem",
    "border_width": "1.5px",
    "border_color": _theme_color("editorGroup.border", _blend(0.2)),
    "code_font_family": [
        "ui-monospace",
        "SFMono-Regular",
        "Menlo",
        "Monaco",
        "Consolas",
        "'Liberation Mono'",
        "monospace",
    ],
    "code_font_size": "0.85rem",
    "code_font_weight": "400",
    "code_line_height": "1.65",
    "code_padding_block": "1rem",
    "code_padding_inline": "1.35rem",
    "code_background": _theme_color("editor.background", "#1e1e1e"),
    "code_foreground": _theme_color("editor.foreground", "#d4d4d4"),
    "code_selection_background": _theme_color(
        "editor.selectionBackground",
        lambda ctx: with_alpha(ctx.resolve("code_foreground"), 0.25),
    ),
    "focus_border": _theme_color("focusBorder", _blend(0.5)),
    "gutter_foreground": _theme_color("editorLineNumber.foreground", _blend(0.45)),
    "scrollbar_thumb_color": lambda ctx: with_alpha(ctx.resolve("code_foreground"), 0.2),
    "ui_font_family": ["ui-sans-serif", "system-ui", "-apple-system", "sans-serif"],
    "ui_font_size": "0.9rem",
    "ui_font_weight": "400",
    "ui_line_height": "1.65",
    "ui_padding_block": "0.25rem",
    "ui_padding_inline": "1rem",
}


def core_style_layer() -> StyleLayer:
    """Return the engine defaults as the lowest-priority style layer."""
    return layer("core", CORE_STYLE_SETTINGS, defaults=True)


def _rule(selector: str, declarations: Mapping[str, str]) -> str:
    body = ";".join(f"{name}:{value}" for name, value in declarations.items())
    return f"{selector}{{{body}}}"


def build_base_styles() -> str:
    """Return the theme independent CSS of the rendered wrapper."""
    root = f".{WRAPPER_CLASS}"
    rules = [
        _rule(
            root,
            {
                "font-family": "var(--cs-ui-font-family)",
                "font-size": "var(--cs-ui-font-size)",
                "font-weight": "var(--cs-ui-font-weight)",
                "line-height": "var(--cs-ui-line-height)",
                "margin-block": "1.5rem",
                "position": "relative",
            },
        ),
        _rule(
            f"{root} pre",
            {
                "margin": "0",
                "padding": "0",
                "display": "flex",
                "border": "var(--cs-border-width) solid var(--cs-border-color)",
                "border-radius": "var(--cs-border-radius)",
                "background": "var(--cs-code-background)",
                "overflow-x": "auto",
                "font-family": "var(--cs-code-font-family)",
                "font-size": "var(--cs-code-font-size)",
                "font-weight": "var(--cs-code-font-weight)",
                "line-height": "var(--cs-code-line-height)",
                "scrollbar-color": "var(--cs-scrollbar-thumb-color) transparent",
            },
        ),
        _rule(f"{root} pre:focus-visible", {"outline": "2px solid var(--cs-focus-border)"}),
        _rule(
            f"{root} pre > code",
            {
                "display": "block",
                "flex-grow": "1",
                "min-width": "fit-content",
                "padding-block": "var(--cs-code-padding-block)",
                "color": "var(--cs-code-foreground)",
            },
        ),
        _rule(
            f"{root} .{LINE_CLASS}",
            {
                "padding-inline": "var(--cs-code-padding-inline)",
                "white-space": "pre",
                "min-height": "calc(var(--cs-code-line-height) * 1em)",
            },
        ),
        _rule(f"{root} ::selection", {"background": "var(--cs-code-selection-background)"}),
        _token_rule(root, 0),
        _rule(
            f"{root} .sr-only",
            {
                "position": "absolute",
                "width": "1px",
                "height": "1px",
                "padding": "0",
                "margin": "-1px",
                "overflow": "hidden",
                "clip": "rect(0, 0, 0, 0)",
                "white-space": "nowrap",
                "border-width": "0",
            },
        ),
    ]
    return "".join(rules)


def token_var(index: int, suffix: str = "") -> str:
    """Return the inline custom property holding a token style for theme ``index``."""
    return f"{TOKEN_VAR_PREFIX}{index}{suffix}"


def _token_rule(scope: str | Iterable[str], index: int) -> str:
    scopes = [scope] if isinstance(scope, str) else list(scope)
    return _rule(
        ",".join(f"{part} .{LINE_CLASS} span[style]" for part in scopes),
        {
            "color": f"var({token_var(index)}, inherit)",
            "font-style": f"var({token_var(index, '-fs')}, inherit)",
            "font-weight": f"var({token_var(index, '-fw')}, inherit)",
            "text-decoration": f"var({token_var(index, '-td')}, inherit)",
        },
    )


def theme_selector(template: str, theme_name: str) -> str:
    """Expand a ``theme_css_selector`` template for one theme."""
    return template.replace("{name}", theme_name)


def should_use_media_query(settings: ThemedStyleSettings, requested: bool | None) -> bool:
    """Return True when the light/dark media query strategy applies."""
    themes = settings.themes
    if requested is False or len(themes) != 2:
        return False
    return themes[0].type != themes[1].type


def build_theme_styles(
    settings: ThemedStyleSettings,
    *,
    use_dark_mode_media_query: bool | None = None,
    theme_css_selector: str | None = DEFAULT_THEME_SELECTOR,
) -> str:
    """Return the CSS assigning style variables for every configured theme."""
    root = f".{WRAPPER_CLASS}"
    chunks = [_rule(root, settings.base.variables())]

    if should_use_media_query(settings, use_dark_mode_media_query):
        alternate = settings.themes[1]
        preference = "dark" if alternate.is_dark else "light"
        logger.debug(
            "Theme '%s' applies for prefers-color-scheme: %s", alternate.name, preference
        )
        chunks.append(
            f"@media (prefers-color-scheme: {preference}){{"
            f":root:not([data-theme]) {root}{{{_declarations(settings.differing_variables(1))}}}"
            f"{_token_rule(f':root:not([data-theme]) {root}', 1)}"
            "}"
        )

    if theme_css_selector and len(settings.themes) > 1:
        for index, theme in enumerate(settings.themes):
            selector = theme_selector(theme_css_selector, theme.css_name)
            scopes = (f"{selector} {root}", f"{root}{selector}")
            chunks.append(_rule(",".join(scopes), settings.per_theme[index].variables()))
            chunks.append(_token_rule(scopes, index))

    return "".join(chunks)


def _declarations(variables: Mapping[str, str]) -> str:
    return ";".join(f"{name}:{value}" for name, value in variables.items())


__all__ = [
    "BLOCK_CLASS",
    "CORE_STYLE_SETTINGS",
    "DEFAULT_THEME_SELECTOR",
    "LINE_CLASS",
    "TOKEN_VAR_PREFIX",
    "WRAPPER_CLASS",
    "build_base_styles",
    "build_theme_styles",
    "core_style_layer",
    "should_use_media_query",
    "theme_selector",
    "token_var",
]
