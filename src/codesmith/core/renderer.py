"""Renderer facade: one-time setup plus per-group rendering.

:func:`create_renderer` validates the configuration, loads the themes,
assembles the plugin list, resolves the style settings for every theme and
generates the base and theme style payloads. The returned :class:`Renderer`
can then render any number of groups, possibly concurrently.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging
from typing import Any

from bs4.element import Tag

from codesmith.plugins.frames import frames
from codesmith.plugins.syntax import syntax_highlighting
from codesmith.plugins.text_markers import text_markers

from .assets import AssetCollector
from .block import Block
from .cache import OnceCache
from .config import RendererConfig, build_config
from .diagnostics import DiagnosticEmitter, NullEmitter, record_event
from .documents import Document, Group
from .exceptions import CodesmithError, StateError
from .pipeline import PipelineEngine, PipelineEnvironment
from .plugins import Plugin
from .style_settings import (
    ResolvedStyleSettings,
    StyleLayer,
    ThemedStyleSettings,
    build_layers,
    layer,
    resolve,
    resolve_for_themes,
)
from .styles import build_base_styles, build_theme_styles, core_style_layer
from .themes import Theme, ThemeManager


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BlockMetadata:
    """Summary of a rendered block."""

    index: int
    language: str
    meta: str
    locale: str | None
    line_count: int
    plugin_data: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class RenderResult:
    """Output of :meth:`Renderer.render` for one group.

    ``style_payloads`` and ``script_modules`` only hold the payloads that were
    new to the asset scope; ``styles`` is their concatenation.
    """

    node: Tag
    styles: str
    style_payloads: tuple[str, ...]
    script_modules: tuple[str, ...]
    blocks: tuple[BlockMetadata, ...]

    def to_html(self) -> str:
        return str(self.node)


def default_plugins(config: RendererConfig) -> list[Plugin]:
    """Return the built-in plugins enabled by ``config``."""
    plugins: list[Plugin] = []
    if config.syntax_highlighting:
        plugins.append(syntax_highlighting())
    if config.text_markers:
        plugins.append(text_markers())
    frames_options = config.frames_options
    if frames_options is not None:
        plugins.append(frames(frames_options))
    return plugins


class Renderer:
    """Render groups of code blocks with a fixed set of themes and plugins."""

    def __init__(
        self,
        config: RendererConfig,
        *,
        themes: Sequence[Theme],
        plugins: Sequence[Plugin],
        emitter: DiagnosticEmitter | None = None,
        theme_manager: ThemeManager | None = None,
    ) -> None:
        self.config = config
        self.emitter: DiagnosticEmitter = emitter or NullEmitter()
        self.theme_manager = theme_manager or ThemeManager(emitter=self.emitter)
        self.themes: tuple[Theme, ...] = tuple(themes)
        self.plugins: tuple[Plugin, ...] = tuple(plugins)
        self.engine = PipelineEngine(self.plugins)
        self.default_layers: tuple[StyleLayer, ...] = (
            core_style_layer(),
            *(
                layer(f"plugin:{plugin.name}", plugin.default_style_settings, defaults=True)
                for plugin in self.plugins
                if plugin.default_style_settings
            ),
        )
        self._settings_cache: OnceCache[str, ResolvedStyleSettings] = OnceCache(maxsize=32)
        self.style_settings: ThemedStyleSettings = resolve_for_themes(
            self.default_layers,
            self.themes,
            config.style_overrides,
            resolve_theme=self.style_settings_for,
        )
        if self.style_settings.unknown_keys:
            record_event(
                self.emitter,
                "unknown_style_keys",
                {"keys": sorted(self.style_settings.unknown_keys)},
            )

        base_parts = [build_base_styles()]
        base_parts.extend(
            plugin.render_base_styles(self.style_settings) for plugin in self.plugins
        )
        self.base_styles = "".join(part for part in base_parts if part)
        self.theme_styles = build_theme_styles(
            self.style_settings,
            use_dark_mode_media_query=config.use_dark_mode_media_query,
            theme_css_selector=config.theme_css_selector,
        )
        modules: list[str] = []
        for plugin in self.plugins:
            modules.extend(module for module in plugin.js_modules if module not in modules)
        self.js_modules: tuple[str, ...] = tuple(modules)

    def style_settings_for(self, theme: Theme) -> ResolvedStyleSettings:
        """Return the style settings resolved for ``theme``, cached by fingerprint."""
        return self._settings_cache.get_or_create(
            theme.fingerprint,
            lambda: resolve(
                build_layers(self.default_layers, theme, self.config.style_overrides), theme
            ),
        )

    def block_locale(
        self, code: str, language: str, meta: str, document: Document | None = None
    ) -> str:
        """Return the locale of a block being created."""
        callback = self.config.get_block_locale
        if callback is not None:
            locale = callback(code=code, language=language, meta=meta, document=document)
            if locale:
                return locale
        return self.config.default_locale

    def create_block(
        self,
        code: str = "",
        language: str = "",
        meta: str = "",
        *,
        locale: str | None = None,
        props: Mapping[str, Any] | None = None,
        document: Document | None = None,
    ) -> Block:
        """Build a block with tabs expanded and its locale resolved."""
        text = code or ""
        if self.config.tab_width > 0:
            text = text.replace("\t", " " * self.config.tab_width)
        resolved_locale = locale or self.block_locale(text, language, meta, document)
        return Block(text, language, meta, locale=resolved_locale, props=props)

    def _as_group(self, target: Group | Block | str) -> Group:
        if isinstance(target, Group):
            group = target
        elif isinstance(target, Block):
            group = Group([target])
        elif isinstance(target, str):
            group = Group([self.create_block(target)])
        else:
            raise CodesmithError(f"Cannot render objects of type {type(target).__name__}")
        if group.document is None:
            Document.for_group(group)
        return group

    def render(
        self, target: Group | Block | str, assets: AssetCollector | None = None
    ) -> RenderResult:
        """Render synchronously; use :meth:`render_async` inside an event loop."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.render_async(target, assets))
        raise CodesmithError("render() cannot run inside an event loop, use render_async()")

    async def render_async(
        self, target: Group | Block | str, assets: AssetCollector | None = None
    ) -> RenderResult:
        """Run the pipeline over a group and collect its new assets."""
        group = self._as_group(target)
        for block in group:
            if not block.state.can_edit_language:
                raise StateError("Blocks can only be rendered once")

        environment = PipelineEnvironment(
            config=self.config,
            themes=self.themes,
            style_settings=self.style_settings,
            emitter=self.emitter,
            default_locale=self.config.default_locale,
        )
        data = await self.engine.run(group, environment)

        collector = assets if assets is not None else group.assets
        style_payloads = collector.collect_styles(
            [self.base_styles, self.theme_styles, *environment.added_styles]
        )
        script_modules = collector.collect_scripts(self.js_modules)
        blocks = tuple(
            BlockMetadata(
                index=index,
                language=block.language,
                meta=block.meta,
                locale=block.locale,
                line_count=block.line_count,
                plugin_data={
                    plugin.name: dict(block.plugin_data(plugin.name)) for plugin in self.plugins
                },
            )
            for index, block in enumerate(group)
        )
        logger.debug(
            "Rendered group of %d block(s), %d new style payload(s)",
            len(blocks),
            len(style_payloads),
        )
        return RenderResult(
            node=data.node,
            styles="\n".join(style_payloads),
            style_payloads=tuple(style_payloads),
            script_modules=tuple(script_modules),
            blocks=blocks,
        )


def create_renderer(
    config: RendererConfig | Mapping[str, Any] | None = None,
    *,
    emitter: DiagnosticEmitter | None = None,
    theme_manager: ThemeManager | None = None,
    **options: Any,
) -> Renderer:
    """Validate options, load themes and plugins, and return a :class:`Renderer`."""
    resolved = build_config(config, **options)
    active_emitter: DiagnosticEmitter = emitter or NullEmitter()
    manager = theme_manager or ThemeManager(emitter=active_emitter)
    themes = manager.load_all(resolved.themes)
    plugins = [*default_plugins(resolved), *resolved.plugins]
    logger.debug(
        "Creating renderer with themes %s and plugins %s",
        [theme.name for theme in themes],
        [plugin.name for plugin in plugins],
    )
    return Renderer(
        resolved,
        themes=themes,
        plugins=plugins,
        emitter=active_emitter,
        theme_manager=manager,
    )


__all__ = [
    "BlockMetadata",
    "RenderResult",
    "Renderer",
    "create_renderer",
    "default_plugins",
]
