"""Render code blocks into themeable, annotated HTML.

Typical usage::

    from codesmith import create_renderer

    renderer = create_renderer(themes=["github-dark", "default"])
    result = renderer.render(renderer.create_block("print(1)", "python", 'title="a.py"'))
    html, css = result.to_html(), result.styles
"""

from __future__ import annotations

from .core.annotations import (
    Annotation,
    InlineAnnotation,
    InlineRange,
    LineAnnotation,
    LineClassAnnotation,
    WrapAnnotation,
)
from .core.assets import AssetCollector
from .core.block import Block, BlockState, Line
from .core.config import FramesOptions, RendererConfig, build_config, load_config
from .core.diagnostics import DiagnosticEmitter, LoggingEmitter, NullEmitter
from .core.documents import Document, Group
from .core.exceptions import (
    CodesmithError,
    ConfigError,
    PluginError,
    StateError,
    StyleResolutionError,
    ThemeLoadError,
    ValidationError,
)
from .core.metadata import MetaOptions, parse_meta
from .core.pipeline import HookContext
from .core.plugins import PipelineStage, Plugin, PluginHooks
from .core.renderer import BlockMetadata, Renderer, RenderResult, create_renderer
from .core.style_settings import by_theme, replace
from .core.texts import PluginTexts
from .core.themes import Theme, ThemeManager
from .version import get_version


__version__ = get_version()

__all__ = [
    "Annotation",
    "AssetCollector",
    "Block",
    "BlockMetadata",
    "BlockState",
    "CodesmithError",
    "ConfigError",
    "DiagnosticEmitter",
    "Document",
    "FramesOptions",
    "Group",
    "HookContext",
    "InlineAnnotation",
    "InlineRange",
    "Line",
    "LineAnnotation",
    "LineClassAnnotation",
    "LoggingEmitter",
    "MetaOptions",
    "NullEmitter",
    "PipelineStage",
    "Plugin",
    "PluginError",
    "PluginHooks",
    "PluginTexts",
    "RenderResult",
    "Renderer",
    "RendererConfig",
    "StateError",
    "StyleResolutionError",
    "Theme",
    "ThemeLoadError",
    "ThemeManager",
    "ValidationError",
    "WrapAnnotation",
    "__version__",
    "build_config",
    "by_theme",
    "create_renderer",
    "get_version",
    "load_config",
    "parse_meta",
    "replace",
]
