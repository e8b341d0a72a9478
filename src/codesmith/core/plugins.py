"""Plugin declarations and the ordered stages of the rendering pipeline."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from .exceptions import ConfigError
from .texts import PluginTexts


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .pipeline import HookContext
    from .style_settings import ThemedStyleSettings


class PipelineStage(Enum):
    """Stages visited, in declaration order, for every rendered group.

    ``PREPROCESS_LANGUAGE`` to ``POSTPROCESS_RENDERED_BLOCK`` run once per
    block (once per line for ``POSTPROCESS_RENDERED_LINE``);
    ``POSTPROCESS_RENDERED_BLOCK_GROUP`` runs once per group after every block
    finished. The block is rendered between ``POSTPROCESS_ANNOTATIONS`` and
    ``POSTPROCESS_RENDERED_LINE``.
    """

    PREPROCESS_LANGUAGE = "preprocess_language"
    PREPROCESS_METADATA = "preprocess_metadata"
    PREPROCESS_CODE = "preprocess_code"
    PERFORM_SYNTAX_ANALYSIS = "perform_syntax_analysis"
    POSTPROCESS_ANALYZED_CODE = "postprocess_analyzed_code"
    ANNOTATE_CODE = "annotate_code"
    POSTPROCESS_ANNOTATIONS = "postprocess_annotations"
    POSTPROCESS_RENDERED_LINE = "postprocess_rendered_line"
    POSTPROCESS_RENDERED_BLOCK = "postprocess_rendered_block"
    POSTPROCESS_RENDERED_BLOCK_GROUP = "postprocess_rendered_block_group"

    @property
    def is_group_stage(self) -> bool:
        return self is PipelineStage.POSTPROCESS_RENDERED_BLOCK_GROUP


MODEL_STAGES: tuple[PipelineStage, ...] = (
    PipelineStage.PREPROCESS_LANGUAGE,
    PipelineStage.PREPROCESS_METADATA,
    PipelineStage.PREPROCESS_CODE,
    PipelineStage.PERFORM_SYNTAX_ANALYSIS,
    PipelineStage.POSTPROCESS_ANALYZED_CODE,
    PipelineStage.ANNOTATE_CODE,
    PipelineStage.POSTPROCESS_ANNOTATIONS,
)

HookResult = Union[None, Awaitable[None]]
Hook = Callable[["HookContext"], HookResult]


@dataclass(slots=True)
class PluginHooks:
    """Optional callbacks, one per pipeline stage."""

    preprocess_language: Hook | None = None
    preprocess_metadata: Hook | None = None
    preprocess_code: Hook | None = None
    perform_syntax_analysis: Hook | None = None
    postprocess_analyzed_code: Hook | None = None
    annotate_code: Hook | None = None
    postprocess_annotations: Hook | None = None
    postprocess_rendered_line: Hook | None = None
    postprocess_rendered_block: Hook | None = None
    postprocess_rendered_block_group: Hook | None = None

    def __post_init__(self) -> None:
        for entry in fields(self):
            hook = getattr(self, entry.name)
            if hook is not None and not callable(hook):
                raise ConfigError(f"Hook '{entry.name}' must be callable")

    def get(self, stage: PipelineStage) -> Hook | None:
        return getattr(self, stage.value)

    def implemented(self) -> list[PipelineStage]:
        """Return the stages this plugin takes part in."""
        return [stage for stage in PipelineStage if self.get(stage) is not None]


BaseStyles = Union[str, Callable[["ThemedStyleSettings"], str]]


@dataclass(slots=True)
class Plugin:
    """Named bundle of hooks, style settings and assets."""

    name: str
    hooks: PluginHooks = field(default_factory=PluginHooks)
    default_style_settings: Mapping[str, Any] | None = None
    base_styles: BaseStyles | None = None
    js_modules: Sequence[str] = ()
    texts: PluginTexts | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ConfigError("Plugins require a non-empty name")
        if not isinstance(self.hooks, PluginHooks):
            raise ConfigError(f"Plugin '{self.name}' hooks must be a PluginHooks instance")
        if isinstance(self.js_modules, str):
            self.js_modules = (self.js_modules,)
        else:
            self.js_modules = tuple(self.js_modules)

    def render_base_styles(self, settings: ThemedStyleSettings) -> str:
        """Return this plugin's base CSS."""
        if self.base_styles is None:
            return ""
        if callable(self.base_styles):
            return self.base_styles(settings)
        return self.base_styles


__all__ = [
    "MODEL_STAGES",
    "BaseStyles",
    "Hook",
    "HookResult",
    "PipelineStage",
    "Plugin",
    "PluginHooks",
]
