"""Execution engine running plugin hooks over a group of blocks.

The engine visits every :class:`PipelineStage` in declaration order, even when
no plugin implements it. Within a stage every plugin callback runs in
registration order and is awaited before the next one starts, so later
callbacks observe every mutation made by earlier ones.

Block stages
: each block runs the model stages, is rendered, then runs the rendered-line
  (once per line) and rendered-block stages. Blocks are processed in group
  order.

Group stage
: runs once after all blocks finished, on the group wrapper.

Edit permissions shrink as the block advances: the language is frozen after
``preprocess_language``, the metadata after ``preprocess_metadata``, the code
after ``postprocess_analyzed_code`` and annotations after
``postprocess_annotations``. Edits attempted later raise
:class:`~codesmith.core.exceptions.StateError`.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
import inspect
import logging
from typing import TYPE_CHECKING, Any

from bs4.element import Tag

from .exceptions import ConfigError, PluginError, StateError
from .plugins import MODEL_STAGES, PipelineStage, Plugin
from .rendering import render_block, render_group, render_line


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .block import Block, Line
    from .diagnostics import DiagnosticEmitter
    from .documents import Group
    from .style_settings import ResolvedStyleSettings, ThemedStyleSettings
    from .themes import Theme


logger = logging.getLogger(__name__)


_STATE_LOCKS: dict[PipelineStage, str] = {
    PipelineStage.PREPROCESS_LANGUAGE: "can_edit_language",
    PipelineStage.PREPROCESS_METADATA: "can_edit_metadata",
    PipelineStage.POSTPROCESS_ANALYZED_CODE: "can_edit_code",
    PipelineStage.POSTPROCESS_ANNOTATIONS: "can_edit_annotations",
}


@dataclass(slots=True)
class RenderData:
    """Rendered node handed to post-processing hooks; hooks may replace it."""

    node: Tag


@dataclass(slots=True)
class GroupRenderData(RenderData):
    """Group wrapper together with the rendered block nodes it contains."""

    block_nodes: list[Tag] = field(default_factory=list)


@dataclass(slots=True)
class PipelineEnvironment:
    """Renderer state shared by every hook of a render call."""

    config: Any
    themes: tuple[Theme, ...]
    style_settings: ThemedStyleSettings
    emitter: DiagnosticEmitter
    default_locale: str = "en-US"
    added_styles: list[str] = field(default_factory=list)


@dataclass(slots=True)
class HookContext:
    """Context passed to every plugin callback."""

    plugin: Plugin
    stage: PipelineStage
    group: Group
    environment: PipelineEnvironment
    block: Block | None = None
    line: Line | None = None
    line_index: int | None = None
    render_data: RenderData | None = None

    @property
    def config(self) -> Any:
        return self.environment.config

    @property
    def themes(self) -> tuple[Theme, ...]:
        return self.environment.themes

    @property
    def style_settings(self) -> ThemedStyleSettings:
        return self.environment.style_settings

    @property
    def base_style_settings(self) -> ResolvedStyleSettings:
        return self.environment.style_settings.base

    @property
    def emitter(self) -> DiagnosticEmitter:
        return self.environment.emitter

    @property
    def locale(self) -> str:
        if self.block is not None and self.block.locale:
            return self.block.locale
        return self.environment.default_locale

    @property
    def texts(self) -> dict[str, str]:
        """Return the plugin's strings resolved for the block locale."""
        if self.plugin.texts is None:
            return {}
        return self.plugin.texts.for_locale(self.locale)

    @property
    def plugin_data(self) -> dict[str, Any]:
        """Return the block data slot reserved for the running plugin."""
        if self.block is None:
            raise StateError(f"Stage '{self.stage.value}' has no current block")
        return self.block.plugin_data(self.plugin.name)

    def add_styles(self, css: str) -> None:
        """Emit additional CSS, deduplicated with the other style payloads."""
        if css:
            self.environment.added_styles.append(css)


class PipelineEngine:
    """Run registered plugins over groups of blocks."""

    def __init__(self, plugins: Iterable[Plugin] = ()) -> None:
        self.plugins: tuple[Plugin, ...] = tuple(plugins)
        seen: set[str] = set()
        for plugin in self.plugins:
            if plugin.name in seen:
                raise ConfigError(f"Duplicate plugin name '{plugin.name}'")
            seen.add(plugin.name)

    def describe(self) -> list[dict[str, object]]:
        """Return a serialisable snapshot of the registered hooks."""
        return [
            {
                "stage": stage.value,
                "plugins": [plugin.name for plugin in plugins_for_stage(self.plugins, stage)],
            }
            for stage in PipelineStage
        ]

    async def run(self, group: Group, environment: PipelineEnvironment) -> GroupRenderData:
        """Process every block of ``group`` and return the rendered wrapper."""
        block_nodes: list[Tag] = []
        for block in group:
            block_nodes.append(await self._process_block(block, group, environment))

        data = GroupRenderData(node=render_group(block_nodes), block_nodes=block_nodes)
        await self._run_stage(
            PipelineStage.POSTPROCESS_RENDERED_BLOCK_GROUP,
            group,
            environment,
            render_data=data,
        )
        return data

    async def _process_block(
        self, block: Block, group: Group, environment: PipelineEnvironment
    ) -> Tag:
        for stage in MODEL_STAGES:
            await self._run_stage(stage, group, environment, block=block)
            flag = _STATE_LOCKS.get(stage)
            if flag is not None:
                setattr(block.state, flag, False)
        block.state.freeze()

        line_nodes: list[Tag] = []
        for index, line in enumerate(block.lines):
            data = RenderData(node=render_line(line))
            await self._run_stage(
                PipelineStage.POSTPROCESS_RENDERED_LINE,
                group,
                environment,
                block=block,
                line=line,
                line_index=index,
                render_data=data,
            )
            line_nodes.append(data.node)

        block_data = RenderData(node=render_block(block, line_nodes))
        await self._run_stage(
            PipelineStage.POSTPROCESS_RENDERED_BLOCK,
            group,
            environment,
            block=block,
            render_data=block_data,
        )
        return block_data.node

    async def _run_stage(
        self,
        stage: PipelineStage,
        group: Group,
        environment: PipelineEnvironment,
        **payload: Any,
    ) -> None:
        logger.debug("Entering stage %s", stage.value)
        block: Block | None = payload.get("block")
        for plugin_index, plugin in enumerate(self.plugins):
            hook = plugin.hooks.get(stage)
            if hook is None:
                continue
            if block is not None:
                block.active_plugin = plugin_index
            context = HookContext(
                plugin=plugin,
                stage=stage,
                group=group,
                environment=environment,
                **payload,
            )
            try:
                result = hook(context)
                if inspect.isawaitable(result):
                    await result
            except PluginError:
                raise
            except Exception as exc:
                logger.debug("Plugin '%s' failed in stage %s", plugin.name, stage.value)
                raise PluginError(plugin.name, stage.value, exc) from exc
            finally:
                if block is not None:
                    block.active_plugin = None
            render_data = payload.get("render_data")
            if render_data is not None and not isinstance(render_data.node, Tag):
                raise PluginError(
                    plugin.name,
                    stage.value,
                    TypeError("render_data.node must remain a Tag"),
                )


def plugins_for_stage(plugins: Sequence[Plugin], stage: PipelineStage) -> list[Plugin]:
    """Return the plugins implementing ``stage`` in registration order."""
    return [plugin for plugin in plugins if plugin.hooks.get(stage) is not None]


__all__ = [
    "GroupRenderData",
    "HookContext",
    "PipelineEngine",
    "PipelineEnvironment",
    "RenderData",
    "plugins_for_stage",
]
