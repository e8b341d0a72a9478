import asyncio
from typing import Any

import pytest

from codesmith.core.annotations import WrapAnnotation
from codesmith.core.assets import AssetCollector
from codesmith.core.documents import Group
from codesmith.core.exceptions import ConfigError, PluginError, StateError
from codesmith.core.nodes import new_tag
from codesmith.core.pipeline import HookContext, PipelineEngine
from codesmith.core.plugins import PipelineStage, Plugin, PluginHooks
from codesmith.core.renderer import Renderer, create_renderer
from codesmith.core.texts import PluginTexts


def _bare_renderer(*plugins: Plugin, **options: Any) -> Renderer:
    return create_renderer(
        themes=["default"],
        plugins=list(plugins),
        syntax_highlighting=False,
        frames=False,
        text_markers=False,
        **options,
    )


def _recording_plugin(name: str, log: list[tuple[str, str]]) -> Plugin:
    def _hook(stage: PipelineStage):
        def hook(context: HookContext) -> None:
            log.append((name, stage.value))

        return hook

    return Plugin(
        name=name,
        hooks=PluginHooks(**{stage.value: _hook(stage) for stage in PipelineStage}),
    )


def test_stages_run_in_order_for_every_block() -> None:
    log: list[tuple[str, str]] = []
    renderer = _bare_renderer(_recording_plugin("recorder", log))

    renderer.render(renderer.create_block("a\nb", "text"))

    stages = [stage for _, stage in log]
    assert stages == [
        "preprocess_language",
        "preprocess_metadata",
        "preprocess_code",
        "perform_syntax_analysis",
        "postprocess_analyzed_code",
        "annotate_code",
        "postprocess_annotations",
        "postprocess_rendered_line",
        "postprocess_rendered_line",
        "postprocess_rendered_block",
        "postprocess_rendered_block_group",
    ]


def test_plugins_run_in_registration_order_within_a_stage() -> None:
    log: list[tuple[str, str]] = []
    renderer = _bare_renderer(_recording_plugin("first", log), _recording_plugin("second", log))

    renderer.render(Group([renderer.create_block("x"), renderer.create_block("y")]))

    group_entries = [name for name, stage in log if stage == "postprocess_rendered_block_group"]
    assert log[:2] == [("first", "preprocess_language"), ("second", "preprocess_language")]
    assert group_entries == ["first", "second"]
    assert log.count(("second", "preprocess_language")) == 2


def test_async_hooks_are_awaited_before_the_next_callback() -> None:
    log: list[str] = []

    async def slow(context: HookContext) -> None:
        await asyncio.sleep(0.01)
        log.append("slow")

    def fast(context: HookContext) -> None:
        log.append("fast")

    renderer = _bare_renderer(
        Plugin(name="slow", hooks=PluginHooks(preprocess_code=slow)),
        Plugin(name="fast", hooks=PluginHooks(preprocess_code=fast)),
    )
    renderer.render(renderer.create_block("x"))

    assert log == ["slow", "fast"]


def test_later_hooks_observe_earlier_mutations() -> None:
    seen: list[str] = []

    def rewrite(context: HookContext) -> None:
        assert context.block is not None
        context.block.get_line(0).edit_text(None, None, "!")

    def observe(context: HookContext) -> None:
        assert context.block is not None
        seen.append(context.block.code)

    renderer = _bare_renderer(
        Plugin(name="rewrite", hooks=PluginHooks(preprocess_code=rewrite)),
        Plugin(name="observe", hooks=PluginHooks(preprocess_code=observe)),
    )
    result = renderer.render(renderer.create_block("hi"))

    assert seen == ["hi!"]
    assert "hi!" in result.to_html()


def test_hook_failures_are_wrapped_in_plugin_error() -> None:
    def broken(context: HookContext) -> None:
        raise ValueError("boom")

    renderer = _bare_renderer(Plugin(name="broken", hooks=PluginHooks(annotate_code=broken)))

    with pytest.raises(PluginError) as excinfo:
        renderer.render(renderer.create_block("x"))

    assert excinfo.value.plugin_name == "broken"
    assert excinfo.value.stage == "annotate_code"
    assert str(excinfo.value) == "Plugin 'broken' failed in stage 'annotate_code': boom"
    assert isinstance(excinfo.value.__cause__, ValueError)


@pytest.mark.parametrize(
    ("stage", "mutation"),
    [
        ("preprocess_metadata", lambda ctx: setattr(ctx.block, "language", "python")),
        ("preprocess_code", lambda ctx: setattr(ctx.block, "meta", "wrap")),
        ("annotate_code", lambda ctx: ctx.block.insert_line(0, "x")),
        (
            "postprocess_rendered_block",
            lambda ctx: ctx.block.get_line(0).add_annotation(WrapAnnotation(0, 1)),
        ),
    ],
)
def test_edits_after_their_stage_raise_state_error(stage: str, mutation: Any) -> None:
    renderer = _bare_renderer(Plugin(name="late", hooks=PluginHooks(**{stage: mutation})))

    with pytest.raises(PluginError) as excinfo:
        renderer.render(renderer.create_block("abc"))

    assert isinstance(excinfo.value.__cause__, StateError)


def test_edits_within_their_stage_are_allowed() -> None:
    def language(context: HookContext) -> None:
        assert context.block is not None
        context.block.language = "Python"

    def annotations(context: HookContext) -> None:
        assert context.block is not None
        context.block.get_line(0).add_annotation(WrapAnnotation(0, 3, tag="em"))

    renderer = _bare_renderer(
        Plugin(
            name="editor",
            hooks=PluginHooks(preprocess_language=language, postprocess_annotations=annotations),
        )
    )
    result = renderer.render(renderer.create_block("abc"))

    assert result.blocks[0].language == "python"
    assert "<em>abc</em>" in result.to_html()


def test_post_processing_hooks_can_replace_nodes() -> None:
    def wrap_block(context: HookContext) -> None:
        assert context.render_data is not None
        context.render_data.node = new_tag("section", children=[context.render_data.node])

    def mark_line(context: HookContext) -> None:
        assert context.render_data is not None and context.line_index is not None
        context.render_data.node["data-line"] = str(context.line_index + 1)

    renderer = _bare_renderer(
        Plugin(
            name="wrapper",
            hooks=PluginHooks(
                postprocess_rendered_block=wrap_block,
                postprocess_rendered_line=mark_line,
            ),
        )
    )
    result = renderer.render(renderer.create_block("a\nb"))

    assert result.node.find("section") is not None
    assert [node["data-line"] for node in result.node.select(".cs-line")] == ["1", "2"]


def test_replacing_a_node_with_a_non_element_fails() -> None:
    def bad(context: HookContext) -> None:
        assert context.render_data is not None
        context.render_data.node = "text"  # type: ignore[assignment]

    renderer = _bare_renderer(Plugin(name="bad", hooks=PluginHooks(postprocess_rendered_block=bad)))

    with pytest.raises(PluginError, match="must remain a Tag"):
        renderer.render(renderer.create_block("x"))


def test_hook_context_exposes_locale_texts_and_styles() -> None:
    texts = PluginTexts({"greeting": "Hello"})
    texts.add_locale("de", {"greeting": "Hallo"})
    seen: dict[str, Any] = {}

    def collect(context: HookContext) -> None:
        seen["locale"] = context.locale
        seen["greeting"] = context.texts["greeting"]
        seen["background"] = context.base_style_settings["code_background"]
        context.plugin_data["seen"] = True
        context.add_styles(".extra{color:red}")

    renderer = _bare_renderer(
        Plugin(name="ctx", hooks=PluginHooks(annotate_code=collect), texts=texts)
    )
    assets = AssetCollector()
    result = renderer.render(renderer.create_block("x", locale="de-DE"), assets)
    again = renderer.render(renderer.create_block("y", locale="de-DE"), assets)

    assert seen["locale"] == "de-DE"
    assert seen["greeting"] == "Hallo"
    assert seen["background"] == renderer.themes[0].background
    assert result.blocks[0].plugin_data["ctx"] == {"seen": True}
    assert ".extra{color:red}" in result.style_payloads
    assert again.style_payloads == ()


def test_group_stage_has_no_current_block() -> None:
    def group_hook(context: HookContext) -> None:
        assert context.block is None
        context.plugin_data  # noqa: B018

    renderer = _bare_renderer(
        Plugin(name="group", hooks=PluginHooks(postprocess_rendered_block_group=group_hook))
    )
    with pytest.raises(PluginError) as excinfo:
        renderer.render(renderer.create_block("x"))
    assert isinstance(excinfo.value.__cause__, StateError)


def test_engine_rejects_duplicate_plugin_names() -> None:
    with pytest.raises(ConfigError):
        PipelineEngine([Plugin(name="same"), Plugin(name="same")])


def test_engine_describe_lists_every_stage() -> None:
    log: list[tuple[str, str]] = []
    engine = PipelineEngine([_recording_plugin("recorder", log), Plugin(name="idle")])

    description = engine.describe()

    assert [entry["stage"] for entry in description] == [stage.value for stage in PipelineStage]
    assert all(entry["plugins"] == ["recorder"] for entry in description)


def test_plugin_declarations_are_validated() -> None:
    with pytest.raises(ConfigError):
        Plugin(name=" ")
    with pytest.raises(ConfigError):
        PluginHooks(annotate_code="not callable")  # type: ignore[arg-type]
    plugin = Plugin(name="js", js_modules="console.log(1)")
    assert plugin.js_modules == ("console.log(1)",)
    assert PluginHooks(annotate_code=lambda ctx: None).implemented() == [
        PipelineStage.ANNOTATE_CODE
    ]


def test_blocks_render_only_once() -> None:
    renderer = _bare_renderer()
    group = Group([renderer.create_block("x")])
    renderer.render(group)

    with pytest.raises(StateError):
        renderer.render(group)


def test_equal_priority_nesting_follows_plugin_registration_across_stages() -> None:
    def wrap(css_class: str):
        def hook(context: HookContext) -> None:
            assert context.block is not None
            context.block.get_line(0).add_annotation(WrapAnnotation(0, 1, classes=[css_class]))

        return hook

    first = Plugin(name="first", hooks=PluginHooks(annotate_code=wrap("a")))
    second = Plugin(name="second", hooks=PluginHooks(perform_syntax_analysis=wrap("b")))
    renderer = _bare_renderer(first, second)

    html = renderer.render(renderer.create_block("xy", "text")).to_html()

    assert '<span class="a"><span class="b">x</span></span>y' in html
