"""Frames plugin: editor and terminal window chrome around code blocks.

A block gets a title from its ``title="..."`` meta option or, when enabled,
from a file name comment on its first line (``// src/app.js``), which is then
removed together with a following empty line. Terminal languages render as
terminal windows unless a file name was found; ``frame="code"``,
``frame="terminal"`` and ``frame="none"`` force a frame type.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from codesmith.core.config import FramesOptions
from codesmith.core.nodes import add_classes, new_tag
from codesmith.core.plugins import Plugin, PluginHooks
from codesmith.core.style_settings import by_theme
from codesmith.core.styles import WRAPPER_CLASS
from codesmith.core.texts import PluginTexts


if TYPE_CHECKING:  # pragma: no cover - typing only
    from codesmith.core.pipeline import HookContext
    from codesmith.core.style_settings import ThemedStyleSettings


PLUGIN_NAME = "frames"

FRAME_TYPES = ("auto", "code", "terminal", "none")

TERMINAL_LANGUAGES = frozenset(
    {
        "ansi",
        "bash",
        "bat",
        "batch",
        "cmd",
        "console",
        "powershell",
        "ps",
        "ps1",
        "psd1",
        "psm1",
        "sh",
        "shell",
        "shellscript",
        "shellsession",
        "zsh",
    }
)

_FILE_NAME_COMMENT = re.compile(
    r"^\s*(?://|#|--|;|/\*|<!--)\s*"
    r"(?P<name>[\w@~.\-/\\]*[\w-]\.[\w-]+|[\w@~.\-\\]*/[\w@~.\-/\\]+)"
    r"\s*(?:\*/|-->)?\s*$"
)

FRAMES_TEXTS = PluginTexts(
    {
        "terminal_window_fallback_title": "Terminal window",
        "copy_button_tooltip": "Copy to clipboard",
        "copy_button_copied": "Copied!",
    }
)
FRAMES_TEXTS.add_locale(
    "de",
    {
        "terminal_window_fallback_title": "Terminal-Fenster",
        "copy_button_tooltip": "In die Zwischenablage kopieren",
        "copy_button_copied": "Kopiert!",
    },
)

FRAMES_STYLE_SETTINGS: dict[str, Any] = {
    "frames": {
        "shadow_color": by_theme(dark="#00000059", light="#0000001f"),
        "editor_tab_bar_background": lambda ctx: (
            ctx.theme.color("editorGroupHeader.tabsBackground")
            if ctx.theme is not None and ctx.theme.color("editorGroupHeader.tabsBackground")
            else ctx.resolve("border_color")
        ),
        "editor_active_tab_background": lambda ctx: ctx.resolve("code_background"),
        "editor_active_tab_foreground": lambda ctx: ctx.resolve("code_foreground"),
        "terminal_title_bar_background": lambda ctx: ctx.resolve(
            "frames.editor_tab_bar_background"
        ),
        "terminal_title_bar_dot_color": lambda ctx: ctx.resolve("gutter_foreground"),
        "tooltip_success_background": "#177d3a",
        "tooltip_success_foreground": "#ffffff",
    }
}

COPY_BUTTON_SCRIPT = """\
function codesmithCopy(button) {
  const code = button.dataset.code.replace(/\\u007f/g, '\\n');
  navigator.clipboard.writeText(code).then(() => {
    button.classList.add('copied');
    setTimeout(() => button.classList.remove('copied'), 1500);
  });
}
document.addEventListener('click', (event) => {
  const button = event.target.closest('.codesmith .copy button');
  if (button) codesmithCopy(button);
});
"""


def _frame_styles(settings: ThemedStyleSettings) -> str:
    root = f".{WRAPPER_CLASS}"
    return "".join(
        [
            f"{root} .frame{{position:relative;margin:0;"
            "box-shadow:0 0.1rem 0.6rem var(--cs-frames-shadow-color);"
            "border-radius:var(--cs-border-radius)}",
            f"{root} .frame .header{{display:none}}",
            f"{root} .frame.has-title .header,{root} .frame.is-terminal .header{{"
            "display:flex;align-items:center;"
            "padding-block:var(--cs-ui-padding-block);"
            "padding-inline:var(--cs-ui-padding-inline);"
            "background:var(--cs-frames-editor-tab-bar-background);"
            "border:var(--cs-border-width) solid var(--cs-border-color);border-bottom:none;"
            "border-radius:var(--cs-border-radius) var(--cs-border-radius) 0 0}",
            f"{root} .frame.has-title:not(.is-terminal) .title{{"
            "background:var(--cs-frames-editor-active-tab-background);"
            "color:var(--cs-frames-editor-active-tab-foreground);"
            "padding-inline:var(--cs-ui-padding-inline)}",
            f"{root} .frame.is-terminal .header{{justify-content:center;"
            "background:var(--cs-frames-terminal-title-bar-background)}",
            f"{root} .frame.is-terminal .header::before{{content:'';position:absolute;"
            "left:var(--cs-ui-padding-inline);width:2.1rem;height:0.56rem;opacity:0.75;"
            "background:radial-gradient(circle,"
            "var(--cs-frames-terminal-title-bar-dot-color) 0.28rem,"
            "transparent 0.3rem) 0 0/0.7rem 0.56rem repeat-x}",
            f"{root} .frame.has-title pre,{root} .frame.is-terminal pre{{"
            "border-top-left-radius:0;border-top-right-radius:0}",
            f"{root} .copy{{position:absolute;top:0.5rem;right:0.5rem;opacity:0}}",
            f"{root} .frame:hover .copy,{root} .copy:focus-within{{opacity:1}}",
            f"{root} .copy button.copied::after{{content:attr(data-copied);"
            "background:var(--cs-frames-tooltip-success-background);"
            "color:var(--cs-frames-tooltip-success-foreground)}",
        ]
    )


def extract_file_name(first_line: str) -> str | None:
    """Return the file name mentioned by a first-line comment, if any."""
    match = _FILE_NAME_COMMENT.match(first_line)
    if match is None:
        return None
    return match.group("name")


def _frame_type(context: HookContext) -> str:
    block = context.block
    assert block is not None
    value = (block.meta_options.get_string("frame") or "auto").lower()
    return value if value in FRAME_TYPES else "auto"


def frames(options: FramesOptions | None = None) -> Plugin:
    """Return the frames plugin."""
    settings = options or FramesOptions()

    def preprocess_metadata(context: HookContext) -> None:
        block = context.block
        assert block is not None
        data = context.plugin_data
        data["title"] = block.meta_options.get_string("title")
        data["frame"] = _frame_type(context)

    def preprocess_code(context: HookContext) -> None:
        block = context.block
        assert block is not None
        data = context.plugin_data
        if data["title"] or not settings.extract_file_name_from_code:
            return
        if data["frame"] in ("terminal", "none"):
            return
        file_name = extract_file_name(block.get_line(0).text)
        if file_name is None:
            return
        data["title"] = file_name
        data["title_from_code"] = True
        removed = [0]
        if block.line_count > 1 and not block.get_line(1).text.strip():
            removed.append(1)
        block.delete_lines(removed)

    def postprocess_rendered_block(context: HookContext) -> None:
        block = context.block
        render_data = context.render_data
        assert block is not None and render_data is not None
        data = context.plugin_data
        frame_type = data["frame"]
        if frame_type == "none":
            return
        title = data.get("title")
        if frame_type == "auto":
            is_terminal = (
                block.language in TERMINAL_LANGUAGES and not data.get("title_from_code")
            )
        else:
            is_terminal = frame_type == "terminal"
        texts = context.texts

        pre = render_data.node.find("pre")
        if pre is None:
            return
        figure = new_tag("figure", classes=["frame"])
        if title:
            add_classes(figure, ["has-title"])
        if is_terminal:
            add_classes(figure, ["is-terminal"])

        caption = new_tag("figcaption", classes=["header"])
        if title:
            caption.append(new_tag("span", classes=["title"], children=[title]))
        elif is_terminal:
            caption.append(
                new_tag(
                    "span",
                    classes=["sr-only"],
                    children=[texts["terminal_window_fallback_title"]],
                )
            )
        pre.replace_with(figure)
        figure.append(caption)
        figure.append(pre)

        if settings.show_copy_to_clipboard_button:
            button = new_tag(
                "button",
                {
                    "title": texts["copy_button_tooltip"],
                    "data-copied": texts["copy_button_copied"],
                    "data-code": "\u007f".join(line.text for line in block.lines),
                },
                children=[new_tag("div")],
            )
            figure.append(new_tag("div", classes=["copy"], children=[button]))

    return Plugin(
        name=PLUGIN_NAME,
        hooks=PluginHooks(
            preprocess_metadata=preprocess_metadata,
            preprocess_code=preprocess_code,
            postprocess_rendered_block=postprocess_rendered_block,
        ),
        default_style_settings=FRAMES_STYLE_SETTINGS,
        base_styles=_frame_styles,
        js_modules=(COPY_BUTTON_SCRIPT,) if settings.show_copy_to_clipboard_button else (),
        texts=FRAMES_TEXTS,
    )


__all__ = [
    "COPY_BUTTON_SCRIPT",
    "FRAMES_TEXTS",
    "PLUGIN_NAME",
    "TERMINAL_LANGUAGES",
    "extract_file_name",
    "frames",
]
