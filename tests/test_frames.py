from typing import Any

from bs4 import BeautifulSoup, Tag
import pytest

from codesmith import create_renderer
from codesmith.core.config import FramesOptions
from codesmith.plugins.frames import COPY_BUTTON_SCRIPT, extract_file_name


def _render(code: str, language: str = "", meta: str = "", **options: Any) -> tuple[Tag, Any]:
    renderer = create_renderer(syntax_highlighting=False, **options)
    result = renderer.render(renderer.create_block(code, language, meta))
    soup = BeautifulSoup(result.to_html(), "html.parser")
    return soup, result


def test_title_from_meta_renders_editor_frame() -> None:
    soup, result = _render("const a = 1;", "js", 'title="src/app.js"')

    figure = soup.select_one(".codesmith .cs-block > figure.frame")
    assert figure is not None
    assert figure["class"] == ["frame", "has-title"]
    children = [child.name for child in figure.find_all(recursive=False)]
    assert children == ["figcaption", "pre", "div"]
    assert figure.select_one("figcaption.header > span.title").get_text() == "src/app.js"
    assert result.blocks[0].plugin_data["frames"]["title"] == "src/app.js"


@pytest.mark.parametrize(
    ("first_line", "expected"),
    [
        ("// src/app.js", "src/app.js"),
        ("# config.yaml", "config.yaml"),
        ("<!-- index.html -->", "index.html"),
        ("/* styles/main.css */", "styles/main.css"),
        ("-- db/schema.sql", "db/schema.sql"),
        ("# not a file name", None),
        ("const a = 1; // x.js", None),
    ],
)
def test_extract_file_name(first_line: str, expected: str | None) -> None:
    assert extract_file_name(first_line) == expected


EXTRACT = FramesOptions(extract_file_name_from_code=True)


def test_file_name_comment_becomes_title_and_is_removed() -> None:
    soup, result = _render(
        "// src/app.js\n\nconsole.log(1);\n\nconsole.log(2);", "js", frames=EXTRACT
    )

    assert soup.select_one("span.title").get_text() == "src/app.js"
    assert [line.get_text() for line in soup.select(".cs-line")] == [
        "console.log(1);",
        "",
        "console.log(2);",
    ]
    assert result.blocks[0].line_count == 3
    assert result.blocks[0].plugin_data["frames"]["title_from_code"] is True


def test_meta_title_keeps_file_name_comment() -> None:
    soup, _ = _render("// src/app.js\nrun();", "js", 'title="Other"', frames=EXTRACT)

    assert soup.select_one("span.title").get_text() == "Other"
    assert soup.select(".cs-line")[0].get_text() == "// src/app.js"


def test_file_name_extraction_can_be_disabled() -> None:
    soup, _ = _render(
        "// src/app.js\nrun();",
        "js",
        frames=FramesOptions(extract_file_name_from_code=False),
    )

    assert soup.select_one("span.title") is None
    assert len(soup.select(".cs-line")) == 2


def test_terminal_languages_render_terminal_frames() -> None:
    soup, _ = _render("npm install", "sh")

    figure = soup.select_one("figure.frame")
    assert figure["class"] == ["frame", "is-terminal"]
    fallback = figure.select_one("figcaption > span.sr-only")
    assert fallback is not None and fallback.get_text() == "Terminal window"


def test_file_name_in_shell_script_keeps_editor_frame() -> None:
    soup, _ = _render("# scripts/setup.sh\necho hi", "bash", frames=EXTRACT)

    figure = soup.select_one("figure.frame")
    assert "is-terminal" not in figure["class"]
    assert figure.select_one("span.title").get_text() == "scripts/setup.sh"


def test_frame_type_can_be_forced() -> None:
    code_soup, _ = _render("ls", "sh", 'frame="code"')
    terminal_soup, _ = _render("ls", "text", "frame=terminal")
    bare_soup, _ = _render("ls", "sh", "frame=none")

    assert "is-terminal" not in code_soup.select_one("figure.frame")["class"]
    assert "is-terminal" in terminal_soup.select_one("figure.frame")["class"]
    assert bare_soup.select_one("figure") is None
    assert bare_soup.select_one(".cs-block > pre") is not None


def test_copy_button_carries_code_and_texts() -> None:
    soup, result = _render("a\nb", "text")

    button = soup.select_one("div.copy > button")
    assert button["title"] == "Copy to clipboard"
    assert button["data-copied"] == "Copied!"
    assert button["data-code"] == "a\u007fb"
    assert result.script_modules == (COPY_BUTTON_SCRIPT,)


def test_copy_button_can_be_disabled() -> None:
    soup, result = _render("a", "text", frames=FramesOptions(show_copy_to_clipboard_button=False))

    assert soup.select_one("div.copy") is None
    assert result.script_modules == ()


def test_texts_follow_block_locale() -> None:
    soup, _ = _render("ls", "sh", default_locale="de-DE")

    assert soup.select_one("span.sr-only").get_text() == "Terminal-Fenster"
    assert soup.select_one("button")["title"] == "In die Zwischenablage kopieren"


def test_frame_styles_and_settings_are_emitted() -> None:
    renderer = create_renderer(themes=["github-dark"])

    assert ".codesmith .frame{" in renderer.base_styles
    assert "--cs-frames-shadow-color:#00000059" in renderer.theme_styles
    assert "--cs-frames-tooltip-success-background:#177d3a" in renderer.theme_styles


def test_frames_can_be_disabled() -> None:
    soup, result = _render("ls", "sh", frames=False)

    assert soup.select_one("figure") is None
    assert result.script_modules == ()
