from collections.abc import Mapping
from typing import Any

from bs4 import BeautifulSoup
from pygments.token import Token

from codesmith import create_renderer
from codesmith.core.themes import Theme
from codesmith.plugins.syntax import (
    PygmentsBackend,
    TokenSpan,
    syntax_highlighting,
    token_style_attribute,
)


class RecordingEmitter:
    debug_enabled = False

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))


class KeywordBackend:
    """Backend reporting the first four characters as two keyword tokens."""

    def supports(self, language: str) -> bool:
        return True

    def analyze(self, code: str, language: str, theme: Theme | None = None) -> list[list[TokenSpan]]:
        return [
            [TokenSpan(0, 2, Token.Keyword), TokenSpan(2, 4, Token.Keyword)]
            for _ in code.split("\n")
        ]


INK = {
    "name": "Ink",
    "type": "dark",
    "colors": {"editor.background": "#000000"},
    "tokenColors": [
        {"scope": "keyword", "settings": {"foreground": "#ff0000", "fontStyle": "bold"}},
        {"scope": "comment", "settings": {"foreground": "#00ff00", "fontStyle": "italic"}},
    ],
}


def test_backend_returns_one_entry_per_line() -> None:
    backend = PygmentsBackend()

    assert len(backend.analyze("a = 1\nb = 2\n", "python")) == 3
    assert backend.analyze("", "python") == [[]]
    spans = backend.analyze("x = 1", "python")[0]
    assert [(span.start, span.end) for span in spans][0] == (0, 1)


def test_backend_language_support() -> None:
    backend = PygmentsBackend()
    assert backend.supports("python")
    assert backend.supports("js")
    assert not backend.supports("definitely-not-a-language")
    assert len(backend.analyze("a\nb", "definitely-not-a-language")) == 2


def test_token_style_attribute_covers_every_theme() -> None:
    dark = Theme.from_mapping(INK)
    plain = Theme("Plain", colors={"editor.background": "#ffffff"})

    assert token_style_attribute(Token.Keyword.Reserved, [dark]) == "--cs-t0:#ff0000;--cs-t0-fw:bold"
    assert token_style_attribute(Token.Comment, [plain, dark]) == (
        "--cs-t1:#00ff00;--cs-t1-fs:italic"
    )
    assert token_style_attribute(Token.Name, [plain]) == ""


def test_highlighted_text_is_unchanged() -> None:
    code = "import os  # comment\nprint(os.sep)"
    renderer = create_renderer(themes=[INK], frames=False)

    html = renderer.render(renderer.create_block(code, "python")).to_html()
    soup = BeautifulSoup(html, "html.parser")

    assert [node.get_text() for node in soup.select(".cs-line")] == code.split("\n")
    styled = {span.get_text(): span["style"] for span in soup.select(".cs-line span[style]")}
    assert styled["import"] == "--cs-t0:#ff0000;--cs-t0-fw:bold"
    assert styled["# comment"] == "--cs-t0:#00ff00;--cs-t0-fs:italic"


def test_whitespace_and_unstyled_tokens_are_not_wrapped() -> None:
    renderer = create_renderer(themes=[INK], frames=False)

    html = renderer.render(renderer.create_block("x   y", "python")).to_html()

    assert "<span" not in html


def test_adjacent_tokens_with_the_same_style_merge() -> None:
    renderer = create_renderer(
        themes=[INK],
        syntax_highlighting=False,
        frames=False,
        plugins=[syntax_highlighting(KeywordBackend())],
    )

    html = renderer.render(renderer.create_block("abcdef", "custom")).to_html()
    soup = BeautifulSoup(html, "html.parser")

    assert [span.get_text() for span in soup.select("span[style]")] == ["abcd"]


def test_unknown_language_falls_back_to_plain_text() -> None:
    emitter = RecordingEmitter()
    renderer = create_renderer(emitter=emitter, frames=False)

    result = renderer.render(renderer.create_block("some code", "klingon"))

    assert ("language_fallback", {"language": "klingon", "fallback": "text"}) in emitter.events
    assert "<span" not in result.to_html()
