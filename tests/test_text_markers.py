from bs4 import BeautifulSoup

from codesmith import create_renderer
from codesmith.core.annotations import LineClassAnnotation
from codesmith.core.block import Block
from codesmith.core.config import FramesOptions
from codesmith.plugins.text_markers import TextMarkerAnnotation, annotate_block


def _lines(code: str, meta: str, language: str = "text", **options: object) -> list[str]:
    options.setdefault("syntax_highlighting", False)
    options.setdefault("frames", False)
    renderer = create_renderer(**options)
    html = renderer.render(renderer.create_block(code, language, meta)).to_html()
    soup = BeautifulSoup(html, "html.parser")
    return [str(node) for node in soup.select(".cs-line")]


def test_line_ranges_mark_whole_lines() -> None:
    lines = _lines("a\nb\nc\nd", "{2} ins={3} del={4}")

    assert lines == [
        '<div class="cs-line">a</div>',
        '<div class="cs-line highlight mark">b</div>',
        '<div class="cs-line highlight ins">c</div>',
        '<div class="cs-line highlight del">d</div>',
    ]


def test_strongest_line_marker_wins() -> None:
    lines = _lines("a\nb", "mark={1-2} ins={1-2} del={2}")

    assert lines[0] == '<div class="cs-line highlight ins">a</div>'
    assert lines[1] == '<div class="cs-line highlight del">b</div>'


def test_out_of_range_lines_are_ignored() -> None:
    assert _lines("a", "{1, 7}") == ['<div class="cs-line highlight mark">a</div>']


def test_inline_text_markers() -> None:
    lines = _lines("let needle = needle;", '"needle" ins="let"')

    assert lines == [
        '<div class="cs-line"><ins>let</ins> <mark>needle</mark> = <mark>needle</mark>;</div>'
    ]


def test_regex_capture_groups_limit_the_marked_text() -> None:
    lines = _lines("value = compute(value)", r"ins=/compute\((\w+)\)/ del=/^\w+/")

    assert lines == ['<div class="cs-line"><del>value</del> = compute(<ins>value</ins>)</div>']


def test_overlapping_inline_markers_never_nest() -> None:
    lines = _lines("hello", 'mark="hello" del=/ll/')

    assert lines == ['<div class="cs-line"><mark>he</mark><del>ll</del><mark>o</mark></div>']


def test_markers_wrap_syntax_tokens() -> None:
    renderer = create_renderer(frames=False)
    html = renderer.render(renderer.create_block("def f(): pass", "python", '"def f"')).to_html()
    soup = BeautifulSoup(html, "html.parser")

    mark = soup.select_one(".cs-line > mark")
    assert mark is not None
    assert mark.get_text() == "def f"
    assert mark.select("span[style]")


def test_line_numbers_apply_after_file_name_removal() -> None:
    lines = _lines(
        "// app.js\nfirst();\nsecond();",
        "{1}",
        language="js",
        frames=FramesOptions(extract_file_name_from_code=True),
    )

    assert 'class="cs-line highlight mark"' in lines[0]
    assert "first();" in lines[0]


def test_annotate_block_attaches_annotations() -> None:
    block = Block("abc\nxyz", "", '{2} del="b"')

    annotate_block(block)

    first, second = block.lines
    assert [type(item) for item in first.annotations] == [TextMarkerAnnotation]
    assert first.annotations[0].inline_range is not None
    assert (first.annotations[0].inline_range.start, first.annotations[0].inline_range.end) == (
        1,
        2,
    )
    assert isinstance(second.annotations[0], LineClassAnnotation)
    assert second.annotations[0].classes == ("highlight", "mark")


def test_marker_styles_are_registered() -> None:
    renderer = create_renderer(themes=["default"])

    assert ".codesmith .cs-line.highlight.del{" in renderer.base_styles
    assert "--cs-text-markers-ins-background:#a0eb8cb8" in renderer.theme_styles
