from bs4.element import PageElement
import pytest

from codesmith.core.annotations import (
    InlineRange,
    LineAnnotation,
    LineClassAnnotation,
    WrapAnnotation,
)
from codesmith.core.block import Block, Line
from codesmith.core.exceptions import ValidationError
from codesmith.core.nodes import new_tag, split_node
from codesmith.core.rendering import render_block, render_group, render_line


def _line(text: str) -> Line:
    return Block(text).get_line(0)


def test_plain_line_renders_inside_wrapper() -> None:
    assert str(render_line(_line("x = 1"))) == '<div class="cs-line">x = 1</div>'
    assert str(render_line(_line(""))) == '<div class="cs-line"></div>'


def test_equal_priority_first_registered_is_outermost() -> None:
    line = _line("x")
    line.add_annotation(WrapAnnotation(0, 1, classes=["a"]))
    line.add_annotation(WrapAnnotation(0, 1, classes=["b"]))

    rendered = render_line(line)

    assert str(rendered) == (
        '<div class="cs-line"><span class="a"><span class="b">x</span></span></div>'
    )


def test_higher_priority_wraps_lower_priority() -> None:
    line = _line("x")
    line.add_annotation(WrapAnnotation(0, 1, classes=["inner"]))
    line.add_annotation(WrapAnnotation(0, 1, classes=["outer"], priority=5))

    rendered = render_line(line)
    outer = rendered.find("span", class_="outer")

    assert outer is not None
    assert outer.find("span", class_="inner") is not None


def test_overlapping_inner_annotation_is_split() -> None:
    line = _line("abcdef")
    line.add_annotation(WrapAnnotation(0, 4, tag="b", priority=1))
    line.add_annotation(WrapAnnotation(2, 6, tag="i"))

    rendered = render_line(line)

    assert str(rendered) == '<div class="cs-line"><b>ab<i>cd</i></b><i>ef</i></div>'
    assert rendered.get_text() == "abcdef"


def test_partial_ranges_keep_surrounding_text() -> None:
    line = _line("let value = 1")
    line.add_annotation(WrapAnnotation(4, 9, tag="mark"))

    assert str(render_line(line)) == '<div class="cs-line">let <mark>value</mark> = 1</div>'


def test_line_annotations_apply_to_wrapper() -> None:
    line = _line("x")
    line.add_annotation(LineClassAnnotation(["highlight"], attrs={"data-marker": "mark"}))

    rendered = render_line(line)

    assert rendered["class"] == ["cs-line", "highlight"]
    assert rendered["data-marker"] == "mark"


def test_line_annotation_must_return_single_element() -> None:
    class Duplicate(LineAnnotation):
        def render(self, nodes: list[PageElement], line: Line) -> list[PageElement]:
            return [*nodes, new_tag("span")]

    line = _line("x")
    line.add_annotation(Duplicate())

    with pytest.raises(ValidationError):
        render_line(line)


def test_line_annotation_may_replace_wrapper() -> None:
    class Section(LineAnnotation):
        def render(self, nodes: list[PageElement], line: Line) -> list[PageElement]:
            return [new_tag("section", children=nodes)]

    line = _line("x")
    line.add_annotation(Section())

    assert str(render_line(line)) == '<section><div class="cs-line">x</div></section>'


def test_inline_range_validation() -> None:
    assert InlineRange(2, 5).length == 3
    assert InlineRange(0, 3).overlaps(InlineRange(2, 4))
    assert not InlineRange(0, 2).overlaps(InlineRange(2, 4))
    with pytest.raises(ValidationError):
        InlineRange(4, 1)


def test_split_node_clones_wrappers() -> None:
    tag = new_tag("span", {"style": "color:red"}, children=["abcd"])
    left, right = split_node(tag, 1)

    assert str(left) == '<span style="color:red">a</span>'
    assert str(right) == '<span style="color:red">bcd</span>'
    assert split_node(tag, 0) == (None, tag)


def test_block_and_group_structure() -> None:
    block = Block("a\nb", "python")
    lines = [render_line(line) for line in block.lines]

    group = render_group([render_block(block, lines)])

    assert group["class"] == ["codesmith"]
    block_node = group.find("div", class_="cs-block")
    assert block_node is not None
    assert block_node["data-language"] == "python"
    pre = block_node.find("pre")
    assert pre is not None and pre["data-language"] == "python"
    assert len(pre.find("code").find_all("div", class_="cs-line")) == 2
