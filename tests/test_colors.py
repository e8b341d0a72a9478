import pytest

from codesmith.core.colors import (
    Color,
    contrast_ratio,
    darken,
    is_dark,
    lighten,
    mix,
    normalise_color,
    parse_color,
    to_hex,
    with_alpha,
)


def test_parse_color_accepts_css_notations() -> None:
    assert parse_color("#fff") == Color(255, 255, 255, 1.0)
    assert parse_color("0d1117") == Color(13, 17, 23, 1.0)
    assert parse_color("rgb(255, 0, 0)") == Color(255, 0, 0, 1.0)
    assert parse_color("rgba(0, 0, 0, 50%)").a == pytest.approx(0.5)
    assert parse_color("transparent").a == 0.0


def test_parse_color_rejects_invalid_values() -> None:
    with pytest.raises(ValueError):
        parse_color("not-a-color")
    with pytest.raises(ValueError):
        parse_color("rgb(300, 0, 0)")


def test_hex_round_trip_keeps_alpha() -> None:
    assert to_hex(parse_color("#11223380")) == "#11223380"
    assert normalise_color("#ABC") == "#aabbcc"


def test_contrast_and_darkness() -> None:
    assert contrast_ratio("#000000", "#ffffff") == pytest.approx(21.0)
    assert is_dark("#0d1117")
    assert not is_dark("#f8f8f8")


def test_blending_helpers() -> None:
    assert mix("#000000", "#ffffff", 0.5) == "#808080"
    assert mix("#102030", "#ffffff", 0) == "#102030"
    assert lighten("#000000", 1) == "#ffffff"
    assert darken("#ffffff", 1) == "#000000"
    assert with_alpha("#ff0000", 0.5) == "#ff000080"
