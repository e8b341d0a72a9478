import pytest

from codesmith.core.exceptions import ValidationError
from codesmith.core.metadata import parse_line_ranges, parse_meta


def test_parse_meta_reads_every_value_kind() -> None:
    options = parse_meta('title="My file.js" {1, 4-6} ins=/added/ "needle" wrap frame=terminal')

    assert options.get_string("title") == "My file.js"
    assert options.value_ranges(None) == [1, 4, 5, 6]
    assert [pattern.pattern for pattern in options.get_regexps("ins")] == ["added"]
    assert options.get_strings(None) == ["needle"]
    assert options.get_boolean("wrap") is True
    assert options.get_string("frame") == "terminal"
    assert options.keys() == ["title", "ins", "wrap", "frame"]
    assert len(options) == 6


@pytest.mark.parametrize(
    "meta",
    ['title="unterminated', "ins=/open", "{1-3", "'single"],
)
def test_parse_meta_rejects_unterminated_values(meta: str) -> None:
    with pytest.raises(ValidationError):
        parse_meta(meta)


def test_parse_meta_unescapes_quotes_but_keeps_regex_escapes() -> None:
    options = parse_meta(r'title="say \"hi\"" /\d+/ del=/a\/b/')

    assert options.get_string("title") == 'say "hi"'
    assert options.get_regexps(None)[0].pattern == r"\d+"
    assert options.get_regexps("del")[0].pattern == "a/b"


def test_parse_meta_handles_booleans_and_empty_values() -> None:
    options = parse_meta("wrap=false showLineNumbers=true title=")

    assert options.get_boolean("wrap") is False
    assert options.get_boolean("showLineNumbers") is True
    assert options.get_string("title") == ""


def test_parse_meta_last_value_wins_for_single_lookups() -> None:
    options = parse_meta('title="first" title="second" mark="a" mark="b"')

    assert options.get_string("title") == "second"
    assert options.get_strings("mark") == ["a", "b"]


def test_get_integer_validates_values() -> None:
    assert parse_meta("start=5").get_integer("start") == 5
    assert parse_meta("").get_integer("start") is None
    with pytest.raises(ValidationError):
        parse_meta("start=five").get_integer("start")


def test_invalid_regular_expression_is_reported() -> None:
    with pytest.raises(ValidationError, match="Invalid regular expression"):
        parse_meta("/(unclosed/")


def test_empty_meta_has_no_options() -> None:
    options = parse_meta(None)
    assert len(options) == 0
    assert options.raw == ""
    assert options.value_ranges(None) == []


def test_parse_line_ranges_expands_and_normalises() -> None:
    assert parse_line_ranges("3-1, 5") == [1, 2, 3, 5]
    assert parse_line_ranges(" 2 ,, 4 - 5 ") == [2, 4, 5]
    with pytest.raises(ValidationError):
        parse_line_ranges("a-b")


def test_value_ranges_merges_and_sorts_duplicates() -> None:
    options = parse_meta("{4-5} {1, 4}")
    assert options.value_ranges(None) == [1, 4, 5]
