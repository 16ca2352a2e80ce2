"""Tests for literal escaping of generated target code."""

import pytest

from evalbridge.escaping import escape, quote

RESERVED = "\\'\"\n\r\t\0\u2028\u2029"


@pytest.mark.parametrize(
    "value",
    [
        "",
        "plain",
        RESERVED,
        RESERVED * 3 + "tail",
        "a/b/c.txt",
        "line1\r\nline2\n",
        "\x01\x1b[31mred\x1b[0m\x7f\x85",
        "emoji \U0001f600 and cjk 中文",
        "\ud800 lone surrogate",
        "ends with backslash \\",
        "''' triple \"\"\"",
    ],
)
def test_single_and_double_quoted_round_trip(value):
    assert eval("'" + escape(value) + "'") == value
    assert eval('"' + escape(value) + '"') == value


def test_quote_is_complete_literal():
    assert quote("it's") == "'it\\'s'"
    assert eval(quote("it's")) == "it's"


def test_line_separators_are_escaped():
    escaped = escape("a\u2028b\u2029c")
    assert "\u2028" not in escaped
    assert "\u2029" not in escaped
    assert escaped == "a\\u2028b\\u2029c"


def test_escaped_output_has_no_raw_line_breaks():
    escaped = escape("x\ny\rz\x0b\x0c\x1c\x1d\x1e\x85")
    assert escaped.splitlines() == [escaped]


def test_null_byte_never_reaches_source():
    assert "\0" not in escape("a\0b")


def test_multi_megabyte_string_round_trips():
    value = ("0123456789abcdef" * 65536) + RESERVED * 1000
    assert len(value) > 1024 * 1024
    assert eval(quote(value)) == value


def test_escaped_literal_compiles_inside_generated_code():
    value = "path with 'quotes'\nand\u2028separators"
    code = f"result = {quote(value)}"
    namespace: dict = {}
    exec(compile(code, "<test>", "exec"), namespace)
    assert namespace["result"] == value
