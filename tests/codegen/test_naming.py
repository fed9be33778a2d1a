"""Tests for identifier naming and string escaping."""

from __future__ import annotations

import json

import pytest

from sketchgen.codegen.naming import escape_string, format_name, unescape_string


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("A", "A"),
        ("mammoths", "Mammoths"),
        ("CoolCats", "Coolcats"),
        ("  cool   cats ", "Cool_cats"),
        ("", ""),
    ],
)
def test_format_name(name: str, expected: str) -> None:
    assert format_name(name) == expected


def test_escape_order_keeps_backslashes_single() -> None:
    assert escape_string('a"b') == 'a\\"b'
    assert escape_string("a\nb") == "a\\nb"
    assert escape_string("a\\nb") == "a\\\\nb"
    assert escape_string('\\"') == '\\\\\\"'


@pytest.mark.parametrize(
    "text",
    [
        "plain",
        'say "hi"',
        "line one\nline two\n",
        "literal \\n is not a newline",
        'ends with backslash \\',
        '\\"\n\\\\',
    ],
)
def test_escaped_text_decodes_to_original(text: str) -> None:
    escaped = escape_string(text)

    assert unescape_string(escaped) == text
    assert json.loads(f'"{escaped}"') == text
