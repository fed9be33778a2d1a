"""Tagged syntax variants lowered from tree-sitter JavaScript nodes.

The analyzer only understands a handful of expression shapes. Instead of
poking at untyped tree-sitter fields by name throughout the extraction passes,
each interesting node is lowered once into one of the variants below and the
passes match on those types. Anything else becomes :class:`Opaque`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple, Union

from ..models import SourceLocation

_PASSTHROUGH_TYPES = {"parenthesized_expression"}
_MEMBER_PROPERTY_TYPES = {"property_identifier", "private_property_identifier", "identifier"}
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}
_LINE_TERMINATORS = ("\r\n", "\n", "\r", "\u2028", "\u2029")
_NUMBER_PREFIXES = {"0x": 16, "0o": 8, "0b": 2}
_LEGACY_OCTAL = re.compile(r"^0[0-7]+$")


@dataclass(frozen=True)
class Identifier:
    name: str
    location: SourceLocation


@dataclass(frozen=True)
class Literal:
    """String, number, boolean or null literal.

    ``value`` is the decoded Python value (``None`` for ``null``); ``raw`` is
    the literal exactly as written in the source.
    """

    kind: str
    value: Any
    raw: str
    location: SourceLocation


@dataclass(frozen=True)
class Member:
    object: "Expression"
    property: str
    location: SourceLocation


@dataclass(frozen=True)
class Call:
    callee: "Expression"
    arguments: Tuple["Expression", ...]
    location: SourceLocation


@dataclass(frozen=True)
class Opaque:
    kind: str
    location: SourceLocation


Expression = Union[Identifier, Literal, Member, Call, Opaque]


@dataclass(frozen=True)
class Declarator:
    """``name = value`` inside a ``const``/``let``/``var`` declaration."""

    name: Optional[str]
    value: Optional[Expression]
    location: SourceLocation


def location_of(node) -> SourceLocation:  # type: ignore[no-untyped-def]
    row, column = node.start_point[0], node.start_point[1]
    return SourceLocation(line=row + 1, column=column)


def node_text(node, source_bytes: bytes) -> str:  # type: ignore[no-untyped-def]
    return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def walk(root) -> Iterator:  # type: ignore[no-untyped-def]
    """Yield every node below ``root`` (inclusive) children-first, in source order."""
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            yield node
            continue
        stack.append((node, True))
        for child in reversed(node.children):
            stack.append((child, False))


def lower(node, source_bytes: bytes) -> Expression:  # type: ignore[no-untyped-def]
    """Lower a tree-sitter expression node into a tagged variant."""
    while node.type in _PASSTHROUGH_TYPES:
        inner = [child for child in node.named_children if child.type != "comment"]
        if len(inner) != 1:
            break
        node = inner[0]

    location = location_of(node)
    kind = node.type
    if kind == "identifier":
        return Identifier(name=node_text(node, source_bytes), location=location)
    if kind == "string":
        raw = node_text(node, source_bytes)
        return Literal(kind="string", value=_string_value(node, source_bytes), raw=raw, location=location)
    if kind == "number":
        raw = node_text(node, source_bytes)
        return Literal(kind="number", value=number_value(raw), raw=raw, location=location)
    if kind in {"true", "false"}:
        return Literal(kind="boolean", value=kind == "true", raw=kind, location=location)
    if kind == "null":
        return Literal(kind="null", value=None, raw="null", location=location)
    if kind == "member_expression":
        obj = node.child_by_field_name("object")
        prop = node.child_by_field_name("property")
        if obj is None or prop is None or prop.type not in _MEMBER_PROPERTY_TYPES:
            return Opaque(kind=kind, location=location)
        return Member(
            object=lower(obj, source_bytes),
            property=node_text(prop, source_bytes),
            location=location,
        )
    if kind == "call_expression":
        function = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        if function is None or arguments is None or arguments.type != "arguments":
            # Tagged templates (fn`...`) carry a template_string instead of arguments.
            return Opaque(kind=kind, location=location)
        lowered_args = tuple(
            lower(child, source_bytes)
            for child in arguments.named_children
            if child.type != "comment"
        )
        return Call(callee=lower(function, source_bytes), arguments=lowered_args, location=location)
    return Opaque(kind=kind, location=location)


def lower_declarator(node, source_bytes: bytes) -> Declarator:  # type: ignore[no-untyped-def]
    name_node = node.child_by_field_name("name")
    value_node = node.child_by_field_name("value")
    name = None
    if name_node is not None and name_node.type == "identifier":
        name = node_text(name_node, source_bytes)
    value = lower(value_node, source_bytes) if value_node is not None else None
    return Declarator(name=name, value=value, location=location_of(node))


def function_name(node, source_bytes: bytes) -> Optional[str]:  # type: ignore[no-untyped-def]
    name_node = node.child_by_field_name("name")
    if name_node is None:
        return None
    return node_text(name_node, source_bytes)


def number_value(raw: str) -> Optional[float | int]:
    """Return the numeric value of a JavaScript number literal.

    BigInt literals (``10n``) are not numbers and yield ``None``.
    """
    text = raw.replace("_", "")
    if text.endswith("n"):
        return None
    lowered = text.lower()
    base = _NUMBER_PREFIXES.get(lowered[:2])
    try:
        if base is not None:
            return int(lowered[2:], base)
        if _LEGACY_OCTAL.match(text):
            return int(text, 8)
        if text.isdigit():
            return int(text)
        value = float(text)
    except ValueError:
        return None
    if value.is_integer():
        return int(value)
    return value


def _string_value(node, source_bytes: bytes) -> str:  # type: ignore[no-untyped-def]
    parts = []
    for child in node.children:
        if child.type == "string_fragment":
            parts.append(node_text(child, source_bytes))
        elif child.type == "escape_sequence":
            parts.append(_decode_escape(node_text(child, source_bytes)))
    return "".join(parts)


def _decode_escape(sequence: str) -> str:
    body = sequence[1:]
    if body in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[body]
    if body.startswith("u{") and body.endswith("}"):
        return chr(int(body[2:-1], 16))
    if body.startswith(("u", "x")) and len(body) > 1:
        try:
            return chr(int(body[1:], 16))
        except ValueError:
            return body
    if body in _LINE_TERMINATORS:
        return ""
    return body


__all__ = [
    "Call",
    "Declarator",
    "Expression",
    "Identifier",
    "Literal",
    "Member",
    "Opaque",
    "function_name",
    "location_of",
    "lower",
    "lower_declarator",
    "node_text",
    "number_value",
    "walk",
]
