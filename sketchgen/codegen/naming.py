"""Identifier derivation and string-literal escaping shared by all generators."""

from __future__ import annotations

import re

_WHITESPACE_RUN = re.compile(r"\s+")


def format_name(name: str) -> str:
    """Derive the identifier suffix used for a collection (``tokenId_<Name>``).

    Trims, lowercases, collapses whitespace runs into ``_`` and uppercases the
    first character only, so ``" Cool  Cats "`` becomes ``"Cool_cats"``.
    """
    normalised = _WHITESPACE_RUN.sub("_", name.strip().lower())
    return normalised[:1].upper() + normalised[1:]


def escape_string(text: str) -> str:
    """Escape text for embedding between double quotes.

    Backslashes must be escaped before quotes and newlines, otherwise the
    backslashes introduced for those would be escaped a second time.
    """
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def unescape_string(text: str) -> str:
    """Inverse of :func:`escape_string`."""
    result = []
    index = 0
    while index < len(text):
        char = text[index]
        if char == "\\" and index + 1 < len(text):
            following = text[index + 1]
            result.append("\n" if following == "n" else following)
            index += 2
            continue
        result.append(char)
        index += 1
    return "".join(result)


__all__ = ["escape_string", "format_name", "unescape_string"]
