"""Base contract template loading and placeholder substitution."""

from __future__ import annotations

import re
from importlib import resources
from pathlib import Path
from typing import Dict, List, Mapping, Tuple

PLACEHOLDERS: Tuple[str, ...] = (
    "CONTRACT_NAME",
    "COLLECTION_CONTRACTS",
    "COLLECTION_CODE",
    "CHUNKS",
    "COLLECTION_TRAITS",
    "MINT_PARAMETERS",
    "MINT_ARGUMENTS",
    "ID_MAPPING",
    "REQUIRED_MINT_CODE",
    "METADATA_EXP",
    "TRAIT_JS",
    "TRAIT_BASE64",
    "P5_LS",
    "ATTRIBUTES",
    "CEMENT_METADATA_CODE",
)

DEFAULT_TEMPLATE = "NFTCollection.sol"

_PLACEHOLDER_PATTERN = re.compile(r"%([A-Z][A-Z0-9_]*)%")


class TemplateError(RuntimeError):
    """Raised when a template and the generated fragments disagree on placeholders."""


def load_base_template(path: Path | None = None) -> str:
    """Read a template from ``path`` or the one bundled with the package."""
    if path is not None:
        return Path(path).read_text(encoding="utf-8")
    return (
        resources.files("sketchgen")
        .joinpath("templates", DEFAULT_TEMPLATE)
        .read_text(encoding="utf-8")
    )


def find_placeholders(template: str) -> List[str]:
    """Return placeholder names in the order they occur."""
    return [match.group(1) for match in _PLACEHOLDER_PATTERN.finditer(template)]


def validate_template(template: str) -> None:
    """Ensure every known placeholder occurs exactly once and nothing else does."""
    counts: Dict[str, int] = {}
    for name in find_placeholders(template):
        counts[name] = counts.get(name, 0) + 1

    unknown = sorted(name for name in counts if name not in PLACEHOLDERS)
    if unknown:
        raise TemplateError(f"Template contains unknown placeholders: {', '.join(unknown)}")
    duplicated = sorted(name for name, count in counts.items() if count > 1)
    if duplicated:
        raise TemplateError(f"Template repeats placeholders: {', '.join(duplicated)}")
    missing = [name for name in PLACEHOLDERS if name not in counts]
    if missing:
        raise TemplateError(f"Template is missing placeholders: {', '.join(missing)}")


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Substitute placeholder values in a single pass over ``template``.

    Substituted text is copied to the output verbatim and never rescanned, so a
    fragment that happens to contain ``%NAME%`` is left alone.
    """
    validate_template(template)
    absent = [name for name in PLACEHOLDERS if name not in values]
    if absent:
        raise TemplateError(f"No value supplied for placeholders: {', '.join(absent)}")

    output: List[str] = []
    position = 0
    for match in _PLACEHOLDER_PATTERN.finditer(template):
        output.append(template[position : match.start()])
        output.append(values[match.group(1)])
        position = match.end()
    output.append(template[position:])
    return "".join(output)


__all__ = [
    "DEFAULT_TEMPLATE",
    "PLACEHOLDERS",
    "TemplateError",
    "find_placeholders",
    "load_base_template",
    "render_template",
    "validate_template",
]
