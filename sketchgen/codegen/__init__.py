"""Contract source generation from analyzed sketches."""

from .chunks import DEFAULT_CHUNK_SIZE, segment_source
from .finalize import DEFAULT_CONTRACT_NAME, assemble_contract, build_fragments, generate_contract
from .generator import ContractGenerator, MintFunctionCode
from .naming import escape_string, format_name, unescape_string
from .template import PLACEHOLDERS, TemplateError, load_base_template, render_template

__all__ = [
    "ContractGenerator",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_CONTRACT_NAME",
    "MintFunctionCode",
    "PLACEHOLDERS",
    "TemplateError",
    "assemble_contract",
    "build_fragments",
    "escape_string",
    "format_name",
    "generate_contract",
    "load_base_template",
    "render_template",
    "segment_source",
    "unescape_string",
]
