"""Assembly of the final contract source from a sketch and its analysis."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

from ..analyzers import analyze_sketch
from ..models import AnalysisResult
from .chunks import DEFAULT_CHUNK_SIZE, segment_source
from .generator import ContractGenerator
from .template import load_base_template, render_template

DEFAULT_CONTRACT_NAME = "NFTCollection"

Segmenter = Callable[[str, int], List[str]]


def build_fragments(
    analysis: AnalysisResult,
    chunks: Sequence[str],
    *,
    contract_name: str = DEFAULT_CONTRACT_NAME,
    generator: ContractGenerator | None = None,
) -> Dict[str, str]:
    """Return the text for every template placeholder."""
    generator = generator or ContractGenerator()
    collections = analysis.collections
    mint = generator.generate_mint_function(collections)
    return {
        "CONTRACT_NAME": contract_name,
        "COLLECTION_CONTRACTS": generator.generate_collection_addresses(collections),
        "COLLECTION_CODE": generator.generate_collection_indexes(collections),
        "CHUNKS": generator.generate_chunk_storage(chunks),
        "COLLECTION_TRAITS": generator.generate_trait_registration(analysis.data),
        "MINT_PARAMETERS": mint.parameters,
        "MINT_ARGUMENTS": mint.arguments,
        "ID_MAPPING": mint.token_mapping,
        "REQUIRED_MINT_CODE": mint.ownership_checks,
        "METADATA_EXP": mint.metadata_extraction,
        "TRAIT_JS": generator.generate_trait_js_fields(collections),
        "TRAIT_BASE64": generator.generate_trait_js_concat(collections),
        "P5_LS": generator.generate_chunk_list(chunks),
        "ATTRIBUTES": generator.generate_metadata_attributes(analysis.data),
        "CEMENT_METADATA_CODE": generator.generate_metadata_cementing(),
    }


def assemble_contract(
    analysis: AnalysisResult,
    chunks: Sequence[str],
    template: str,
    *,
    contract_name: str = DEFAULT_CONTRACT_NAME,
    generator: ContractGenerator | None = None,
) -> str:
    fragments = build_fragments(
        analysis, chunks, contract_name=contract_name, generator=generator
    )
    return render_template(template, fragments)


def generate_contract(
    source: str,
    template: Optional[str] = None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    segmenter: Segmenter = segment_source,
    contract_name: str = DEFAULT_CONTRACT_NAME,
    analysis: AnalysisResult | None = None,
    generator: ContractGenerator | None = None,
) -> str:
    """Analyze ``source`` (unless an analysis is given) and render the full contract."""
    if analysis is None:
        analysis = analyze_sketch(source)
    chunks = segmenter(source, chunk_size)
    base = template if template is not None else load_base_template()
    return assemble_contract(
        analysis, chunks, base, contract_name=contract_name, generator=generator
    )


__all__ = [
    "DEFAULT_CONTRACT_NAME",
    "assemble_contract",
    "build_fragments",
    "generate_contract",
]
