"""End-to-end contract assembly tests."""

from __future__ import annotations

import pytest

from sketchgen.analyzers import analyze_sketch
from sketchgen.codegen import (
    PLACEHOLDERS,
    TemplateError,
    build_fragments,
    escape_string,
    generate_contract,
    segment_source,
)
from sketchgen.codegen.template import find_placeholders


def test_addressed_sketch_contract(sketch_a: str) -> None:
    contract = generate_contract(sketch_a)

    assert "contract NFTCollection is ERC721, Ownable {" in contract
    assert "address private constant A = 0xAA;" in contract
    assert "function _mintWithTokens(uint256 tokenId_A) internal" in contract
    assert "uint256 tokenId_A = _tokenIds[A_INDEX];" in contract
    assert '_traitRegistry[A_INDEX].push(TraitRegistry("asString", "Color"));' in contract
    assert find_placeholders(contract) == []


def test_unaddressed_sketch_omits_address_fragments(sketch_b: str) -> None:
    contract = generate_contract(sketch_b)

    assert "tokenId_A" not in contract
    assert "A_jsField" not in contract
    assert "function _mintWithTokens() internal" in contract
    assert '_traitRegistry[A_INDEX].push(TraitRegistry("asString", "Color"));' in contract
    assert "uint256 private constant CHUNK_COUNT = 1;" in contract


def test_unaddressed_sketch_references_undeclared_identifiers(sketch_b: str) -> None:
    contract = generate_contract(sketch_b)

    assert "uint256 private constant A_INDEX" not in contract
    assert "string memory metadata_A" not in contract
    assert '.setTokenAttribute("a_metadata", metadata_A)' in contract


def test_source_is_embedded_in_chunks(sketch_a: str) -> None:
    contract = generate_contract(sketch_a, chunk_size=40, contract_name="Sketch")

    chunks = segment_source(sketch_a, 40)
    assert "".join(chunks) == sketch_a
    assert "contract Sketch is ERC721" in contract
    for index, chunk in enumerate(chunks):
        assert f'string private constant CHUNK_{index} = "{escape_string(chunk)}";' in contract
    assert f"uint256 private constant CHUNK_COUNT = {len(chunks)};" in contract
    assert "string.concat(" + ", ".join(f"CHUNK_{i}" for i in range(len(chunks))) + ")" in contract


def test_custom_segmenter_and_template(sketch_a: str) -> None:
    template = "\n".join(f"%{name}%" for name in PLACEHOLDERS)

    contract = generate_contract(
        sketch_a,
        template,
        segmenter=lambda text, size: [text],
        contract_name="Custom",
    )

    lines = contract.split("\n")
    assert lines[0] == "Custom"
    assert "uint256 private constant CHUNK_COUNT = 1;" in contract


def test_fragments_cover_every_placeholder(sketch_a: str) -> None:
    fragments = build_fragments(analyze_sketch(sketch_a), ["x"])

    assert sorted(fragments) == sorted(PLACEHOLDERS)


def test_template_missing_placeholder_fails_loudly(sketch_a: str) -> None:
    with pytest.raises(TemplateError):
        generate_contract(sketch_a, "contract %CONTRACT_NAME% {}")


def test_zero_chunk_size_is_rejected(sketch_a: str) -> None:
    with pytest.raises(ValueError):
        generate_contract(sketch_a, chunk_size=0)
