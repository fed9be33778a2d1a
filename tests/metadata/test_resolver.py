"""Tests for metadata resolution and preview code rendering."""

from __future__ import annotations

import base64
import json
from http.client import IncompleteRead

import pytest

from sketchgen.metadata import MetadataResolver, RpcError
from sketchgen.metadata.resolver import (
    coerce_trait_value,
    extract_trait_values,
    js_string,
    parse_base64_metadata,
    render_collection_code,
)
from sketchgen.models import Trait, TraitData, TraitValue

METADATA = {
    "name": "Mammoth #3",
    "attributes": [
        {"trait_type": "Color", "value": "Red"},
        {"trait_type": "Size", "value": "12px"},
        {"trait_type": "Weight", "value": 2.5},
    ],
}


def _collection(address: str | None = "0x" + "aa" * 20, token_indexes=()) -> TraitData:
    return TraitData(
        collection="A",
        address=address,
        traits=(
            Trait(collection="A", key="Color", type="asString"),
            Trait(collection="A", key="Size", type="asInt"),
            Trait(collection="A", key="Weight", type="asFloat"),
        ),
        token_indexes=tuple(token_indexes),
    )


def test_inline_json_metadata_is_forma(make_resolver, fake_contract) -> None:
    contract = fake_contract(token_metadata=json.dumps(METADATA))
    resolver = make_resolver(contract)

    result = resolver.resolve(_collection(token_indexes=(3, 9)))

    assert result.success is True
    assert result.error is None
    assert result.metadata_source == "forma"
    assert result.token_id == 3
    assert contract.calls == [("get_token_metadata", 3)]
    assert result.trait_values["Color"] == TraitValue(original="Red", formatted="Red", trait_type="asString")
    assert result.trait_values["Size"].formatted == 12
    assert result.trait_values["Weight"].formatted == 2.5
    assert 'return "Red";' in result.code
    assert "return 12;" in result.code


def test_inline_base64_metadata_is_forma(make_resolver, fake_contract, data_uri) -> None:
    resolver = make_resolver()

    outcome = resolver.fetch_token_metadata(fake_contract(token_metadata=data_uri(METADATA)), 1)

    assert outcome.success is True
    assert outcome.source_type == "forma"
    assert outcome.source == "getTokenMetadata (base64)"
    assert outcome.metadata == METADATA


def test_falls_back_to_token_uri(make_resolver, fake_contract, data_uri) -> None:
    contract = fake_contract(token_uri=data_uri(METADATA))
    resolver = make_resolver(contract)

    result = resolver.resolve(_collection())

    assert result.metadata_source == "erc721"
    assert result.token_id == MetadataResolver.DEFAULT_TOKEN_ID
    assert [name for name, _ in contract.calls] == ["get_token_metadata", "token_uri"]


def test_unusable_inline_metadata_falls_back(make_resolver, fake_contract) -> None:
    contract = fake_contract(token_metadata="not metadata", token_uri="https://meta.example/1")
    resolver = make_resolver(contract, fetched={"https://meta.example/1": METADATA})

    result = resolver.resolve(_collection())

    assert result.success is True
    assert result.metadata_source == "erc721"


def test_falls_back_to_uri_through_ipfs_gateway(make_resolver, fake_contract) -> None:
    contract = fake_contract(uri="ipfs://QmHash/1")
    resolver = make_resolver(contract, fetched={"https://ipfs.io/ipfs/QmHash/1": METADATA})

    result = resolver.resolve(_collection())

    assert result.success is True
    assert result.metadata_source == "opensea"
    assert result.metadata == METADATA


def test_all_methods_failing_yields_failed_result(make_resolver, fake_contract) -> None:
    contract = fake_contract(token_uri="ftp://nowhere/1", uri="https://meta.example/missing")
    resolver = make_resolver(contract)

    result = resolver.resolve(_collection())

    assert result.success is False
    assert result.error == "Failed to retrieve metadata using all available methods"
    assert result.metadata_source == "unknown"
    assert result.trait_values == {}
    assert 'return "";' in result.code
    assert "return 0;" in result.code


def test_collection_without_address_skips_lookup(make_resolver, fake_contract) -> None:
    contract = fake_contract()
    resolver = make_resolver(contract)

    result = resolver.resolve(_collection(address=None))

    assert result.success is False
    assert result.error == "Collection has no address"
    assert result.address is None
    assert contract.calls == []
    assert result.code.startswith("const A = {")


def test_contract_construction_failure_is_contained() -> None:
    def broken_factory(_address: str):
        raise RpcError("node offline")

    resolver = MetadataResolver(contract_factory=broken_factory)

    result = resolver.resolve(_collection())

    assert result.success is False
    assert result.error == "Error generating collection code: node offline"


def test_resolve_all_aggregates_in_order(make_resolver, fake_contract) -> None:
    resolver = make_resolver(fake_contract(token_metadata=json.dumps(METADATA)))
    unaddressed = TraitData(collection="B", address=None)

    batch = resolver.resolve_all([_collection(), unaddressed])

    assert [result.collection_name for result in batch.collections] == ["A", "B"]
    assert batch.success_count == 1
    assert batch.failure_count == 1
    assert batch.combined_code == batch.collections[0].code + "\n" + batch.collections[1].code
    assert batch.to_dict()["failureCount"] == 1


def test_fetch_metadata_from_unsupported_uri_returns_none(make_resolver) -> None:
    resolver = make_resolver()

    assert resolver.fetch_metadata_from_uri("ftp://example/1") is None
    assert resolver.fetch_metadata_from_uri("data:application/json;base64,!!!") is None


def test_http_fetch_uses_urlopen(monkeypatch) -> None:
    captured = {}

    class FakeResponse:
        def read(self) -> bytes:
            return json.dumps(METADATA).encode("utf-8")

        def __enter__(self):
            return self

        def __exit__(self, *_exc) -> None:
            return None

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["timeout"] = timeout
        return FakeResponse()

    monkeypatch.setattr("sketchgen.metadata.resolver.urlopen", fake_urlopen)
    resolver = MetadataResolver(ipfs_gateway="https://gateway.example/ipfs/", request_timeout=3)

    assert resolver.fetch_metadata_from_uri("ipfs://QmHash") == METADATA
    assert captured == {"url": "https://gateway.example/ipfs/QmHash", "timeout": 3}


def test_parse_base64_metadata() -> None:
    encoded = base64.b64encode(b'{"a": 1}').decode("ascii")

    assert parse_base64_metadata(f"data:application/json;base64,{encoded}") == {"a": 1}
    assert parse_base64_metadata(f"data:text/plain;base64,{encoded}") == {"a": 1}
    assert parse_base64_metadata("not a data uri") is None
    assert parse_base64_metadata("data:application/json;base64,bm90IGpzb24=") is None


def test_extract_trait_values_layouts() -> None:
    assert extract_trait_values(METADATA) == {"Color": "Red", "Size": "12px", "Weight": 2.5}
    assert extract_trait_values({"traits": [{"name": "Eyes", "value": "Blue"}]}) == {"Eyes": "Blue"}
    assert extract_trait_values({"attributes": {"Mood": "Calm"}}) == {"Mood": "Calm"}
    assert extract_trait_values({"name": "x", "image": "y", "Hat": "Cap"}) == {"Hat": "Cap"}
    assert extract_trait_values(["not", "a", "mapping"]) == {}


@pytest.mark.parametrize(
    ("value", "trait_type", "expected"),
    [
        ("abc", "asInt", 0),
        ("abc", "asFloat", 0.0),
        ("3.7", "asInt", 3),
        ("  -12px", "asInt", -12),
        ("2.5kg", "asFloat", 2.5),
        (".5", "asFloat", 0.5),
        (None, "asInt", 0),
        (True, "asFloat", 0.0),
        (7, "asString", "7"),
        (1.0, "asString", "1"),
        (None, "asString", "null"),
        (False, "asString", "false"),
        ([1, None, "x"], "asString", "1,,x"),
        ({"nested": True}, "asString", "[object Object]"),
        ("0x1A", "asInt", 26),
        (" -0x10", "asInt", -16),
        ("0xg", "asInt", 0),
        ("0x1A", "asFloat", 0.0),
    ],
)
def test_coerce_trait_value(value, trait_type: str, expected) -> None:
    assert coerce_trait_value(value, trait_type) == expected


def test_js_string_special_floats() -> None:
    assert js_string(float("nan")) == "NaN"
    assert js_string(float("-inf")) == "-Infinity"
    assert js_string(0.25) == "0.25"
    assert js_string(1e-7) == "1e-7"
    assert js_string(-2.5e-8) == "-2.5e-8"
    assert js_string(0.00001) == "0.00001"
    assert js_string(1.5e-6) == "0.0000015"
    assert js_string(1.5e22) == "1.5e+22"


def test_render_collection_code_escapes_strings() -> None:
    traits = (Trait(collection="A", key='Say "hi"', type="asString"),)
    values = {'Say "hi"': TraitValue(original='a\\b\n"c"', formatted='a\\b\n"c"', trait_type="asString")}

    code = render_collection_code("A", traits, values, "forma")

    assert code.startswith("const A = {\n  // Metadata source: forma\n")
    assert '"Say \\"hi\\"": {' in code
    assert 'return "a\\\\b\\n\\"c\\"";' in code
    assert code.endswith("};\n")


def test_truncated_http_body_is_a_failed_result(monkeypatch, fake_contract) -> None:
    class TruncatedResponse:
        def read(self) -> bytes:
            raise IncompleteRead(b'{"attr')

        def __enter__(self):
            return self

        def __exit__(self, *_exc) -> None:
            return None

    monkeypatch.setattr("sketchgen.metadata.resolver.urlopen", lambda request, timeout=None: TruncatedResponse())
    contract = fake_contract(token_uri="https://meta.example/1")
    resolver = MetadataResolver(contract_factory=lambda _address: contract)

    batch = resolver.resolve_all([TraitData(collection="A", address="0xAA")])

    assert batch.failure_count == 1
    assert batch.collections[0].error == "Failed to retrieve metadata using all available methods"
