"""Live trait metadata retrieval and preview code generation for collections."""

from __future__ import annotations

import base64
import binascii
import json
import math
import re
from http.client import HTTPException
from typing import Any, Callable, Dict, Mapping, Optional, Sequence
from urllib.request import Request, urlopen

from ..codegen.naming import escape_string
from ..logging import get_logger
from ..models import (
    CollectionCodeResult,
    CollectionsCodeResult,
    MetadataResult,
    Trait,
    TraitData,
    TraitValue,
)
from .rpc import CollectionContract, connect

_NON_TRAIT_FIELDS = frozenset({"name", "description", "image", "external_url", "animation_url"})
_BASE64_DATA_URI = re.compile(r"^data:[\w.+-]+/[\w.+-]+;base64,(.+)$", re.DOTALL)
_JSON_DATA_URI_PREFIX = "data:application/json;base64,"
_IPFS_PREFIX = "ipfs://"
_INT_PREFIX = re.compile(r"^\s*([+-]?)(?:0[xX]([0-9a-fA-F]+)|(\d+))")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_DEFAULT_VALUES: Dict[str, Any] = {"asString": "", "asInt": 0, "asFloat": 0.0}

# Failures a single retrieval attempt may raise: RpcError/MetadataError (RuntimeError),
# JSON/base64 decoding (ValueError), urllib transport errors (OSError) and
# truncated or malformed HTTP responses (HTTPException).
_ATTEMPT_ERRORS = (RuntimeError, ValueError, OSError, HTTPException)

logger = get_logger("metadata")


class MetadataError(RuntimeError):
    """Raised when a metadata URI cannot be resolved."""


class MetadataResolver:
    """Resolves live trait values for the collections referenced by a sketch."""

    DEFAULT_RPC_URL = "https://rpc.forma.art"
    DEFAULT_CHAIN_ID = 984122
    DEFAULT_IPFS_GATEWAY = "https://ipfs.io/ipfs"
    DEFAULT_TOKEN_ID = 1

    def __init__(
        self,
        rpc_url: str | None = None,
        chain_id: int | None = None,
        *,
        ipfs_gateway: str | None = None,
        request_timeout: Optional[float] = None,
        contract_factory: Callable[[str], CollectionContract] | None = None,
        fetcher: Callable[[str], Any] | None = None,
    ) -> None:
        self.rpc_url = rpc_url or self.DEFAULT_RPC_URL
        self.chain_id = chain_id if chain_id is not None else self.DEFAULT_CHAIN_ID
        self.web3 = connect(self.rpc_url, request_timeout=request_timeout)
        self.ipfs_gateway = (ipfs_gateway or self.DEFAULT_IPFS_GATEWAY).rstrip("/")
        self.request_timeout = request_timeout
        self._contract_factory = contract_factory or self._default_contract
        self._fetcher = fetcher or self._http_fetch

    def resolve_all(self, collections: Sequence[TraitData]) -> CollectionsCodeResult:
        """Resolve every collection in order, one at a time."""
        logger.debug(
            "Resolving %d collection(s) against %s (chain %d)", len(collections), self.rpc_url, self.chain_id
        )
        results = []
        success_count = 0
        failure_count = 0
        for collection in collections:
            result = self.resolve(collection)
            results.append(result)
            if result.success:
                success_count += 1
            else:
                failure_count += 1
        return CollectionsCodeResult(
            collections=tuple(results),
            combined_code="\n".join(result.code for result in results),
            success_count=success_count,
            failure_count=failure_count,
        )

    def resolve(self, collection: TraitData) -> CollectionCodeResult:
        """Fetch metadata for one collection and render its preview code."""
        token_id = collection.token_indexes[0] if collection.token_indexes else self.DEFAULT_TOKEN_ID
        trait_values: Dict[str, TraitValue] = {}
        raw_metadata: Any = None
        metadata_source = "unknown"
        error: Optional[str] = None

        if not collection.address:
            error = "Collection has no address"
            logger.warning("Skipping metadata for %s: no address", collection.collection)
        else:
            try:
                contract = self._contract_factory(collection.address)
                result = self.fetch_token_metadata(contract, token_id)
            except _ATTEMPT_ERRORS as exc:
                error = f"Error generating collection code: {exc}"
                logger.warning("%s: %s", collection.collection, error)
            else:
                if result.success and result.metadata is not None:
                    metadata_source = result.source_type
                    raw_metadata = result.metadata
                    trait_values = self._trait_values(collection.traits, result.metadata)
                    logger.info(
                        "Retrieved metadata for %s token %d using %s method",
                        collection.collection,
                        token_id,
                        result.source_type,
                    )
                else:
                    error = result.error or "Unknown error retrieving metadata"
                    logger.warning("Failed to retrieve metadata for %s: %s", collection.collection, error)

        code = render_collection_code(
            collection.collection, collection.traits, trait_values, metadata_source
        )
        return CollectionCodeResult(
            collection_name=collection.collection,
            address=collection.address or None,
            code=code,
            metadata_source=metadata_source,
            trait_values=trait_values,
            metadata=raw_metadata,
            token_id=token_id,
            success=error is None,
            error=error,
        )

    def fetch_token_metadata(self, contract: CollectionContract, token_id: int) -> MetadataResult:
        """Try getTokenMetadata, tokenURI and uri in that order; first success wins."""
        try:
            raw = contract.get_token_metadata(token_id)
            inline = self._parse_inline_metadata(raw)
        except _ATTEMPT_ERRORS as exc:
            logger.debug("getTokenMetadata failed, trying alternative methods: %s", exc)
        else:
            if inline is not None:
                metadata, source = inline
                return MetadataResult(metadata=metadata, source_type="forma", source=source, success=True)
            logger.debug("getTokenMetadata returned no usable metadata")

        for source_type, read in (("erc721", contract.token_uri), ("opensea", contract.uri)):
            try:
                uri = read(token_id)
            except _ATTEMPT_ERRORS as exc:
                logger.debug("%s lookup failed, trying next method: %s", source_type, exc)
                continue
            metadata = self.fetch_metadata_from_uri(uri)
            if metadata is not None:
                return MetadataResult(metadata=metadata, source_type=source_type, source=uri, success=True)

        return MetadataResult(
            metadata=None,
            source_type="unknown",
            success=False,
            error="Failed to retrieve metadata using all available methods",
        )

    def fetch_metadata_from_uri(self, uri: str) -> Any:
        """Resolve an ipfs://, http(s):// or base64 JSON data URI; ``None`` on failure."""
        target = uri
        if target.startswith(_IPFS_PREFIX):
            target = f"{self.ipfs_gateway}/{target[len(_IPFS_PREFIX):]}"
        try:
            if target.startswith(("http://", "https://")):
                return self._fetcher(target)
            if target.startswith(_JSON_DATA_URI_PREFIX):
                return parse_base64_metadata(target)
            raise MetadataError(f"Unsupported URI format: {uri}")
        except _ATTEMPT_ERRORS as exc:
            logger.debug("Error fetching metadata from URI %s: %s", uri, exc)
            return None

    def _parse_inline_metadata(self, raw: str) -> Optional[tuple[Any, str]]:
        if raw.startswith("{"):
            return json.loads(raw), "getTokenMetadata"
        if "base64" in raw:
            parsed = parse_base64_metadata(raw)
            if parsed is not None:
                return parsed, "getTokenMetadata (base64)"
        return None

    def _trait_values(self, traits: Sequence[Trait], metadata: Any) -> Dict[str, TraitValue]:
        extracted = extract_trait_values(metadata)
        values: Dict[str, TraitValue] = {}
        for trait in traits:
            key = trait.key or ""
            if key in extracted:
                formatted = coerce_trait_value(extracted[key], trait.type)
            else:
                formatted = default_trait_value(trait.type)
            values[key] = TraitValue(original=extracted.get(key), formatted=formatted, trait_type=trait.type)
        return values

    def _default_contract(self, address: str) -> CollectionContract:
        return CollectionContract(self.web3, address)

    def _http_fetch(self, url: str) -> Any:
        request = Request(url, headers={"Accept": "application/json", "User-Agent": "sketchgen"})
        if self.request_timeout is None:
            response_ctx = urlopen(request)
        else:
            response_ctx = urlopen(request, timeout=self.request_timeout)
        with response_ctx as response:  # type: ignore[arg-type]
            raw = response.read()
        return json.loads(raw.decode("utf-8"))


def parse_base64_metadata(data: str) -> Any:
    """Decode a ``data:<type>/<subtype>;base64,<payload>`` JSON document; ``None`` on failure."""
    match = _BASE64_DATA_URI.match(data)
    if not match:
        return None
    try:
        decoded = base64.b64decode(match.group(1)).decode("utf-8")
        return json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.debug("Error parsing base64 metadata: %s", exc)
        return None


def extract_trait_values(metadata: Any) -> Dict[str, Any]:
    """Flatten the common metadata layouts into a ``trait name -> value`` mapping."""
    values: Dict[str, Any] = {}
    if not isinstance(metadata, dict):
        return values

    attributes = _first_truthy(metadata.get("attributes"), metadata.get("traits"))
    if isinstance(attributes, list):
        for attribute in attributes:
            if not isinstance(attribute, dict):
                continue
            trait_type = attribute.get("trait_type") or attribute.get("name")
            if trait_type and "value" in attribute:
                values[str(trait_type)] = attribute["value"]
    elif isinstance(attributes, dict):
        for key, value in attributes.items():
            values[str(key)] = value

    if not values:
        for key, value in metadata.items():
            if key not in _NON_TRAIT_FIELDS:
                values[key] = value
    return values


def default_trait_value(trait_type: str) -> Any:
    return _DEFAULT_VALUES.get(trait_type, "")


def coerce_trait_value(value: Any, trait_type: str) -> Any:
    """Convert a metadata value the way the sketch runtime reads it."""
    if trait_type == "asString":
        return js_string(value)
    if trait_type == "asInt":
        match = _INT_PREFIX.match(js_string(value))
        if not match:
            return 0
        sign, hex_digits, digits = match.groups()
        parsed = int(hex_digits, 16) if hex_digits else int(digits)
        return -parsed if sign == "-" else parsed
    if trait_type == "asFloat":
        match = _FLOAT_PREFIX.match(js_string(value))
        if not match:
            return 0.0
        parsed = float(match.group(1))
        return parsed if parsed and not math.isnan(parsed) else 0.0
    return value


def js_string(value: Any) -> str:
    """String conversion with JavaScript ``String(value)`` semantics."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return _js_float(value)
    if isinstance(value, list):
        return ",".join("" if item is None else js_string(item) for item in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def _js_float(value: float) -> str:
    # Number#toString switches to exponent form below 1e-6, repr below 1e-4.
    text = repr(value)
    if "e" not in text:
        return text
    mantissa, exponent = text.split("e")
    power = int(exponent)
    if -7 < power < 0:
        sign = "-" if mantissa.startswith("-") else ""
        digits = mantissa.lstrip("-").replace(".", "")
        return f"{sign}0.{'0' * (-power - 1)}{digits}"
    return f"{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"


def render_collection_code(
    collection_name: str,
    traits: Sequence[Trait],
    trait_values: Mapping[str, TraitValue],
    metadata_source: str,
) -> str:
    """Render the JavaScript object that stands in for a collection in previews."""
    lines = [f"const {collection_name} = {{", f"  // Metadata source: {metadata_source}", "  traits: {"]
    for trait in traits:
        key = trait.key or ""
        resolved = trait_values.get(key)
        value = resolved.formatted if resolved is not None else default_trait_value(trait.type)
        lines.extend(
            [
                f'    "{escape_string(key)}": {{',
                f"      {trait.type}() {{",
                f"        return {_js_literal(value, trait.type)};",
                "      }",
                "    },",
            ]
        )
    lines.extend(
        [
            "  },",
            "  metadata(key) {",
            "    return this.traits[key];",
            "  },",
            "  useToken(tokenId) {",
            "    console.log('Using token', tokenId);",
            "    return this;",
            "  }",
            "};",
        ]
    )
    return "\n".join(lines) + "\n"


def _js_literal(value: Any, trait_type: str) -> str:
    if trait_type == "asString":
        return f'"{escape_string(js_string(value))}"'
    return js_string(value)


def _first_truthy(*candidates: Any) -> Any:
    for candidate in candidates:
        # Empty containers are present values.
        if isinstance(candidate, (list, dict)) or candidate:
            return candidate
    return None


__all__ = [
    "MetadataError",
    "MetadataResolver",
    "coerce_trait_value",
    "default_trait_value",
    "extract_trait_values",
    "js_string",
    "parse_base64_metadata",
    "render_collection_code",
]
