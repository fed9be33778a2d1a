"""Solidity fragment generation for the collection contract template."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from ..models import Collection, TraitData
from .naming import escape_string, format_name


@dataclass(frozen=True)
class MintFunctionCode:
    """Fragments that make up the body and signature of the mint function."""

    parameters: str
    arguments: str
    token_mapping: str
    ownership_checks: str
    metadata_extraction: str


class ContractGenerator:
    """Renders the per-collection Solidity fragments substituted into the base template.

    Every method is pure: the same model always produces the same text.
    Fragments that reference a collection's address constant only include
    collections that declared an address.
    """

    COLLECTION_ADDRESS = "address private constant {collection} = {address};"
    COLLECTION_INDEX = "uint256 private constant {collection}_INDEX = {index};"
    CODE_CHUNK = 'string private constant CHUNK_{index} = "{data}";'
    CHUNK_COUNT = "uint256 private constant CHUNK_COUNT = {count};"
    METADATA_EXTRACTOR = "string memory {variable} = {collection}.getTokenMetadata({token_id});"
    TOKEN_ID_MAPPING = "uint256 {token_id} = _tokenIds[{collection}_INDEX];"
    FUNCTION_PARAMETER = "uint256 {token_id}"
    OWNERSHIP_CHECK = (
        "require(IERC721({collection}).ownerOf({token_id}) == _msgSender(), "
        '"Not the owner of required {display_name}");'
    )
    TRAIT_REGISTRATION = '_traitRegistry[{collection}_INDEX].push(TraitRegistry("{type}", "{key}"));'
    TRAIT_SIZE = "_traitRegistrySize[{collection}_INDEX] = {size};"
    TRAIT_JS_FIELD = (
        'string memory {collection}_jsField = generateCollectionTraitJS("{collection}", '
        "{collection}, {collection}_INDEX, {token_id});"
    )
    TRAIT_JS_CONCAT = "string memory allTraits = string(abi.encodePacked({fields}));"
    METADATA_ATTRIBUTE = '    .setTokenAttribute("{key}_metadata", {variable})'
    CANVAS_ATTRIBUTE = '    .setTokenAttribute("canvas", canvasBase64)'
    METADATA_CEMENTING = "_cementTokenMetadata(newTokenId);"

    def generate_chunk_storage(self, chunks: Sequence[str]) -> str:
        lines = [
            self.CODE_CHUNK.format(index=index, data=escape_string(chunk))
            for index, chunk in enumerate(chunks)
        ]
        return "\n".join(lines) + "\n\n" + self.CHUNK_COUNT.format(count=len(chunks))

    def generate_chunk_list(self, chunks: Sequence[str]) -> str:
        return ", ".join(f"CHUNK_{index}" for index in range(len(chunks)))

    def generate_collection_addresses(self, collections: Sequence[Collection]) -> str:
        return "\n".join(
            self.COLLECTION_ADDRESS.format(collection=collection.name, address=collection.address)
            for collection in _addressed(collections)
        )

    def generate_collection_indexes(self, collections: Sequence[Collection]) -> str:
        return "\n".join(
            self.COLLECTION_INDEX.format(collection=collection.name, index=index)
            for index, collection in enumerate(_addressed(collections))
        )

    def generate_trait_registration(self, trait_data: Sequence[TraitData]) -> str:
        """Register every trait, including those of collections without an address.

        Unaddressed collections have no ``<name>_INDEX`` constant, so their
        registration lines reference an undeclared identifier and the contract
        will not compile until the sketch gives them an address.
        """
        registrations: List[str] = []
        sizes: List[str] = []
        for data in trait_data:
            for trait in data.traits:
                registrations.append(
                    self.TRAIT_REGISTRATION.format(
                        collection=data.collection,
                        type=trait.type,
                        key=escape_string(trait.key or ""),
                    )
                )
            sizes.append(self.TRAIT_SIZE.format(collection=data.collection, size=len(data.traits)))
        return "\n".join(registrations + sizes)

    def generate_token_id_mapping(self, collections: Sequence[Collection]) -> str:
        return "\n".join(
            self.TOKEN_ID_MAPPING.format(token_id=_token_id_name(collection), collection=collection.name)
            for collection in _addressed(collections)
        )

    def generate_ownership_checks(self, collections: Sequence[Collection]) -> str:
        return "\n".join(
            self.OWNERSHIP_CHECK.format(
                collection=collection.name,
                token_id=_token_id_name(collection),
                display_name=format_name(collection.name),
            )
            for collection in _addressed(collections)
        )

    def generate_function_parameters(self, collections: Sequence[Collection]) -> str:
        return ", ".join(
            self.FUNCTION_PARAMETER.format(token_id=_token_id_name(collection))
            for collection in _addressed(collections)
        )

    def generate_function_arguments(self, collections: Sequence[Collection]) -> str:
        return ", ".join(_token_id_name(collection) for collection in _addressed(collections))

    def generate_metadata_extraction(self, collections: Sequence[Collection]) -> str:
        return "\n".join(
            self.METADATA_EXTRACTOR.format(
                variable=f"metadata_{format_name(collection.name)}",
                collection=collection.name,
                token_id=_token_id_name(collection),
            )
            for collection in _addressed(collections)
        )

    def generate_trait_js_fields(self, collections: Sequence[Collection]) -> str:
        return "\n".join(
            self.TRAIT_JS_FIELD.format(collection=collection.name, token_id=_token_id_name(collection))
            for collection in _addressed(collections)
        )

    def generate_trait_js_concat(self, collections: Sequence[Collection]) -> str:
        fields = ", ".join(f"{collection.name}_jsField" for collection in _addressed(collections))
        return self.TRAIT_JS_CONCAT.format(fields=fields)

    def generate_metadata_attributes(self, trait_data: Sequence[TraitData]) -> str:
        """Fold one ``<name>_metadata`` attribute per TraitData entry, then the canvas.

        Entries without an address still get an attribute line, but
        ``generate_metadata_extraction`` declares no ``metadata_<Name>`` variable
        for them, so such a contract does not compile as generated.
        """
        lines = ['string memory tokenMetadata = "{}";', "tokenMetadata = tokenMetadata"]
        for data in trait_data:
            lines.append(
                self.METADATA_ATTRIBUTE.format(
                    key=data.collection.lower(),
                    variable=f"metadata_{format_name(data.collection)}",
                )
            )
        lines.append(self.CANVAS_ATTRIBUTE + ";")
        return "\n".join(lines)

    def generate_metadata_cementing(self) -> str:
        return self.METADATA_CEMENTING

    def generate_mint_function(self, collections: Sequence[Collection]) -> MintFunctionCode:
        return MintFunctionCode(
            parameters=self.generate_function_parameters(collections),
            arguments=self.generate_function_arguments(collections),
            token_mapping=self.generate_token_id_mapping(collections),
            ownership_checks=self.generate_ownership_checks(collections),
            metadata_extraction=self.generate_metadata_extraction(collections),
        )


def _addressed(collections: Sequence[Collection]) -> List[Collection]:
    return [collection for collection in collections if collection.address]


def _token_id_name(collection: Collection) -> str:
    return f"tokenId_{format_name(collection.name)}"


__all__ = ["ContractGenerator", "MintFunctionCode"]
