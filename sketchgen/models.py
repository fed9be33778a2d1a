"""Core data models shared across sketchgen components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

TraitType = Literal["asInt", "asString", "asFloat"]
MetadataSourceType = Literal["forma", "erc721", "opensea", "unknown"]
Severity = Literal["warning", "error"]

TRAIT_TYPES: Tuple[str, ...] = ("asInt", "asString", "asFloat")


@dataclass(frozen=True)
class SourceLocation:
    """Line (1-based) and column (0-based) of a construct in sketch source."""

    line: int
    column: int

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "column": self.column}


@dataclass(frozen=True)
class Collection:
    """A named reference, declared in the sketch, to an external token contract."""

    name: str
    address: Optional[str]
    source_location: Optional[SourceLocation] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "sourceLocation": _location_dict(self.source_location),
        }


@dataclass(frozen=True)
class Trait:
    """A typed metadata field read from a collection's token."""

    collection: str
    key: Optional[str]
    type: TraitType
    source_location: Optional[SourceLocation] = None

    @property
    def identity(self) -> Tuple[str, Optional[str], str]:
        return (self.collection, self.key, self.type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "key": self.key,
            "type": self.type,
            "sourceLocation": _location_dict(self.source_location),
        }


@dataclass(frozen=True)
class TokenIndex:
    """Sketch-time binding of a token id to a collection."""

    collection: str
    token_id: int

    def to_dict(self) -> Dict[str, Any]:
        return {"collection": self.collection, "tokenId": self.token_id}


@dataclass(frozen=True)
class TraitData:
    """Traits and token ids grouped under one collection name."""

    collection: str
    address: Optional[str] = None
    traits: Tuple[Trait, ...] = ()
    token_indexes: Tuple[int, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "address": self.address,
            "traits": [trait.to_dict() for trait in self.traits],
            "tokenIndexes": list(self.token_indexes),
        }


@dataclass(frozen=True)
class AnalysisIssue:
    """Advisory (warning) or fatal (error) finding produced during analysis."""

    severity: Severity
    message: str
    location: Optional[SourceLocation] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"severity": self.severity, "message": self.message}
        if self.location is not None:
            payload["location"] = self.location.to_dict()
        return payload


@dataclass(frozen=True)
class AnalysisResult:
    """Semantic model of a sketch: collections, traits, token bindings and issues."""

    collections: Tuple[Collection, ...] = ()
    traits: Tuple[Trait, ...] = ()
    data: Tuple[TraitData, ...] = ()
    issues: Tuple[AnalysisIssue, ...] = ()
    token_indexes: Tuple[TokenIndex, ...] = ()

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def warnings(self) -> List[AnalysisIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collections": [collection.to_dict() for collection in self.collections],
            "traits": [trait.to_dict() for trait in self.traits],
            "data": [entry.to_dict() for entry in self.data],
            "issues": [issue.to_dict() for issue in self.issues],
            "tokenIndexes": [index.to_dict() for index in self.token_indexes],
        }


@dataclass(frozen=True)
class MetadataResult:
    """Outcome of one metadata retrieval against a collection contract."""

    metadata: Any
    source_type: MetadataSourceType
    source: Optional[str] = None
    success: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class TraitValue:
    """Trait value as found in metadata alongside its type-coerced form."""

    original: Any
    formatted: Any
    trait_type: TraitType

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original": self.original,
            "formatted": self.formatted,
            "traitType": self.trait_type,
        }


@dataclass(frozen=True)
class CollectionCodeResult:
    """Preview code and resolved trait values for a single collection."""

    collection_name: str
    address: Optional[str]
    code: str
    metadata_source: MetadataSourceType
    trait_values: Mapping[str, TraitValue] = field(default_factory=dict)
    metadata: Any = None
    token_id: int = 1
    success: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collectionName": self.collection_name,
            "address": self.address,
            "code": self.code,
            "metadataSource": self.metadata_source,
            "traitValues": {key: value.to_dict() for key, value in self.trait_values.items()},
            "metadata": self.metadata,
            "tokenId": self.token_id,
            "success": self.success,
            "error": self.error,
        }


@dataclass(frozen=True)
class CollectionsCodeResult:
    """Aggregated preview code for every collection of a sketch."""

    collections: Tuple[CollectionCodeResult, ...] = ()
    combined_code: str = ""
    success_count: int = 0
    failure_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collections": [result.to_dict() for result in self.collections],
            "combinedCode": self.combined_code,
            "successCount": self.success_count,
            "failureCount": self.failure_count,
        }


def _location_dict(location: Optional[SourceLocation]) -> Optional[Dict[str, int]]:
    return location.to_dict() if location is not None else None
