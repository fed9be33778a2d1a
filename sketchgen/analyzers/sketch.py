"""Tree-sitter powered semantic analyzer for sketch source."""

from __future__ import annotations

from typing import Dict, List, Optional, Set, Tuple

import tree_sitter_javascript
from tree_sitter import Language, Parser

from ..logging import get_logger
from ..models import (
    TRAIT_TYPES,
    AnalysisIssue,
    AnalysisResult,
    Collection,
    SourceLocation,
    TokenIndex,
    Trait,
    TraitData,
)
from .nodes import (
    Call,
    Expression,
    Identifier,
    Literal,
    Member,
    Opaque,
    function_name,
    location_of,
    lower,
    lower_declarator,
    walk,
)

COLLECTION_CONSTRUCTOR = "FormaCollection"
METADATA_ACCESSOR = "metadata"
USE_TOKEN = "useToken"
SETUP_FUNCTION = "setup"

_JS_LANGUAGE = Language(tree_sitter_javascript.language())
_FUNCTION_DECLARATIONS = {"function_declaration", "generator_function_declaration"}

logger = get_logger("analyzer")


class AnalysisBuilder:
    """Accumulates findings for one analysis run.

    A builder is created per :meth:`SketchAnalyzer.analyze` call and consumed
    exactly once by :meth:`build`.
    """

    def __init__(self) -> None:
        self._collections: List[Collection] = []
        self._collection_names: Set[str] = set()
        self._traits: List[Trait] = []
        self._trait_keys: Set[Tuple[str, Optional[str], str]] = set()
        self._token_indexes: List[TokenIndex] = []
        self._issues: List[AnalysisIssue] = []
        self._consumed = False

    def has_collection(self, name: str) -> bool:
        return name in self._collection_names

    def add_collection(self, collection: Collection) -> bool:
        if collection.name in self._collection_names:
            return False
        self._collections.append(collection)
        self._collection_names.add(collection.name)
        return True

    def add_trait(self, trait: Trait) -> bool:
        if trait.identity in self._trait_keys:
            return False
        self._traits.append(trait)
        self._trait_keys.add(trait.identity)
        return True

    def add_token_index(self, token_index: TokenIndex) -> None:
        self._token_indexes.append(token_index)

    def warn(self, message: str, location: Optional[SourceLocation] = None) -> None:
        self._issues.append(AnalysisIssue(severity="warning", message=message, location=location))

    def error(self, message: str, location: Optional[SourceLocation] = None) -> None:
        self._issues.append(AnalysisIssue(severity="error", message=message, location=location))

    def validate(self) -> None:
        for trait in self._traits:
            if not self.has_collection(trait.collection):
                self.warn(
                    f"Trait references non-existent collection '{trait.collection}'",
                    trait.source_location,
                )
        for token_index in self._token_indexes:
            if not self.has_collection(token_index.collection):
                self.warn(
                    f"Token usage references non-existent collection '{token_index.collection}'"
                )

    def build(self) -> AnalysisResult:
        if self._consumed:
            raise RuntimeError("AnalysisBuilder.build() may only be called once")
        self._consumed = True
        return AnalysisResult(
            collections=tuple(self._collections),
            traits=tuple(self._traits),
            data=self._group_by_collection(),
            issues=tuple(self._issues),
            token_indexes=tuple(self._token_indexes),
        )

    def _group_by_collection(self) -> Tuple[TraitData, ...]:
        addresses = {collection.name: collection.address for collection in self._collections}
        traits: Dict[str, List[Trait]] = {}
        token_ids: Dict[str, List[int]] = {}

        for trait in self._traits:
            traits.setdefault(trait.collection, []).append(trait)
            token_ids.setdefault(trait.collection, [])
        for token_index in self._token_indexes:
            traits.setdefault(token_index.collection, [])
            ids = token_ids.setdefault(token_index.collection, [])
            if token_index.token_id not in ids:
                ids.append(token_index.token_id)

        return tuple(
            TraitData(
                collection=name,
                address=addresses.get(name),
                traits=tuple(collection_traits),
                token_indexes=tuple(token_ids[name]),
            )
            for name, collection_traits in traits.items()
        )


class SketchAnalyzer:
    """Extracts collections, traits and token bindings from sketch source."""

    def analyze(self, source: str) -> AnalysisResult:
        builder = AnalysisBuilder()
        source_bytes = source.encode("utf-8")
        tree = Parser(_JS_LANGUAGE).parse(source_bytes)
        root = tree.root_node

        if root.has_error:
            message, location = self._describe_parse_error(root)
            builder.error(f"Analysis failed: Failed to parse code: {message}", location)
            logger.debug("Sketch failed to parse: %s", message)
            return builder.build()

        self._extract_collections(root, source_bytes, builder)
        self._extract_traits(root, source_bytes, builder)
        self._extract_token_usages(root, source_bytes, builder)
        builder.validate()

        result = builder.build()
        logger.debug(
            "Analyzed sketch: %d collections, %d traits, %d token bindings, %d issues",
            len(result.collections),
            len(result.traits),
            len(result.token_indexes),
            len(result.issues),
        )
        return result

    def _extract_collections(self, root, source_bytes: bytes, builder: AnalysisBuilder) -> None:  # type: ignore[no-untyped-def]
        for node in walk(root):
            if node.type != "variable_declarator":
                continue
            declarator = lower_declarator(node, source_bytes)
            call = _constructor_call(declarator.value)
            if declarator.name is None or call is None:
                continue
            address = _address_from_arguments(call.arguments)
            if address is None:
                builder.warn(
                    f"Collection '{declarator.name}' is missing an address",
                    declarator.location,
                )
            added = builder.add_collection(
                Collection(name=declarator.name, address=address, source_location=declarator.location)
            )
            if not added:
                builder.warn(
                    f"Collection '{declarator.name}' is declared more than once; "
                    "keeping the first declaration",
                    declarator.location,
                )

    def _extract_traits(self, root, source_bytes: bytes, builder: AnalysisBuilder) -> None:  # type: ignore[no-untyped-def]
        for node in walk(root):
            if node.type != "call_expression":
                continue
            trait = _match_trait(lower(node, source_bytes))
            if trait is None:
                continue
            if trait.key is None:
                builder.warn(
                    f"Trait in collection '{trait.collection}' is missing a key",
                    trait.source_location,
                )
            builder.add_trait(trait)

    def _extract_token_usages(self, root, source_bytes: bytes, builder: AnalysisBuilder) -> None:  # type: ignore[no-untyped-def]
        setup = None
        for node in walk(root):
            if node.type in _FUNCTION_DECLARATIONS and function_name(node, source_bytes) == SETUP_FUNCTION:
                setup = node
        if setup is None:
            return
        body = setup.child_by_field_name("body")
        if body is None:
            return

        for node in walk(body):
            if node.type != "call_expression":
                continue
            call = lower(node, source_bytes)
            target = _match_use_token(call)
            if target is None:
                continue
            collection, argument = target
            if not builder.has_collection(collection):
                builder.warn(
                    f"useToken references non-existent collection '{collection}'",
                    call.location,
                )
            token_id = _token_id(argument)
            if token_id is None:
                builder.warn(
                    f"useToken for collection '{collection}' has non-numeric token ID",
                    call.location,
                )
                continue
            builder.add_token_index(TokenIndex(collection=collection, token_id=token_id))

    @staticmethod
    def _describe_parse_error(root) -> Tuple[str, SourceLocation]:  # type: ignore[no-untyped-def]
        for node in walk(root):
            if node.is_missing:
                location = location_of(node)
                return f"Missing {node.type!r} ({location.line}:{location.column})", location
            if node.type == "ERROR":
                location = location_of(node)
                return f"Unexpected token ({location.line}:{location.column})", location
        location = location_of(root)
        return f"Unexpected token ({location.line}:{location.column})", location


def analyze_sketch(source: str) -> AnalysisResult:
    """Analyze sketch source with a fresh analyzer."""
    return SketchAnalyzer().analyze(source)


def _constructor_call(expression: Optional[Expression]) -> Optional[Call]:
    if not isinstance(expression, Call):
        return None
    callee = expression.callee
    if isinstance(callee, Identifier) and callee.name == COLLECTION_CONSTRUCTOR:
        return expression
    return None


def _address_from_arguments(arguments: Tuple[Expression, ...]) -> Optional[str]:
    if not arguments:
        return None
    first = arguments[0]
    if isinstance(first, Literal):
        if first.kind == "string":
            return first.value
        if first.kind == "number":
            return first.raw
    return None


def _match_trait(expression: Expression) -> Optional[Trait]:
    """Match ``<ident>.metadata(<key>).<asInt|asString|asFloat>()``."""
    if not isinstance(expression, Call):
        return None
    callee = expression.callee
    if not isinstance(callee, Member) or callee.property not in TRAIT_TYPES:
        return None
    inner = callee.object
    if not isinstance(inner, Call):
        return None
    accessor = inner.callee
    if not isinstance(accessor, Member) or accessor.property != METADATA_ACCESSOR:
        return None
    owner = accessor.object
    if not isinstance(owner, Identifier):
        return None
    return Trait(
        collection=owner.name,
        key=_literal_key(inner.arguments),
        type=callee.property,
        source_location=expression.location,
    )


def _literal_key(arguments: Tuple[Expression, ...]) -> Optional[str]:
    if not arguments:
        return None
    first = arguments[0]
    if not isinstance(first, Literal) or first.value is None:
        return None
    if first.kind == "string":
        return first.value
    return first.raw


def _match_use_token(expression: Expression) -> Optional[Tuple[str, Expression]]:
    """Match ``<ident>.useToken(<arg>, ...)`` and return the collection and first argument."""
    if not isinstance(expression, Call) or not expression.arguments:
        return None
    callee = expression.callee
    if not isinstance(callee, Member) or callee.property != USE_TOKEN:
        return None
    if not isinstance(callee.object, Identifier):
        return None
    return callee.object.name, expression.arguments[0]


def _token_id(argument: Expression) -> Optional[int]:
    if isinstance(argument, Literal):
        if argument.kind != "number" or argument.value is None:
            return None
        if isinstance(argument.value, int) and argument.value >= 0:
            return argument.value
        return None
    if isinstance(argument, (Identifier, Member, Call, Opaque)):
        return None
    raise TypeError(f"Unhandled expression variant: {type(argument).__name__}")


__all__ = [
    "AnalysisBuilder",
    "COLLECTION_CONSTRUCTOR",
    "SketchAnalyzer",
    "analyze_sketch",
]
