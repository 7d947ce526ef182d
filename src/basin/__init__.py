"""Basin kernel types."""

from .canonical_json import CanonicalJsonTypeError, canonical_dumps, to_jsonable
from .semantic_types import (
    CollectionDescriptor,
    FieldDescriptor,
    SemanticType,
    TypedRecord,
    TypedValue,
)

__all__ = [
    "CanonicalJsonTypeError",
    "CollectionDescriptor",
    "FieldDescriptor",
    "SemanticType",
    "TypedRecord",
    "TypedValue",
    "canonical_dumps",
    "to_jsonable",
]
