"""Semantic field types, field/collection descriptors and typed records."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Mapping


class SemanticType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    URL = "url"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    SELECT = "select"
    TEXTAREA = "textarea"
    UUID = "uuid"


# text-like types are the only ones length/pattern constraints apply to
STRING_TYPES = frozenset({SemanticType.TEXT, SemanticType.TEXTAREA, SemanticType.SELECT})


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    display_name: str
    semantic_type: SemanticType
    required: bool = False
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    options: tuple[str, ...] | None = None
    is_primary: bool = False

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "semantic_type": self.semantic_type.value,
            "required": self.required,
            "min_length": self.min_length,
            "max_length": self.max_length,
            "pattern": self.pattern,
            "options": list(self.options) if self.options is not None else None,
            "is_primary": self.is_primary,
        }


@dataclass(frozen=True)
class CollectionDescriptor:
    identifier: str
    fields: tuple[FieldDescriptor, ...] = ()
    source: str = "schema"

    def field(self, name: str) -> FieldDescriptor | None:
        for item in self.fields:
            if item.name == name:
                return item
        return None

    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def as_dict(self) -> dict:
        return {
            "identifier": self.identifier,
            "source": self.source,
            "fields": [f.as_dict() for f in self.fields],
        }


@dataclass(frozen=True)
class TypedValue:
    semantic_type: SemanticType
    value: Any

    def is_empty(self) -> bool:
        return self.value is None or self.value == ""

    def as_wire(self) -> Any:
        if self.semantic_type is SemanticType.NUMBER and isinstance(self.value, str):
            return coerce_number(self.value)
        return self.value


def coerce_number(raw: Any) -> Any:
    """Parse a form value into int/float; returns the input when it is not numeric."""
    if isinstance(raw, bool) or raw is None:
        return raw
    if isinstance(raw, (int, float)):
        return raw
    text = str(raw).strip()
    if not text or "_" in text:
        return raw
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return raw
    return number if math.isfinite(number) else raw


@dataclass(frozen=True)
class TypedRecord:
    values: Dict[str, TypedValue] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, collection: CollectionDescriptor, raw: Mapping[str, Any]) -> "TypedRecord":
        values: Dict[str, TypedValue] = {}
        for name, value in raw.items():
            descriptor = collection.field(name)
            stype = descriptor.semantic_type if descriptor else SemanticType.TEXT
            values[name] = TypedValue(stype, value)
        return cls(values)

    @property
    def id(self) -> Any:
        item = self.values.get("id")
        return item.value if item else None

    def get(self, name: str) -> TypedValue | None:
        return self.values.get(name)

    def value(self, name: str, default: Any = None) -> Any:
        item = self.values.get(name)
        return item.value if item is not None else default

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def __contains__(self, name: object) -> bool:
        return name in self.values

    def to_payload(self, exclude: tuple[str, ...] = ()) -> dict:
        return {name: item.as_wire() for name, item in self.values.items() if name not in exclude}

    def as_raw(self) -> dict:
        return {name: item.value for name, item in self.values.items()}
