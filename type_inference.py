"""Field type inference: raw field metadata to one semantic type.

Every consumer (schema descriptors, sample synthesis, column mapping) goes
through ``infer`` so a given name and metadata always resolve to the same
type.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from basin.semantic_types import CollectionDescriptor, FieldDescriptor, SemanticType


RawField = Mapping[str, Any]

# Ordered: first match wins, no backtracking.
NAME_RULES: Tuple[Tuple[Tuple[str, ...], SemanticType], ...] = (
    (("email",), SemanticType.EMAIL),
    (("url", "link", "website"), SemanticType.URL),
    (("price", "amount", "cost", "total", "count", "quantity"), SemanticType.NUMBER),
    (("active", "enabled", "status", "is_"), SemanticType.BOOLEAN),
    (("date", "created", "updated", "published"), SemanticType.DATE),
    (("description", "content", "notes", "comment", "bio"), SemanticType.TEXTAREA),
    (("category", "type", "role"), SemanticType.SELECT),
)

EXPLICIT_TYPE_KEYS = ("semantic_type", "semanticType", "type", "field_type")

TYPE_ALIASES: Dict[str, SemanticType] = {
    "string": SemanticType.TEXT,
    "varchar": SemanticType.TEXT,
    "char": SemanticType.TEXT,
    "integer": SemanticType.NUMBER,
    "int": SemanticType.NUMBER,
    "bigint": SemanticType.NUMBER,
    "smallint": SemanticType.NUMBER,
    "float": SemanticType.NUMBER,
    "double": SemanticType.NUMBER,
    "decimal": SemanticType.NUMBER,
    "numeric": SemanticType.NUMBER,
    "real": SemanticType.NUMBER,
    "bool": SemanticType.BOOLEAN,
    "timestamp": SemanticType.DATE,
    "timestamptz": SemanticType.DATE,
    "datetime": SemanticType.DATE,
    "json": SemanticType.TEXTAREA,
    "jsonb": SemanticType.TEXTAREA,
    "enum": SemanticType.SELECT,
}

NAME_KEYS = ("name", "key", "field_name")

SAMPLE_REQUIRED_NAMES = ("name", "title", "email")
SAMPLE_TEXTAREA_MAX = 1000

FALLBACK_FIELDS = (
    {"name": "id", "is_primary": True},
    {"name": "name"},
    {"name": "created_at"},
)


def field_name(raw: RawField | str) -> str:
    if isinstance(raw, str):
        return raw
    for key in NAME_KEYS:
        value = raw.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def format_label(name: str) -> str:
    """``first_name`` -> ``First Name``."""
    return " ".join(word[:1].upper() + word[1:] for word in name.split("_") if word)


def explicit_type(raw: RawField | str) -> SemanticType | None:
    if isinstance(raw, str):
        return None
    for key in EXPLICIT_TYPE_KEYS:
        value = raw.get(key)
        if isinstance(value, SemanticType):
            return value
        if not isinstance(value, str) or not value.strip():
            continue
        token = value.strip().lower()
        try:
            return SemanticType(token)
        except ValueError:
            pass
        alias = TYPE_ALIASES.get(token)
        if alias is not None:
            return alias
    return None


def infer_from_name(name: str) -> SemanticType | None:
    lowered = name.lower()
    for patterns, stype in NAME_RULES:
        for pattern in patterns:
            if pattern in lowered:
                return stype
    return None


def infer(raw: RawField | str, sink=None) -> SemanticType:
    stype = explicit_type(raw)
    if stype is not None:
        return stype
    name = field_name(raw)
    stype = infer_from_name(name)
    if stype is not None:
        return stype
    if sink is not None:
        sink.debug("inference_fallback", field=name, semantic_type=SemanticType.TEXT.value)
    return SemanticType.TEXT


def _int_or_none(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _first(raw: RawField, *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _options(raw: RawField) -> tuple[str, ...] | None:
    value = _first(raw, "options", "enum", "values")
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        return None
    options = []
    for opt in value:
        if isinstance(opt, dict) and "value" in opt:
            options.append(str(opt["value"]))
        elif opt is not None:
            options.append(str(opt))
    return tuple(options)


def describe_field(raw: RawField | str, sink=None) -> FieldDescriptor:
    if isinstance(raw, str):
        raw = {"name": raw}
    rules = raw.get("validation_rules")
    merged: Dict[str, Any] = dict(rules) if isinstance(rules, dict) else {}
    merged.update({k: v for k, v in raw.items() if v is not None})
    name = field_name(merged)
    display = merged.get("display_name") or merged.get("label") or format_label(name)
    return FieldDescriptor(
        name=name,
        display_name=str(display),
        semantic_type=infer(merged, sink),
        required=_flag(_first(merged, "is_required", "required")),
        min_length=_int_or_none(_first(merged, "min_length", "minLength")),
        max_length=_int_or_none(_first(merged, "max_length", "maxLength")),
        pattern=merged.get("pattern") if isinstance(merged.get("pattern"), str) else None,
        options=_options(merged),
        is_primary=_flag(merged.get("is_primary")),
    )


def schema_fields(payload: Any) -> List[dict]:
    """Pull the field list out of a list, ``{data: [...]}`` or ``{fields: [...]}``."""
    items = payload
    if isinstance(items, dict):
        if isinstance(items.get("data"), list):
            items = items["data"]
        elif isinstance(items.get("fields"), list):
            items = items["fields"]
        else:
            return []
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict) and field_name(item)]


def order_fields(fields: Iterable[dict]) -> List[dict]:
    """Primary fields first, then by creation time."""
    return sorted(fields, key=lambda f: (0 if _flag(f.get("is_primary")) else 1, str(f.get("created_at") or "")))


def _unique(descriptors: Iterable[FieldDescriptor]) -> tuple[FieldDescriptor, ...]:
    seen: Dict[str, FieldDescriptor] = {}
    for descriptor in descriptors:
        if descriptor.name and descriptor.name not in seen:
            seen[descriptor.name] = descriptor
    return tuple(seen.values())


def describe_collection(identifier: str, payload: Any, sink=None) -> CollectionDescriptor:
    fields = order_fields(schema_fields(payload))
    return CollectionDescriptor(
        identifier=identifier,
        fields=_unique(describe_field(f, sink) for f in fields),
        source="schema",
    )


def _sample_hint(value: Any) -> str | None:
    if isinstance(value, bool):
        return SemanticType.BOOLEAN.value
    if isinstance(value, (int, float)):
        return SemanticType.NUMBER.value
    return None


def _apply_form_conventions(raw: dict) -> dict:
    name = raw["name"]
    if name == "id":
        raw["is_primary"] = True
    if name in SAMPLE_REQUIRED_NAMES:
        raw["required"] = True
    if name == "name":
        raw.setdefault("min_length", 1)
        raw.setdefault("max_length", 100)
    return raw


def _sample_descriptor(raw: dict, sink=None) -> FieldDescriptor:
    descriptor = describe_field(_apply_form_conventions(raw), sink)
    if descriptor.semantic_type is SemanticType.EMAIL and not descriptor.required:
        descriptor = replace(descriptor, required=True)
    if descriptor.semantic_type is SemanticType.TEXTAREA and descriptor.max_length is None:
        descriptor = replace(descriptor, max_length=SAMPLE_TEXTAREA_MAX)
    return descriptor


def describe_sample(identifier: str, record: Mapping[str, Any], sink=None) -> CollectionDescriptor:
    descriptors = []
    for key, value in record.items():
        if not isinstance(key, str) or not key:
            continue
        raw: Dict[str, Any] = {"name": key}
        hint = _sample_hint(value)
        if hint:
            raw["type"] = hint
        descriptors.append(_sample_descriptor(raw, sink))
    return CollectionDescriptor(identifier=identifier, fields=_unique(descriptors), source="sample")


def fallback_collection(identifier: str, sink=None) -> CollectionDescriptor:
    descriptors = [_sample_descriptor(dict(raw), sink) for raw in FALLBACK_FIELDS]
    return CollectionDescriptor(identifier=identifier, fields=_unique(descriptors), source="fallback")
