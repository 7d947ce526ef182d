"""Table column and form widget metadata derived from field descriptors."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from basin.semantic_types import CollectionDescriptor, FieldDescriptor, SemanticType
from field_validators import is_server_field


class WidgetKind(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    URL = "url"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    SELECT = "select"
    TEXTAREA = "textarea"
    UUID = "uuid"


@dataclass(frozen=True)
class ColumnWidth:
    kind: str
    size: str | None = None
    px: int | None = None

    @property
    def css(self) -> str:
        return f"{self.px}px" if self.kind == "fixed" and self.px else "auto"


WIDTH_ID = ColumnWidth("fixed", "narrow", 80)
WIDTH_BOOLEAN = ColumnWidth("fixed", "narrow", 100)
WIDTH_NUMBER = ColumnWidth("fixed", "medium", 120)
WIDTH_DATE = ColumnWidth("fixed", "medium", 140)
WIDTH_NAME = ColumnWidth("fixed", "medium", 150)
WIDTH_WIDE = ColumnWidth("fixed", "medium-wide", 200)
WIDTH_AUTO = ColumnWidth("auto")

LONG_TEXT_THRESHOLD = 100


@dataclass(frozen=True)
class ColumnDisplay:
    key: str
    label: str
    width: ColumnWidth
    sortable: bool = True
    filterable: bool = True

    def as_dict(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "width": self.width.css,
            "width_kind": self.width.kind,
            "width_size": self.width.size,
            "sortable": self.sortable,
            "filterable": self.filterable,
        }


def _has_any(name: str, needles: tuple[str, ...]) -> bool:
    return any(n in name for n in needles)


def column_width(field: FieldDescriptor) -> ColumnWidth:
    name = field.name.lower()
    stype = field.semantic_type
    if name == "id":
        return WIDTH_ID
    if stype is SemanticType.BOOLEAN:
        return WIDTH_BOOLEAN
    if stype is SemanticType.NUMBER:
        return WIDTH_NUMBER
    if _has_any(name, ("date", "created", "updated")):
        return WIDTH_DATE
    if "email" in name:
        return WIDTH_WIDE
    if _has_any(name, ("name", "title")):
        return WIDTH_NAME
    if stype is SemanticType.TEXT and (field.max_length or 0) > LONG_TEXT_THRESHOLD:
        return WIDTH_WIDE
    return WIDTH_AUTO


def map_display(field: FieldDescriptor) -> ColumnDisplay:
    # sortable/filterable stay permissive; callers degrade on non-comparable values
    return ColumnDisplay(key=field.name, label=field.display_name, width=column_width(field))


def map_widget(field: FieldDescriptor) -> WidgetKind:
    if field.semantic_type is SemanticType.SELECT and not field.options:
        return WidgetKind.TEXT
    return WidgetKind(field.semantic_type.value)


def build_form_field(field: FieldDescriptor) -> Dict[str, Any]:
    label = field.display_name
    widget = map_widget(field)
    return {
        "key": field.name,
        "label": label,
        "widget": widget.value,
        "semantic_type": field.semantic_type.value,
        "required": field.required,
        "placeholder": f"Enter {label.lower()}",
        "description": f"Enter the {label.lower()} for this item",
        "options": list(field.options) if widget is WidgetKind.SELECT and field.options else None,
        "min_length": field.min_length,
        "max_length": field.max_length,
        "pattern": field.pattern,
    }


def build_layout(collection: CollectionDescriptor) -> dict:
    columns: List[dict] = [map_display(f).as_dict() for f in collection.fields]
    form: List[dict] = [build_form_field(f) for f in collection.fields if not is_server_field(f)]
    return {
        "collection": collection.identifier,
        "source": collection.source,
        "columns": columns,
        "form": form,
    }
