"""Validators synthesized from field descriptors.

Pure functions of a FieldDescriptor: no I/O, safe to run on every keystroke
and again at submit time.
"""

from __future__ import annotations

import math
import re
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping

from basin.semantic_types import STRING_TYPES, FieldDescriptor, SemanticType


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
URL_RE = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)
BOOLEAN_DOMAIN = (True, False)


@dataclass(frozen=True)
class ValidationError:
    code: str
    message: str
    path: str | None = None

    def as_issue(self) -> dict:
        return {"code": self.code, "message": self.message, "path": self.path, "detail": None}


def is_empty(value: Any) -> bool:
    return value is None or value == ""


def is_server_field(field: FieldDescriptor) -> bool:
    return field.is_primary or field.name == "id"


def _check_email(field: FieldDescriptor, value: Any) -> ValidationError | None:
    if not isinstance(value, str) or not EMAIL_RE.match(value):
        return ValidationError("INVALID_EMAIL", "Invalid email address", field.name)
    return None


def _check_url(field: FieldDescriptor, value: Any) -> ValidationError | None:
    if not isinstance(value, str) or not URL_RE.match(value):
        return ValidationError("INVALID_URL", "Invalid URL", field.name)
    return None


def _check_number(field: FieldDescriptor, value: Any) -> ValidationError | None:
    if isinstance(value, bool):
        return ValidationError("INVALID_NUMBER", "Must be a valid number", field.name)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        # "1_000" parses in Python but is not a number on the wire
        if "_" in value:
            return ValidationError("INVALID_NUMBER", "Must be a valid number", field.name)
        try:
            number = float(value.strip())
        except ValueError:
            return ValidationError("INVALID_NUMBER", "Must be a valid number", field.name)
    else:
        return ValidationError("INVALID_NUMBER", "Must be a valid number", field.name)
    if not math.isfinite(number):
        return ValidationError("INVALID_NUMBER", "Must be a valid number", field.name)
    return None


def _check_boolean(field: FieldDescriptor, value: Any) -> ValidationError | None:
    if not isinstance(value, bool) or value not in BOOLEAN_DOMAIN:
        return ValidationError("INVALID_BOOLEAN", f"{field.display_name} must be true or false", field.name)
    return None


def _check_date(field: FieldDescriptor, value: Any) -> ValidationError | None:
    if not isinstance(value, str) or not value.strip():
        return ValidationError("INVALID_DATE", f"{field.display_name} must be a date string", field.name)
    return None


def _check_uuid(field: FieldDescriptor, value: Any) -> ValidationError | None:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return ValidationError("INVALID_UUID", f"{field.display_name} must be a UUID", field.name)
    return None


def _check_string(field: FieldDescriptor, value: Any) -> ValidationError | None:
    if not isinstance(value, str):
        return ValidationError("TYPE_MISMATCH", f"{field.display_name} must be a string", field.name)
    if field.min_length is not None and len(value) < field.min_length:
        return ValidationError("TOO_SHORT", f"Minimum length is {field.min_length}", field.name)
    if field.max_length is not None and len(value) > field.max_length:
        return ValidationError("TOO_LONG", f"Maximum length is {field.max_length}", field.name)
    if field.pattern:
        try:
            matched = re.search(field.pattern, value) is not None
        except re.error:
            matched = True
        if not matched:
            return ValidationError("INVALID_FORMAT", "Invalid format", field.name)
    if field.semantic_type is SemanticType.SELECT and field.options and value not in field.options:
        return ValidationError("INVALID_OPTION", f"{field.display_name} must be one of {list(field.options)}", field.name)
    return None


_TYPE_CHECKS: Dict[SemanticType, Callable[[FieldDescriptor, Any], "ValidationError | None"]] = {
    SemanticType.EMAIL: _check_email,
    SemanticType.URL: _check_url,
    SemanticType.NUMBER: _check_number,
    SemanticType.BOOLEAN: _check_boolean,
    SemanticType.DATE: _check_date,
    SemanticType.UUID: _check_uuid,
}


class Validator:
    """Validation rule for one field; ``check`` returns None when valid."""

    def __init__(self, field: FieldDescriptor) -> None:
        self.field = field
        if field.semantic_type in STRING_TYPES:
            self._type_check = _check_string
        else:
            self._type_check = _TYPE_CHECKS[field.semantic_type]

    def check(self, value: Any) -> ValidationError | None:
        if is_empty(value):
            if not self.field.required:
                return None
            return ValidationError("REQUIRED_FIELD", f"{self.field.display_name} is required", self.field.name)
        return self._type_check(self.field, value)

    def __call__(self, value: Any) -> ValidationError | None:
        return self.check(value)


def build(field: FieldDescriptor) -> Validator:
    return Validator(field)


def build_all(fields: Iterable[FieldDescriptor]) -> Dict[str, Validator]:
    return {f.name: Validator(f) for f in fields}


def validate_record(
    fields: Iterable[FieldDescriptor],
    data: Mapping[str, Any],
    for_create: bool = True,
) -> Dict[str, ValidationError]:
    """Check a form payload against its fields.

    Primary fields (and ``id``) are server-assigned and never checked. On
    edit only the fields present in ``data`` are checked so partial updates
    pass.
    """
    errors: Dict[str, ValidationError] = {}
    if not isinstance(data, Mapping):
        errors["$"] = ValidationError("INVALID_PAYLOAD", "Record data must be an object", None)
        return errors
    for field in fields:
        if is_server_field(field):
            continue
        if not for_create and field.name not in data:
            continue
        error = Validator(field).check(data.get(field.name))
        if error is not None:
            errors[field.name] = error
    return errors


def errors_as_issues(errors: Mapping[str, ValidationError]) -> List[dict]:
    return [err.as_issue() for err in errors.values()]
