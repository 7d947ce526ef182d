"""Create/edit/view/delete state machine for one collection.

The orchestrator is the only owner of its CrudState. Mutations go through the
repository exactly once per accepted submit, the list is refetched after a
successful mutation and never patched locally, and at most one mutation is
in flight at a time.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, ClassVar, Dict, List, Mapping, Union

from basin.semantic_types import CollectionDescriptor, TypedRecord
from field_validators import ValidationError, build_all, errors_as_issues, is_server_field, validate_record


Issue = Dict[str, Any]
Refresh = Callable[[], Awaitable[Any]]


def _issue(code: str, message: str, path: str | None = None, detail: dict | None = None) -> Issue:
    return {"code": code, "message": message, "path": path, "detail": detail}


def _result(ok: bool, errors: List[Issue] | None = None, data: Any = None) -> dict:
    return {"ok": ok, "errors": errors or [], "warnings": [], "data": data}


@dataclass(frozen=True)
class Closed:
    name: ClassVar[str] = "closed"


@dataclass(frozen=True)
class Create:
    name: ClassVar[str] = "create"


@dataclass(frozen=True)
class Edit:
    item: TypedRecord
    name: ClassVar[str] = "edit"


@dataclass(frozen=True)
class View:
    item: TypedRecord
    name: ClassVar[str] = "view"


@dataclass(frozen=True)
class Delete:
    item: TypedRecord
    name: ClassVar[str] = "delete"


CrudMode = Union[Closed, Create, Edit, View, Delete]


@dataclass(frozen=True)
class CrudState:
    mode: CrudMode = field(default_factory=Closed)
    is_loading: bool = False
    error: str | None = None
    field_errors: Mapping[str, ValidationError] = field(default_factory=dict)

    @property
    def selected_item(self) -> TypedRecord | None:
        return getattr(self.mode, "item", None)

    @property
    def is_open(self) -> bool:
        return not isinstance(self.mode, Closed)

    def as_dict(self) -> dict:
        item = self.selected_item
        return {
            "mode": self.mode.name,
            "selected_item": item.as_raw() if item is not None else None,
            "is_loading": self.is_loading,
            "error": self.error,
            "field_errors": errors_as_issues(self.field_errors),
        }


class CrudOrchestrator:
    def __init__(
        self,
        repository,
        collection: CollectionDescriptor,
        refresh: Refresh | None = None,
        sink=None,
    ) -> None:
        self._repository = repository
        self._collection = collection
        self._validators = build_all(collection.fields)
        self._refresh = refresh
        self._sink = sink
        self._state = CrudState()

    @property
    def state(self) -> CrudState:
        return self._state

    @property
    def collection(self) -> CollectionDescriptor:
        return self._collection

    def _log(self, event: str, **context: Any) -> None:
        if self._sink is not None:
            self._sink.info(event, collection=self._collection.identifier, **context)

    def _typed(self, item: TypedRecord | Mapping[str, Any]) -> TypedRecord:
        if isinstance(item, TypedRecord):
            return item
        return TypedRecord.from_raw(self._collection, item)

    def _transition(self, mode: CrudMode) -> bool:
        # a pending mutation pins the current mode until it settles
        if self._state.is_loading:
            self._log("crud_transition_rejected", mode=mode.name, reason="busy")
            return False
        self._state = CrudState(mode=mode)
        return True

    def open_create(self) -> bool:
        return self._transition(Create())

    def open_edit(self, item: TypedRecord | Mapping[str, Any]) -> bool:
        return self._transition(Edit(self._typed(item)))

    def open_view(self, item: TypedRecord | Mapping[str, Any]) -> bool:
        return self._transition(View(self._typed(item)))

    def open_delete(self, item: TypedRecord | Mapping[str, Any]) -> bool:
        return self._transition(Delete(self._typed(item)))

    def close(self) -> bool:
        return self._transition(Closed())

    def check_field(self, name: str, value: Any) -> ValidationError | None:
        """Live validation for one field; updates ``field_errors``."""
        descriptor = self._collection.field(name)
        if descriptor is None or is_server_field(descriptor):
            return None
        error = self._validators[name].check(value)
        errors = dict(self._state.field_errors)
        if error is None:
            errors.pop(name, None)
        else:
            errors[name] = error
        self._state = replace(self._state, field_errors=errors)
        return error

    def _guard(self, expected: type) -> dict | None:
        if self._state.is_loading:
            self._log("crud_submit_rejected", reason="busy")
            return _result(False, [_issue("CRUD_BUSY", "Another change is still being saved")])
        if not isinstance(self._state.mode, expected):
            return _result(
                False,
                [_issue("CRUD_MODE_INVALID", f"Not allowed in {self._state.mode.name} mode", "mode", {"expected": expected.name})],
            )
        return None

    def _payload(self, data: Mapping[str, Any]) -> dict:
        excluded = tuple(f.name for f in self._collection.fields if is_server_field(f)) + ("id",)
        return TypedRecord.from_raw(self._collection, data).to_payload(exclude=excluded)

    def _validate(self, data: Mapping[str, Any], for_create: bool) -> dict | None:
        errors = validate_record(self._collection.fields, data, for_create=for_create)
        if not errors:
            return None
        self._state = replace(self._state, field_errors=errors, error=None)
        return _result(False, errors_as_issues(errors))

    async def _mutate(self, op: str, call: Callable[[], Awaitable[Any]]) -> dict:
        self._state = replace(self._state, is_loading=True, error=None, field_errors={})
        try:
            envelope = await call()
        except BaseException as exc:
            # cancellation or an unexpected repository error must not pin the mode
            self._state = replace(self._state, is_loading=False, error=str(exc) or type(exc).__name__)
            self._log("crud_mutation_aborted", op=op, error=type(exc).__name__)
            raise
        if not envelope.success:
            status = envelope.error.status if envelope.error else None
            self._state = replace(self._state, is_loading=False, error=envelope.message)
            self._log("crud_mutation_failed", op=op, category=envelope.category, status=status, message=envelope.message)
            detail = {"category": envelope.category, "status": status}
            return _result(False, [_issue("TRANSPORT_ERROR", envelope.message, None, detail)])
        self._state = CrudState()
        self._log("crud_mutation_ok", op=op)
        if self._refresh is not None:
            await self._refresh()
        return _result(True, data=envelope.data)

    async def submit_create(self, data: Mapping[str, Any]) -> dict:
        rejected = self._guard(Create) or self._validate(data, for_create=True)
        if rejected:
            return rejected
        payload = self._payload(data)
        return await self._mutate("create", lambda: self._repository.create(payload))

    async def submit_edit(self, data: Mapping[str, Any]) -> dict:
        rejected = self._guard(Edit)
        if rejected:
            return rejected
        item_id = self._state.selected_item.id
        if item_id is None:
            return _result(False, [_issue("CRUD_ITEM_INVALID", "Selected item has no id", "id")])
        rejected = self._validate(data, for_create=False)
        if rejected:
            return rejected
        payload = self._payload(data)
        return await self._mutate("update", lambda: self._repository.update(item_id, payload))

    async def confirm_delete(self) -> dict:
        rejected = self._guard(Delete)
        if rejected:
            return rejected
        item_id = self._state.selected_item.id
        if item_id is None:
            return _result(False, [_issue("CRUD_ITEM_INVALID", "Selected item has no id", "id")])
        return await self._mutate("delete", lambda: self._repository.delete(item_id))
