"""Per-collection repository returning uniform envelopes."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Generic, List, TypeVar
from urllib.parse import quote

from app.log_sink import LogSink
from app.transport import ItemsTransport, TransportError
from type_inference import order_fields


T = TypeVar("T")

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)

PAGINATION_KEYS = ("limit", "offset", "page", "per_page", "sort", "order", "filter")


def looks_like_uuid(value: str) -> bool:
    return bool(_UUID_RE.match(value or ""))


@dataclass
class Envelope(Generic[T]):
    data: T | None
    success: bool
    message: str
    error: TransportError | None = None

    @property
    def category(self) -> str | None:
        return self.error.category if self.error else None

    def as_dict(self) -> dict:
        return {"data": self.data, "success": self.success, "message": self.message}


@dataclass
class Pagination:
    limit: int | None = None
    offset: int | None = None
    page: int | None = None
    per_page: int | None = None
    sort: str | None = None
    order: str | None = None
    filter: str | None = None
    extra: dict = field(default_factory=dict)

    def as_params(self) -> dict:
        params = {
            "limit": self.limit,
            "offset": self.offset,
            "page": self.page,
            "per_page": self.per_page,
            "sort": self.sort,
            "order": self.order,
            "filter": self.filter,
        }
        params.update(self.extra)
        return {key: value for key, value in params.items() if value is not None}


class CollectionRepository:
    """list/get/create/update/delete/get_schema against one collection.

    Failures never raise past this class: TransportError is caught and folded
    into an unsuccessful Envelope whose message carries the HTTP status (or
    ``network``). Every call is exactly one round trip.
    """

    def __init__(self, collection: str, transport: ItemsTransport, sink: LogSink | None = None) -> None:
        if not collection:
            raise ValueError("collection name is required")
        self.collection = collection
        self._transport = transport
        self._sink = sink or LogSink("repository")
        self._path = f"/items/{quote(collection, safe='')}"

    def _item_path(self, item_id: Any) -> str:
        return f"{self._path}/{quote(str(item_id), safe='')}"

    def _fail(self, op: str, exc: TransportError, default_message: str) -> Envelope:
        message = exc.message or default_message
        self._sink.warning(
            "repository_error",
            collection=self.collection,
            op=op,
            category=exc.category,
            status=exc.status,
            message=message,
        )
        return Envelope(data=None, success=False, message=f"{message} ({exc.status_label})", error=exc)

    async def list(self, pagination: Pagination | None = None) -> Envelope[List[dict]]:
        params = pagination.as_params() if pagination else None
        try:
            body = await self._transport.request("GET", self._path, params=params)
        except TransportError as exc:
            return self._fail("list", exc, "Failed to retrieve items")
        data = body.get("data") if isinstance(body, dict) else None
        items = data if isinstance(data, list) else []
        self._sink.debug("repository_list", collection=self.collection, count=len(items))
        return Envelope(data=items, success=True, message="Items retrieved successfully")

    async def get(self, item_id: Any) -> Envelope[dict]:
        try:
            body = await self._transport.request("GET", self._item_path(item_id))
        except TransportError as exc:
            return self._fail("get", exc, "Failed to retrieve item")
        return Envelope(data=_body_data(body), success=True, message="Item retrieved successfully")

    async def create(self, payload: dict) -> Envelope[dict]:
        try:
            body = await self._transport.request("POST", self._path, json=payload)
        except TransportError as exc:
            return self._fail("create", exc, "Failed to create item")
        data = _body_data(body)
        self._sink.info("repository_create", collection=self.collection, id=data.get("id") if isinstance(data, dict) else None)
        return Envelope(data=data, success=True, message="Item created successfully")

    async def update(self, item_id: Any, payload: dict) -> Envelope[dict]:
        try:
            body = await self._transport.request("PUT", self._item_path(item_id), json=payload)
        except TransportError as exc:
            return self._fail("update", exc, "Failed to update item")
        self._sink.info("repository_update", collection=self.collection, id=item_id)
        return Envelope(data=_body_data(body), success=True, message="Item updated successfully")

    async def delete(self, item_id: Any) -> Envelope[None]:
        try:
            await self._transport.request("DELETE", self._item_path(item_id))
        except TransportError as exc:
            return self._fail("delete", exc, "Failed to delete item")
        self._sink.info("repository_delete", collection=self.collection, id=item_id)
        return Envelope(data=None, success=True, message="Item deleted successfully")

    async def get_schema(self) -> Envelope[List[dict]]:
        key = "collection_id" if looks_like_uuid(self.collection) else "name"
        try:
            body = await self._transport.request("GET", "/items/fields", params={key: self.collection})
        except TransportError as exc:
            return self._fail("get_schema", exc, "Failed to retrieve schema")
        data = body.get("data") if isinstance(body, dict) else body
        fields = order_fields(f for f in data if isinstance(f, dict)) if isinstance(data, list) else []
        self._sink.debug("repository_schema", collection=self.collection, fields=len(fields))
        return Envelope(data=fields, success=True, message="Collection schema retrieved successfully")

    async def get_metadata(self) -> Envelope[dict]:
        try:
            body = await self._transport.request("GET", "/items/collections", params={"name": self.collection})
        except TransportError as exc:
            return self._fail("get_metadata", exc, "Failed to retrieve collection metadata")
        data = body.get("data") if isinstance(body, dict) else None
        match = data[0] if isinstance(data, list) and data else None
        if not isinstance(match, dict):
            return Envelope(data=None, success=False, message="Collection not found")
        return Envelope(data=match, success=True, message="Collection metadata retrieved successfully")


def _body_data(body: Any) -> Any:
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body
