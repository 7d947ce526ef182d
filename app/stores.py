"""In-memory stores backing the dev items API."""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class ItemNotFound(KeyError):
    pass


def _sort_key(value: Any) -> tuple:
    # None sorts last; mixed types compare by their string form
    if value is None:
        return (2, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))


class MemoryItemStore:
    def __init__(self) -> None:
        self._items: Dict[str, Dict[str, dict]] = {}

    def _bucket(self, collection: str) -> Dict[str, dict]:
        return self._items.setdefault(collection, {})

    def list(
        self,
        collection: str,
        limit: int | None = None,
        offset: int | None = None,
        page: int | None = None,
        per_page: int | None = None,
        sort: str | None = None,
        order: str | None = None,
        filters: dict | None = None,
        search: str | None = None,
    ) -> list[dict]:
        items = list(self._bucket(collection).values())
        for key, expected in (filters or {}).items():
            items = [i for i in items if str(i.get(key)) == str(expected)]
        if search:
            needle = search.lower()
            items = [i for i in items if any(isinstance(v, str) and needle in v.lower() for v in i.values())]
        if sort:
            items.sort(key=lambda i: _sort_key(i.get(sort)), reverse=(order or "").lower() == "desc")
        if page is not None and per_page:
            offset = max(page - 1, 0) * per_page
            limit = per_page
        start = max(offset or 0, 0)
        end = start + limit if limit is not None and limit >= 0 else None
        return [copy.deepcopy(i) for i in items[start:end]]

    def get(self, collection: str, item_id: str) -> dict | None:
        item = self._bucket(collection).get(item_id)
        return copy.deepcopy(item) if item else None

    def create(self, collection: str, data: dict) -> dict:
        item = copy.deepcopy(data)
        item_id = str(item.get("id") or uuid.uuid4())
        item["id"] = item_id
        item.setdefault("created_at", _now())
        item.setdefault("updated_at", item["created_at"])
        self._bucket(collection)[item_id] = item
        return copy.deepcopy(item)

    def update(self, collection: str, item_id: str, data: dict) -> dict:
        bucket = self._bucket(collection)
        if item_id not in bucket:
            raise ItemNotFound(item_id)
        changes = copy.deepcopy(data)
        changes.pop("id", None)
        changes.pop("created_at", None)
        item = bucket[item_id]
        item.update(changes)
        item["updated_at"] = _now()
        return copy.deepcopy(item)

    def delete(self, collection: str, item_id: str) -> None:
        bucket = self._bucket(collection)
        if item_id not in bucket:
            raise ItemNotFound(item_id)
        del bucket[item_id]

    def count(self, collection: str) -> int:
        return len(self._bucket(collection))


class MemoryCollectionStore:
    """Collection metadata plus per-collection field definitions."""

    def __init__(self) -> None:
        self._collections: Dict[str, dict] = {}
        self._fields: Dict[str, List[dict]] = {}

    def register(self, name: str, fields: List[dict], display_name: str | None = None) -> dict:
        existing = self.by_name(name)
        collection_id = existing["id"] if existing else str(uuid.uuid4())
        record = {
            "id": collection_id,
            "name": name,
            "display_name": display_name or name.replace("_", " ").title(),
            "created_at": existing["created_at"] if existing else _now(),
        }
        self._collections[collection_id] = record
        self._fields[collection_id] = [
            {**copy.deepcopy(f), "collection_id": collection_id, "sort_order": idx} for idx, f in enumerate(fields)
        ]
        return copy.deepcopy(record)

    def by_name(self, name: str) -> dict | None:
        for record in self._collections.values():
            if record.get("name") == name:
                return copy.deepcopy(record)
        return None

    def list(self, name: str | None = None) -> list[dict]:
        items = list(self._collections.values())
        if name:
            items = [c for c in items if c.get("name") == name]
        items.sort(key=lambda c: c.get("name") or "")
        return [copy.deepcopy(c) for c in items]

    def fields(self, collection_id: str | None = None, name: str | None = None) -> list[dict]:
        if collection_id is None and name is not None:
            match = self.by_name(name)
            collection_id = match["id"] if match else None
        if collection_id is None:
            return []
        return [copy.deepcopy(f) for f in self._fields.get(collection_id, [])]
