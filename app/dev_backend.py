"""In-memory items API used in dev mode and tests.

Serves the same routes the transport consumes so the repository can be
exercised end to end through ``httpx.ASGITransport``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.repository import PAGINATION_KEYS
from app.stores import ItemNotFound, MemoryCollectionStore, MemoryItemStore


logger = logging.getLogger("basin.dev_backend")


def _int_param(raw: str | None) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _not_found(message: str = "Item not found") -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=404)


async def _safe_json(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def create_app(items: MemoryItemStore | None = None, collections: MemoryCollectionStore | None = None) -> FastAPI:
    app = FastAPI(title="Basin dev items API")
    app.state.items = items if items is not None else MemoryItemStore()
    app.state.collections = collections if collections is not None else MemoryCollectionStore()

    # metadata routes are registered first so they win over /items/{collection}
    @app.get("/items/fields")
    async def list_fields(collection_id: str | None = None, name: str | None = None):
        fields = app.state.collections.fields(collection_id=collection_id, name=name)
        return {"data": fields}

    @app.get("/items/collections")
    async def list_collections(name: str | None = None):
        return {"data": app.state.collections.list(name=name)}

    @app.get("/items/{collection}")
    async def list_items(request: Request, collection: str):
        params = dict(request.query_params)
        filters = {k: v for k, v in params.items() if k not in PAGINATION_KEYS}
        rows = app.state.items.list(
            collection,
            limit=_int_param(params.get("limit")),
            offset=_int_param(params.get("offset")),
            page=_int_param(params.get("page")),
            per_page=_int_param(params.get("per_page")),
            sort=params.get("sort"),
            order=params.get("order"),
            filters=filters,
            search=params.get("filter"),
        )
        return {"data": rows}

    @app.get("/items/{collection}/{item_id}")
    async def get_item(collection: str, item_id: str):
        item = app.state.items.get(collection, item_id)
        if item is None:
            return _not_found()
        return {"data": item}

    @app.post("/items/{collection}")
    async def create_item(request: Request, collection: str):
        body = await _safe_json(request)
        item = app.state.items.create(collection, body)
        logger.info("dev_item_created collection=%s id=%s", collection, item["id"])
        return JSONResponse(jsonable_encoder({"data": item}), status_code=200)

    @app.put("/items/{collection}/{item_id}")
    async def update_item(request: Request, collection: str, item_id: str):
        body = await _safe_json(request)
        try:
            item = app.state.items.update(collection, item_id, body)
        except ItemNotFound:
            return _not_found()
        return {"data": item}

    @app.delete("/items/{collection}/{item_id}")
    async def delete_item(collection: str, item_id: str):
        try:
            app.state.items.delete(collection, item_id)
        except ItemNotFound:
            return _not_found()
        logger.info("dev_item_deleted collection=%s id=%s", collection, item_id)
        return {"success": True}

    return app


app = create_app()
