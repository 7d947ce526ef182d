"""Admin API exposing collection layouts, validation and item CRUD."""

from __future__ import annotations

import logging
import os
import time
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app import dev_backend
from app.config import load_settings, settings_summary, validate_settings
from app.log_sink import LogSink
from app.repository import PAGINATION_KEYS, CollectionRepository, Pagination
from app.transport import AUTH, CLIENT, NETWORK, NOT_FOUND, SERVER, ItemsTransport
from collection_session import resolve_descriptor
from column_mapper import build_layout
from crud_orchestrator import CrudOrchestrator
from field_validators import errors_as_issues, validate_record


settings = load_settings()

app = FastAPI(title="Basin Admin")

logger = logging.getLogger("basin")
logging.basicConfig(level=settings.log_level)

sink = LogSink("api", settings.log_max_entries).init()

USE_DEV_BACKEND = os.getenv("BASIN_DEV_BACKEND", "").strip() == "1"

if USE_DEV_BACKEND:
    transport = ItemsTransport(
        "http://dev-backend",
        timeout=settings.api_timeout,
        http_transport=httpx.ASGITransport(app=dev_backend.app),
    )
else:
    transport = ItemsTransport.from_settings(settings)

for _issue_text in validate_settings(settings):
    logger.warning("config_issue=%s", _issue_text)
logger.info("api_url=%s dev_backend=%s env=%s", settings.api_url, USE_DEV_BACKEND, settings.app_env)

CATEGORY_STATUS = {
    AUTH: 401,
    NOT_FOUND: 404,
    SERVER: 502,
    NETWORK: 503,
    CLIENT: 400,
}

REQ_SLOW_MS = float(os.getenv("BASIN_REQ_SLOW_MS", "500"))


class RequestTimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        total_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "request method=%s path=%s status=%s total_ms=%.1f",
            request.method,
            request.url.path,
            response.status_code,
            total_ms,
        )
        if total_ms >= REQ_SLOW_MS:
            sink.warning("slow_request", method=request.method, path=request.url.path, total_ms=round(total_ms, 1))
        if settings.is_dev:
            response.headers["X-Req-MS"] = f"{total_ms:.1f}"
        return response


app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"http://localhost:\d+|http://127\.0\.0\.1:\d+",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestTimingMiddleware)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    sink.error("unhandled_exception", path=request.url.path, error=str(exc))
    return _error_response("INTERNAL_ERROR", "Unexpected server error", detail={"error": str(exc)}, status=500)


def _error_response(code: str, message: str, path: str | None = None, detail: dict | None = None, status: int = 400) -> JSONResponse:
    body = {
        "ok": False,
        "errors": [{"code": code, "message": message, "path": path, "detail": detail}],
        "warnings": [],
    }
    return JSONResponse(jsonable_encoder(body), status_code=status)


def _ok_response(payload: dict, warnings: list | None = None, status: int = 200) -> JSONResponse:
    body = {"ok": True, **payload, "errors": [], "warnings": warnings or []}
    return JSONResponse(jsonable_encoder(body), status_code=status)


def _validation_response(errors: list, warnings: list, status: int = 400) -> JSONResponse:
    body = {"ok": False, "errors": errors, "warnings": warnings, "data": None}
    return JSONResponse(jsonable_encoder(body), status_code=status)


def _category_status(category: str | None, status: int | None) -> int:
    if category in (AUTH, CLIENT) and status:
        return status
    return CATEGORY_STATUS.get(category, 500)


def _envelope_status(envelope) -> int:
    error = envelope.error
    if error is None:
        return 404
    return _category_status(error.category, error.status)


def _envelope_error(envelope) -> JSONResponse:
    category = envelope.category or NOT_FOUND
    return _error_response(
        "UPSTREAM_" + category.upper(),
        envelope.message,
        detail={"category": category, "status": envelope.error.status if envelope.error else None},
        status=_envelope_status(envelope),
    )


def _result_response(result: dict) -> JSONResponse:
    if result["ok"]:
        return _ok_response({"data": result["data"]})
    first = result["errors"][0] if result["errors"] else {}
    if first.get("code") == "TRANSPORT_ERROR":
        detail = first.get("detail") or {}
        status = _category_status(detail.get("category") or SERVER, detail.get("status"))
        return JSONResponse(jsonable_encoder(result), status_code=status)
    if first.get("code") == "CRUD_BUSY":
        return JSONResponse(jsonable_encoder(result), status_code=409)
    return _validation_response(result["errors"], result["warnings"])


async def _safe_json(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _record_from_body(body: dict) -> Any:
    return body.get("record") if "record" in body else body


def _repository(collection: str) -> CollectionRepository:
    return CollectionRepository(collection, transport, sink.child("repository"))


async def _orchestrator(collection: str) -> CrudOrchestrator:
    repository = _repository(collection)
    descriptor = await resolve_descriptor(repository, collection, sink.child("inference"))
    return CrudOrchestrator(repository, descriptor, sink=sink.child("crud"))


def _pagination(request: Request) -> Pagination:
    params = request.query_params

    def _int(key: str) -> int | None:
        raw = params.get(key)
        if raw is None or raw == "":
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    return Pagination(
        limit=_int("limit"),
        offset=_int("offset"),
        page=_int("page"),
        per_page=_int("per_page"),
        sort=params.get("sort") or None,
        order=params.get("order") or None,
        filter=params.get("filter") or None,
        extra={k: v for k, v in params.items() if k not in PAGINATION_KEYS},
    )


@app.get("/health")
async def health() -> dict:
    return {"ok": True, "config": settings_summary(settings), "issues": validate_settings(settings)}


@app.get("/collections/{collection}/layout")
async def collection_layout(collection: str):
    repository = _repository(collection)
    descriptor = await resolve_descriptor(repository, collection, sink.child("inference"))
    return _ok_response({"layout": build_layout(descriptor), "collection": descriptor.as_dict()})


@app.post("/collections/{collection}/validate")
async def validate_collection_record(request: Request, collection: str):
    body = await _safe_json(request)
    mode = body.get("mode") or "create"
    if mode not in ("create", "edit"):
        return _error_response("MODE_INVALID", "mode must be create or edit", "mode")
    data = body.get("data") if "data" in body else _record_from_body(body)
    repository = _repository(collection)
    descriptor = await resolve_descriptor(repository, collection, sink.child("inference"))
    errors = validate_record(descriptor.fields, data, for_create=mode == "create")
    return _ok_response({"valid": not errors, "field_errors": errors_as_issues(errors)})


@app.get("/collections/{collection}/items")
async def list_collection_items(request: Request, collection: str):
    envelope = await _repository(collection).list(_pagination(request))
    if not envelope.success:
        return _envelope_error(envelope)
    return _ok_response(envelope.as_dict())


@app.post("/collections/{collection}/items")
async def create_collection_item(request: Request, collection: str):
    body = await _safe_json(request)
    orchestrator = await _orchestrator(collection)
    orchestrator.open_create()
    result = await orchestrator.submit_create(_record_from_body(body))
    return _result_response(result)


@app.get("/collections/{collection}/items/{item_id}")
async def get_collection_item(collection: str, item_id: str):
    envelope = await _repository(collection).get(item_id)
    if not envelope.success:
        return _envelope_error(envelope)
    return _ok_response(envelope.as_dict())


@app.put("/collections/{collection}/items/{item_id}")
async def update_collection_item(request: Request, collection: str, item_id: str):
    body = await _safe_json(request)
    orchestrator = await _orchestrator(collection)
    orchestrator.open_edit({"id": item_id})
    result = await orchestrator.submit_edit(_record_from_body(body))
    return _result_response(result)


@app.delete("/collections/{collection}/items/{item_id}")
async def delete_collection_item(collection: str, item_id: str):
    orchestrator = await _orchestrator(collection)
    orchestrator.open_delete({"id": item_id})
    result = await orchestrator.confirm_delete()
    return _result_response(result)


@app.get("/collections/{collection}/metadata")
async def collection_metadata(collection: str):
    envelope = await _repository(collection).get_metadata()
    if not envelope.success:
        return _envelope_error(envelope)
    return _ok_response(envelope.as_dict())
