from __future__ import annotations

import os
import uuid
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cellar.core.db import db_health
from cellar.core.errors import AlreadyExists, DomainError, Forbidden, NotFound, ReferenceNotFound, ValidationError
from cellar.core.observability import configure_logging, emit
from cellar.core.storage import storage_health
from cellar.modules.catalog.router import router as catalog_router
from cellar.modules.reviews.router import router as reviews_router
from cellar.modules.wines.router import router as wines_router

APP_VERSION = os.getenv("APP_VERSION", "0.1.0")

configure_logging()

app = FastAPI(title="Wine Cellar API", version=APP_VERSION)

# Contract locks:
# - X-Request-Id in/out (missing -> generated; always echoed back; also on errors)
# - Error envelope keys: error, message, request_id, details
# - /health keys: status, version, db, storage

_DOMAIN_STATUS = {
    ValidationError: 400,
    ReferenceNotFound: 404,
    NotFound: 404,
    Forbidden: 403,
    AlreadyExists: 409,
}


def _err_envelope(error: str, message: str, request_id: Optional[str], details: Any, status_code: int):
    headers = {}
    if request_id:
        headers["X-Request-Id"] = request_id
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "request_id": request_id,
            "details": details,
        },
        headers=headers,
    )


@app.middleware("http")
async def _request_id_mw(request: Request, call_next):
    rid = request.headers.get("X-Request-Id") or uuid.uuid4().hex.upper()
    request.state.request_id = rid
    emit("info", "http.request.start", f"{request.method} {request.url.path}", rid, __name__)
    try:
        resp = await call_next(request)
    except Exception as e:
        emit("error", "http.request.exception", str(e), rid, __name__)
        raise
    resp.headers["X-Request-Id"] = rid
    emit("info", "http.request.end", f"{request.method} {request.url.path} -> {getattr(resp, 'status_code', None)}", rid, __name__)
    return resp


@app.exception_handler(DomainError)
async def _domain_exc_handler(request: Request, exc: DomainError):
    rid = getattr(request.state, "request_id", None)
    status_code = _DOMAIN_STATUS.get(type(exc), 400)
    emit("warning", f"domain.{exc.code}", exc.message, rid, __name__, path=request.url.path)
    return _err_envelope(exc.code, exc.message, rid, exc.details(), status_code)


@app.exception_handler(StarletteHTTPException)
async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
    rid = getattr(request.state, "request_id", None)
    return _err_envelope("http_error", str(exc.detail), rid, {"status_code": exc.status_code}, exc.status_code)


@app.exception_handler(RequestValidationError)
async def _validation_exc_handler(request: Request, exc: RequestValidationError):
    rid = getattr(request.state, "request_id", None)
    return _err_envelope("validation_error", "request validation failed", rid, jsonable_encoder(exc.errors()), 422)


@app.exception_handler(Exception)
async def _unhandled_exc_handler(request: Request, exc: Exception):
    rid = getattr(request.state, "request_id", None)
    emit("error", "http.unhandled", str(exc), rid, __name__, type=type(exc).__name__)
    return _err_envelope("internal_error", "internal server error", rid, {"type": type(exc).__name__}, 500)


@app.get("/health")
def health():
    db = db_health()
    storage = storage_health()
    ok = db.get("status") == "ok" and storage.get("status") == "ok"
    return {
        "status": "ok" if ok else "degraded",
        "version": APP_VERSION,
        "db": db,
        "storage": storage,
    }


app.include_router(catalog_router)
app.include_router(wines_router)
app.include_router(reviews_router)
