# controlboard/core/errors.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from controlboard.core.exceptions import ControlboardError

log = logging.getLogger("controlboard.errors")

_TRACE_HEADERS = ("x-request-id", "x-correlation-id", "x-trace-id")


def ensure_trace_id(request: Request) -> str:
    """
    Trace id for this request: request.state (set by the logging middleware),
    then an inbound correlation header, else a fresh one stored on request.state.
    """
    val = getattr(request.state, "trace_id", None)
    if val:
        return str(val)

    trace_id = next((request.headers[h] for h in _TRACE_HEADERS if request.headers.get(h)), None)
    trace_id = trace_id or uuid.uuid4().hex
    try:
        request.state.trace_id = trace_id
    except Exception:
        pass
    return trace_id


def error_payload(
    *,
    message: str,
    typ: str,
    status: int,
    trace_id: str,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    error: Dict[str, Any] = {
        "type": typ,
        "message": message,
        "status": status,
        "trace_id": trace_id,
    }
    if details is not None:
        error["details"] = details
    return {"ok": False, "error": error}


def _respond(
    request: Request,
    *,
    status: int,
    typ: str,
    message: str,
    details: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    trace_id = ensure_trace_id(request)
    out_headers = dict(headers or {})
    out_headers["X-Request-ID"] = trace_id
    return JSONResponse(
        status_code=status,
        headers=out_headers,
        content=error_payload(
            message=message, typ=typ, status=status, trace_id=trace_id, details=details
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Consistent JSON error bodies (and X-Request-ID) for every failure path."""

    @app.exception_handler(ControlboardError)
    async def engine_exc_handler(request: Request, exc: ControlboardError):
        status = int(exc.status_code)
        level = logging.ERROR if status >= 500 else logging.WARNING
        log.log(
            level,
            "%s %s %s -> %s | trace_id=%s | %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            status,
            ensure_trace_id(request),
            exc.message,
        )
        return _respond(
            request,
            status=status,
            typ=exc.error_type,
            message=exc.message,
            details=exc.details,
        )

    @app.exception_handler(HTTPException)
    async def http_exc_handler(request: Request, exc: HTTPException):
        status = int(exc.status_code)
        level = logging.ERROR if status >= 500 else logging.WARNING
        log.log(
            level,
            "HTTPException %s %s -> %s | trace_id=%s | detail=%r",
            request.method,
            request.url.path,
            status,
            ensure_trace_id(request),
            exc.detail,
        )
        return _respond(
            request,
            status=status,
            typ="http_error",
            message=exc.detail if isinstance(exc.detail, str) else "HTTP error",
            details=exc.detail if isinstance(exc.detail, dict) else None,
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        log.warning(
            "ValidationError %s %s -> 422 | trace_id=%s | errors=%s",
            request.method,
            request.url.path,
            ensure_trace_id(request),
            errors,
        )
        return _respond(
            request,
            status=422,
            typ="validation_error",
            message="Validation failed.",
            details=[{k: v for k, v in e.items() if k != "ctx"} for e in errors],
        )

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        # traceback to server logs only
        log.exception(
            "Unhandled exception %s %s -> 500 | trace_id=%s",
            request.method,
            request.url.path,
            ensure_trace_id(request),
        )
        return _respond(
            request,
            status=500,
            typ="internal_error",
            message="Internal server error.",
        )
