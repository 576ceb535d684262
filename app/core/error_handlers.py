from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.http_hardening import REQUEST_ID_HEADER, request_duration_ms
from app.services.errors import DomainError

_LOG = logging.getLogger("app.errors")


def _context(request: Request) -> dict:
    return {
        "operation": f"{request.method} {request.url.path}",
        "actor": getattr(request.state, "actor", None) or "-",
        "request_id": getattr(request.state, "request_id", None) or "-",
        "duration_ms": round(request_duration_ms(request), 2),
    }


def _internal_error(request: Request) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    headers = {REQUEST_ID_HEADER: request_id} if request_id else None
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "InternalError", "detail": "Internal server error"},
        headers=headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def _domain_error_handler(request: Request, exc: DomainError):
        ctx = _context(request)
        _LOG.info(
            "domain_error code=%s status=%s operation=%s actor=%s request_id=%s",
            exc.code,
            exc.status_code,
            ctx["operation"],
            ctx["actor"],
            ctx["request_id"],
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def _request_shape_handler(request: Request, exc: RequestValidationError):
        details = [
            {"loc": [str(part) for part in err.get("loc", ())], "message": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "InvalidRequest", "detail": "Invalid request body", "details": details},
        )

    @app.exception_handler(SQLAlchemyError)
    async def _database_error_handler(request: Request, exc: SQLAlchemyError):
        ctx = _context(request)
        _LOG.error(
            "database_error operation=%s actor=%s request_id=%s duration_ms=%s error=%s",
            ctx["operation"],
            ctx["actor"],
            ctx["request_id"],
            ctx["duration_ms"],
            exc.__class__.__name__,
            exc_info=exc,
        )
        return _internal_error(request)

    @app.exception_handler(Exception)
    async def _unexpected_error_handler(request: Request, exc: Exception):
        ctx = _context(request)
        _LOG.error(
            "unexpected_error operation=%s actor=%s request_id=%s duration_ms=%s error=%s",
            ctx["operation"],
            ctx["actor"],
            ctx["request_id"],
            ctx["duration_ms"],
            exc.__class__.__name__,
            exc_info=exc,
        )
        return _internal_error(request)
