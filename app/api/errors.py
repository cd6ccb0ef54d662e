"""Error envelope shared by every route.

Failures render as ``{"success": false, "message": ..., "details": ...}``
whether they come from a router, a dependency or request validation.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.domain.exceptions import ConfigError


logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    def __init__(self, status_code: int, message: str, details: Any = None):
        super().__init__(status_code=status_code, detail=message)
        self.details = details


def error_body(message: str, details: Any = None) -> dict[str, Any]:
    return {"success": False, "message": message, "details": details}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), getattr(exc, "details", None)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())[1:]),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content=error_body("Validation failed.", details))


async def config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
    logger.error("errors: config_error path=%s error=%s", request.url.path, exc)
    return JSONResponse(status_code=500, content=error_body("Server is not configured."))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ConfigError, config_error_handler)
