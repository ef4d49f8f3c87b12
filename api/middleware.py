"""
Global middleware and exception handlers.
"""

from __future__ import annotations

import asyncio
import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config.settings import config
from utils.errors import AppError, ValidationError

logger = logging.getLogger(__name__)


def register_middleware(app: FastAPI) -> None:
    """Attach any app-level middleware."""

    @app.middleware("http")
    async def request_timer(request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                call_next(request), timeout=config.request_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                "%s %s timed out after %.1fs",
                request.method, request.url.path, config.request_timeout_seconds,
            )
            response = JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={"message": "Request timed out"},
            )
        elapsed = time.perf_counter() - start
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        logger.info(
            "%s %s %s %.3fs",
            request.method, request.url.path, response.status_code, elapsed,
        )
        return response


def _field_name(loc) -> str:
    # drop the leading "body" / "path" / "query" segment
    parts = [str(p) for p in loc[1:]] or [str(p) for p in loc]
    return ".".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    """Map the error taxonomy onto JSON responses."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": _field_name(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=ValidationError.status_code,
            content={"message": ValidationError.message, "errors": errors},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error"},
        )
