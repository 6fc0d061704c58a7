"""Maps engine and application errors to HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cargoflow.application.errors import NotFoundError
from cargoflow.domain.errors import LifecycleError

logger = logging.getLogger(__name__)

STATUS_BY_CODE: dict[str, int] = {
    "illegal_transition": 409,
    "forbidden": 403,
    "invalid_state": 409,
    "conflict": 409,
    "validation_error": 422,
}


def _error_body(code: str, message: str, details: dict | None = None) -> dict:
    body = {"code": code, "message": message}
    if details:
        body["details"] = details
    return {"error": body}


async def lifecycle_error_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    status_code = STATUS_BY_CODE.get(exc.code, 400)
    logger.info("%s %s → %d %s: %s", request.method, request.url.path, status_code, exc.code, exc.message)
    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.message, exc.details),
    )


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=_error_body("not_found", str(exc)))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LifecycleError, lifecycle_error_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
