"""도메인 예외 -> HTTP 응답 변환."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..exceptions import ExchangeError


logger = logging.getLogger(__name__)


def error_body(exc: ExchangeError) -> dict[str, dict[str, str]]:
    return {"detail": {"code": exc.code, "message": exc.message}}


async def handle_exchange_error(request: Request, exc: ExchangeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(
            "request failed with %s: %s",
            exc.code,
            exc.message,
            extra={"method": request.method, "path": request.url.path},
        )
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ExchangeError, handle_exchange_error)  # type: ignore[arg-type]
