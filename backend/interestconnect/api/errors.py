"""Global error handlers producing ``{"error", "request_id"}`` JSON bodies."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from interestconnect.domain.common.exceptions import InterestConnectError
from interestconnect.obs import logging as obs_logging

logger = logging.getLogger(__name__)


def get_request_id(request: Request, default: str = "unknown") -> str:
    rid = getattr(request.state, "request_id", None) or obs_logging.current_request_id()
    return rid or default


def _error(request: Request, status_code: int, message: str) -> JSONResponse:
    rid = get_request_id(request)
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "request_id": rid},
        headers={"X-Request-Id": rid},
    )


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(InterestConnectError)
    async def domain_exc_handler(request: Request, exc: InterestConnectError):  # type: ignore[override]
        if exc.status_code >= 500:
            logger.warning("request failed", extra={"path": request.url.path, "reason": exc.reason})
            return _error(request, exc.status_code, "Internal server error")
        return _error(request, exc.status_code, exc.reason)

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        return _error(request, exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid payload") if errors else "Invalid payload"
        return _error(request, 400, message)

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
        logger.exception("unhandled error", extra={"path": request.url.path})
        return _error(request, 500, "Internal server error")
