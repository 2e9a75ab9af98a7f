"""Application errors and their HTTP rendering.

Handlers registered by ``install_error_handlers`` render every
``QuotePortalError`` as ``{"error": message, "details": ...}`` with the
error's status code. Malformed request bodies become 400 "Invalid data".
Anything else is logged and rendered as a generic 500.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class QuotePortalError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class NotFoundError(QuotePortalError):
    status_code = 404

    def __init__(self, resource: str = "Resource", message: str | None = None) -> None:
        super().__init__(message or f"{resource} not found")


class InputValidationError(QuotePortalError):
    status_code = 400

    @classmethod
    def from_pydantic(cls, exc: ValidationError, message: str = "Invalid data") -> "InputValidationError":
        details = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
            for e in exc.errors()
        ]
        return cls(message, details)


class ConflictError(QuotePortalError):
    status_code = 409


class InvalidTransition(ConflictError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Quote cannot move from '{current}' to '{target}'",
            {"status": current, "requested": target},
        )


class ThrottledError(QuotePortalError):
    status_code = 429

    def __init__(self, retry_after: int) -> None:
        super().__init__("Too many requests", {"retryAfter": retry_after})
        self.retry_after = retry_after


async def _handle_app_error(request: Request, exc: QuotePortalError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info(
            "%s %s -> %s %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
            extra={"route": request.url.path, "status": exc.status_code},
        )
    headers = None
    if isinstance(exc, ThrottledError):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]
    logger.info("%s %s -> 400 invalid request", request.method, request.url.path)
    return JSONResponse(status_code=400, content={"error": "Invalid data", "details": details})


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(QuotePortalError, _handle_app_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_request_validation)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected)
