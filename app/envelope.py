"""JSON envelope shared by every API response."""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from slowapi.errors import RateLimitExceeded

logger = logging.getLogger(__name__)


class ApiResponse(BaseModel):
    """Success envelope: status, message and an optional data payload."""

    status: int = 200
    message: str
    data: Any = None

    @property
    def success(self) -> bool:
        return self.status < 400

    def to_body(self) -> dict[str, Any]:
        """Serialize the envelope, leaving out data when none was given."""
        body: dict[str, Any] = {
            "status": self.status,
            "message": self.message,
            "success": self.success,
        }
        if self.data is not None:
            body["data"] = self.data
        return body


class ApiError(Exception):
    """Error raised by handlers and rendered as a failure envelope."""

    def __init__(self, status: int, message: str, errors: list[Any] | None = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.errors = errors or []

    def to_body(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "success": False,
            "errors": self.errors,
        }


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render an ApiError as a JSON failure envelope."""
    if exc.status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status, content=exc.to_body())


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Render a slowapi limit hit as a 429 failure envelope."""
    logger.warning(f"Rate limit hit on {request.method} {request.url.path}: {exc.detail}")
    response = JSONResponse(
        status_code=429,
        content=ApiError(429, f"Rate limit exceeded: {exc.detail}").to_body(),
    )
    return request.app.state.limiter._inject_headers(
        response, request.state.view_rate_limit
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected exceptions and hide their details from the caller."""
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc
    )
    return JSONResponse(
        status_code=500,
        content=ApiError(500, "Internal server error").to_body(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the envelope exception handlers to an application."""
    app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
