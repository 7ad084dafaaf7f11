"""Error type and handlers mapping domain failures onto ``{"error": ...}`` JSON bodies."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from rich.console import Console

from shortsfeed.services.pacing import DeadlineExceededError
from shortsfeed.services.runner import ChannelNotFoundError, ChannelSelectionError
from shortsfeed.services.storage import StorageError
from shortsfeed.services.youtube import YouTubeConfigurationError


class ApiError(Exception):
    """Raised by routes and dependencies to return a specific status and error body."""

    def __init__(self, status_code: int, error: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.extra = dict(extra or {})


def _error_response(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, **extra})


def register_exception_handlers(app: FastAPI, console: Console) -> None:
    """Attach handlers for the project's exception types to ``app``."""

    @app.exception_handler(ApiError)
    async def api_error_handler(_request: Request, exc: ApiError) -> JSONResponse:
        return _error_response(exc.status_code, exc.error, **exc.extra)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}" for error in exc.errors()
        )
        return _error_response(status.HTTP_400_BAD_REQUEST, f"Invalid request parameters: {details}")

    @app.exception_handler(ChannelSelectionError)
    async def channel_selection_handler(_request: Request, exc: ChannelSelectionError) -> JSONResponse:
        return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(ChannelNotFoundError)
    async def channel_not_found_handler(_request: Request, exc: ChannelNotFoundError) -> JSONResponse:
        available = [{"name": channel.channel_name, "id": channel.channel_id} for channel in exc.available]
        return _error_response(status.HTTP_404_NOT_FOUND, str(exc), availableChannels=available)

    @app.exception_handler(YouTubeConfigurationError)
    async def configuration_error_handler(_request: Request, exc: YouTubeConfigurationError) -> JSONResponse:
        console.log(f"[red]Configuration error:[/red] {exc}")
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    @app.exception_handler(DeadlineExceededError)
    async def deadline_error_handler(request: Request, exc: DeadlineExceededError) -> JSONResponse:
        console.log(f"[red]Run deadline exceeded on {request.url.path}:[/red] {exc}")
        return _error_response(status.HTTP_504_GATEWAY_TIMEOUT, str(exc))

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        console.log(f"[red]Storage error on {request.url.path}:[/red] {exc}")
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Storage request failed")


__all__ = ["ApiError", "register_exception_handlers"]
