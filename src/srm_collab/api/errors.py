"""Translation of service errors into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from srm_collab.core.errors import BackendError
from srm_collab.schemas import ErrorResponse

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[str, int] = {
    "connection": status.HTTP_503_SERVICE_UNAVAILABLE,
    "auth": status.HTTP_401_UNAUTHORIZED,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "constraint": status.HTTP_409_CONFLICT,
    "duplicate": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
    "storage": status.HTTP_502_BAD_GATEWAY,
}


def status_for(error: BackendError) -> int:
    return STATUS_BY_KIND.get(error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


async def backend_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a backend error as a dismissable notice."""
    if not isinstance(exc, BackendError):
        raise TypeError(f"Unexpected exception type: {type(exc).__name__}") from exc
    code = status_for(exc)
    if code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    body = ErrorResponse(detail=str(exc), kind=exc.kind)
    return JSONResponse(status_code=code, content=body.model_dump())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BackendError, backend_error_handler)


__all__ = ["STATUS_BY_KIND", "backend_error_handler", "register_error_handlers", "status_for"]
