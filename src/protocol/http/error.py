from __future__ import annotations

import logging
from typing import Any, Dict, cast

from fastapi import Request
from fastapi import HTTPException as FastAPIHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status


logger = logging.getLogger(__name__)

_STATUS_CODES = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_409_CONFLICT: "conflict",
    422: "unprocessable_entity",
}


def error_envelope(
    *,
    code: str,
    message: str,
    err_type: str,
    request_id: str,
    field_errors: list[dict[str, str]] | None = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "type": err_type,
            "request_id": request_id,
        }
    }
    if field_errors:
        payload["error"]["field_errors"] = field_errors
    return payload


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


def _render(request: Request, status_code: int, message: str) -> JSONResponse:
    payload = error_envelope(
        code=_status_to_code(status_code),
        message=message,
        err_type="client_error" if 400 <= status_code < 500 else "server_error",
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=status_code, content=payload)


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, FastAPIHTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return _render(request, exc.status_code, detail)
    return await exception_handler(request, exc)


async def game_state_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Game exists and the request parsed, but the game cannot serve it right now
    return _render(request, status.HTTP_409_CONFLICT, str(exc))


async def exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, FastAPIHTTPException):
        return await http_exception_handler(request, exc)
    logger.exception("Unhandled exception", extra={"request_id": _request_id(request)})
    return _render(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


async def request_validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    errors = []
    rve = cast(RequestValidationError, exc)
    for e in rve.errors():
        loc = ".".join(str(p) for p in e.get("loc", []) if p is not None)
        errors.append(
            {
                "field": loc,
                "code": e.get("type", "value_error"),
                "message": e.get("msg", "invalid value"),
            }
        )
    payload = error_envelope(
        code="unprocessable_entity",
        message="Validation error",
        err_type="client_error",
        request_id=_request_id(request),
        field_errors=errors or None,
    )
    return JSONResponse(status_code=422, content=payload)


def _status_to_code(status_code: int) -> str:
    if status_code in _STATUS_CODES:
        return _STATUS_CODES[status_code]
    if 500 <= status_code < 600:
        return "internal_error"
    return "error"
