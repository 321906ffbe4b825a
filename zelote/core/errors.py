from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException


class ZeloteError(Exception):
    """Base class for errors raised by the lending domain."""

    code = "domain_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(ZeloteError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ZeloteError):
    """Duplicate keys or a device in the wrong status for the operation."""

    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class DomainValidationError(ZeloteError):
    code = "domain_validation"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        accept = (request.headers.get("accept") or "").lower()
        path = request.url.path
        if "text/html" in accept and not path.startswith("/api") and not path.startswith("/login"):
            return RedirectResponse(url=f"/login?next={request.url}", status_code=302)
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": jsonable_errors(exc.errors())},
    )


async def domain_exception_handler(request: Request, exc: ZeloteError):
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


def jsonable_errors(errors: Any) -> list[dict[str, Any]]:
    # pydantic puts the raw exception object under ``ctx`` for custom validators
    cleaned: list[dict[str, Any]] = []
    for error in errors:
        item = dict(error)
        ctx = item.get("ctx")
        if isinstance(ctx, dict):
            item["ctx"] = {key: str(value) for key, value in ctx.items()}
        cleaned.append(item)
    return cleaned
