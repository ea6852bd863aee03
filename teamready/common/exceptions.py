"""Domain errors and their RFC 7807 (application/problem+json) rendering.

Every error raised by the services derives from ``AppException``.  The
class carries its HTTP status, problem ``type`` slug and default title;
instances add the human-readable ``detail`` and an optional per-field
``errors`` map.  ``register_exception_handlers`` wires the renderers
into a FastAPI app.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

BASE_ERROR_URI = "https://teamready.dev/errors"
PROBLEM_JSON = "application/problem+json"

FieldErrors = dict[str, list[str]]


class AppException(Exception):
    status_code: ClassVar[int] = 500
    error_type: ClassVar[str] = "internal-error"
    default_title: ClassVar[str] = "Internal Error"

    def __init__(
        self,
        detail: str,
        errors: Optional[FieldErrors] = None,
        title: Optional[str] = None,
    ) -> None:
        self.detail = detail
        self.errors = errors
        self.title = title or self.default_title
        super().__init__(detail)

    def to_problem(self, instance: str) -> dict[str, Any]:
        return _problem(
            self.error_type, self.title, self.status_code, self.detail, instance, self.errors,
        )


class NotFoundException(AppException):
    """404: a referenced company, team, user, absence, ... does not exist."""

    status_code = 404
    error_type = "not-found"

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type} with id '{entity_id}' does not exist.",
            title=f"{entity_type} Not Found",
        )


class ConflictError(AppException):
    """409: the write would duplicate a uniquely keyed row."""

    status_code = 409
    error_type = "conflict"
    default_title = "Conflict"

    def __init__(self, field: str, value: Any) -> None:
        self.field = field
        super().__init__(
            f"An entry with {field}='{value}' already exists.",
            errors={field: [f"'{value}' is already taken."]},
        )


class InvalidStateException(AppException):
    """409: the entity's lifecycle state does not allow the operation."""

    status_code = 409
    error_type = "invalid-state"

    def __init__(self, entity_type: str, state: str, detail: str) -> None:
        self.entity_type = entity_type
        self.state = state
        super().__init__(detail, errors={"status": [state]}, title=f"Invalid {entity_type} State")


class ForbiddenException(AppException):
    status_code = 403
    error_type = "forbidden"
    default_title = "Forbidden"

    def __init__(self, detail: str = "Actor is not allowed to perform this action.") -> None:
        super().__init__(detail)


class ValidationException(AppException):
    """422: input is well-formed but violates a domain rule."""

    status_code = 422
    error_type = "validation-error"
    default_title = "Validation Error"

    def __init__(self, errors: FieldErrors) -> None:
        super().__init__("One or more fields failed validation.", errors=errors)


class InconsistentDateError(AppException):
    """422: a date, instant or zone name that does not resolve to one calendar day."""

    status_code = 422
    error_type = "inconsistent-date"
    default_title = "Inconsistent Date"

    def __init__(self, field: str, value: Any, reason: str) -> None:
        super().__init__(f"{field}='{value}' {reason}", errors={field: [reason]})


# ── Rendering ───────────────────────────────────────────────────────

def _problem(
    error_type: str,
    title: str,
    status: int,
    detail: str,
    instance: str,
    errors: Optional[FieldErrors] = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{error_type}",
        "title": title,
        "status": status,
        "detail": detail,
        "instance": instance,
    }
    if errors:
        body["errors"] = errors
    return body


def _field_name(loc: tuple) -> str:
    # loc[0] is the source ("body", "query", "path")
    if len(loc) > 1:
        return ".".join(str(part) for part in loc[1:])
    return str(loc[0]) if loc else "unknown"


async def _handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_problem(request.url.path),
        media_type=PROBLEM_JSON,
    )


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: FieldErrors = {}
    for err in exc.errors():
        errors.setdefault(_field_name(tuple(err.get("loc", ()))), []).append(
            err.get("msg", "Invalid value")
        )
    return JSONResponse(
        status_code=422,
        content=_problem(
            "validation-error", "Validation Error", 422,
            "Request validation failed.", request.url.path, errors,
        ),
        media_type=PROBLEM_JSON,
    )


async def _handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    """A concurrent writer won the race for a unique key (check-in day, absence day, ...)."""
    logger.warning("Integrity error on %s: %s", request.url.path, exc.orig)
    return JSONResponse(
        status_code=409,
        content=_problem(
            "conflict", "Conflict", 409,
            "The request conflicts with a row written concurrently.", request.url.path,
        ),
        media_type=PROBLEM_JSON,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, _handle_app_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_request_validation)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _handle_integrity_error)  # type: ignore[arg-type]
