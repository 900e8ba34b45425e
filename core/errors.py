"""Application error taxonomy and its HTTP mapping.

Services raise these instead of HTTPException so that they stay usable
outside a request (scripts, tests). register_exception_handlers() wires
them into FastAPI:

- ValidationFailed  -> 400 {"errors": [{"field", "message"}]}
- UnauthorizedError -> 401 {"message"}
- ForbiddenError    -> 403 {"message"}
- NotFoundError     -> 404 {"message"}
- ConflictError     -> 409 {"message"}
- anything else     -> 500 {"message": "Server error"}
"""

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error types
# ---------------------------------------------------------------------------

class AppError(Exception):
    """Base class for errors that carry an HTTP status."""

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message}


@dataclass
class FieldError:
    """A single invalid input field."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: list[FieldError]):
        self.errors = errors
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailed":
        return cls([FieldError(field, message)])

    def to_dict(self) -> dict[str, Any]:
        return {"errors": [e.to_dict() for e in self.errors]}


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Not authorized to access this route"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


# ---------------------------------------------------------------------------
# Pydantic error conversion
# ---------------------------------------------------------------------------

def field_errors_from_pydantic(errors: list[dict[str, Any]]) -> list[FieldError]:
    """Flatten pydantic's error list into FieldErrors.

    Location prefixes added by FastAPI ("body", "query", "path", "form")
    are dropped so clients only see the parameter name.
    """
    result = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        result.append(FieldError(field=".".join(loc) or "request", message=err.get("msg", "Invalid value")))
    return result


# ---------------------------------------------------------------------------
# FastAPI wiring
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """Map the error taxonomy onto JSON responses."""

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = field_errors_from_pydantic(list(exc.errors()))
        return JSONResponse(status_code=400, content={"errors": [e.to_dict() for e in errors]})

    @app.exception_handler(ValidationError)
    async def handle_model_validation(request: Request, exc: ValidationError) -> JSONResponse:
        errors = field_errors_from_pydantic(list(exc.errors()))
        return JSONResponse(status_code=400, content={"errors": [e.to_dict() for e in errors]})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Server error"})
