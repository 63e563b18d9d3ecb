# core/errors.py
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from core.config import is_production

logger = logging.getLogger(__name__)


# ---------------------------
# Error taxonomy
# ---------------------------
class AppError(Exception):
    """
    Base class for errors that map onto an HTTP response.

    Attributes:
        status_code: HTTP status returned to the caller
        message:     Human readable summary
    """
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def payload(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message}


class ValidationError(AppError):
    """Missing or malformed fields. `errors` holds one entry per field."""
    status_code = 400

    def __init__(self, message: str = "Validation failed", errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def payload(self) -> Dict[str, Any]:
        out = super().payload()
        if self.errors:
            out["errors"] = self.errors
        return out

    @classmethod
    def missing(cls, *fields: str) -> "ValidationError":
        return cls(
            f"Missing required field(s): {', '.join(fields)}",
            [{"field": f, "message": f"{f} is required", "value": None} for f in fields],
        )


class CastError(AppError):
    """An identifier that is not in the expected format."""
    status_code = 400

    def __init__(self, field: str, value: Any):
        super().__init__(f"Invalid {field} format")
        self.field = field
        self.value = value

    def payload(self) -> Dict[str, Any]:
        out = super().payload()
        out["field"] = self.field
        out["value"] = self.value
        return out


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


# ---------------------------
# Helpers
# ---------------------------
def field_errors(errors) -> List[Dict[str, Any]]:
    """Flatten pydantic error dicts into {field, message, value} entries."""
    out = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        out.append({
            "field": ".".join(loc) or None,
            "message": err.get("msg"),
            "value": err.get("input"),
        })
    return out


def validate_model(model_cls, data):
    """
    Validate `data` against a pydantic/SQLModel schema, re-raising
    pydantic's error as our ValidationError.
    """
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(errors=field_errors(e.errors(include_url=False))) from e


# ---------------------------
# Handlers
# ---------------------------
def _safe(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_safe(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _safe(v) for k, v in value.items()}
    return str(value)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_safe(exc.payload()))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = field_errors(exc.errors())
    logger.info("%s %s -> 400: %s", request.method, request.url.path, errors)
    return JSONResponse(
        status_code=400,
        content=_safe({"success": False, "message": "Validation failed", "errors": errors}),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"success": False, "message": "Server error"}
    if not is_production():
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


__all__ = [
    "AppError", "ValidationError", "CastError", "UnauthorizedError",
    "ForbiddenError", "NotFoundError", "ConflictError",
    "field_errors", "validate_model", "register_error_handlers",
]
