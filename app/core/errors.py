from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.logger import logger


class BookingAPIError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500
    message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None, status_code: Optional[int] = None):
        self.message = message or self.message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(BookingAPIError):
    status_code = 400
    message = "Invalid payload"


class MalformedIdError(BookingAPIError):
    status_code = 400
    message = "Malformed booking id"


class NotFoundError(BookingAPIError):
    status_code = 404
    message = "Not found"


class StoreError(BookingAPIError):
    """Store unreachable or query rejected. Writes raise it with status 400."""

    status_code = 500
    message = "Database error"


def _field_path(loc) -> str:
    # Drop the leading "body"/"query" marker FastAPI prepends
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "payload"


def errors_to_details(errors) -> Dict[str, str]:
    """Collapse pydantic error entries into a {field: message} map (first message wins)."""
    details: Dict[str, str] = {}
    for err in errors:
        details.setdefault(_field_path(err.get("loc", ())), err.get("msg", "Invalid value"))
    return details


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BookingAPIError)
    async def booking_error_handler(request: Request, exc: BookingAPIError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"⚠️ {request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = errors_to_details(exc.errors())
        logger.info(f"⚠️ {request.method} {request.url.path} -> 400: {details}")
        return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"🔥 UNHANDLED ERROR: {str(exc)}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error"}
        )
