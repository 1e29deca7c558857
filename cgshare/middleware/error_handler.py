# cgshare/middleware/error_handler.py
# Structured error handling middleware
# Catches unhandled exceptions and returns consistent JSON responses

import traceback
import logging
from typing import Callable
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from cgshare.utils.logger import log_exception

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred."


class AppError(Exception):
    """Base application error with structured response."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}


class StorageError(AppError):
    """Entry store operation failed. The cause is logged, never returned."""
    def __init__(self, message: str = GENERIC_ERROR_MESSAGE):
        super().__init__(message=message, error_code="INTERNAL_ERROR", status_code=500)


class HashingError(AppError):
    """Password hash could not be generated."""
    def __init__(self, message: str = GENERIC_ERROR_MESSAGE):
        super().__init__(message=message, error_code="INTERNAL_ERROR", status_code=500)


class InvalidFieldsError(AppError):
    """Request body is missing fields or has malformed ones."""
    def __init__(self, fields: list[str]):
        super().__init__(
            message="invalid-fields",
            error_code="INVALID_FIELDS",
            status_code=400,
            details={"fields": fields}
        )


class EntryValidationError(AppError):
    """The game server rejected the referenced game state."""
    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(message=message, error_code=error_code, status_code=403)


class NotAGameServerError(EntryValidationError):
    def __init__(self, game_url: str):
        super().__init__(f"'{game_url}' is not a CodeGame game server!", "NOT_A_GAME_SERVER")


class GameNotFoundError(EntryValidationError):
    def __init__(self, game_id):
        super().__init__(f"The game '{game_id}' does not exist!", "GAME_NOT_FOUND")


class PlayerNotFoundError(EntryValidationError):
    def __init__(self, player_id):
        super().__init__(f"The player '{player_id}' does not exist!", "PLAYER_NOT_FOUND")


class UnknownEntryTypeError(AppError):
    def __init__(self, entry_type: str):
        super().__init__(
            message=f"Unknown entry type: {entry_type}",
            error_code="UNKNOWN_ENTRY_TYPE",
            status_code=400
        )


class NotFoundError(AppError):
    """Entry not found (missing, expired or of another type)."""
    def __init__(self, message: str = "Resource not found", details: dict = None):
        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=404,
            details=details
        )


class MalformedPayloadError(AppError):
    """Stored payload bytes do not decode into the shape of the entry type."""
    def __init__(self, message: str = "The stored entry is malformed and cannot be used."):
        super().__init__(message=message, error_code="MALFORMED_PAYLOAD", status_code=200)


def create_error_response(
    error_code: str,
    message: str,
    status_code: int,
    details: dict = None,
    request_id: str = None
) -> JSONResponse:
    """Create a standardized JSON error response."""
    content = {
        "error": {
            "code": error_code,
            "message": message,
        }
    }

    if details:
        content["error"]["details"] = details

    if request_id:
        content["error"]["request_id"] = request_id

    return JSONResponse(status_code=status_code, content=content)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware that catches all unhandled exceptions and returns
    consistent JSON error responses.
    """

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get("X-Request-ID", str(id(request)))

        try:
            return await call_next(request)

        except AppError as e:
            logger.warning(
                f"AppError: {e.error_code} - {e.message}",
                extra={"request_id": request_id, "path": request.url.path}
            )
            return create_error_response(
                error_code=e.error_code,
                message=e.message,
                status_code=e.status_code,
                details=e.details,
                request_id=request_id
            )

        except HTTPException as e:
            logger.warning(
                f"HTTPException: {e.status_code} - {e.detail}",
                extra={"request_id": request_id, "path": request.url.path}
            )
            return create_error_response(
                error_code="HTTP_ERROR",
                message=str(e.detail),
                status_code=e.status_code,
                request_id=request_id
            )

        except Exception as e:
            error_details = None
            if self.debug:
                error_details = {
                    "type": type(e).__name__,
                    "traceback": traceback.format_exc()
                }

            log_exception(e, context=f"Unhandled error on {request.url.path}")
            logger.error(
                f"Unhandled exception: {type(e).__name__}: {str(e)}",
                extra={"request_id": request_id, "path": request.url.path},
                exc_info=True
            )

            return create_error_response(
                error_code="INTERNAL_ERROR",
                message=GENERIC_ERROR_MESSAGE,
                status_code=500,
                details=error_details,
                request_id=request_id
            )


def _invalid_field_names(exc: RequestValidationError) -> list[str]:
    # loc looks like ("body", "session", "game_id"); keep the innermost field name
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        if loc and loc[-1] not in fields:
            fields.append(loc[-1])
    return fields


def setup_exception_handlers(app):
    """Register exception handlers on FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if isinstance(exc, (StorageError, HashingError)):
            logger.error(f"{type(exc).__name__} on {request.url.path}")
        return create_error_response(
            error_code=exc.error_code,
            message=exc.message,
            status_code=exc.status_code,
            details=exc.details
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        if any(err.get("type") == "json_invalid" for err in exc.errors()):
            return create_error_response(
                error_code="DECODE_REQUEST_BODY",
                message="decode-request-body",
                status_code=400
            )
        err = InvalidFieldsError(_invalid_field_names(exc))
        return create_error_response(
            error_code=err.error_code,
            message=err.message,
            status_code=err.status_code,
            details=err.details
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        log_exception(exc, context=f"Unhandled error on {request.url.path}")
        return create_error_response(
            error_code="INTERNAL_ERROR",
            message=GENERIC_ERROR_MESSAGE,
            status_code=500
        )
