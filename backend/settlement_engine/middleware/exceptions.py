"""Engine exceptions and the FastAPI handlers that render them.

Engine code raises the typed errors below; at the HTTP edge every error,
typed or not, is rendered in one JSON envelope and logged.  Unexpected
exceptions never leak their message to the client.
"""

import logging
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class EngineError(Exception):
    """Base exception for reconciliation engine errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Union[dict, list, None] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ConfigurationError(EngineError):
    """Invalid thresholds, weights or severity bands.

    Raised while the configuration is built, before any batch is processed.
    """

    def __init__(self, message: str, details: Union[dict, list, None] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="CONFIGURATION_ERROR",
            details=details,
        )


class UnknownSchemaError(EngineError):
    """Normalizer asked to handle a schema tag it does not know."""

    def __init__(self, schema: str, known: list[str]):
        self.schema = schema
        super().__init__(
            message=f"Unknown record schema '{schema}' (expected one of: {', '.join(known)})",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="UNKNOWN_SCHEMA",
        )


class ChargebackTransitionError(EngineError):
    """Chargeback status change outside initiated -> under_review -> won|lost."""

    def __init__(
        self,
        chargeback_id: str,
        from_status: str,
        to_status: str,
        message: str | None = None,
        error_code: str = "INVALID_TRANSITION",
    ):
        self.chargeback_id = chargeback_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            message=message or (
                f"Chargeback {chargeback_id}: cannot move from "
                f"'{from_status}' to '{to_status}'"
            ),
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
            details={"chargeback_id": chargeback_id, "from": from_status, "to": to_status},
        )


class TerminalStateError(ChargebackTransitionError):
    """Attempt to move a won/lost chargeback anywhere."""

    def __init__(self, chargeback_id: str, from_status: str, to_status: str):
        super().__init__(
            chargeback_id,
            from_status,
            to_status,
            message=(
                f"Chargeback {chargeback_id} is already '{from_status}' (terminal); "
                f"transition to '{to_status}' rejected"
            ),
            error_code="TERMINAL_STATE",
        )


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    """Render the error envelope shared by every handler:

        {"error": {"code": ..., "message": ..., "details": ...}}

    `details` is left out when empty.
    """
    error = {"code": error_code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


def _request_context(request: Request) -> dict:
    return {"path": request.url.path, "method": request.method}


async def engine_exception_handler(request: Request, exc: EngineError) -> JSONResponse:
    """Typed engine errors carry their own status and code."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "%s on %s: %s",
        exc.error_code, request.url.path, exc.message,
        extra={**_request_context(request), "error_code": exc.error_code},
    )
    return create_error_response(exc.status_code, exc.message, exc.error_code, exc.details)


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("HTTP %s on %s: %s", exc.status_code, request.url.path, exc.detail,
                     extra=_request_context(request))
    return create_error_response(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}")


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    """Request bodies that fail schema validation (422)."""
    problems = [
        {
            "field": " -> ".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning("Rejected request to %s: %d validation error(s)", request.url.path, len(problems),
                   extra=_request_context(request))
    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        "VALIDATION_ERROR",
        {"errors": problems},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected: log the traceback, answer with a generic 500."""
    logger.exception("Unhandled exception on %s", request.url.path, extra=_request_context(request))
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
        "INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Wire every handler above into the FastAPI app."""
    handlers = [
        (EngineError, engine_exception_handler),
        (HTTPException, http_exception_handler),
        (StarletteHTTPException, http_exception_handler),
        (RequestValidationError, validation_exception_handler),
        (ValidationError, validation_exception_handler),
        (Exception, general_exception_handler),
    ]
    for exc_class, handler in handlers:
        app.add_exception_handler(exc_class, handler)
