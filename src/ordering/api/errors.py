"""Map ordering errors onto HTTP responses.

Body shape for every mapped error: ``{"error": <messages>, "code": <error name>}``.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ProteanExceptionWithMessage
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import (
    CodeMismatch,
    ConflictError,
    InternalError,
    NotPermitted,
    ObjectNotFoundError,
    OrderPolicyViolation,
    ValidationError,
)

_STATUS_CODES = {
    ValidationError: 400,
    ObjectNotFoundError: 404,
    NotPermitted: 403,
    CodeMismatch: 422,
    OrderPolicyViolation: 409,
    ConflictError: 409,
    InternalError: 503,
}


def _error_response(exc: Exception, status_code: int) -> JSONResponse:
    # Protean's own ObjectNotFoundError carries only a message string
    messages = exc.messages if isinstance(exc, ProteanExceptionWithMessage) else {"_entity": [str(exc)]}
    return JSONResponse(
        status_code=status_code,
        content={"error": messages, "code": type(exc).__name__},
    )


async def _request_validation_response(_request: Request, exc: RequestValidationError) -> JSONResponse:
    messages: dict[str, list[str]] = {}
    for error in exc.errors():
        location = [str(part) for part in error["loc"] if part not in ("body", "query", "path", "header")]
        messages.setdefault(".".join(location) or "request", []).append(error["msg"])
    return JSONResponse(status_code=400, content={"error": messages, "code": "ValidationError"})


def register_error_handlers(app: FastAPI) -> None:
    """Install Protean's default handlers, then the ordering-specific mapping on top."""
    register_exception_handlers(app)

    for exc_class, status_code in _STATUS_CODES.items():

        async def handler(_request: Request, exc: Exception, status_code: int = status_code) -> JSONResponse:
            return _error_response(exc, status_code)

        app.add_exception_handler(exc_class, handler)

    app.add_exception_handler(RequestValidationError, _request_validation_response)
