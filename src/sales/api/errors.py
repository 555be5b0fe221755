"""Exception handlers mapping domain errors to ``{"error": message}`` responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from sales.exceptions import ConfigurationError, ForbiddenError, UnauthorizedError

logger = structlog.get_logger(__name__)

SERVER_ERROR_MESSAGE = "Unexpected server error"


def first_message(messages) -> str:
    """Collapse Protean's ``{field: [messages]}`` shape to a single message."""
    if isinstance(messages, dict):
        for value in messages.values():
            if isinstance(value, (list, tuple)):
                if value:
                    return str(value[0])
            elif value:
                return str(value)
        return "Invalid request"
    if isinstance(messages, (list, tuple)):
        return str(messages[0]) if messages else "Invalid request"
    return str(messages)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _error(400, first_message(exc.messages))


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return _error(400, "Invalid request")
    location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
    message = errors[0].get("msg", "Invalid value")
    return _error(400, f"{location}: {message}" if location else message)


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return _error(404, first_message(exc.args[0]) if exc.args else "Not found")


async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
    return _error(401, exc.message)


async def forbidden_handler(request: Request, exc: ForbiddenError) -> JSONResponse:
    return _error(403, exc.message)


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("shipping_configuration_error", path=request.url.path, error=str(exc))
    return _error(500, SERVER_ERROR_MESSAGE)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unexpected_error", path=request.url.path, error=str(exc))
    return _error(500, SERVER_ERROR_MESSAGE)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(UnauthorizedError, unauthorized_handler)
    app.add_exception_handler(ForbiddenError, forbidden_handler)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
