"""Exception handlers mapping domain errors onto the response envelope."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from api.base import ErrorCodes, error_json
from core.errors import CounterUnavailable, InvalidTransition, InvoiceNotFound

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """
    Starlette picks the handler for the most specific class in the
    exception's MRO, so InvalidTransition and InvoiceNotFound win over the
    generic ValueError handler they inherit from.
    """

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition):
        return error_json(ErrorCodes.INVALID_STATUS_TRANSITION, str(exc), request)

    @app.exception_handler(InvoiceNotFound)
    async def invoice_not_found_handler(request: Request, exc: InvoiceNotFound):
        return error_json(ErrorCodes.NOT_FOUND, str(exc), request)

    @app.exception_handler(CounterUnavailable)
    async def counter_unavailable_handler(request: Request, exc: CounterUnavailable):
        logger.warning("Counter store unavailable: %s", exc)
        return error_json(
            ErrorCodes.SERVICE_UNAVAILABLE,
            "Invoice numbering is temporarily unavailable",
            request,
        )

    # InvoiceCreate(**data) / InvoiceUpdate(**data) inside action handlers
    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError):
        return error_json(ErrorCodes.VALIDATION_ERROR, str(exc.errors(include_url=False)), request)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_json(ErrorCodes.VALIDATION_ERROR, str(exc.errors()), request)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        code = ErrorCodes.NOT_FOUND if "not found" in message.lower() else ErrorCodes.INVALID_REQUEST
        return error_json(code, message, request)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return error_json(ErrorCodes.INTERNAL_ERROR, "An internal error occurred", request)
