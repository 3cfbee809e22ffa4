"""Response envelope shared by /api/data and /api/actions."""

from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field
from starlette.requests import Request
from starlette.responses import JSONResponse

from utils.timezone import now_utc


class APIError(BaseModel):
    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")


class APIMeta(BaseModel):
    timestamp: datetime = Field(default_factory=now_utc, description="Response timestamp (UTC)")
    request_id: str = Field(..., description="Same value as the X-Request-ID response header")


class APIResponse(BaseModel):
    """
    Every endpoint answers with this shape.

    success=True carries data, success=False carries error. Invoice records
    inside data are camelCase, money fields are JSON numbers.
    """

    success: bool
    data: Any | None = None
    error: APIError | None = None
    meta: APIMeta


class ErrorCodes:
    """Codes clients branch on. HTTP status for each is in ERROR_STATUS."""

    # Tenant header
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    INVALID_TOKEN = "INVALID_TOKEN"

    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"

    # send/view/pay/cancel on an invoice whose status forbids it
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    # Counter store down during an explicit numbering reset
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


ERROR_STATUS = {
    ErrorCodes.NOT_AUTHENTICATED: 401,
    ErrorCodes.INVALID_TOKEN: 401,
    ErrorCodes.NOT_FOUND: 404,
    ErrorCodes.VALIDATION_ERROR: 422,
    ErrorCodes.INVALID_REQUEST: 400,
    ErrorCodes.INVALID_STATUS_TRANSITION: 409,
    ErrorCodes.INTERNAL_ERROR: 500,
    ErrorCodes.SERVICE_UNAVAILABLE: 503,
}


def request_id_of(request: Request | None) -> str:
    """The id RequestIDMiddleware assigned, or a fresh one outside a request."""
    if request is not None:
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            return request_id
    return str(uuid4())


def success_response(data: Any, request: Request | None = None) -> APIResponse:
    return APIResponse(
        success=True,
        data=data,
        meta=APIMeta(request_id=request_id_of(request)),
    )


def error_response(code: str, message: str, request: Request | None = None) -> APIResponse:
    return APIResponse(
        success=False,
        error=APIError(code=code, message=message),
        meta=APIMeta(request_id=request_id_of(request)),
    )


def error_json(code: str, message: str, request: Request | None = None) -> JSONResponse:
    """error_response rendered with the status code that belongs to code."""
    return JSONResponse(
        status_code=ERROR_STATUS[code],
        content=error_response(code, message, request).model_dump(mode="json"),
    )
