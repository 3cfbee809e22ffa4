"""Request-scoped middleware: request ids and the tenant context."""

from uuid import UUID, uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from api.base import ErrorCodes, error_json
from utils.user_context import user_context


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an id, echoed in X-Request-ID and in the
    envelope's meta.request_id. Install it outermost so tenant rejections
    carry the id too.
    """

    HEADER = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[self.HEADER] = request_id
        return response


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Scopes the request to the tenant named in X-User-ID.

    Identity is established upstream; this only rejects a missing or
    malformed id (401) and runs the rest of the request inside
    user_context(), so stores, numbering and audit all see the same tenant.
    """

    HEADER = "X-User-ID"

    PUBLIC_PATHS = ("/health", "/docs", "/openapi.json")

    def _is_public_path(self, path: str) -> bool:
        return path.startswith(self.PUBLIC_PATHS)

    def _tenant_id(self, request: Request) -> UUID | None:
        raw = request.headers.get(self.HEADER)
        return UUID(raw) if raw else None

    async def dispatch(self, request: Request, call_next):
        if self._is_public_path(request.url.path):
            return await call_next(request)

        try:
            tenant_id = self._tenant_id(request)
        except ValueError:
            return error_json(ErrorCodes.INVALID_TOKEN, f"Malformed {self.HEADER} header", request)

        if tenant_id is None:
            return error_json(ErrorCodes.NOT_AUTHENTICATED, "Authentication required", request)

        request.state.user_id = tenant_id
        with user_context(tenant_id):
            return await call_next(request)
