"""Request ID middleware: generates or propagates X-Request-Id."""

import re
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_VARIANT_PATH = re.compile(r"^/api/v1/(?P<variant>[a-z]+)/")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind request id and list variant to every log line of the request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        context = {"request_id": request_id, "method": request.method}
        match = _VARIANT_PATH.match(request.url.path)
        if match:
            context["list_variant"] = match.group("variant")
        structlog.contextvars.bind_contextvars(**context)

        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response
