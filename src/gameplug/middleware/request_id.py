"""X-Request-Id propagation.

Inbound ids from the storefront are reused so one checkout can be traced across
services. Ids that are too long or carry anything beyond ``[A-Za-z0-9._-]`` are
replaced rather than echoed into logs and headers.
"""

import re
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-Id"

_VALID_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


def resolve_request_id(inbound: str | None) -> str:
    if inbound and _VALID_ID.match(inbound):
        return inbound
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
