"""Middleware stack for the loyalty API.

Starlette runs middleware in reverse-add order. The resulting request path is
CORS -> request id -> rate limit -> routers, so 429s still carry CORS and
X-Request-Id headers.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gameplug.config import Settings
from gameplug.middleware.error_handler import setup_error_handlers
from gameplug.middleware.logging import setup_logging
from gameplug.middleware.rate_limit import RateLimitMiddleware
from gameplug.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware

_RATE_LIMIT_HEADERS = ["X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER, *_RATE_LIMIT_HEADERS],
    )
