"""structlog setup for the loyalty API.

Every event carries the service name, environment and version, so loyalty logs
can be told apart from the storefront's once they share a sink. Service modules
keep using stdlib ``logging``.
"""

import logging

import structlog

from gameplug.config import Settings

SERVICE_NAME = "gameplug-loyalty"

# Chatty at INFO; only useful while debugging locally
_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx")


def _service_context(settings: Settings) -> structlog.types.Processor:
    static = {
        "service": SERVICE_NAME,
        "environment": settings.environment,
        "version": settings.app_version,
    }

    def add_service_context(
        _logger: object, _method: str, event_dict: structlog.types.EventDict
    ) -> structlog.types.EventDict:
        for key, value in static.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_context


def setup_logging(settings: Settings) -> None:
    if settings.log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=settings.debug)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _service_context(settings),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s %(message)s")
    logging.getLogger("gameplug").setLevel(level)
    if not settings.debug:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
