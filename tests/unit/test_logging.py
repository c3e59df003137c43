"""Logging setup tests."""

import logging

import structlog

from gameplug.config import Settings
from gameplug.middleware.logging import SERVICE_NAME, _service_context, setup_logging


class TestServiceContext:
    def test_adds_service_fields(self):
        processor = _service_context(Settings(environment="staging", app_version="9.9.9"))
        event = processor(None, "info", {"event": "ledger_write"})
        assert event == {
            "event": "ledger_write",
            "service": SERVICE_NAME,
            "environment": "staging",
            "version": "9.9.9",
        }

    def test_does_not_override_bound_values(self):
        processor = _service_context(Settings())
        event = processor(None, "info", {"event": "x", "environment": "from-request"})
        assert event["environment"] == "from-request"


class TestSetupLogging:
    def test_quiets_library_loggers_outside_debug(self):
        setup_logging(Settings(debug=False, log_format="console"))
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING
        assert structlog.is_configured()
