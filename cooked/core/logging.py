"""Logging and observability configuration using Pydantic Logfire.

This module provides standardized logging utilities and configuration.
All modules should use Python's standard logging library (logging.getLogger(__name__)),
and Logfire will automatically capture and enrich these logs.

Standard usage:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Message", extra={"key": "value"})

Structured logging utilities:
    log_with_context(logger, "info", "Message", pact_id="123", user_id="abc")
"""

import logging

import logfire
from fastapi import FastAPI

from cooked.core.config import settings


def configure_logfire() -> None:
    """Configure Pydantic Logfire with token from environment.

    Log records are only shipped when a token is configured.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="cooked",
        service_version="0.1.0",
        environment="production",
        send_to_logfire="if-token-present",
    )

    logger = logging.getLogger(__name__)
    logger.info("Logfire configured successfully")


def instrument_fastapi(app: FastAPI) -> None:
    """Add Logfire instrumentation to FastAPI application."""
    logfire.instrument_fastapi(app)
    logger = logging.getLogger(__name__)
    logger.info("FastAPI instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Create a custom span for service layer functions.

    Usage:
        with span("auto_fold_service.auto_fold_missed_check_ins"):
            # Your service logic here
            pass
    """
    return logfire.span(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log a message with structured context fields.

    Args:
        logger: Logger instance to use
        level: Log level ("debug", "info", "warning", "error", "critical")
        message: Log message
        **context: Additional context fields (pact_id, user_id, check_in_date, etc.)

    Usage:
        log_with_context(logger, "info", "Fold created", pact_id="123", user_id="456")
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=context)
