"""Logfire setup and the log helpers the planner services share.

Services log through ``logging.getLogger(__name__)``. State hub mutations,
imports, backups and derived views run inside ``span`` blocks so a
configured Logfire project sees one trace per operation. Storage
fallbacks, dropped import records and refused writes go through
``log_with_context`` with the storage key or task id as structured fields.

Without a Logfire token nothing leaves the process and log records only
reach the standard logging handlers.
"""

import logging

import logfire

from campus_planner.core.config import Settings, settings


def configure_logfire(config: Settings | None = None) -> None:
    """Point Logfire at the planner service, sending only when a token is set."""
    config = config or settings
    logfire.configure(
        token=config.logfire_token,
        service_name="campus-planner",
        service_version="0.1.0",
        environment=config.environment,
        send_to_logfire="if-token-present",
    )

    logger = logging.getLogger(__name__)
    logger.info("Logfire configured successfully")


def span(name: str) -> logfire.LogfireSpan:
    """Open a Logfire span named after the service operation, e.g. "state_hub.add_task"."""
    return logfire.span(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log at the named level with context passed as ``extra`` fields.

    Example:
        log_with_context(logger, "warning", "Primary store write failed", key="campusLifePlannerState")
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=context)
