"""Observability module for sky-exposure.

Provides structured logging for the exposure calculations and the CLI.

Example:
    from sky_exposure.observability import get_logger, LogContext

    logger = get_logger(__name__)

    # Simple logging
    logger.info("Sample attached")

    # Structured logging with context
    with LogContext(camera="QSI 583"):
        logger.info("Generated", flux_e_s=12.5, sky_limited_s=95.1)
"""

from sky_exposure.observability.logging import (
    LogContext,
    StructuredLogger,
    configure_logging,
    get_logger,
    reset_logging,
)

__all__ = [
    "LogContext",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "reset_logging",
]
