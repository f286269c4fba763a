"""Structured logging for sky-exposure.

Every module logs through ``get_logger(__name__)`` and passes values as
keyword arguments, so one estimate can be followed through sample
loading, validation and the exposure formulas:

    logger = get_logger(__name__)
    logger.debug("Derived sample metadata", pedestal=100.0, exposure_s=60.0)

    with LogContext(camera="QSI 583"):
        logger.info("Generated")   # ... | camera="QSI 583"

Logs go to stderr so that ``sky-exposure estimate --json`` keeps stdout
for the result. ``--log-json`` switches to one JSON object per line.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import threading
from collections.abc import MutableMapping
from datetime import UTC, datetime
from typing import Any, TextIO, cast

#: Logger that owns the handler; module loggers propagate up to it.
ROOT_LOGGER_NAME = "sky_exposure"

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "log_context", default={}
)


# =============================================================================
# Records and Loggers
# =============================================================================


class StructuredLogRecord(logging.LogRecord):
    """LogRecord carrying the call's keyword values in ``structured_data``."""

    structured_data: dict[str, Any]

    def __init__(
        self,
        name: str,
        level: int,
        pathname: str,
        lineno: int,
        msg: object,
        args: tuple[Any, ...] | MutableMapping[str, Any] | None,
        exc_info: Any,
        func: str | None = None,
        sinfo: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            name, level, pathname, lineno, msg, args, exc_info, func, sinfo
        )
        self.structured_data = kwargs.get("structured_data", {})


class StructuredLogger(logging.Logger):
    """Logger whose level methods accept ``key=value`` arguments.

    Example:
        logger.info("Camera selected", camera="QSI 583", gain=0.5)
    """

    def _log(
        self,
        level: int,
        msg: object,
        args: tuple[Any, ...] | MutableMapping[str, Any] | None = None,
        exc_info: Any = None,
        extra: dict[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **kwargs: Any,
    ) -> None:
        # Explicit values win over the surrounding LogContext
        extra = dict(extra or {})
        extra["structured_data"] = {**_log_context.get(), **kwargs}
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )


# =============================================================================
# Formatters
# =============================================================================


def _format_value(value: Any) -> str:
    """Render one value for the text format.

    Example:
        >>> _format_value("QSI 583"), _format_value(None), _format_value(0.5)
        ('"QSI 583"', 'null', '0.5')
    """
    if value is None:
        return "null"
    if isinstance(value, str):
        return f'"{value}"' if " " in value else value
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return str(value)


class StructuredFormatter(logging.Formatter):
    """Text lines: ``<time> - <logger> - <LEVEL> - <message> | k=v k=v``."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        include_structured: bool = True,
    ) -> None:
        super().__init__(fmt or TEXT_FORMAT, datefmt)
        self.include_structured = include_structured

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        structured = getattr(record, "structured_data", None)
        if not (self.include_structured and structured):
            return line
        pairs = " ".join(f"{k}={_format_value(v)}" for k, v in structured.items())
        return f"{line} | {pairs}"


class JSONFormatter(logging.Formatter):
    """One JSON object per record; keyword values become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **getattr(record, "structured_data", {}),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


# =============================================================================
# Context
# =============================================================================


class LogContext:
    """Attach key-value pairs to every log line emitted inside a block.

    Contexts nest; inner values override outer ones until the inner block
    exits. Backed by a ContextVar, so threads do not share contexts.

    Example:
        with LogContext(camera="QSI 583"):
            engine.generate()
    """

    def __init__(self, **kwargs: Any) -> None:
        self._kwargs = kwargs
        self._token: contextvars.Token[dict[str, Any]] | None = None

    def __repr__(self) -> str:
        return f"LogContext({self._kwargs!r})"

    def __enter__(self) -> LogContext:
        self._token = _log_context.set({**_log_context.get(), **self._kwargs})
        return self

    def __exit__(self, *exc: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


# =============================================================================
# Configuration
# =============================================================================

_configured = False
_config_lock = threading.Lock()


def _install_handler(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: TextIO | None = None,
    include_structured: bool = True,
) -> None:
    """Attach the single stream handler to the package logger (lock held)."""
    global _configured

    if _configured:
        return

    logging.setLoggerClass(StructuredLogger)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        JSONFormatter()
        if json_format
        else StructuredFormatter(include_structured=include_structured)
    )

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level)
    package_logger.addHandler(handler)
    package_logger.propagate = False

    _configured = True


def _remove_handlers() -> None:
    """Detach and close the package logger's handlers (lock held)."""
    global _configured

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    _configured = False


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: TextIO | None = None,
    include_structured: bool = True,
    force: bool = False,
) -> None:
    """Set up logging for the package.

    The first call wins; later calls do nothing unless ``force`` is set.
    The CLI forces its ``--log-level`` and ``--log-json`` choices.

    Args:
        level: Minimum level, as a number or a name such as "DEBUG".
        json_format: Write JSON lines instead of text.
        stream: Destination; defaults to stderr.
        include_structured: Append ``| key=value`` pairs to text lines.
        force: Replace an existing configuration.
    """
    with _config_lock:
        if force:
            _remove_handlers()
        _install_handler(level, json_format, stream, include_structured)


def reset_logging() -> None:
    """Drop the package handler so the next call configures afresh."""
    with _config_lock:
        _remove_handlers()


def get_logger(name: str) -> StructuredLogger:
    """Return the structured logger for a module.

    Installs the default configuration (INFO, text, stderr) on first use
    when configure_logging() has not run yet.
    """
    if not _configured:
        with _config_lock:
            _install_handler()
    return cast(StructuredLogger, logging.getLogger(name))
