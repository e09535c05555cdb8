"""
Structured logging for the file database.

Provides:
- Context variables for the store path and current operation (using contextvars)
- JSONFormatter for machine-readable logs to file
- RichHandler for pretty console output
- ContextLogger wrapper that attaches context to all log calls
- setup_logging() that configures both file and console handlers
- Context manager log_context() for scoped context
- get_logger() factory
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Generator

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

if TYPE_CHECKING:
    from filedb.config import Settings

ROOT_LOGGER_NAME = "filedb"

_store_var: ContextVar[str | None] = ContextVar("store", default=None)
_operation_var: ContextVar[str | None] = ContextVar("operation", default=None)


def get_store() -> str | None:
    """Get the current store path from context."""
    return _store_var.get()


def get_operation() -> str | None:
    """Get the current operation name from context."""
    return _operation_var.get()


@contextmanager
def log_context(
    store: str | None = None,
    operation: str | None = None,
) -> Generator[None, None, None]:
    """Context manager for scoped logging context.

    Args:
        store: Database path to set in context.
        operation: Operation name to set in context.

    Yields:
        None. Context variables are set for the duration of the context.
    """
    store_token = _store_var.set(store) if store is not None else None
    operation_token = _operation_var.set(operation) if operation is not None else None
    try:
        yield
    finally:
        if operation_token is not None:
            _operation_var.reset(operation_token)
        if store_token is not None:
            _store_var.reset(store_token)


def _context_fields() -> dict[str, str]:
    fields: dict[str, str] = {}
    store = get_store()
    operation = get_operation()
    if store:
        fields["store"] = store
    if operation:
        fields["operation"] = operation
    return fields


class JSONFormatter(logging.Formatter):
    """JSON formatter for machine-readable log files.

    Produces JSON Lines format with structured context.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_obj.update(_context_fields())

        if hasattr(record, "extra"):
            log_obj["extra"] = record.extra

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class ContextRichHandler(RichHandler):
    """Rich handler that includes context in console output."""

    def get_level_text(self, record: logging.LogRecord) -> Text:
        """Override to add context prefix."""
        level_text = super().get_level_text(record)

        parts: list[str] = []
        store = get_store()
        operation = get_operation()

        if store:
            parts.append(f"[dim]{Path(store).name}[/dim]")
        if operation:
            parts.append(f"[cyan]{operation}[/cyan]")

        if parts:
            prefix = " ".join(parts)
            return Text.from_markup(f"{level_text} {prefix}")

        return level_text


class ContextLogger:
    """Logger wrapper that automatically attaches context to log calls.

    Keyword arguments other than the standard logging ones are collected
    into the record's ``extra`` field.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def name(self) -> str:
        """Get the logger name."""
        return self._logger.name

    def _log(
        self,
        level: int,
        msg: str,
        *args: Any,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        extra = kwargs.pop("extra", {})
        extra.update(_context_fields())

        for key in list(kwargs.keys()):
            if key not in ("exc_info", "stack_info", "stacklevel"):
                extra[key] = kwargs.pop(key)

        self._logger.log(level, msg, *args, exc_info=exc_info, extra={"extra": extra})

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self._log(logging.ERROR, msg, *args, exc_info=True, **kwargs)


_console: Console | None = None
_setup_done: bool = False
_configured_by_caller: bool = False


def get_console() -> Console:
    """Get the global rich console."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def _configure(
    log_level: str = "INFO",
    log_file: Path | None = None,
    console_output: bool = True,
) -> None:
    global _setup_done

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)

    if console_output:
        rich_handler = ContextRichHandler(
            console=get_console(),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=True,
        )
        rich_handler.setLevel(getattr(logging, log_level.upper()))
        root_logger.addHandler(rich_handler)

    root_logger.propagate = False
    _setup_done = True


def setup_logging(
    log_level: str = "INFO",
    log_file: Path | None = None,
    console_output: bool = True,
) -> None:
    """Set up logging with JSON file handler and rich console handler.

    Once an application calls this, settings no longer override its choice.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Path to log file. If None, only console logging is enabled.
        console_output: Whether to enable console output.
    """
    global _configured_by_caller

    _configure(log_level, log_file, console_output)
    _configured_by_caller = True


def setup_logging_from_settings(settings: Settings | None = None) -> None:
    """Configure logging from FILEDB_LOG_LEVEL and FILEDB_LOG_FILE.

    Does nothing if the application already called setup_logging().

    Args:
        settings: Settings to use instead of the environment ones.
    """
    if _configured_by_caller:
        return

    if settings is None:
        from filedb.config import get_settings

        settings = get_settings()
    _configure(log_level=settings.LOG_LEVEL, log_file=settings.LOG_FILE)


def reset_logging() -> None:
    """Drop any application configuration and return to the defaults."""
    global _configured_by_caller

    _configured_by_caller = False
    _configure()


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger.

    Args:
        name: Logger name (usually __name__).

    Returns:
        ContextLogger wrapper around the standard logger.
    """
    if not _setup_done:
        _configure()

    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    return ContextLogger(logging.getLogger(name))
