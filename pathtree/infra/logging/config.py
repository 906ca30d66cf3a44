"""Logging configuration setup.

Provides logging configuration using:
- dictConfig for formatters and filters
- QueueHandler + QueueListener so tree cascades never block on log I/O
- ContextInjectingFilter for automatic context propagation
- All handlers on the root logger (child loggers propagate)
- Optional JSONL output for machine parsing
"""

from __future__ import annotations

import atexit
import logging
import logging.config
import time
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue
from typing import TYPE_CHECKING, Any

from pathtree.infra.logging.context import ContextInjectingFilter
from pathtree.infra.logging.formatters import JSONFormatter

if TYPE_CHECKING:
    from pathtree.core.settings.logs import LoggingSettings

# Global queue and listener for non-blocking logging
_log_queue: Queue[logging.LogRecord] | None = None
_listener: QueueListener | None = None
_LOGGING_INITIALIZED = False

logger = logging.getLogger(__name__)

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def complete(max_wait: float = 5.0) -> None:
    """Wait for queued log records to be written.

    Called automatically on shutdown. Useful mid-process when output must
    be visible before continuing (e.g. before a CLI prints its result).
    """
    if _log_queue is None or _listener is None:
        return

    start = time.monotonic()
    while not _log_queue.empty() and (time.monotonic() - start) < max_wait:
        time.sleep(0.01)


def shutdown() -> None:
    """Stop the QueueListener and flush pending logs.

    Registered with atexit by configure_logging().
    """
    global _log_queue, _listener, _LOGGING_INITIALIZED

    if _listener is not None:
        complete()
        _listener.stop()
        _listener = None

    _log_queue = None
    _LOGGING_INITIALIZED = False


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Ensure logging is configured once across entrypoints.

    Args:
        log_settings: Optional logging settings instance. If omitted, settings
            are loaded via get_logging_settings().
        force: Reconfigure logging even if it was already initialized.
        **configure_kwargs: Overrides forwarded to configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    if log_settings is None:
        from pathtree.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    kwargs = log_settings.to_logging_kwargs()
    kwargs.update(configure_kwargs)
    configure_logging(**kwargs)
    _LOGGING_INITIALIZED = True


def configure_logging(
    *,
    service_name: str = "pathtree",
    log_level: str = "INFO",
    json_logs: bool = False,
    console_enabled: bool = True,
    console_level: str | None = None,
    file_path: str | Path | None = None,
    file_level: str | None = None,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    include_context: bool = True,
    capture_warnings: bool = True,
) -> None:
    """Configure application logging.

    Args:
        service_name: Value of the static ``service`` field in JSON output.
        log_level: Root logger level.
        json_logs: Emit JSON Lines instead of plain text.
        console_enabled: Log to stderr.
        console_level: Console handler level (defaults to log_level).
        file_path: Rotating log file; no file handler when None.
        file_level: File handler level (defaults to log_level).
        file_max_bytes: Rotate after this many bytes.
        file_backup_count: Number of rotated files to keep.
        include_context: Attach ContextInjectingFilter to the queue handler.
        capture_warnings: Route warnings.warn() through logging.
    """
    global _log_queue, _listener

    if _listener is not None:
        shutdown()

    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "root": {"level": log_level.upper(), "handlers": []},
        "loggers": {
            # SQL echo is controlled by DatabaseSettings.echo, not the root level
            "sqlalchemy.engine": {"level": "WARNING"},
            "aiosqlite": {"level": "WARNING"},
        },
    }
    logging.config.dictConfig(config)
    logging.captureWarnings(capture_warnings)

    if json_logs:
        formatter: logging.Formatter = JSONFormatter(static={"service": service_name})
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handlers: list[logging.Handler] = []
    if console_enabled:
        console = logging.StreamHandler()
        console.setLevel((console_level or log_level).upper())
        console.setFormatter(formatter)
        handlers.append(console)

    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=file_max_bytes,
            backupCount=file_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel((file_level or log_level).upper())
        file_handler.setFormatter(JSONFormatter(static={"service": service_name}))
        handlers.append(file_handler)

    root = logging.getLogger()
    if not handlers:
        root.addHandler(logging.NullHandler())
        return

    _log_queue = Queue(-1)
    _listener = QueueListener(_log_queue, *handlers, respect_handler_level=True)
    _listener.start()
    atexit.register(shutdown)

    # Handler filter: logger filters never see propagated records
    queue_handler = QueueHandler(_log_queue)
    if include_context:
        queue_handler.addFilter(ContextInjectingFilter())
    root.addHandler(queue_handler)
    logger.debug(
        "Logging configured",
        extra={"json_logs": json_logs, "file_path": str(file_path) if file_path else None},
    )
