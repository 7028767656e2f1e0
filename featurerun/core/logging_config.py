"""
Logging configuration for featurerun.

Every record is tagged with the session id. CI runs get one JSON object per
line on stdout; local runs get readable text plus rotating log files.
"""

import logging
import logging.handlers
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import Config

# Record attributes promoted to top-level keys in JSON output
CONTEXT_FIELDS = ("test_name", "environment_id", "dependency", "duration", "status")

MAIN_LOG_MAX_BYTES = 10 * 1024 * 1024
DEBUG_LOG_MAX_BYTES = 50 * 1024 * 1024


class StructuredFormatter(logging.Formatter):
    """JSON lines formatter for CI log collection."""

    def __init__(self, session_id: str):
        super().__init__()
        self.session_id = session_id

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "component": record.name,
            "session_id": self.session_id,
            "message": record.getMessage(),
        }

        metadata = getattr(record, "metadata", None)
        if metadata:
            entry["metadata"] = metadata

        for attr in CONTEXT_FIELDS:
            if hasattr(record, attr):
                entry[attr] = getattr(record, attr)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """One readable line per record, metadata appended as ``key=value`` pairs."""

    def __init__(self, session_id: str):
        super().__init__()
        self.session_id = session_id

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S")
        parts = [
            f"[{timestamp}] {record.levelname:8} {record.name:28} | {record.getMessage()}"
            f" (session: {self.session_id[:8]})"
        ]

        metadata = getattr(record, "metadata", None)
        if metadata:
            parts.append(" | ".join(f"{key}={value}" for key, value in metadata.items()))

        line = " | ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextAdapter(logging.LoggerAdapter):
    """Adds fixed context attributes to every record it emits."""

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra") or {})
        for key, value in self.extra.items():
            extra.setdefault(key, value)
        kwargs["extra"] = extra
        return msg, kwargs


def _rotating_file_handler(
    path: Path,
    max_bytes: int,
    backup_count: int,
    formatter: logging.Formatter,
    level: int,
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return handler


def setup_logging(config: Config, session_id: str) -> logging.Logger:
    """
    Replace the root logger's handlers for a featurerun session.

    Args:
        config: Supplies level, format, CI mode and the logs directory
        session_id: Written into every record for correlation

    Returns:
        The configured root logger
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = getattr(logging, config.log_level)
    root_logger.setLevel(log_level)

    if config.log_format == "json":
        formatter = StructuredFormatter(session_id)
    else:
        formatter = TextFormatter(session_id)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    # CI output is collected from stdout only
    if not config.is_ci_mode:
        config.logs_dir.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(
            _rotating_file_handler(
                config.get_log_file_path(), MAIN_LOG_MAX_BYTES, 5, formatter, log_level
            )
        )

        if config.debug_enabled:
            root_logger.addHandler(
                _rotating_file_handler(
                    config.get_debug_log_dir() / f"debug-{session_id[:8]}.log",
                    DEBUG_LOG_MAX_BYTES,
                    3,
                    formatter,
                    logging.DEBUG,
                )
            )

    logging.getLogger("featurerun.logging").info(
        "Logging configured",
        extra={
            "metadata": {
                "session_id": session_id,
                "log_level": config.log_level,
                "log_format": config.log_format,
                "ci_mode": config.is_ci_mode,
            }
        },
    )

    return root_logger


def get_logger(name: str, **context) -> logging.Logger:
    """
    Get a logger, wrapped in a ``ContextAdapter`` when context is given.

    Args:
        name: Logger name (typically module name)
        **context: Attributes attached to every record, e.g. ``environment_id``
    """
    logger = logging.getLogger(name)
    if context:
        return ContextAdapter(logger, context)
    return logger


def log_performance(
    logger: logging.Logger, operation: str, duration: float, **metadata
):
    """Log how long ``operation`` took, in seconds."""
    logger.info(
        f"Performance: {operation} completed in {duration:.2f}s",
        extra={"metadata": {"operation": operation, "duration": duration, **metadata}},
    )


def log_process_call(
    logger: logging.Logger,
    name: str,
    duration: float,
    exit_code: Optional[int],
    **metadata,
):
    """
    Log one external process invocation.

    Successful runs log at DEBUG; a non-zero exit, or a process that never
    started (``exit_code`` None), logs at WARNING.
    """
    success = exit_code == 0
    level = logging.DEBUG if success else logging.WARNING
    status = "succeeded" if success else f"exited with {exit_code}"

    logger.log(
        level,
        f"Process {name} {status} in {duration:.2f}s",
        extra={
            "metadata": {
                "process": name,
                "exit_code": exit_code,
                "duration": duration,
                "success": success,
                **metadata,
            }
        },
    )
