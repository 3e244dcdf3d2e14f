"""
Logging configuration for kubectl-mapper

Structured logs go through structlog onto the stdlib root logger, which
writes to stderr (so rendered maps on stdout stay clean) and optionally to
a size-rotated file.
"""

import asyncio
import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def configure_logging(
    level: str = "WARNING",
    log_file: Optional[str] = None,
    max_size_mb: int = 10,
    backup_count: int = 3,
    enable_colors: bool = True,
) -> None:
    """Configure stdlib handlers and the structlog processor chain

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to log file (None = stderr only)
        max_size_mb: Max log file size in MB before rotation
        backup_count: Number of rotated files to keep
        enable_colors: Colored console output when stderr is a terminal
    """
    log_level = LEVELS.get(level.upper(), logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if enable_colors and sys.stderr.isatty():
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


class PerformanceLogger:
    """Context manager timing one operation

    ``duration`` holds the elapsed seconds once the block exits.
    """

    def __init__(self, operation: str, logger: Optional[structlog.BoundLogger] = None, **context: Any):
        self.operation = operation
        self.log = (logger or get_logger("performance")).bind(operation=operation, **context)
        self.start_time = 0.0
        self.duration = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.log.debug("Operation started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.start_time
        elapsed = round(self.duration, 3)

        if exc_type is None:
            self.log.info("Operation completed", duration_seconds=elapsed)
        elif issubclass(exc_type, asyncio.CancelledError):
            self.log.info("Operation cancelled", duration_seconds=elapsed)
        else:
            self.log.error("Operation failed", duration_seconds=elapsed, error=str(exc_val))


# kubeconfig paths may point at credentials
AUDIT_REDACTED = frozenset({"token", "password", "kubeconfig"})


def log_command_execution(
    command: str,
    args: Dict[str, Any],
    logger: Optional[structlog.BoundLogger] = None,
) -> None:
    """Audit one CLI invocation; unset and sensitive arguments are left out"""
    log = logger or get_logger("audit")
    given = {k: v for k, v in args.items() if k not in AUDIT_REDACTED and v is not None}
    log.info("Command executed", command=command, args=given, user=os.getenv("USER", "unknown"))


def log_error_with_context(
    error: BaseException,
    context: Dict[str, Any],
    logger: Optional[structlog.BoundLogger] = None,
    level: str = "error",
) -> None:
    """Log an error with the namespace/kind context it occurred in

    Errors already reported to the user elsewhere can be logged below ERROR.
    """
    log = (logger or get_logger("error")).bind(**context)
    getattr(log, level)("Error occurred", error_type=type(error).__name__, error_message=str(error), exc_info=error)


def setup_logging_from_config(config: Dict[str, Any], debug: bool = False) -> None:
    """Reconfigure logging from the ``logging`` section of a loaded config

    ``debug`` forces DEBUG level even when logging is disabled in the config.
    """
    section = config.get("logging", {})
    if debug:
        level = "DEBUG"
    elif section.get("enabled", True):
        level = section.get("level", "WARNING")
    else:
        logging.disable(logging.CRITICAL)
        return

    logging.disable(logging.NOTSET)
    configure_logging(
        level=level,
        log_file=section.get("file"),
        max_size_mb=section.get("max_size_mb", 10),
        backup_count=section.get("backup_count", 3),
        enable_colors=config.get("output", {}).get("colors_enabled", True),
    )
