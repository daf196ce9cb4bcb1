import logging
import logging.config
import os
import structlog
from datetime import datetime
import uuid
from typing import Optional
import sys

# Chatty third-party loggers kept at WARNING unless LOG_LEVEL is DEBUG
QUIET_LOGGERS = ("apscheduler", "werkzeug", "sqlalchemy.engine")

# Processors shared by structlog loggers and stdlib records (Flask, APScheduler)
SHARED_PROCESSORS = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
]


def configure_logging(log_level: str = "INFO", log_file: Optional[str] = None, json_console: Optional[bool] = None):
    """
    Configure structured logging for the service.

    Console output is human-readable on a terminal and JSON otherwise (so the
    hosting platform can index recalculation events); the optional file is
    always JSON. Records from the stdlib loggers go through the same
    processors as structlog events.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path. If None, logs to stdout only.
        json_console: Force JSON (True) or console (False) rendering on stdout
    """
    log_level = log_level.upper()
    if json_console is None:
        json_console = not sys.stdout.isatty()

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level]
        + SHARED_PROCESSORS
        + [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    def formatter(renderer):
        return {
            "()": structlog.stdlib.ProcessorFormatter,
            "processor": renderer,
            "foreign_pre_chain": SHARED_PROCESSORS,
        }

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json" if json_console else "console",
            "stream": sys.stdout,
        }
    }
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "json",
            "filename": log_file,
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
        }

    quiet_level = log_level if log_level == "DEBUG" else "WARNING"
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": formatter(structlog.dev.ConsoleRenderer(colors=False)),
            "json": formatter(structlog.processors.JSONRenderer(ensure_ascii=False)),
        },
        "handlers": handlers,
        "root": {"level": log_level, "handlers": list(handlers)},
        "loggers": {name: {"level": quiet_level} for name in QUIET_LOGGERS},
    })

    logger = structlog.get_logger("zeladoria")
    logger.info("Logging configured", level=log_level, file=log_file, json=json_console)

    return logger


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class RecalculationContext:
    """Context manager for schedule recalculations with correlation ID."""

    def __init__(self, trigger: str, operation_id: Optional[str] = None, **context):
        self.trigger = trigger
        self.operation_id = operation_id or str(uuid.uuid4())[:8]
        self.context = context
        self.logger = get_logger("zeladoria.scheduling")
        self.start_time = None
        self.results_count = 0

    def __enter__(self):
        self.start_time = datetime.utcnow()
        self.logger.info(
            "Schedule recalculation started",
            trigger=self.trigger,
            operation_id=self.operation_id,
            start_time=self.start_time.isoformat(),
            **self.context
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = (datetime.utcnow() - self.start_time).total_seconds()

        if exc_type is None:
            self.logger.info(
                "Schedule recalculation completed",
                trigger=self.trigger,
                operation_id=self.operation_id,
                duration_seconds=duration,
                results=self.results_count,
                status="success"
            )
        else:
            self.logger.error(
                "Schedule recalculation failed",
                trigger=self.trigger,
                operation_id=self.operation_id,
                duration_seconds=duration,
                status="error",
                error_type=exc_type.__name__,
                error_message=str(exc_val)
            )

        return False  # Don't suppress exceptions
