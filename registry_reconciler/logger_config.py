"""
Logger configuration for the Registry Reconciler
Compatible with Grafana, Loki, and Prometheus monitoring stack
"""

import logging
import sys
from typing import Optional
import json
from datetime import datetime, timezone

from registry_reconciler.config import LOG_LEVEL, LOG_FORMAT

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_RECORD_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
    "message",
}


class StructuredFormatter(logging.Formatter):
    """
    Structured JSON formatter for better integration with Grafana/Loki/Prometheus
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON"""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # instance_key, server, action, status_code, cycle_id, ...
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ReconcilerLogger:
    """
    Centralized logger configuration for the Registry Reconciler
    """

    @staticmethod
    def setup_logging(
        level: str = LOG_LEVEL,
        format_type: str = "structured",
        enable_console: bool = True,
        enable_file: bool = False,
        log_file_path: Optional[str] = None,
    ) -> None:
        """
        Setup logging configuration

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            format_type: Format type - "structured" (JSON) or "simple" (text)
            enable_console: Enable console logging
            enable_file: Enable file logging
            log_file_path: Path to log file (required if enable_file=True)
        """
        numeric_level = getattr(logging, level.upper(), logging.INFO)

        if format_type == "structured":
            formatter = StructuredFormatter()
        else:
            formatter = logging.Formatter(LOG_FORMAT)

        handlers = []

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            handlers.append(console_handler)

        if enable_file and log_file_path:
            file_handler = logging.FileHandler(log_file_path)
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)

        logging.basicConfig(
            level=numeric_level,
            handlers=handlers,
            force=True,  # Override any existing configuration
        )

        ReconcilerLogger._configure_reconciler_loggers(numeric_level, handlers)

    @staticmethod
    def _configure_reconciler_loggers(level: int, handlers: list) -> None:
        """Configure the package logger; module loggers propagate to it"""
        main_logger = logging.getLogger("registry_reconciler")
        main_logger.setLevel(level)
        main_logger.handlers = handlers
        main_logger.propagate = False

        # APScheduler reports dropped ticks at WARNING; keep its chatter out of INFO
        logging.getLogger("apscheduler").setLevel(max(level, logging.WARNING))

    @staticmethod
    def get_logger(name: str) -> logging.Logger:
        """Get a logger instance"""
        return logging.getLogger(name)

    @staticmethod
    def log_instance_event(
        logger: logging.Logger,
        level: int,
        message: str,
        instance_key: str,
        **kwargs,
    ) -> None:
        """
        Log an instance-related event with structured data

        Args:
            logger: Logger instance
            level: Log level
            message: Log message
            instance_key: hostname:port of the instance
            **kwargs: Additional structured data
        """
        extra_data = {"instance_key": instance_key, **kwargs}
        logger.log(level, message, extra=extra_data)

    @staticmethod
    def log_server_attempt(
        logger: logging.Logger,
        level: int,
        message: str,
        server: str,
        operation: str,
        status_code: Optional[int] = None,
        **kwargs,
    ) -> None:
        """
        Log a single registry server attempt with structured data

        Args:
            logger: Logger instance
            level: Log level
            message: Log message
            server: Registry server URL
            operation: register, heartbeat, deregister or query
            status_code: HTTP status returned by the server, if any
            **kwargs: Additional structured data
        """
        extra_data = {"server": server, "operation": operation, **kwargs}
        if status_code is not None:
            extra_data["status_code"] = status_code
        logger.log(level, message, extra=extra_data)


# Convenience functions for common logging patterns
def log_health_probe_failure(
    logger: logging.Logger, url: str, error: str
) -> None:
    """Log a health probe that failed at the transport level"""
    logger.error(
        f"Error occurred during health check for {url}: {error}",
        extra={"endpoint": url, "error": error, "event_type": "health_probe_failure"},
    )


def log_instance_action(
    logger: logging.Logger,
    message: str,
    instance_key: str,
    action: str,
    success: bool,
    server: Optional[str] = None,
) -> None:
    """Log the result of the registry action taken for an instance"""
    ReconcilerLogger.log_instance_event(
        logger,
        logging.INFO if success else logging.WARNING,
        message,
        instance_key,
        action=action,
        success=success,
        server=server,
        event_type="instance_action",
    )


def log_cycle_summary(
    logger: logging.Logger,
    message: str,
    cycle_id: int,
    succeeded: int,
    skipped: int,
    failed: int,
    duration_seconds: float,
) -> None:
    """Log the end of a reconciliation cycle"""
    logger.info(
        message,
        extra={
            "cycle_id": cycle_id,
            "succeeded": succeeded,
            "skipped": skipped,
            "failed": failed,
            "duration_seconds": duration_seconds,
            "event_type": "cycle_finished",
        },
    )
