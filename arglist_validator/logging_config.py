"""
Structured logging configuration for the argument list validator.

The package never configures logging on import. Embedding applications call
setup_logging() (or configure_from_settings()) once at start-up.
"""

import logging
import logging.config
import json
import sys
from datetime import datetime, UTC
from typing import Any, Dict, Optional
from pathlib import Path


class StructuredFormatter(logging.Formatter):
    """Custom formatter that outputs structured JSON logs."""

    def __init__(self, service_name: str = "arglist-validator", version: str = "0.1.0"):
        super().__init__()
        self.service_name = service_name
        self.version = version

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "version": self.version,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Context fields attached by log_with_context
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            log_entry.update(context)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_entry["stack_info"] = record.stack_info

        return json.dumps(log_entry, default=str)


def build_logging_config(
    log_level: str = "INFO",
    service_name: str = "arglist-validator",
    version: str = "0.1.0",
    structured: bool = True,
    enable_file_logging: bool = False,
    log_file_path: Optional[str] = None
) -> Dict[str, Any]:
    """
    Build a dictConfig mapping for the package loggers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        service_name: Name of the service for log entries
        version: Version of the service
        structured: Emit JSON lines instead of plain text
        enable_file_logging: Whether to add a rotating file handler
        log_file_path: Path to log file (defaults to logs/arglist_validator.log)

    Returns:
        Dictionary accepted by logging.config.dictConfig
    """
    formatter = "structured" if structured else "simple"
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": StructuredFormatter,
                "service_name": service_name,
                "version": version
            },
            "simple": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": formatter,
                "stream": sys.stdout
            }
        },
        "loggers": {
            "arglist_validator": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False
            },
            "watchdog": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False
            }
        }
    }

    if enable_file_logging:
        if log_file_path is None:
            log_file_path = str(Path("logs") / "arglist_validator.log")
        Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": formatter,
            "filename": log_file_path,
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
            "encoding": "utf8"
        }
        config["loggers"]["arglist_validator"]["handlers"].append("file")

    return config


def setup_logging(
    log_level: str = "INFO",
    service_name: str = "arglist-validator",
    version: str = "0.1.0",
    structured: bool = True,
    enable_file_logging: bool = False,
    log_file_path: Optional[str] = None
) -> None:
    """Apply build_logging_config() with the given options."""
    logging.config.dictConfig(build_logging_config(
        log_level=log_level,
        service_name=service_name,
        version=version,
        structured=structured,
        enable_file_logging=enable_file_logging,
        log_file_path=log_file_path,
    ))


def configure_from_settings(settings) -> None:
    """
    Setup logging from a LoggingConfig section of the configuration.

    Args:
        settings: LoggingConfig instance
    """
    from . import __version__

    setup_logging(
        log_level=settings.level,
        version=__version__,
        structured=settings.structured,
        enable_file_logging=settings.enable_file_logging,
        log_file_path=settings.log_file_path,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: str, message: str, **context) -> None:
    """
    Log a message with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        **context: Additional context fields to include in log
    """
    numeric_level = getattr(logging, level.upper())
    if not logger.isEnabledFor(numeric_level):
        return
    logger.log(numeric_level, message, extra={"context": context}, stacklevel=2)
