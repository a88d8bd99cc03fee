"""
Structured logging configuration.

Provides JSON-formatted logs suitable for log aggregation systems
(ELK, Datadog, CloudWatch, etc.).

Configuration:
- Development: Human-readable console output
- Production: JSON lines to stdout

Environment variables:
- LOG_FORMAT: "json" or "console" (default: json in production)
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)

Ledger commands log with ``extra={...}``; the keys in CONTEXT_FIELDS are
lifted to the top level of the JSON line so they can be indexed.
"""
import json
import logging
import os
from datetime import datetime, timezone

APP_LOGGERS = ("accounts", "accounting", "events", "reports", "ops")

CONTEXT_FIELDS = ("command", "company_id", "error_code", "entry_id", "transaction_id")

# Attributes every LogRecord has; anything else came in through ``extra``.
_STANDARD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def get_logging_config(debug: bool = False) -> dict:
    """
    Get Django LOGGING configuration.

    Args:
        debug: Whether running in debug mode

    Returns:
        Django LOGGING dict
    """
    log_level = os.environ.get("LOG_LEVEL", "INFO" if not debug else "DEBUG")
    log_format = os.environ.get("LOG_FORMAT", "console" if debug else "json")

    if log_format == "json":
        formatters = {
            "json": {
                "()": "ops.logging_config.JsonFormatter",
            },
        }
        console = {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        }
    else:
        formatters = {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        }
        console = {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        }

    loggers = {
        "": {
            "handlers": ["console"],
            "level": log_level,
        },
        "django": {
            "handlers": ["console"],
            "level": log_level,
            "propagate": False,
        },
        "django.request": {
            "handlers": ["console"],
            "level": "ERROR" if not debug else log_level,
            "propagate": False,
        },
        "django.db.backends": {
            "handlers": ["console"] if debug else ["null"],
            "level": "DEBUG" if debug else "INFO",
            "propagate": False,
        },
    }
    for name in APP_LOGGERS:
        loggers[name] = {
            "handlers": ["console"],
            "level": log_level,
            "propagate": False,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": {
            "console": console,
            "null": {
                "class": "logging.NullHandler",
            },
        },
        "loggers": loggers,
    }


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs JSON lines with consistent fields:
    - timestamp: ISO 8601 timestamp (UTC)
    - level, logger, message
    - command/company_id/error_code/...: ledger context, when present
    - extra: any other extra fields passed to the logger
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extras = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            if key in CONTEXT_FIELDS:
                log_entry[key] = value
            else:
                extras[key] = value

        if extras:
            log_entry["extra"] = extras

        return json.dumps(log_entry, default=str)
