"""
DB Description Updater - Structured Logging
Provides JSON-formatted logging so reconciliation runs can be queried by event type.
"""

import logging
import sys
from typing import Optional
from pythonjsonlogger import jsonlogger

from .config import LOG_LEVEL, config


def setup_logger(name: str = __name__) -> logging.Logger:
    """
    Configure structured JSON logger.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger(__name__)
        >>> logger.info("Reconciliation completed", extra={
        ...     "entities_scanned": 12,
        ...     "adds": 3,
        ...     "updates": 41
        ... })
    """
    logger = logging.getLogger(name)

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    level = getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(message)s',
        datefmt='%Y-%m-%dT%H:%M:%S'
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger


# Global logger instance
logger = setup_logger('db_description_updater')


def log_reconciliation_start(model_root: str, schema: str):
    """Log the start of a reconciliation run."""
    logger.info("Description reconciliation started", extra={
        "event_type": "reconciliation_start",
        "model_root": model_root,
        "schema": schema,
        "environment": config.environment
    })


def log_reconciliation_complete(entities_scanned: int, adds: int, updates: int, committed: bool):
    """Log successful reconciliation completion."""
    logger.info("Description reconciliation completed", extra={
        "event_type": "reconciliation_complete",
        "entities_scanned": entities_scanned,
        "adds": adds,
        "updates": updates,
        "committed": committed
    })


def log_reconciliation_error(error: Exception, model_root: Optional[str] = None):
    """Log reconciliation failure with context."""
    logger.error("Description reconciliation failed", extra={
        "event_type": "reconciliation_error",
        "error_type": type(error).__name__,
        "error_message": str(error),
        "model_root": model_root
    }, exc_info=True)


def log_description_write(scope: str, table: str, column: Optional[str], action: str):
    """Log a single catalog mutation."""
    logger.debug("Description written", extra={
        "event_type": "description_write",
        "scope": scope,
        "table": table,
        "column": column,
        "action": action
    })


def log_database_error(error: Exception, query_context: str = None):
    """Log database error with context."""
    logger.error("Database error", extra={
        "event_type": "database_error",
        "error_type": type(error).__name__,
        "error_message": str(error),
        "query_context": query_context
    }, exc_info=True)


def set_log_level(level: int, prefix: str = 'db_description_updater'):
    """Change the level of every package logger and its handlers (e.g. for --verbose)."""
    for name in list(logging.Logger.manager.loggerDict):
        if name == prefix or name.startswith(prefix + '.'):
            package_logger = logging.getLogger(name)
            package_logger.setLevel(level)
            for handler in package_logger.handlers:
                handler.setLevel(level)
