"""Structured JSON logging configuration."""

import logging
import sys
from pythonjsonlogger import jsonlogger


def setup_logger(
    name: str = "a2s_exporter",
    level: str = "INFO",
    stream=None
) -> logging.Logger:
    """
    Configure structured JSON logging.

    Records carry a constant ``service`` field so exporter logs can be told
    apart when several collectors share one log pipeline. Per-target records
    add ``target`` and ``error_type`` through ``extra``.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Output stream (default: stdout)

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    # Create console handler with JSON formatter
    handler = logging.StreamHandler(stream or sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(message)s',
        rename_fields={"levelname": "level"},
        static_fields={"service": "a2s_exporter"},
        timestamp=True
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger
