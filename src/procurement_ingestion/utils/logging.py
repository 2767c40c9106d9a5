# ============================================================================
# src/procurement_ingestion/utils/logging.py
# ============================================================================
"""
Logging configuration and utilities for the procurement ingestion engine.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone
import json


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_json: bool = False
) -> None:
    """
    Setup logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging
        format_json: Whether to use JSON format
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if format_json:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True
    )


class JsonFormatter(logging.Formatter):
    """JSON log formatter."""

    # Context keys stamped on records by LogAdapter
    CONTEXT_KEYS = ("job_id", "document_id", "project_id")

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        for key in self.CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class LogAdapter(logging.LoggerAdapter):
    """Logger adapter for adding context to all log messages."""

    def process(self, msg, kwargs):
        """Add extra context to log message."""
        if 'extra' not in kwargs:
            kwargs['extra'] = {}

        kwargs['extra'].update(self.extra)

        return msg, kwargs


def job_logger(name: str, job_id: str, document_id: str) -> LogAdapter:
    """Logger that stamps job and document ids on every record."""
    return LogAdapter(
        logging.getLogger(name),
        {"job_id": job_id, "document_id": document_id}
    )
