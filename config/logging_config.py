"""
Centralized logging configuration for the weather assistant service.

This module provides a function to set up application-wide logging,
including JSON formatting, log levels, and handlers for console and file output.
"""

import logging
import logging.handlers # Required for RotatingFileHandler
import sys # To ensure we can always output to stdout for console
import json
from pathlib import Path

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


class StructuredLogFormatter(logging.Formatter):
    """
    Custom formatter that renders each record as one JSON object.

    Features:
    - Includes interaction_id and caller_id if present in extra fields
    - Copies any other `extra=` fields (status codes, tool names, credential sources)
    - Preserves standard log fields (timestamp, level, logger)
    - Adds the formatted traceback when exc_info is set
    """

    def format(self, record):
        log_data = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage()
        }

        for key, value in record.__dict__.items():
            if key in _STANDARD_RECORD_ATTRS or key.startswith('_'):
                continue
            log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(interaction_id)s] - %(message)s'
DEFAULT_LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class InteractionLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its context into per-call `extra` instead of replacing it."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str, **context) -> logging.LoggerAdapter:
    """
    Get a logger that stamps every record with interaction context.

    Args:
        name (str): Logger name (usually __name__)
        **context: Initial context values, e.g. interaction_id or caller_id.

    Returns:
        logging.LoggerAdapter: Adapter whose `extra` dict can be updated per call flow.
    """
    logger = logging.getLogger(name)
    extra = {'interaction_id': 'no_id'}
    extra.update(context)
    return InteractionLoggerAdapter(logger, extra)


def setup_app_logging(config: dict = None, default_level=logging.INFO) -> None:
    """
    Set up logging for the entire application.

    Configures the root logger with a stdout handler and, when a file path is
    configured, a size-rotated file handler. Both use StructuredLogFormatter.

    Args:
        config (dict, optional): Logging settings. Expected keys:
                                - 'level': log level name (e.g., "DEBUG", "INFO").
                                - 'file_path': path to the log file; empty disables file logging.
                                - 'max_bytes': max size of the log file before rotation.
                                - 'backup_count': number of rotated files to keep.
                                - 'format' / 'date_format': format strings.
        default_level (int, optional): Level used when config does not name a valid one.
    """
    if config is None:
        config = {}

    log_level_str = str(config.get('level', logging.getLevelName(default_level))).upper()
    numeric_log_level = getattr(logging, log_level_str, default_level)
    if not isinstance(numeric_log_level, int):
        print(f"Warning: Invalid log level string '{log_level_str}'. Using default level {logging.getLevelName(default_level)}.", file=sys.stderr)
        numeric_log_level = default_level

    log_format = config.get('format', DEFAULT_LOG_FORMAT)
    log_date_format = config.get('date_format', DEFAULT_LOG_DATE_FORMAT)

    formatter = StructuredLogFormatter(log_format, datefmt=log_date_format)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_log_level)

    # Remove any existing handlers
    if root_logger.hasHandlers():
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_file_path = config.get('file_path')
    if log_file_path:
        try:
            Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file_path,
                maxBytes=int(config.get('max_bytes', 5*1024*1024)),
                backupCount=int(config.get('backup_count', 3)),
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            print(f"Error setting up file logging to {log_file_path}: {e}. File logging will be disabled.", file=sys.stderr)

    get_logger("LoggingConfig").info("Application logging setup complete. Level: %s", log_level_str)
