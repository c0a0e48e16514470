"""
Structured logging with rotation.

Log records are written as one JSON object per line to rotating files in
the log directory, with errors duplicated to a separate file.
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Optional, Any
import json
import traceback


_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename', 'module',
    'lineno', 'funcName', 'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info', 'exc_text', 'stack_info',
    'taskName', 'message',
}


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured logging with JSON output."""

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': traceback.format_exception(*record.exc_info)
            }

        if self.include_extra:
            extra_fields = {
                k: v for k, v in record.__dict__.items()
                if k not in _RESERVED_ATTRS
            }
            if extra_fields:
                log_data['extra'] = extra_fields

        return json.dumps(log_data, ensure_ascii=False, default=str)


class SecretRedactionFilter(logging.Filter):
    """Replaces known secret strings in log messages with ``***``."""

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if self.secrets:
            message = record.getMessage()
            redacted = message
            for secret in self.secrets:
                redacted = redacted.replace(secret, '***')
            if redacted != message:
                record.msg = redacted
                record.args = None
        return True


class LoggerManager:
    """
    Centralized logging manager with rotating file handlers.
    """

    def __init__(self,
                 log_dir: str = "logs",
                 log_level: str = "INFO",
                 max_file_size: int = 10 * 1024 * 1024,  # 10MB
                 backup_count: int = 10,
                 console_output: bool = True,
                 structured_format: bool = True,
                 redact: Iterable[str] = ()):
        """
        Initialize logging manager.

        Args:
            log_dir: Directory for log files
            log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            max_file_size: Maximum size per log file in bytes
            backup_count: Number of rotated files to keep
            console_output: Whether to output logs to stderr
            structured_format: Whether to use structured JSON format
            redact: strings (e.g. API secret, passphrase) to mask in every record
        """
        self.log_dir = Path(log_dir)
        self.log_level = getattr(logging, log_level.upper())
        self.max_file_size = max_file_size
        self.backup_count = backup_count
        self.console_output = console_output
        self.structured_format = structured_format
        self.redaction_filter = SecretRedactionFilter(redact)

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._setup_logging()
        self._loggers: Dict[str, logging.Logger] = {}

        self.logger = self.get_logger(__name__)
        self.logger.info("LoggerManager initialized", extra={
            'log_dir': str(self.log_dir),
            'log_level': log_level,
        })

    def _setup_logging(self) -> None:
        """Setup logging configuration with handlers and formatters."""
        root_logger = logging.getLogger()
        # Replace handlers from an earlier LoggerManager, leave foreign ones alone
        for handler in list(root_logger.handlers):
            if getattr(handler, '_cbpro_managed', False):
                root_logger.removeHandler(handler)
                handler.close()
        root_logger.setLevel(self.log_level)

        if self.structured_format:
            formatter = StructuredFormatter()
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )

        file_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "cbpro_client.log",
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(self.log_level)

        error_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "errors.log",
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)

        handlers = [file_handler, error_handler]
        if self.console_output:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(self.log_level)
            handlers.append(console_handler)

        for handler in handlers:
            handler.setFormatter(formatter)
            handler.addFilter(self.redaction_filter)
            handler._cbpro_managed = True
            root_logger.addHandler(handler)

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get or create a logger instance.

        Args:
            name: Logger name (typically __name__)

        Returns:
            Configured logger instance
        """
        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)
        return self._loggers[name]

    def add_redaction(self, *secrets: str) -> None:
        """Mask additional strings in every record from now on."""
        self.redaction_filter.secrets.extend(s for s in secrets if s)

    def log_error_with_context(self, error: Exception, context: Dict[str, Any]) -> None:
        """
        Log errors with full context and stack trace.

        Args:
            error: Exception instance
            context: Additional context information
        """
        self.logger.error(f"Error occurred: {str(error)}", extra={
            'error_type': type(error).__name__,
            'error_kind': getattr(error, 'kind', None),
            'context': context,
        }, exc_info=True)


# Global logger manager instance
_logger_manager: Optional[LoggerManager] = None


def initialize_logging(log_dir: str = "logs",
                       log_level: str = "INFO",
                       **kwargs) -> LoggerManager:
    """
    Initialize global logging system.

    Args:
        log_dir: Directory for log files
        log_level: Minimum log level
        **kwargs: Additional LoggerManager arguments

    Returns:
        LoggerManager instance
    """
    global _logger_manager
    _logger_manager = LoggerManager(log_dir=log_dir, log_level=log_level, **kwargs)
    return _logger_manager


def initialize_from_config(logging_config: Dict[str, Any], redact: Iterable[str] = ()) -> LoggerManager:
    """Initialize global logging from the ``logging`` section of the configuration."""
    return initialize_logging(
        log_dir=logging_config.get('log_dir', 'logs'),
        log_level=logging_config.get('level', 'INFO'),
        console_output=logging_config.get('console', True),
        structured_format=logging_config.get('structured', True),
        redact=redact,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger from the global logger manager, or a plain module logger
    when logging has not been initialized.
    """
    if _logger_manager is None:
        return logging.getLogger(name)
    return _logger_manager.get_logger(name)
