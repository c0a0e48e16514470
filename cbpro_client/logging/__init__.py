"""
Logging for the Coinbase Pro client.

Structured JSON logging with log rotation and masking of credential values.
"""

from .logger import (
    LoggerManager,
    StructuredFormatter,
    SecretRedactionFilter,
    get_logger,
    initialize_logging,
    initialize_from_config,
)

__all__ = [
    'LoggerManager',
    'StructuredFormatter',
    'SecretRedactionFilter',
    'get_logger',
    'initialize_logging',
    'initialize_from_config',
]
