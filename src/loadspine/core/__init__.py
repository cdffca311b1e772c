"""Load Spine core -- errors and structured logging shared by every layer.

Architecture::

    errors.py      Structured error hierarchy (LoadSpineError and subclasses)
    logging.py     structlog configuration and run-scoped context binding
"""

from loadspine.core.errors import (
    BackendError,
    BackendUnavailableError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    LoadSpineError,
    ParseError,
    ResourceCreateError,
    ResourceDeleteError,
    SchemaViolationError,
    SourceError,
    SourceNotFoundError,
    SourceReadError,
)
from loadspine.core.logging import LogContext, configure_logging, get_logger

__all__ = [
    "BackendError",
    "BackendUnavailableError",
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidConfigError",
    "LoadSpineError",
    "LogContext",
    "ParseError",
    "ResourceCreateError",
    "ResourceDeleteError",
    "SchemaViolationError",
    "SourceError",
    "SourceNotFoundError",
    "SourceReadError",
    "configure_logging",
    "get_logger",
]
