"""
Structured error types for load-spine.

Every failure the loader can surface is a ``LoadSpineError`` subclass
carrying a category, a retry hint, structured context, and an optional
chained cause. The orchestrator decides fatal vs. non-fatal by error
*type*, not by message parsing.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                      LoadSpineError                           │
        │  (category, retryable, context, cause)                        │
        ├──────────────────────────────────────────────────────────────┤
        │  SourceError (SOURCE)        ConfigError (CONFIG)             │
        │     │                           │                             │
        │  SourceNotFoundError         InvalidConfigError               │
        │  SourceReadError                                              │
        │  ParseError (PARSE)                                           │
        │  SchemaViolationError (VALIDATION)                            │
        │                                                               │
        │  BackendError (RUNTIME)                                       │
        │     │                                                         │
        │  BackendUnavailableError                                      │
        │  ResourceCreateError                                          │
        │  ResourceDeleteError                                          │
        └──────────────────────────────────────────────────────────────┘

Propagation policy:
    - Source and partition errors abort a run before any resource exists.
    - ``ResourceCreateError`` is fatal for the dispatch phase.
    - ``ResourceDeleteError`` is logged during rollback and sweep, never
      escalated.

Examples:
    >>> err = SchemaViolationError("missing key 'bugs'")
    >>> err.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>
    >>> err.with_context(source="bugs.yaml").context.source
    'bugs.yaml'

Tags:
    error-handling, exception-hierarchy, load-spine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    # Input errors
    SOURCE = "SOURCE"             # Source file missing or unreadable
    PARSE = "PARSE"               # Malformed YAML / structure
    VALIDATION = "VALIDATION"     # Well-formed but wrong shape

    # Configuration errors (never retryable)
    CONFIG = "CONFIG"

    # Cluster backend errors
    RUNTIME = "RUNTIME"

    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Typed fields cover what the loader knows at the failure site;
    anything else lands in ``metadata``.
    """

    run_id: str | None = None
    source: str | None = None
    namespace: str | None = None
    resource_kind: str | None = None
    resource_name: str | None = None
    chunk_index: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize non-None fields for logging."""
        result: dict[str, Any] = {}
        for key in (
            "run_id",
            "source",
            "namespace",
            "resource_kind",
            "resource_name",
            "chunk_index",
        ):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class LoadSpineError(Exception):
    """
    Base exception for all load-spine errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override either per instance.

    Examples:
        >>> error = LoadSpineError("Something went wrong")
        >>> error.retryable
        False
        >>> error.to_dict()["category"]
        'INTERNAL'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> LoadSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ResourceCreateError("create failed").with_context(
                resource_kind="configmap",
                resource_name="bugs-loader-0",
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# SOURCE ERRORS
# =============================================================================


class SourceError(LoadSpineError):
    """Error loading the work item source."""

    default_category = ErrorCategory.SOURCE


class SourceNotFoundError(SourceError):
    """The source locator does not resolve to a file."""


class SourceReadError(SourceError):
    """The source exists but could not be read."""

    default_retryable = True


class ParseError(SourceError):
    """The source could not be parsed as a structured mapping."""

    default_category = ErrorCategory.PARSE


class SchemaViolationError(SourceError):
    """The source parsed but lacks the expected top-level key."""

    default_category = ErrorCategory.VALIDATION


# =============================================================================
# CONFIG ERRORS
# =============================================================================


class ConfigError(LoadSpineError):
    """Invalid run configuration. Never retryable."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """A configuration value is out of range (e.g. concurrency <= 0)."""


# =============================================================================
# BACKEND ERRORS
# =============================================================================


class BackendError(LoadSpineError):
    """Error reported by the cluster backend."""

    default_category = ErrorCategory.RUNTIME


class BackendUnavailableError(BackendError):
    """The backend CLI or API cannot be reached."""

    default_retryable = True


class ResourceCreateError(BackendError):
    """Creating a configuration resource or execution unit failed."""


class ResourceDeleteError(BackendError):
    """Deleting a configuration resource or execution unit failed."""


__all__ = [
    "BackendError",
    "BackendUnavailableError",
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidConfigError",
    "LoadSpineError",
    "ParseError",
    "ResourceCreateError",
    "ResourceDeleteError",
    "SchemaViolationError",
    "SourceError",
    "SourceNotFoundError",
    "SourceReadError",
]
