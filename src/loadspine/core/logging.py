"""
Structured logging for load-spine.

``configure_logging`` installs a structlog processor chain that renders
either JSON lines (for log shipping) or a colored console (for humans).
Run-scoped fields are bound through contextvars with ``LogContext`` so
every event emitted during a run carries them, including events logged
from dispatcher worker threads (which run inside a copied context).

JSON events follow ECS naming: ``@timestamp``, ``log.level``,
``service.name``, and run-scoped fields grouped under ``labels``::

    {"event": "chunk.submitted", "labels": {"run_id": "3f1c", "chunk": 1},
     "name": "bugs-loader-1", "service.name": "load-spine", ...}

Example:
    configure_logging(level="INFO", json_format=True)
    log = get_logger(__name__)

    with LogContext(run_id="abc123", namespace="vulas"):
        log.info("chunk.submitted", chunk=0, items=3)

Tags:
    logging, structlog, observability
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Keys that locate an event inside a run; grouped under ``labels`` in JSON.
RUN_FIELDS = ("run_id", "namespace", "chunk")


def _service_processor(service: str) -> Processor:
    def add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", service)
        return event_dict

    return add_service


def _group_run_fields(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    labels = {key: event_dict.pop(key) for key in RUN_FIELDS if key in event_dict}
    if labels:
        event_dict["labels"] = labels
    return event_dict


def _ecs_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "load-spine",
    add_timestamp: bool = True,
    cache_loggers: bool = True,
) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR).
        json_format: True for JSON, False for console, None for JSON when
            stdout is not a tty.
        service: Value of ``service.name`` on every event.
        add_timestamp: Add an ISO timestamp.
        cache_loggers: Freeze each logger's configuration on first use.
    """
    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
    ]
    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    processors.append(_service_processor(service))

    if json_format:
        processors += [
            _group_run_fields,
            _ecs_names,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors += [
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=cache_loggers,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


class LogContext:
    """Bind fields to every event logged inside the block.

    Previous values of the same keys are restored on exit, so contexts nest.

    Example:
        with LogContext(run_id="abc123"):
            logger.info("dispatch.started")
    """

    def __init__(self, **fields: Any):
        self._fields = fields
        self._scope: Any = None

    def __enter__(self) -> LogContext:
        self._scope = structlog.contextvars.bound_contextvars(**self._fields)
        self._scope.__enter__()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._scope.__exit__(*exc_info)


__all__ = [
    "LogContext",
    "RUN_FIELDS",
    "configure_logging",
    "get_logger",
]
