"""Cluster backend types and protocol for load-spine.

This module defines the abstractions the dispatcher and sweeper use to
talk to a cluster orchestration backend:

- ConfigResourceSpec: key/value payload stored in the backend (ConfigMap)
- ExecutionUnitSpec: bounded-duration, non-retried job mounting a config resource
- UnitStatus: observed completion state of an execution unit
- BackendHealth: backend reachability check result
- ClusterBackend: protocol every backend implements

Design Notes:
    The core never holds backend handles across calls. Everything it
    needs for cleanup is expressible as a label selector, so a backend
    only has to support create / list-by-label / delete for the two
    resource kinds, plus a completion wait for units.

Architecture:

    .. code-block:: text

        ┌──────────────────────┐        ┌───────────────────────────┐
        │  ConfigResourceSpec  │        │    ExecutionUnitSpec      │
        │  name, labels, data  │◄───────│  name, config_name, image │
        └──────────────────────┘ mounts │  command, labels          │
                                        │  active_deadline_seconds  │
                                        │  backoff_limit = 0        │
                                        └─────────────┬─────────────┘
                                                      │ submitted to
                                        ┌─────────────▼─────────────┐
                                        │   ClusterBackend          │
                                        │   create/list/delete × 2  │
                                        │   wait_for_unit, health   │
                                        └─────────────┬─────────────┘
                                                      │ returns
                                                  UnitStatus
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

# Kubernetes recommended labels; the loader's label set is built on these.
LABEL_NAME = "app.kubernetes.io/name"
LABEL_INSTANCE = "app.kubernetes.io/instance"


def format_selector(labels: dict[str, str]) -> str:
    """Render a label mapping as an equality-based selector string.

    Example:
        >>> format_selector({"app.kubernetes.io/name": "bugs-loader"})
        'app.kubernetes.io/name=bugs-loader'
    """
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))


def matches_selector(labels: dict[str, str], selector: dict[str, str]) -> bool:
    """Whether ``labels`` satisfies every equality in ``selector``."""
    return all(labels.get(key) == value for key, value in selector.items())


# ---------------------------------------------------------------------------
# Resource specifications
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConfigResourceSpec:
    """A configuration resource holding a chunk's rendered payload."""

    name: str
    labels: dict[str, str]
    data: dict[str, str]
    namespace: str | None = None

    @property
    def kind(self) -> str:
        return "configmap"


@dataclass(frozen=True)
class ExecutionUnitSpec:
    """A bounded-duration, non-retried execution unit.

    The unit mounts ``config_name`` at ``mount_path`` and runs
    ``command`` once. Retries are never done at the resource level
    (``backoff_limit`` is always 0); fault tolerance lives inside the
    payload itself.
    """

    name: str
    config_name: str
    image: str
    command: list[str]
    labels: dict[str, str]
    namespace: str | None = None

    container_name: str = "bugs-loader"
    mount_path: str = "/vulas"
    active_deadline_seconds: int = 100
    parallelism: int = 1
    backoff_limit: int = 0
    restart_policy: Literal["Never", "OnFailure"] = "Never"
    image_pull_policy: Literal["Always", "IfNotPresent", "Never"] = "IfNotPresent"
    run_as_user: int | None = 0
    read_only_root_filesystem: bool = False

    @property
    def kind(self) -> str:
        return "job"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging and result reporting."""
        return {
            "name": self.name,
            "config_name": self.config_name,
            "image": self.image,
            "command": list(self.command),
            "labels": dict(self.labels),
            "namespace": self.namespace,
            "active_deadline_seconds": self.active_deadline_seconds,
            "backoff_limit": self.backoff_limit,
        }


# ---------------------------------------------------------------------------
# Observed state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UnitStatus:
    """Observed completion state of an execution unit.

    ``timeout`` means the orchestrator stopped waiting; the backend may
    still be running the unit until its own deadline.
    """

    state: Literal["pending", "running", "succeeded", "failed", "timeout", "unknown"]
    message: str | None = None
    succeeded: int = 0
    failed: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.state in ("succeeded", "failed", "timeout")

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"state": self.state}
        if self.message:
            d["message"] = self.message
        if self.succeeded:
            d["succeeded"] = self.succeeded
        if self.failed:
            d["failed"] = self.failed
        return d


@dataclass(frozen=True)
class BackendHealth:
    """Result of a backend health check."""

    healthy: bool
    backend: str
    version: str | None = None
    message: str | None = None
    latency_ms: float | None = None
    details: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# ClusterBackend protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ClusterBackend(Protocol):
    """Capability interface consumed by the dispatcher and sweeper.

    Lifecycle:
        create_config → create_unit → wait_for_unit → (sweep) list → delete

    Contract:
        - ``create_*`` raise ``ResourceCreateError`` on failure, including
          when a resource with the same name already exists.
        - ``delete_*`` return False when the resource was already absent
          and raise ``ResourceDeleteError`` on any other failure.
        - ``list_*`` return resource names matching every selector label.
        - ``wait_for_unit`` blocks until the unit is terminal or
          ``timeout_seconds`` elapses, returning ``UnitStatus(state="timeout")``
          in the latter case.
    """

    @property
    def backend_name(self) -> str: ...

    def create_config(self, spec: ConfigResourceSpec) -> None: ...

    def delete_config(self, name: str) -> bool: ...

    def list_configs(self, selector: dict[str, str]) -> list[str]: ...

    def create_unit(self, spec: ExecutionUnitSpec) -> None: ...

    def delete_unit(self, name: str) -> bool: ...

    def list_units(self, selector: dict[str, str]) -> list[str]: ...

    def wait_for_unit(self, name: str, timeout_seconds: float) -> UnitStatus: ...

    def health(self) -> BackendHealth: ...
