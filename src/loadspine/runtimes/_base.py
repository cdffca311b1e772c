"""Base cluster backend with shared lifecycle logic.

Provides ``BaseClusterBackend`` with common patterns (logging, error
conversion, health timing) and ``InMemoryClusterBackend`` for tests and
local development.

Architecture:

    .. code-block:: text

        ClusterBackend (Protocol)
              │
              ▼
        BaseClusterBackend
        ├── create_config() → log + wrap → _do_create_config()
        ├── create_unit()   → log + wrap → _do_create_unit()
        ├── delete_*()      → log + wrap → _do_delete_*()   (False if absent)
        ├── list_*()        → wrap       → _do_list_*()
        ├── wait_for_unit() → log        → _do_wait_for_unit()
        └── health()        → timing     → _do_health()
              │
        ┌─────┴──────────────────────┐
        ▼                            ▼
    KubectlBackend            InMemoryClusterBackend
    (kubectl subprocess)      (dict-backed, failure injection)

Error conversion:
    Whatever a subclass raises is converted into the load-spine taxonomy
    at this boundary, so callers only ever catch ``ResourceCreateError``,
    ``ResourceDeleteError`` or ``BackendError``.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Literal

from loadspine.core.errors import (
    BackendError,
    ResourceCreateError,
    ResourceDeleteError,
)
from loadspine.core.logging import get_logger
from loadspine.runtimes._types import (
    BackendHealth,
    ConfigResourceSpec,
    ExecutionUnitSpec,
    UnitStatus,
    matches_selector,
)

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Base backend
# ---------------------------------------------------------------------------


class BaseClusterBackend:
    """Base class for cluster backends.

    Subclasses MUST implement the ``_do_*`` methods. The public methods
    add structured logging and convert failures into the error taxonomy.
    """

    @property
    def backend_name(self) -> str:
        """Unique name for this backend."""
        raise NotImplementedError

    # --- configuration resources ---

    def create_config(self, spec: ConfigResourceSpec) -> None:
        logger.debug("config.create", backend=self.backend_name, name=spec.name)
        try:
            self._do_create_config(spec)
        except ResourceCreateError:
            raise
        except Exception as exc:
            raise ResourceCreateError(
                f"Failed to create configmap {spec.name!r}: {exc}",
                cause=exc,
            ).with_context(resource_kind="configmap", resource_name=spec.name) from exc
        logger.info("config.created", backend=self.backend_name, name=spec.name)

    def delete_config(self, name: str) -> bool:
        return self._delete("configmap", name, self._do_delete_config)

    def list_configs(self, selector: dict[str, str]) -> list[str]:
        return self._list("configmap", selector, self._do_list_configs)

    # --- execution units ---

    def create_unit(self, spec: ExecutionUnitSpec) -> None:
        logger.debug(
            "unit.create",
            backend=self.backend_name,
            name=spec.name,
            image=spec.image,
            deadline=spec.active_deadline_seconds,
        )
        try:
            self._do_create_unit(spec)
        except ResourceCreateError:
            raise
        except Exception as exc:
            raise ResourceCreateError(
                f"Failed to create job {spec.name!r}: {exc}",
                cause=exc,
            ).with_context(resource_kind="job", resource_name=spec.name) from exc
        logger.info("unit.created", backend=self.backend_name, name=spec.name)

    def delete_unit(self, name: str) -> bool:
        return self._delete("job", name, self._do_delete_unit)

    def list_units(self, selector: dict[str, str]) -> list[str]:
        return self._list("job", selector, self._do_list_units)

    def wait_for_unit(self, name: str, timeout_seconds: float) -> UnitStatus:
        logger.info("unit.waiting", backend=self.backend_name, name=name, timeout=timeout_seconds)
        try:
            status = self._do_wait_for_unit(name, timeout_seconds)
        except BackendError:
            raise
        except Exception as exc:
            raise BackendError(
                f"Failed waiting for job {name!r}: {exc}", cause=exc,
            ).with_context(resource_kind="job", resource_name=name) from exc
        logger.info("unit.finished", backend=self.backend_name, name=name, state=status.state)
        return status

    def health(self) -> BackendHealth:
        """Health check with latency timing. Never raises."""
        start = time.monotonic()
        try:
            result = self._do_health()
            return BackendHealth(
                healthy=result.healthy,
                backend=self.backend_name,
                version=result.version,
                message=result.message,
                latency_ms=(time.monotonic() - start) * 1000,
                details=result.details,
            )
        except Exception as exc:
            return BackendHealth(
                healthy=False,
                backend=self.backend_name,
                message=f"Health check failed: {exc}",
                latency_ms=(time.monotonic() - start) * 1000,
            )

    # --- shared helpers ---

    def _delete(self, kind: str, name: str, fn) -> bool:
        try:
            existed = fn(name)
        except ResourceDeleteError:
            raise
        except Exception as exc:
            raise ResourceDeleteError(
                f"Failed to delete {kind} {name!r}: {exc}", cause=exc,
            ).with_context(resource_kind=kind, resource_name=name) from exc
        if existed:
            logger.info(f"{kind}.deleted", backend=self.backend_name, name=name)
        else:
            logger.debug(f"{kind}.already_absent", backend=self.backend_name, name=name)
        return existed

    def _list(self, kind: str, selector: dict[str, str], fn) -> list[str]:
        try:
            return list(fn(selector))
        except BackendError:
            raise
        except Exception as exc:
            raise BackendError(
                f"Failed to list {kind} resources: {exc}", cause=exc,
            ).with_context(resource_kind=kind) from exc

    # --- abstract methods for subclasses ---

    def _do_create_config(self, spec: ConfigResourceSpec) -> None:
        raise NotImplementedError

    def _do_delete_config(self, name: str) -> bool:
        raise NotImplementedError

    def _do_list_configs(self, selector: dict[str, str]) -> list[str]:
        raise NotImplementedError

    def _do_create_unit(self, spec: ExecutionUnitSpec) -> None:
        raise NotImplementedError

    def _do_delete_unit(self, name: str) -> bool:
        raise NotImplementedError

    def _do_list_units(self, selector: dict[str, str]) -> list[str]:
        raise NotImplementedError

    def _do_wait_for_unit(self, name: str, timeout_seconds: float) -> UnitStatus:
        raise NotImplementedError

    def _do_health(self) -> BackendHealth:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


@dataclass
class _MemoryUnit:
    spec: ExecutionUnitSpec
    state: str = "running"


@dataclass
class _Injections:
    """Failure injection switches for ``InMemoryClusterBackend``."""

    fail_create_config: set[str] = field(default_factory=set)
    fail_create_unit: set[str] = field(default_factory=set)
    fail_delete: set[str] = field(default_factory=set)
    fail_list: bool = False
    fail_wait: bool = False
    # Store the resource before raising, as a half-applied create would.
    partial_create: bool = False


class InMemoryClusterBackend(BaseClusterBackend):
    """Dict-backed backend for unit tests and offline runs.

    Every created unit finishes immediately with ``unit_outcome`` when
    waited on. Every mutating call is appended to ``events`` as
    ``(operation, name)`` so tests can assert ordering.

    Example:
        >>> backend = InMemoryClusterBackend()
        >>> backend.inject.fail_create_unit.add("bugs-loader-1")
        >>> backend.inject.partial_create = True
    """

    def __init__(
        self,
        *,
        unit_outcome: Literal["succeeded", "failed", "timeout"] = "succeeded",
    ) -> None:
        self.unit_outcome = unit_outcome
        self.configs: dict[str, ConfigResourceSpec] = {}
        self.units: dict[str, _MemoryUnit] = {}
        self.events: list[tuple[str, str]] = []
        self.inject = _Injections()
        self._lock = threading.Lock()

    @property
    def backend_name(self) -> str:
        return "memory"

    def _record(self, operation: str, name: str) -> None:
        self.events.append((operation, name))

    def _do_create_config(self, spec: ConfigResourceSpec) -> None:
        with self._lock:
            self._record("create_config", spec.name)
            if spec.name in self.inject.fail_create_config:
                if self.inject.partial_create:
                    self.configs[spec.name] = spec
                raise RuntimeError("injected configmap create failure")
            if spec.name in self.configs:
                raise ResourceCreateError(
                    f"configmaps {spec.name!r} already exists"
                ).with_context(resource_kind="configmap", resource_name=spec.name)
            self.configs[spec.name] = spec

    def _do_delete_config(self, name: str) -> bool:
        with self._lock:
            self._record("delete_config", name)
            if name in self.inject.fail_delete:
                raise RuntimeError("injected delete failure")
            return self.configs.pop(name, None) is not None

    def _do_list_configs(self, selector: dict[str, str]) -> list[str]:
        with self._lock:
            if self.inject.fail_list:
                raise RuntimeError("injected list failure")
            return sorted(
                name for name, spec in self.configs.items()
                if matches_selector(spec.labels, selector)
            )

    def _do_create_unit(self, spec: ExecutionUnitSpec) -> None:
        with self._lock:
            self._record("create_unit", spec.name)
            if spec.name in self.inject.fail_create_unit:
                if self.inject.partial_create:
                    self.units[spec.name] = _MemoryUnit(spec=spec)
                raise RuntimeError("injected job create failure")
            if spec.name in self.units:
                raise ResourceCreateError(
                    f"jobs {spec.name!r} already exists"
                ).with_context(resource_kind="job", resource_name=spec.name)
            self.units[spec.name] = _MemoryUnit(spec=spec)

    def _do_delete_unit(self, name: str) -> bool:
        with self._lock:
            self._record("delete_unit", name)
            if name in self.inject.fail_delete:
                raise RuntimeError("injected delete failure")
            return self.units.pop(name, None) is not None

    def _do_list_units(self, selector: dict[str, str]) -> list[str]:
        with self._lock:
            if self.inject.fail_list:
                raise RuntimeError("injected list failure")
            return sorted(
                name for name, unit in self.units.items()
                if matches_selector(unit.spec.labels, selector)
            )

    def _do_wait_for_unit(self, name: str, timeout_seconds: float) -> UnitStatus:
        with self._lock:
            self._record("wait_unit", name)
            if self.inject.fail_wait:
                raise RuntimeError("injected wait failure")
            unit = self.units.get(name)
            if unit is None:
                return UnitStatus(state="unknown", message=f"job {name!r} not found")
            unit.state = self.unit_outcome
        if self.unit_outcome == "succeeded":
            return UnitStatus(state="succeeded", succeeded=1)
        if self.unit_outcome == "failed":
            return UnitStatus(state="failed", failed=1, message="BackoffLimitExceeded")
        return UnitStatus(state="timeout", message=f"gave up after {timeout_seconds}s")

    def _do_health(self) -> BackendHealth:
        return BackendHealth(healthy=True, backend="memory", version="0.0.0-memory")
