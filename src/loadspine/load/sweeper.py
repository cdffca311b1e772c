"""Label-based cleanup of every resource a run may have created.

The sweeper does not trust any in-memory record of what was created. It
lists jobs and configmaps by label selector and deletes each match, so
resources orphaned by a crash, a partial rollback, or an earlier run of
the same app are reclaimed too.

Jobs go first so no pod is left mounting a configmap that is about to
disappear. Every individual failure is logged and recorded; the sweep
always visits every listed resource.
"""

from __future__ import annotations

from collections.abc import Callable

from loadspine.core.errors import BackendError, ResourceDeleteError
from loadspine.core.logging import get_logger
from loadspine.load.results import SweepResult
from loadspine.runtimes._types import ClusterBackend, format_selector

logger = get_logger(__name__)


class Sweeper:
    """Delete all jobs and configmaps matching ``selector``."""

    def __init__(self, backend: ClusterBackend, selector: dict[str, str]) -> None:
        self.backend = backend
        self.selector = dict(selector)

    def sweep(self) -> SweepResult:
        """Run one cleanup pass. Never raises for backend failures."""
        result = SweepResult(selector=self.selector)
        logger.info("sweep.started", selector=format_selector(self.selector))

        self._sweep_kind(
            "job", self.backend.list_units, self.backend.delete_unit, result.units_deleted, result,
        )
        self._sweep_kind(
            "configmap", self.backend.list_configs, self.backend.delete_config,
            result.configs_deleted, result,
        )

        if result.errors:
            logger.warning(
                "sweep.incomplete",
                deleted=result.deleted_count,
                errors=len(result.errors),
            )
        else:
            logger.info("sweep.complete", deleted=result.deleted_count)
        return result

    def _sweep_kind(
        self,
        kind: str,
        list_fn: Callable[[dict[str, str]], list[str]],
        delete_fn: Callable[[str], bool],
        deleted: list[str],
        result: SweepResult,
    ) -> None:
        try:
            names = list_fn(self.selector)
        except BackendError as exc:
            result.errors.append(f"list {kind}: {exc}")
            logger.error("sweep.list_failed", kind=kind, error=str(exc))
            return

        for name in names:
            try:
                existed = delete_fn(name)
            except ResourceDeleteError as exc:
                result.errors.append(f"delete {kind} {name}: {exc}")
                logger.error("sweep.delete_failed", kind=kind, name=name, error=str(exc))
                continue
            if existed:
                deleted.append(name)
            else:
                result.already_absent.append(name)
