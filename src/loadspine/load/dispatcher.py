"""Dispatcher: create, submit and supervise one execution unit per chunk.

For every chunk the dispatcher:

1. builds the unit payload (name + script),
2. creates a configmap holding the script, labeled with the chunk's label set,
3. creates a job that mounts the configmap, runs it once (backoff limit 0)
   under an active deadline, labeled the same way,
4. waits for the job's completion signal.

A failed create in step 2 or 3 triggers a best-effort delete of the
resource that was just attempted, then aborts the dispatch phase with
``ResourceCreateError``. Chunks that already finished are left in place;
reclaiming them is the sweeper's job, by label, not by reference.

Why This Matters:
    The backend namespace is shared, mutable, and not transactional
    across the (configmap, job) pair. A crash between steps 2 and 3
    leaves an orphaned configmap. Because every resource carries the
    run's labels, ``Sweeper`` can always find it again, even from a
    different process.

Key Concepts:
    DispatchMode.SEQUENTIAL: Chunk i is created and waited on before
        chunk i+1 is submitted. One chunk in flight at a time. Default.
    DispatchMode.BOUNDED: ThreadPoolExecutor with ``max_in_flight``
        workers; each worker creates and then waits on its own chunk.
        A fatal create sets an abort flag so queued chunks never start.
        Results are joined in chunk-index order.

Ordering guarantees (both modes):
    - A chunk's configmap is created before its job, and both before
      that chunk's wait begins.
    - Invocations inside a chunk run in list order (inside the script).

Tags:
    dispatcher, fan-out, jobs, configmaps, rollback
"""

from __future__ import annotations

import contextvars
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from loadspine.core.errors import BackendError, ResourceCreateError, ResourceDeleteError
from loadspine.core.logging import get_logger
from loadspine.load.config import DispatchMode, LoadConfig
from loadspine.load.models import Chunk
from loadspine.load.payload import SCRIPT_KEY, UnitPayload, build_payload
from loadspine.load.results import ChunkResult
from loadspine.runtimes._types import (
    ClusterBackend,
    ConfigResourceSpec,
    ExecutionUnitSpec,
    UnitStatus,
)

logger = get_logger(__name__)


class Dispatcher:
    """Fan chunks out to the cluster backend and wait for them.

    Parameters
    ----------
    config
        Run configuration (labels, image, deadlines, dispatch mode).
    backend
        Cluster backend implementing ``ClusterBackend``.

    Example::

        dispatcher = Dispatcher(config, backend)
        try:
            dispatcher.dispatch(partition(items, config.concurrency))
        finally:
            Sweeper(backend, config.run_selector).sweep()
    """

    def __init__(self, config: LoadConfig, backend: ClusterBackend) -> None:
        self.config = config
        self.backend = backend
        self.results: list[ChunkResult] = []
        self._abort = threading.Event()
        self._lock = threading.Lock()

    def dispatch(self, chunks: Sequence[Chunk]) -> list[ChunkResult]:
        """Submit every chunk and wait for each unit to finish.

        Returns
        -------
        list[ChunkResult]
            One result per attempted chunk, in chunk-index order.

        Raises
        ------
        ResourceCreateError
            A configmap or job could not be created. ``self.results``
            still holds every chunk attempted before the abort.
        """
        self.results = []
        self._abort.clear()

        if not chunks:
            logger.info("dispatch.empty")
            return []

        work = [(chunk, build_payload(chunk, self.config)) for chunk in chunks]
        logger.info(
            "dispatch.started",
            chunks=len(work),
            mode=self.config.dispatch_mode.value,
        )

        try:
            if self.config.dispatch_mode == DispatchMode.BOUNDED and len(work) > 1:
                self._dispatch_bounded(work)
            else:
                self._dispatch_sequential(work)
        finally:
            self.results.sort(key=lambda r: r.chunk_index)

        logger.info("dispatch.complete", chunks=len(self.results))
        return list(self.results)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _dispatch_sequential(self, work: list[tuple[Chunk, UnitPayload]]) -> None:
        for chunk, payload in work:
            self._run_chunk(chunk, payload)

    def _dispatch_bounded(self, work: list[tuple[Chunk, UnitPayload]]) -> None:
        max_workers = min(self.config.effective_max_in_flight, len(work))
        fatal: ResourceCreateError | None = None
        fatal_index = -1

        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            # Run-scoped log bindings live in contextvars.
            futures = {
                pool.submit(contextvars.copy_context().run, self._run_chunk, chunk, payload): chunk.index
                for chunk, payload in work
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    future.result()
                except ResourceCreateError as exc:
                    if fatal is None or index < fatal_index:
                        fatal, fatal_index = exc, index

        if fatal is not None:
            raise fatal

    # ------------------------------------------------------------------
    # Per-chunk lifecycle
    # ------------------------------------------------------------------

    def _run_chunk(self, chunk: Chunk, payload: UnitPayload) -> ChunkResult | None:
        if self._abort.is_set():
            logger.info("chunk.not_attempted", chunk=chunk.index, name=payload.name)
            return None

        result = ChunkResult(chunk_index=chunk.index, name=payload.name, items=len(chunk))
        try:
            self._create_config(payload, result)
            self._create_unit(payload, result)
        except ResourceCreateError as exc:
            self._abort.set()
            result.error = str(exc)
            result.mark_complete()
            self._record(result)
            raise

        status = self._wait(payload.name)
        result.unit_state = status.state
        result.unit_message = status.message
        result.mark_complete()
        self._record(result)

        if status.state == "succeeded":
            logger.info("chunk.succeeded", chunk=chunk.index, name=payload.name)
        else:
            logger.warning(
                "chunk.unit_not_succeeded",
                chunk=chunk.index,
                name=payload.name,
                state=status.state,
                message=status.message,
            )
        return result

    def _create_config(self, payload: UnitPayload, result: ChunkResult) -> None:
        spec = ConfigResourceSpec(
            name=payload.name,
            labels=self.config.chunk_labels(payload.chunk_index),
            data=payload.data,
            namespace=self.config.namespace,
        )
        try:
            self.backend.create_config(spec)
        except ResourceCreateError as exc:
            logger.error("chunk.config_create_failed", chunk=payload.chunk_index, error=str(exc))
            self._rollback(result, "configmap", payload.name, self.backend.delete_config)
            raise exc.with_context(
                chunk_index=payload.chunk_index, namespace=self.config.namespace,
            )
        result.config_created = True

    def _create_unit(self, payload: UnitPayload, result: ChunkResult) -> None:
        mount_path = "/vulas"
        spec = ExecutionUnitSpec(
            name=payload.name,
            config_name=payload.name,
            image=self.config.image,
            command=["sh", f"{mount_path}/{SCRIPT_KEY}"],
            labels=self.config.chunk_labels(payload.chunk_index),
            namespace=self.config.namespace,
            container_name=self.config.app_name,
            mount_path=mount_path,
            active_deadline_seconds=self.config.active_deadline_seconds,
        )
        try:
            self.backend.create_unit(spec)
        except ResourceCreateError as exc:
            logger.error("chunk.unit_create_failed", chunk=payload.chunk_index, error=str(exc))
            self._rollback(result, "job", payload.name, self.backend.delete_unit)
            raise exc.with_context(
                chunk_index=payload.chunk_index, namespace=self.config.namespace,
            )
        result.unit_created = True
        logger.info("chunk.submitted", chunk=payload.chunk_index, name=payload.name)

    def _rollback(
        self,
        result: ChunkResult,
        kind: str,
        name: str,
        delete: Callable[[str], bool],
    ) -> None:
        """Best-effort delete of a resource whose create just failed."""
        try:
            delete(name)
        except ResourceDeleteError as exc:
            result.rollback_errors.append(str(exc))
            logger.warning("chunk.rollback_failed", kind=kind, name=name, error=str(exc))

    def _wait(self, name: str) -> UnitStatus:
        try:
            return self.backend.wait_for_unit(name, self.config.effective_wait_timeout)
        except BackendError as exc:
            logger.warning("chunk.wait_failed", name=name, error=str(exc))
            return UnitStatus(state="unknown", message=str(exc))

    def _record(self, result: ChunkResult) -> None:
        with self._lock:
            self.results.append(result)
