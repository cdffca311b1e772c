"""End-to-end loader run: source → partition → dispatch → sweep.

``LoadRunner`` ties the components together and guarantees the cleanup
sweep runs once the dispatch phase has been entered, whatever happens
inside it.

Phases:
    1. Load the work items from the source document.
    2. Partition them into at most ``concurrency`` chunks and check the
       backend is healthy.
    3. Dispatch every chunk (configmap + job, wait).
    4. Sweep every labeled resource (``finally``).
    5. ``mark_complete()`` derives the overall status and summary.

A failure in phase 1 or 2, including an unhealthy backend, happens
before any resource exists, so the result is finalised as ERROR and
nothing is swept. A fatal dispatch error is recorded on the result;
anything unexpected propagates after the sweep has run.

Example::

    config = LoadConfig(source=Path("bugs.yaml"), concurrency=3, release="feynman")
    result = LoadRunner(config).run()
    print(result.summary)
    sys.exit(result.exit_code)
"""

from __future__ import annotations

from loadspine.core.errors import BackendUnavailableError, LoadSpineError
from loadspine.core.logging import LogContext, get_logger
from loadspine.load.config import LoadConfig
from loadspine.load.dispatcher import Dispatcher
from loadspine.load.models import Chunk
from loadspine.load.partition import partition
from loadspine.load.results import LoadRunResult
from loadspine.load.source import load_work_items
from loadspine.load.sweeper import Sweeper
from loadspine.runtimes._types import ClusterBackend

logger = get_logger(__name__)


class LoadRunner:
    """Run one load from a ``LoadConfig``.

    ``backend`` defaults to a ``KubectlBackend`` for the configured
    namespace and kubeconfig.
    """

    def __init__(self, config: LoadConfig, backend: ClusterBackend | None = None) -> None:
        self.config = config
        if backend is None:
            from loadspine.runtimes.kubectl import KubectlBackend

            backend = KubectlBackend(namespace=config.namespace, kubeconfig=config.kubeconfig)
        self.backend = backend
        self.dispatcher = Dispatcher(config, backend)
        self.sweeper = Sweeper(backend, config.run_selector)

    def run(self) -> LoadRunResult:
        """Execute the full run and return its structured result."""
        result = LoadRunResult(
            run_id=self.config.run_id,
            namespace=self.config.namespace,
            source=str(self.config.source),
        )

        with LogContext(run_id=self.config.run_id, namespace=self.config.namespace):
            logger.info("run.started", source=str(self.config.source), concurrency=self.config.concurrency)

            try:
                chunks = self._prepare(result)
            except LoadSpineError as exc:
                self._record_error(result, exc)
                result.mark_complete()
                logger.error("run.aborted_before_dispatch", error=str(exc))
                return result

            try:
                self.dispatcher.dispatch(chunks)
            except LoadSpineError as exc:
                self._record_error(result, exc)
                logger.error("run.dispatch_failed", error=str(exc), error_type=result.error_type)
            finally:
                result.sweep = self.sweeper.sweep()
                result.chunks = list(self.dispatcher.results)
                result.mark_complete()

            logger.info("run.complete", status=result.overall_status.value, summary=result.summary)
        return result

    def _prepare(self, result: LoadRunResult) -> list[Chunk]:
        items = load_work_items(self.config.source, self.config.source_key)
        chunks = partition(items, self.config.concurrency)
        result.total_items = len(items)
        result.chunk_sizes = [len(chunk) for chunk in chunks]
        logger.info("run.partitioned", items=len(items), chunk_sizes=result.chunk_sizes)
        if chunks:
            self._check_backend()
        return chunks

    def _check_backend(self) -> None:
        health = self.backend.health()
        if not health.healthy:
            raise BackendUnavailableError(
                f"Cluster backend {health.backend!r} is not healthy: {health.message}"
            ).with_context(namespace=self.config.namespace)
        logger.info(
            "run.backend_healthy",
            backend=health.backend,
            version=health.version,
            latency_ms=health.latency_ms,
        )

    @staticmethod
    def _record_error(result: LoadRunResult, exc: LoadSpineError) -> None:
        result.error = str(exc)
        result.error_type = type(exc).__name__
