"""Result models for loader runs.

Pydantic v2 models capturing the structured outcome of a run. Per-chunk
results roll up into a ``LoadRunResult`` together with the sweep outcome.

Key Concepts:
    RunStatus: PASSED, FAILED, PARTIAL, ERROR, SKIPPED, RUNNING, PENDING.
    ChunkResult: What happened to one chunk's configmap and job.
    SweepResult: What the label-based cleanup removed or failed to remove.
    LoadRunResult: ``mark_complete()`` finalises timestamps, status and
        summary; ``exit_code`` is what a wrapper process should return.

Architecture Decisions:
    - ``mark_complete()`` pattern: the runner calls it once, after the
      sweep, so the status always reflects cleanup too.
    - Unit failures (a job that failed or outlived the wait) are recorded
      but never turn into a fatal ERROR; only resource creation failures do.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class RunStatus(str, Enum):
    """Status of a chunk or a whole run."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    PARTIAL = "PARTIAL"
    ERROR = "ERROR"
    SKIPPED = "SKIPPED"
    RUNNING = "RUNNING"
    PENDING = "PENDING"


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _elapsed(started_at: str, completed_at: str) -> float:
    start = datetime.fromisoformat(started_at)
    end = datetime.fromisoformat(completed_at)
    return (end - start).total_seconds()


class ChunkResult(BaseModel):
    """Outcome of dispatching a single chunk."""

    chunk_index: int
    name: str
    items: int = 0
    config_created: bool = False
    unit_created: bool = False
    unit_state: str | None = None
    unit_message: str | None = None
    status: RunStatus = RunStatus.PENDING
    error: str | None = None
    rollback_errors: list[str] = Field(default_factory=list)
    started_at: str = Field(default_factory=_now)
    completed_at: str | None = None
    duration_seconds: float = 0.0

    def mark_complete(self) -> None:
        self.completed_at = _now()
        self.duration_seconds = _elapsed(self.started_at, self.completed_at)
        if self.error:
            self.status = RunStatus.ERROR
        elif self.unit_state == "succeeded":
            self.status = RunStatus.PASSED
        else:
            self.status = RunStatus.FAILED


class SweepResult(BaseModel):
    """Outcome of a label-based cleanup pass."""

    selector: dict[str, str] = Field(default_factory=dict)
    units_deleted: list[str] = Field(default_factory=list)
    configs_deleted: list[str] = Field(default_factory=list)
    already_absent: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def deleted_count(self) -> int:
        return len(self.units_deleted) + len(self.configs_deleted)


class LoadRunResult(BaseModel):
    """Result of a full loader run."""

    run_id: str
    namespace: str = ""
    source: str = ""
    started_at: str = Field(default_factory=_now)
    completed_at: str | None = None
    duration_seconds: float = 0.0
    total_items: int = 0
    chunk_sizes: list[int] = Field(default_factory=list)
    chunks: list[ChunkResult] = Field(default_factory=list)
    sweep: SweepResult | None = None
    overall_status: RunStatus = RunStatus.PENDING
    error: str | None = None
    error_type: str | None = None
    summary: str = ""

    @property
    def exit_code(self) -> int:
        """Non-zero when the run aborted or every unit failed."""
        return 1 if self.overall_status in (RunStatus.ERROR, RunStatus.FAILED) else 0

    def mark_complete(self) -> None:
        """Finalize run: compute duration, status, summary."""
        self.completed_at = _now()
        self.duration_seconds = _elapsed(self.started_at, self.completed_at)

        if self.error:
            self.overall_status = RunStatus.ERROR
        elif not self.chunks:
            self.overall_status = RunStatus.SKIPPED
        elif all(c.status == RunStatus.PASSED for c in self.chunks):
            self.overall_status = RunStatus.PASSED
        elif all(c.status in (RunStatus.FAILED, RunStatus.ERROR) for c in self.chunks):
            self.overall_status = RunStatus.FAILED
        else:
            self.overall_status = RunStatus.PARTIAL

        passed = sum(1 for c in self.chunks if c.status == RunStatus.PASSED)
        summary = (
            f"{passed}/{len(self.chunk_sizes)} chunks passed "
            f"({self.total_items} items) {self.overall_status.value} "
            f"in {self.duration_seconds:.1f}s"
        )
        if self.sweep is not None:
            summary += f"; swept {self.sweep.deleted_count} resources"
            if self.sweep.errors:
                summary += f" ({len(self.sweep.errors)} cleanup errors)"
        self.summary = summary
