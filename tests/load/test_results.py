"""Tests for result models."""

from __future__ import annotations

import json


class TestRunStatus:
    """RunStatus enum."""

    def test_values(self):
        from loadspine.load.results import RunStatus

        assert RunStatus.PASSED.value == "PASSED"
        assert RunStatus.PARTIAL.value == "PARTIAL"
        assert RunStatus.ERROR.value == "ERROR"


class TestChunkResult:
    """Per-chunk status derivation."""

    def test_succeeded(self):
        from loadspine.load.results import ChunkResult, RunStatus

        r = ChunkResult(chunk_index=0, name="bugs-loader-0", unit_state="succeeded")
        r.mark_complete()
        assert r.status == RunStatus.PASSED
        assert r.completed_at is not None
        assert r.duration_seconds >= 0

    def test_unit_failed_or_timeout(self):
        from loadspine.load.results import ChunkResult, RunStatus

        for state in ("failed", "timeout", "unknown"):
            r = ChunkResult(chunk_index=0, name="bugs-loader-0", unit_state=state)
            r.mark_complete()
            assert r.status == RunStatus.FAILED

    def test_error(self):
        from loadspine.load.results import ChunkResult, RunStatus

        r = ChunkResult(chunk_index=1, name="bugs-loader-1", error="create failed")
        r.mark_complete()
        assert r.status == RunStatus.ERROR


class TestSweepResult:
    """Sweep bookkeeping."""

    def test_counts(self):
        from loadspine.load.results import SweepResult

        s = SweepResult(units_deleted=["a"], configs_deleted=["a", "b"])
        assert s.deleted_count == 3
        assert s.success is True
        s.errors.append("delete job a: boom")
        assert s.success is False


class TestLoadRunResult:
    """Overall status and exit code."""

    def _chunk(self, index, status):
        from loadspine.load.results import ChunkResult

        return ChunkResult(chunk_index=index, name=f"bugs-loader-{index}", status=status)

    def test_all_passed(self):
        from loadspine.load.results import LoadRunResult, RunStatus

        r = LoadRunResult(run_id="r", chunk_sizes=[2, 1], total_items=3)
        r.chunks = [self._chunk(0, RunStatus.PASSED), self._chunk(1, RunStatus.PASSED)]
        r.mark_complete()
        assert r.overall_status == RunStatus.PASSED
        assert r.exit_code == 0
        assert r.summary.startswith("2/2 chunks passed (3 items) PASSED")

    def test_partial(self):
        from loadspine.load.results import LoadRunResult, RunStatus

        r = LoadRunResult(run_id="r", chunk_sizes=[1, 1])
        r.chunks = [self._chunk(0, RunStatus.PASSED), self._chunk(1, RunStatus.FAILED)]
        r.mark_complete()
        assert r.overall_status == RunStatus.PARTIAL
        assert r.exit_code == 0

    def test_all_failed(self):
        from loadspine.load.results import LoadRunResult, RunStatus

        r = LoadRunResult(run_id="r", chunk_sizes=[1])
        r.chunks = [self._chunk(0, RunStatus.FAILED)]
        r.mark_complete()
        assert r.overall_status == RunStatus.FAILED
        assert r.exit_code == 1

    def test_error_wins(self):
        from loadspine.load.results import LoadRunResult, RunStatus

        r = LoadRunResult(run_id="r", chunk_sizes=[1])
        r.chunks = [self._chunk(0, RunStatus.PASSED)]
        r.error = "create failed"
        r.mark_complete()
        assert r.overall_status == RunStatus.ERROR
        assert r.exit_code == 1

    def test_no_chunks_is_skipped(self):
        from loadspine.load.results import LoadRunResult, RunStatus

        r = LoadRunResult(run_id="r")
        r.mark_complete()
        assert r.overall_status == RunStatus.SKIPPED
        assert r.exit_code == 0

    def test_summary_mentions_sweep(self):
        from loadspine.load.results import LoadRunResult, SweepResult

        r = LoadRunResult(run_id="r")
        r.sweep = SweepResult(units_deleted=["a"], configs_deleted=["a"], errors=["x"])
        r.mark_complete()
        assert "swept 2 resources" in r.summary
        assert "(1 cleanup errors)" in r.summary

    def test_json_serializable(self):
        from loadspine.load.results import LoadRunResult

        r = LoadRunResult(run_id="r", namespace="ns")
        r.mark_complete()
        data = json.loads(r.model_dump_json())
        assert data["run_id"] == "r"
        assert data["overall_status"] == "SKIPPED"
