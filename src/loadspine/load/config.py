"""Run configuration for load-spine.

``LoadConfig`` is the single, immutable description of one loader run:
how many chunks to fan out to, which release's backend the loaded
vulnerabilities go to, which namespace resources live in, and the two
payload policy flags. It is created once per invocation and handed to
each component at construction time; nothing reads process-wide state.

Key Concepts:
    LoadConfig: Frozen pydantic model. ``from_env()`` reads
        ``LOADSPINE_*`` environment variables.
    DispatchMode: ``sequential`` (one chunk in flight, wait before the
        next) or ``bounded`` (up to ``max_in_flight`` chunks in flight).

Architecture Decisions:
    - Frozen model: the run context is read-only for the run's duration.
    - ``concurrency`` is not range-checked here. The partitioner owns that
      rule and raises ``InvalidConfigError``, so the error surfaces with
      the run's taxonomy rather than as a pydantic ValidationError.
    - Override precedence: kwargs > env vars > field defaults.

Tags:
    config, settings, pydantic, environment
"""

from __future__ import annotations

import os
import uuid
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from loadspine.runtimes._types import LABEL_INSTANCE, LABEL_NAME

DEFAULT_NAMESPACE = "vulnerability-assessment-tool-core"
DEFAULT_IMAGE = "ichbinfrog/patchanalyzer:v0.0.1"
DEFAULT_APP_NAME = "bugs-loader"


class DispatchMode(str, Enum):
    """How chunk submissions overlap with completion waits."""

    SEQUENTIAL = "sequential"  # submit chunk i, wait, then chunk i+1
    BOUNDED = "bounded"  # worker pool, at most max_in_flight chunks waiting


class LoadConfig(BaseModel):
    """Configuration for a single loader run.

    Example::

        config = LoadConfig(
            source=Path("bugs.yaml"),
            concurrency=3,
            release="feynman",
            dry_run=True,
        )
    """

    model_config = ConfigDict(frozen=True)

    # What to load
    source: Path = Field(
        default=Path("bugs.yaml"),
        description="YAML document with a top-level 'bugs' list",
    )
    source_key: str = Field(
        default="bugs",
        description="Top-level key holding the work item list",
    )

    # Fan-out
    concurrency: int = Field(
        default=1,
        description="Target number of chunks (execution units)",
    )
    dispatch_mode: DispatchMode = Field(
        default=DispatchMode.SEQUENTIAL,
        description="Whether chunk waits may overlap",
    )
    max_in_flight: int | None = Field(
        default=None,
        description="Worker cap in bounded mode (defaults to concurrency)",
    )

    # Where
    release: str = Field(
        default="",
        description="Release whose rest backend receives the loaded bugs",
    )
    namespace: str = Field(
        default=DEFAULT_NAMESPACE,
        description="Namespace for configmaps and jobs",
    )
    kubeconfig: str = Field(
        default="",
        description="Path to kubeconfig (empty means ~/.kube/config)",
    )

    # Payload policy
    skip_on_error: bool = Field(
        default=False,
        description="Pass -sie so already-present bugs are skipped",
    )
    dry_run: bool = Field(
        default=False,
        description="When false, pass -u so results are uploaded",
    )

    # Execution unit
    app_name: str = Field(
        default=DEFAULT_APP_NAME,
        description="Resource name prefix and app label value",
    )
    image: str = Field(default=DEFAULT_IMAGE, description="Patch analyzer image")
    active_deadline_seconds: int = Field(
        default=100,
        description="Maximum run time of a single execution unit",
    )
    wait_timeout_seconds: float | None = Field(
        default=None,
        description="How long to wait for a unit (defaults to deadline + 30s)",
    )

    # Internal
    run_id: str = Field(
        default_factory=lambda: uuid.uuid4().hex[:12],
        description="Unique run identifier (auto-generated)",
    )

    @property
    def effective_max_in_flight(self) -> int:
        return max(1, self.max_in_flight or self.concurrency)

    @property
    def effective_wait_timeout(self) -> float:
        if self.wait_timeout_seconds is not None:
            return self.wait_timeout_seconds
        return float(self.active_deadline_seconds + 30)

    @property
    def run_selector(self) -> dict[str, str]:
        """Label selector matching every resource this run kind creates."""
        return {LABEL_NAME: self.app_name}

    def chunk_labels(self, chunk_index: int) -> dict[str, str]:
        """Full label set for the resources of one chunk."""
        return {LABEL_NAME: self.app_name, LABEL_INSTANCE: str(chunk_index)}

    @classmethod
    def from_env(cls, **overrides: Any) -> LoadConfig:
        """Create config from LOADSPINE_* environment variables."""
        env_map = {
            "source": "LOADSPINE_SOURCE",
            "concurrency": "LOADSPINE_CONCURRENCY",
            "dispatch_mode": "LOADSPINE_DISPATCH_MODE",
            "max_in_flight": "LOADSPINE_MAX_IN_FLIGHT",
            "release": "LOADSPINE_RELEASE",
            "namespace": "LOADSPINE_NAMESPACE",
            "kubeconfig": "LOADSPINE_KUBECONFIG",
            "skip_on_error": "LOADSPINE_SKIP",
            "dry_run": "LOADSPINE_DRY_RUN",
            "image": "LOADSPINE_IMAGE",
            "active_deadline_seconds": "LOADSPINE_ACTIVE_DEADLINE_SECONDS",
            "wait_timeout_seconds": "LOADSPINE_WAIT_TIMEOUT_SECONDS",
        }
        values: dict[str, Any] = {}
        for field_name, env_var in env_map.items():
            env_val = os.environ.get(env_var)
            if env_val is None:
                continue
            if field_name in ("concurrency", "max_in_flight", "active_deadline_seconds"):
                values[field_name] = int(env_val)
            elif field_name == "wait_timeout_seconds":
                values[field_name] = float(env_val)
            elif field_name in ("skip_on_error", "dry_run"):
                values[field_name] = env_val.lower() in ("true", "1", "yes")
            else:
                values[field_name] = env_val
        values.update(overrides)
        return cls(**values)
