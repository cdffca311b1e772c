"""Cluster backends for load-spine.

Architecture:

    .. code-block:: text

        loadspine.runtimes
        ├── __init__.py      ← Public API (this file)
        ├── _types.py        ← ClusterBackend protocol + resource specs
        ├── _base.py         ← BaseClusterBackend + InMemoryClusterBackend
        └── kubectl.py       ← KubectlBackend (kubectl subprocess)

    The dispatcher and sweeper depend only on the ``ClusterBackend``
    protocol; concrete backends are chosen by whoever builds the runner.
"""

from loadspine.runtimes._base import BaseClusterBackend, InMemoryClusterBackend
from loadspine.runtimes._types import (
    LABEL_INSTANCE,
    LABEL_NAME,
    BackendHealth,
    ClusterBackend,
    ConfigResourceSpec,
    ExecutionUnitSpec,
    UnitStatus,
    format_selector,
    matches_selector,
)
from loadspine.runtimes.kubectl import KubectlBackend

__all__ = [
    "LABEL_INSTANCE",
    "LABEL_NAME",
    "BackendHealth",
    "BaseClusterBackend",
    "ClusterBackend",
    "ConfigResourceSpec",
    "ExecutionUnitSpec",
    "InMemoryClusterBackend",
    "KubectlBackend",
    "UnitStatus",
    "format_selector",
    "matches_selector",
]
