"""
load-spine - chunked vulnerability loading onto a cluster backend.

Subpackages:
- loadspine.core: errors and structured logging
- loadspine.runtimes: cluster backend protocol and implementations
- loadspine.load: source, partitioning, payloads, dispatch, sweep, runner
"""

__version__ = "0.1.0"

from loadspine.load import LoadConfig, LoadRunner, LoadRunResult  # noqa: E402

__all__ = ["LoadConfig", "LoadRunResult", "LoadRunner", "__version__"]
