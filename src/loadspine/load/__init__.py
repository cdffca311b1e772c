"""load-spine load: chunk-and-dispatch vulnerability loading.

Takes a list of vulnerability records, cuts it into at most
``concurrency`` chunks, runs each chunk as one labeled job whose script
is held in a labeled configmap, waits for the jobs, and removes every
labeled resource afterwards.

Key Concepts:
    LoadConfig: Frozen pydantic model describing one run.
    load_work_items(): YAML source → ``list[WorkItem]``.
    partition(): Ceiling-division chunking, at most ``concurrency`` chunks.
    build_payload(): Chunk → unit name + ``/bin/sh`` script.
    Dispatcher: Creates configmap + job per chunk, waits, rolls back a
        failed create, aborts on the first fatal error.
    Sweeper: Label-selector cleanup of jobs and configmaps.
    LoadRunner: Config in, ``LoadRunResult`` out; sweep in ``finally``.

Architecture::

    config.py       LoadConfig, DispatchMode
    models.py       WorkItem, Chunk
    source.py       load_work_items
    partition.py    partition, chunk_size_for
    payload.py      Invocation, UnitPayload, build_payload
    dispatcher.py   Dispatcher
    sweeper.py      Sweeper
    results.py      ChunkResult, SweepResult, LoadRunResult, RunStatus
    runner.py       LoadRunner

Tags:
    loader, jobs, configmaps, fan-out, cleanup
"""

from loadspine.load.config import DispatchMode, LoadConfig
from loadspine.load.dispatcher import Dispatcher
from loadspine.load.models import Chunk, WorkItem
from loadspine.load.partition import chunk_size_for, partition
from loadspine.load.payload import (
    Invocation,
    UnitPayload,
    backend_service_url,
    build_invocation,
    build_payload,
    chunk_name,
)
from loadspine.load.results import ChunkResult, LoadRunResult, RunStatus, SweepResult
from loadspine.load.runner import LoadRunner
from loadspine.load.source import load_work_items
from loadspine.load.sweeper import Sweeper

__all__ = [
    "Chunk",
    "ChunkResult",
    "DispatchMode",
    "Dispatcher",
    "Invocation",
    "LoadConfig",
    "LoadRunResult",
    "LoadRunner",
    "RunStatus",
    "Sweeper",
    "SweepResult",
    "UnitPayload",
    "WorkItem",
    "backend_service_url",
    "build_invocation",
    "build_payload",
    "chunk_name",
    "chunk_size_for",
    "load_work_items",
    "partition",
]
