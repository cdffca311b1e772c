"""Unit payload builder: turn a chunk into a named, runnable script.

Each work item becomes one structured ``Invocation`` of the patch
analyzer. The invocation list is rendered into a ``/bin/sh`` script in
which every argument is shell-quoted and every line ends with ``|| :``,
so one failing bug never stops the rest of the chunk.

Rendered line (wrapped here for width)::

    java -Dvulas.shared.backend.serviceUrl=feynmanrestbackend-service:8091/backend \\
        -jar patch-analyzer-jar-with-dependencies.jar \\
        -b CVE-2018-1000613 -r https://github.com/bcgit/bc-java \\
        -e 4092ede -desc 'Unsafe reflection' -links https://nvd.nist.gov/... \\
        -u -sie || :

Policy flags:
    - ``dry_run=False`` appends ``-u`` (upload results to the backend).
    - ``skip_on_error=True`` appends ``-sie`` (skip if already exists).

Names and labels are pure functions of the chunk index, so re-running
the same chunk index collides with (rather than duplicates) a leftover
resource.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass

from loadspine.load.config import LoadConfig
from loadspine.load.models import Chunk, WorkItem

BACKEND_SERVICE_SUFFIX = "restbackend-service"
BACKEND_SERVICE_PORT = 8091
BACKEND_SERVICE_PATH = "backend"

ANALYZER_PROGRAM = "java"
ANALYZER_JAR = "patch-analyzer-jar-with-dependencies.jar"

SCRIPT_KEY = "patcheval.sh"
SCRIPT_HEADER = "#!/bin/sh"
CONTINUE_MARKER = "|| :"

UPLOAD_FLAG = "-u"
SKIP_IF_EXISTS_FLAG = "-sie"


def chunk_name(chunk_index: int, prefix: str = "bugs-loader") -> str:
    """Resource name for a chunk: ``<prefix>-<index>``."""
    return f"{prefix}-{chunk_index}"


def backend_service_url(release: str) -> str:
    """Callback endpoint of a release's rest backend."""
    return f"{release}{BACKEND_SERVICE_SUFFIX}:{BACKEND_SERVICE_PORT}/{BACKEND_SERVICE_PATH}"


@dataclass(frozen=True)
class Invocation:
    """A program plus its argument vector, rendered with shell quoting."""

    program: str
    args: tuple[str, ...]

    def render(self) -> str:
        return f"{shlex.join([self.program, *self.args])} {CONTINUE_MARKER}"


@dataclass(frozen=True)
class UnitPayload:
    """Name and rendered script for one execution unit."""

    name: str
    chunk_index: int
    invocations: tuple[Invocation, ...]

    @property
    def script(self) -> str:
        lines = [SCRIPT_HEADER]
        lines.extend(invocation.render() for invocation in self.invocations)
        return "\n".join(lines) + "\n"

    @property
    def data(self) -> dict[str, str]:
        """Configuration resource data (file name → contents)."""
        return {SCRIPT_KEY: self.script}


def build_invocation(item: WorkItem, config: LoadConfig) -> Invocation:
    """Analyzer invocation for a single work item."""
    args = [
        f"-Dvulas.shared.backend.serviceUrl={backend_service_url(config.release)}",
        "-jar", ANALYZER_JAR,
        "-b", item.reference,
        "-r", item.repo,
        "-e", item.commit,
        "-desc", item.description,
        "-links", item.links,
    ]
    if not config.dry_run:
        args.append(UPLOAD_FLAG)
    if config.skip_on_error:
        args.append(SKIP_IF_EXISTS_FLAG)
    return Invocation(program=ANALYZER_PROGRAM, args=tuple(args))


def build_payload(chunk: Chunk, config: LoadConfig) -> UnitPayload:
    """Render ``chunk`` into its unit name and script."""
    return UnitPayload(
        name=chunk_name(chunk.index, config.app_name),
        chunk_index=chunk.index,
        invocations=tuple(build_invocation(item, config) for item in chunk),
    )
