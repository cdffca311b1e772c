"""Work item source: load the bug list from a YAML document.

Expected shape::

    bugs:
      - reference: CVE-2018-1000613
        repo: https://github.com/bcgit/bc-java
        commit: 4092ede58da51af9a21e4825fbad0d9a3ef5a223
        description: "Unsafe reflection in ..."
        links: https://nvd.nist.gov/vuln/detail/CVE-2018-1000613

Failure modes map onto distinct errors so callers can tell a typo in the
path from a broken file from a file that is simply the wrong document.
"""

from __future__ import annotations

import re
from pathlib import Path

import yaml

from loadspine.core.errors import (
    ParseError,
    SchemaViolationError,
    SourceNotFoundError,
    SourceReadError,
)
from loadspine.core.logging import get_logger
from loadspine.load.models import WorkItem

logger = get_logger(__name__)


class StringScalarLoader(yaml.BaseLoader):
    """Keeps every scalar a string except YAML null.

    Commit hashes such as ``0123`` or ``1e10`` stay exactly as written,
    while ``null``, ``~`` and an empty value load as ``None``.
    """


StringScalarLoader.add_implicit_resolver(
    "tag:yaml.org,2002:null",
    re.compile(r"^(?:~|null|Null|NULL|)$"),
    ["~", "n", "N", ""],
)
StringScalarLoader.add_constructor("tag:yaml.org,2002:null", lambda loader, node: None)


def load_work_items(source: str | Path, key: str = "bugs") -> list[WorkItem]:
    """Read ``source`` and return the work items listed under ``key``.

    Parameters
    ----------
    source
        Path to the YAML document.
    key
        Top-level key holding the list of records.

    Returns
    -------
    list[WorkItem]
        Items in document order. An explicitly empty list yields ``[]``.

    Raises
    ------
    SourceNotFoundError
        ``source`` does not exist.
    SourceReadError
        ``source`` exists but could not be read.
    ParseError
        The document is not valid YAML, is not a mapping, or holds a
        non-list collection or a non-mapping record.
    SchemaViolationError
        The document has no ``key`` entry.
    """
    path = Path(source)
    if not path.exists():
        raise SourceNotFoundError(f"Source file not found: {path}").with_context(
            source=str(path)
        )

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceReadError(
            f"Could not read source file {path}: {exc}", cause=exc
        ).with_context(source=str(path)) from exc

    try:
        document = yaml.load(text, Loader=StringScalarLoader)
    except yaml.YAMLError as exc:
        raise ParseError(
            f"Malformed YAML in {path}: {exc}", cause=exc
        ).with_context(source=str(path)) from exc

    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise ParseError(
            f"Expected a mapping at the top of {path}, got {type(document).__name__}"
        ).with_context(source=str(path))

    if key not in document:
        raise SchemaViolationError(
            f"Malformed source file {path}: missing top-level key {key!r}"
        ).with_context(source=str(path), key=key)

    records = document[key]
    if records is None:
        records = []
    if not isinstance(records, list):
        raise ParseError(
            f"Expected a list under {key!r} in {path}, got {type(records).__name__}"
        ).with_context(source=str(path), key=key)

    items: list[WorkItem] = []
    for position, record in enumerate(records):
        if not isinstance(record, dict):
            raise ParseError(
                f"Record {position} under {key!r} in {path} is not a mapping"
            ).with_context(source=str(path), position=position)
        items.append(WorkItem.from_mapping(record))

    logger.info("source.loaded", source=str(path), items=len(items))
    return items
