"""Work item and chunk models."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

WORK_ITEM_FIELDS = ("reference", "repo", "commit", "description", "links")


@dataclass(frozen=True)
class WorkItem:
    """One vulnerability to load: a bug reference and the fix commit."""

    reference: str
    repo: str = ""
    commit: str = ""
    description: str = ""
    links: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> WorkItem:
        """Build from a parsed record. Unknown keys are ignored, missing
        or null keys become empty strings."""
        values = {}
        for name in WORK_ITEM_FIELDS:
            raw = data.get(name)
            values[name] = "" if raw is None else str(raw)
        return cls(**values)


@dataclass(frozen=True)
class Chunk:
    """A contiguous, non-empty slice of the work list."""

    index: int
    items: tuple[WorkItem, ...]

    def __post_init__(self) -> None:
        if not self.items:
            raise ValueError(f"chunk {self.index} is empty")

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[WorkItem]:
        return iter(self.items)
