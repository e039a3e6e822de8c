# methcompare/core/metadata.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .exceptions import InvalidSegment


@dataclass(frozen=True, slots=True)
class CollectionMeta:
    """
    Metadata attached to a SegmentCollection.

    Keep it lightweight and extensible:
    - tool: segmentation tool that produced the calls (methylseekr, methseg, ...)
    - description: human-friendly description
    - source: origin (table path, merged, synthesized, ...)
    - attrs: arbitrary additional fields (tool parameters, sample, ...)
    """
    tool: str | None = None
    description: str | None = None
    source: str | None = None
    attrs: dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if self.attrs is None:
            object.__setattr__(self, "attrs", {})
        elif not isinstance(self.attrs, dict):
            raise InvalidSegment("CollectionMeta.attrs must be a dict.")

    def copy(self, **changes: Any) -> "CollectionMeta":
        values = {
            "tool": self.tool,
            "description": self.description,
            "source": self.source,
            "attrs": self.attrs.copy(),
        }
        values.update(changes)
        return CollectionMeta(**values)
