"""Task records and the hierarchical grouping returned by the task query engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Union

COMPLETED_STATUS = "x"
OPEN_STATUS = " "
CANONICAL_FIELDS = (
    "text",
    "path",
    "line",
    "position",
    "status",
    "completed",
    "fullyCompleted",
    "scheduled",
    "due",
    "start",
    "parent_id",
)


@dataclass
class TaskRecord:
    """One checklist line extracted from a document.

    Optional attributes left as ``None`` are treated as absent: they are not
    serialized and never show up in projected output.
    """

    text: str
    path: str
    line: int
    status: str = OPEN_STATUS
    completed: bool = False
    fully_completed: bool = False
    position: dict[str, Any] | None = None
    scheduled: date | None = None
    due: date | None = None
    start: date | None = None
    tags: frozenset[str] = frozenset()
    children: list[TaskRecord] = field(default_factory=list)
    parent_id: str | None = None

    @property
    def record_id(self) -> str:
        return f"{self.path}-{self.line}"

    @property
    def dedup_key(self) -> tuple[str, int, str]:
        return (self.path, self.line, self.text)

    def with_parent(self, parent_id: str | None) -> TaskRecord:
        return replace(self, parent_id=parent_id)

    def present_fields(self) -> dict[str, Any]:
        """Return the serializable fields that are set on this record."""
        fields: dict[str, Any] = {
            "text": self.text,
            "path": self.path,
            "line": self.line,
            "status": self.status,
            "completed": self.completed,
            "fullyCompleted": self.fully_completed,
        }
        if self.position is not None:
            fields["position"] = self.position
        for name in ("scheduled", "due", "start"):
            value = getattr(self, name)
            if value is not None:
                fields[name] = value.isoformat()
        if self.tags:
            fields["tags"] = sorted(self.tags)
        fields["parent_id"] = self.parent_id
        return fields


@dataclass
class TaskNode:
    record: TaskRecord
    children: list[GroupingNode] = field(default_factory=list)


@dataclass
class GroupNode:
    key: str
    rows: list[GroupingNode] = field(default_factory=list)


GroupingNode = Union[GroupNode, TaskNode]
