"""Normalization pipeline turning a raw task grouping into projected task dicts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from app.task_model import (
    CANONICAL_FIELDS,
    COMPLETED_STATUS,
    GroupNode,
    TaskNode,
    TaskRecord,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterCriteria:
    completed: bool | None = None
    path: str | None = None
    tag: str | None = None
    status: str | None = None
    excluded_dirs: tuple[str, ...] = ()


def flatten_grouping(grouping: Any) -> list[TaskRecord]:
    """Flatten a grouping depth-first, each task followed by its nested tasks."""
    if not isinstance(grouping, (list, tuple)):
        return []

    tasks: list[TaskRecord] = []
    for node in grouping:
        if isinstance(node, GroupNode):
            tasks.extend(flatten_grouping(node.rows))
        elif isinstance(node, TaskNode):
            tasks.append(node.record)
            if node.children:
                tasks.extend(flatten_grouping(node.children))
    return tasks


def _keep_completion(task: TaskRecord, completed: bool) -> bool:
    if completed:
        return task.completed
    # The status token wins over a stale completed flag.
    return not task.completed and task.status != COMPLETED_STATUS


def _has_matching_tag(task: TaskRecord, tag: str) -> bool:
    return bool(task.tags) and any(tag in item for item in task.tags)


def _is_excluded(path: str, excluded_dirs: Sequence[str]) -> bool:
    return any(path.startswith(prefix) for prefix in excluded_dirs)


def filter_tasks(
    tasks: Iterable[TaskRecord], criteria: FilterCriteria
) -> list[TaskRecord]:
    """Apply each active criterion in a fixed order; all must hold."""
    filtered = list(tasks)

    if criteria.completed is not None:
        filtered = [
            task for task in filtered if _keep_completion(task, criteria.completed)
        ]
        LOGGER.debug("completion filter kept %d tasks", len(filtered))

    if criteria.path:
        filtered = [task for task in filtered if criteria.path in task.path]
        LOGGER.debug("path filter kept %d tasks", len(filtered))

    if criteria.tag:
        filtered = [task for task in filtered if _has_matching_tag(task, criteria.tag)]
        LOGGER.debug("tag filter kept %d tasks", len(filtered))

    if criteria.status is not None:
        filtered = [task for task in filtered if task.status == criteria.status]
        LOGGER.debug("status filter kept %d tasks", len(filtered))

    excluded_dirs = [prefix for prefix in criteria.excluded_dirs if prefix]
    if excluded_dirs:
        filtered = [
            task for task in filtered if not _is_excluded(task.path, excluded_dirs)
        ]
        LOGGER.debug("directory exclusion kept %d tasks", len(filtered))

    return filtered


def project_hierarchy(tasks: Iterable[TaskRecord]) -> list[TaskRecord]:
    """Emit each task as top level, followed by its children tagged with a parent id.

    Children may already be present in the input; ``dedupe_tasks`` removes the
    repeats, so it must always run after this stage.
    """
    projected: list[TaskRecord] = []
    for task in tasks:
        projected.append(task.with_parent(None))
        for child in task.children or []:
            projected.append(child.with_parent(task.record_id))
    return projected


def dedupe_tasks(tasks: Iterable[TaskRecord]) -> list[TaskRecord]:
    seen: set[tuple[str, int, str]] = set()
    unique: list[TaskRecord] = []
    for task in tasks:
        key = task.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(task)
    return unique


def project_fields(task: TaskRecord) -> dict[str, Any]:
    """Restrict a record to the canonical output fields."""
    source = task.present_fields()
    projected = {name: source[name] for name in CANONICAL_FIELDS if name in source}
    projected["parent_id"] = task.parent_id
    return projected


def run_task_pipeline(
    grouping: Any, criteria: FilterCriteria
) -> list[dict[str, Any]]:
    """Flatten, filter, project hierarchy, dedupe and project fields, in that order."""
    flattened = flatten_grouping(grouping)
    filtered = filter_tasks(flattened, criteria)
    unique = dedupe_tasks(project_hierarchy(filtered))
    LOGGER.info(
        "task pipeline: %d flattened, %d filtered, %d emitted",
        len(flattened),
        len(filtered),
        len(unique),
    )
    return [project_fields(task) for task in unique]
