"""Task-related tool endpoints."""

from __future__ import annotations

import logging
import re
from collections import Counter
from datetime import date
from typing import Any

from fastapi import Request

from app.config import parse_excluded_dirs
from app.errors import McpError, success_response
from app.mcp_activity import _append_activity_log, _build_activity_entry
from app.mcp_context import RequestContext, get_request_context
from app.mcp_git import _write_and_commit
from app.mcp_payload import (
    _ensure_payload_dict,
    _optional_bool,
    _optional_status,
    _optional_str,
    _reject_unknown_fields,
    _require_fields,
    _required_str,
)
from app.mcp_router import mcp_router
from app.task_model import OPEN_STATUS
from app.task_pipeline import FilterCriteria, run_task_pipeline
from app.task_query import TASK_LINE_PATTERN, TASK_QUERY

LOGGER = logging.getLogger(__name__)

FILTER_FIELDS = {"completed", "path", "tag", "status", "excludeDirs"}


@mcp_router.post("/tool:list_tasks")
def list_tasks(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """List tasks across the library, filtered and deduplicated."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, FILTER_FIELDS)

    context = get_request_context(request)
    tasks = _query_tasks(context, _criteria_from_payload(payload, context))
    return success_response({"count": len(tasks), "tasks": tasks})


@mcp_router.post("/tool:get_task_stats")
def get_task_stats(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Summarize tasks by completion and by document."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, FILTER_FIELDS)

    context = get_request_context(request)
    tasks = _query_tasks(context, _criteria_from_payload(payload, context))
    completed = sum(1 for task in tasks if task["completed"])
    by_file = Counter(task["path"] for task in tasks)
    return success_response(
        {
            "total": len(tasks),
            "completed": completed,
            "open": len(tasks) - completed,
            "byFile": dict(sorted(by_file.items())),
        }
    )


@mcp_router.post("/tool:add_task")
def add_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Insert a checklist line right below a section heading."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"path", "section", "status", "text"})
    _require_fields(payload, ["text"], "MISSING_TEXT")

    text = _checklist_text(_required_str(payload, "text"), "text")
    status = _optional_status(payload, "status") or OPEN_STATUS
    context = get_request_context(request)
    path = _optional_str(payload, "path") or date.today().strftime(
        context.settings.daily_note_template
    )
    heading = _optional_str(payload, "section") or context.settings.section_heading

    original = context.store.read(path)
    lines = original.split("\n")
    heading_index = _find_heading_line(lines, heading)
    if heading_index is None:
        raise McpError(
            "SECTION_NOT_FOUND",
            "Section heading not found in document.",
            {"path": path, "section": heading},
        )

    lines.insert(heading_index + 1, _format_checklist_line(status, text))
    commit_sha = _commit_and_log(
        context, path, original, "\n".join(lines), "add_task", "add task"
    )
    return success_response({"path": path, "text": text, "commitSha": commit_sha})


@mcp_router.post("/tool:update_task")
def update_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Replace the first occurrence of an exact checklist line."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(
        payload, {"path", "oldStatus", "oldText", "newStatus", "newText"}
    )
    _require_fields(payload, ["path", "oldText", "newText"], "MISSING_FIELDS")

    path = _required_str(payload, "path")
    old_text = _required_str(payload, "oldText")
    new_text = _checklist_text(_required_str(payload, "newText"), "newText")
    old_status = _optional_status(payload, "oldStatus") or OPEN_STATUS
    new_status = _optional_status(payload, "newStatus") or OPEN_STATUS

    context = get_request_context(request)
    original = context.store.read(path)
    lines = original.split("\n")
    found = _find_checklist_line(lines, old_status, old_text.strip())
    if found is None:
        raise McpError(
            "TASK_NOT_FOUND",
            "Task line not found in document.",
            {
                "path": path,
                "line": _format_checklist_line(old_status, old_text.strip()),
                "hint": "The task may have changed since it was read; list tasks again and retry.",
            },
        )

    line_index, checklist = found
    line_ending = "\r" if lines[line_index].endswith("\r") else ""
    lines[line_index] = (
        checklist.group("indent")
        + _format_checklist_line(new_status, new_text, checklist.group("bullet"))
        + line_ending
    )
    commit_sha = _commit_and_log(
        context, path, original, "\n".join(lines), "update_task", "update task"
    )
    return success_response(
        {
            "path": path,
            "oldText": old_text,
            "newText": new_text,
            "commitSha": commit_sha,
        }
    )


def _criteria_from_payload(
    payload: dict[str, Any], context: RequestContext
) -> FilterCriteria:
    if "excludeDirs" in payload:
        raw_excluded = payload["excludeDirs"]
        if raw_excluded is not None and not isinstance(raw_excluded, (str, list)):
            raise McpError(
                "INVALID_TYPE",
                "excludeDirs must be a string or a list of strings.",
                {"excludeDirs": str(raw_excluded)},
            )
        excluded_dirs = parse_excluded_dirs(raw_excluded)
    else:
        excluded_dirs = context.settings.excluded_dirs

    return FilterCriteria(
        completed=_optional_bool(payload, "completed"),
        path=_optional_str(payload, "path"),
        tag=_optional_str(payload, "tag"),
        status=_optional_status(payload, "status"),
        excluded_dirs=excluded_dirs,
    )


def _query_tasks(
    context: RequestContext, criteria: FilterCriteria
) -> list[dict[str, Any]]:
    result = context.engine.query(TASK_QUERY)
    if not result.successful:
        raise McpError(
            "QUERY_FAILED",
            "Task query failed.",
            {"error": result.error or "unknown error"},
        )
    if result.value is None or result.value.type != "task":
        raise McpError(
            "UNEXPECTED_RESULT_SHAPE",
            "Expected a task result from the query engine.",
            {"type": getattr(result.value, "type", None)},
        )
    return run_task_pipeline(result.value.values, criteria)


def _checklist_text(value: str, name: str) -> str:
    text = value.strip()
    if not text or "\n" in text or "\r" in text:
        raise McpError(
            "INVALID_TEXT",
            f"{name} must be a non-empty single line.",
            {name: value},
        )
    return text


def _format_checklist_line(status: str, text: str, bullet: str = "-") -> str:
    return f"{bullet} [{status}] {text}"


def _find_heading_line(lines: list[str], heading: str) -> int | None:
    target = heading.strip()
    for index, line in enumerate(lines):
        if line.strip() == target:
            return index
    return None


def _find_checklist_line(
    lines: list[str], status: str, text: str
) -> tuple[int, re.Match[str]] | None:
    for index, line in enumerate(lines):
        match = TASK_LINE_PATTERN.match(line.rstrip("\r"))
        if (
            match
            and match.group("status") == status
            and (match.group("text") or "").strip() == text
        ):
            return index, match
    return None


def _commit_and_log(
    context: RequestContext,
    path: str,
    original: str,
    updated: str,
    operation: str,
    summary: str,
) -> str:
    commit_sha = _write_and_commit(context.store, path, original, updated, operation)
    try:
        _append_activity_log(
            context.library_root,
            _build_activity_entry(operation, path, summary, commit_sha),
        )
    except OSError as exc:
        raise McpError(
            "LOG_ERROR",
            "Activity log write failed after the change was committed.",
            {"path": path, "operation": operation, "commitSha": commit_sha},
        ) from exc
    LOGGER.info("%s committed %s as %s", operation, path, commit_sha)
    return commit_sha
