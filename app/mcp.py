"""Tool handler registration."""

# ruff: noqa: F401

from __future__ import annotations

from fastapi import FastAPI

from app.mcp_router import mcp_router

# Import modules to register routes with the shared router.
from app import mcp_due_dates, mcp_tasks, mcp_tools_endpoint

# Re-export endpoints for tests and direct imports.
from app.mcp_activity import ACTIVITY_LOG_FILENAME
from app.mcp_due_dates import list_due_dates
from app.mcp_git import _resolve_git_head
from app.mcp_tasks import add_task, get_task_stats, list_tasks, update_task
from app.mcp_tools_endpoint import list_tool_schemas


def register_mcp_handlers(app: FastAPI) -> None:
    """Attach tool routes to the FastAPI application."""
    app.include_router(mcp_router)
