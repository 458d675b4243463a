"""Due-date table endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import Request

from app.due_dates import list_due_date_entries
from app.errors import McpError, success_response
from app.mcp_context import get_request_context
from app.mcp_payload import (
    _ensure_payload_dict,
    _optional_date,
    _optional_str,
    _reject_unknown_fields,
)
from app.mcp_router import mcp_router


@mcp_router.post("/tool:list_due_dates")
def list_due_dates(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """List upcoming due dates from the Due Dates tables of matching documents."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"category", "start", "end", "query"})

    start = _optional_date(payload, "start")
    end = _optional_date(payload, "end")
    if start is not None and end is not None and start > end:
        raise McpError(
            "INVALID_DATE",
            "start must not be after end.",
            {"start": payload["start"], "end": payload["end"]},
        )

    context = get_request_context(request)
    result = list_due_date_entries(
        context.store,
        context.engine,
        category=_optional_str(payload, "category"),
        start=start,
        end=end,
        query=_optional_str(payload, "query"),
    )
    return success_response(result.to_dict())
