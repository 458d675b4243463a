"""Payload validation helpers for tool endpoints."""

from __future__ import annotations

from datetime import date
from typing import Any

from app.dates import parse_date
from app.errors import McpError


def _ensure_payload_dict(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise McpError(
            "INVALID_TYPE",
            "Payload must be an object.",
            {"type": type(payload).__name__},
        )
    return payload


def _reject_unknown_fields(payload: dict[str, Any], allowed_fields: set[str]) -> None:
    unknown_fields = sorted(set(payload) - allowed_fields)
    if unknown_fields:
        raise McpError(
            "UNKNOWN_FIELD",
            "Unknown fields are not allowed.",
            {"fields": unknown_fields},
        )


def _require_fields(payload: dict[str, Any], required: list[str], code: str) -> None:
    missing = [name for name in required if name not in payload]
    if missing:
        raise McpError(
            code,
            f"{', '.join(required)} {'is' if len(required) == 1 else 'are'} required.",
            {"fields": missing},
        )


def _optional_str(payload: dict[str, Any], name: str) -> str | None:
    value = payload.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise McpError(
            "INVALID_TYPE",
            f"{name} must be a string.",
            {name: str(value), "type": type(value).__name__},
        )
    return value


def _required_str(payload: dict[str, Any], name: str) -> str:
    value = _optional_str(payload, name)
    if value is None:
        raise McpError(
            "INVALID_TYPE",
            f"{name} must be a string.",
            {name: None, "type": "NoneType"},
        )
    return value


def _optional_bool(payload: dict[str, Any], name: str) -> bool | None:
    value = payload.get(name)
    if value is None or isinstance(value, bool):
        return value
    raise McpError(
        "INVALID_TYPE",
        f"{name} must be a boolean.",
        {name: str(value), "type": type(value).__name__},
    )


def _optional_status(payload: dict[str, Any], name: str) -> str | None:
    value = _optional_str(payload, name)
    if value is not None and len(value) != 1:
        raise McpError(
            "INVALID_STATUS",
            f"{name} must be a single character.",
            {name: value},
        )
    return value


def _optional_date(payload: dict[str, Any], name: str) -> date | None:
    value = _optional_str(payload, name)
    if value is None or not value.strip():
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise McpError(
            "INVALID_DATE",
            f"{name} must be a calendar date.",
            {name: value},
        )
    return parsed
