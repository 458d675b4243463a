"""Structured error types for tool responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

ERROR_STATUS_CODES = {
    "UPSTREAM_UNAVAILABLE": 503,
    "QUERY_FAILED": 502,
    "UNEXPECTED_RESULT_SHAPE": 502,
    "FILE_NOT_FOUND": 404,
    "SECTION_NOT_FOUND": 409,
    "TASK_NOT_FOUND": 409,
    "GIT_ERROR": 500,
    "LOG_ERROR": 500,
    "TOOL_SCHEMA_ERROR": 500,
    "AUTH_FORBIDDEN": 403,
}
DEFAULT_ERROR_STATUS = 400


@dataclass(frozen=True)
class ErrorResponse:
    """Serializable error payload returned by tool handlers."""

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_CODES.get(self.code, DEFAULT_ERROR_STATUS)


class McpError(RuntimeError):
    """Exception carrying a structured error response."""

    def __init__(
        self, code: str, message: str, details: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.error = ErrorResponse(
            code=code, message=message, details=dict(details or {})
        )


def success_response(payload: dict[str, Any]) -> dict[str, Any]:
    """Wrap a successful response in the standard envelope."""
    return {"ok": True, "data": payload}


def error_response(error: ErrorResponse) -> dict[str, Any]:
    """Wrap an error response in the standard envelope."""
    return {"ok": False, "error": error.to_dict()}
