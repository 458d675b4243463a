from app.errors import ErrorResponse, McpError, error_response, success_response


def test_error_response_serializes_details():
    error = ErrorResponse(code="PATH_TRAVERSAL", message="Nope", details={"path": ".."})

    assert error.to_dict() == {
        "code": "PATH_TRAVERSAL",
        "message": "Nope",
        "details": {"path": ".."},
    }
    assert error_response(error) == {"ok": False, "error": error.to_dict()}


def test_mcp_error_defaults_details():
    exc = McpError("INVALID_TYPE", "Bad path")

    assert exc.error.to_dict() == {
        "code": "INVALID_TYPE",
        "message": "Bad path",
        "details": {},
    }


def test_error_status_codes_follow_taxonomy():
    assert McpError("UPSTREAM_UNAVAILABLE", "down").error.status_code == 503
    assert McpError("QUERY_FAILED", "bad").error.status_code == 502
    assert McpError("FILE_NOT_FOUND", "gone").error.status_code == 404
    assert McpError("TASK_NOT_FOUND", "stale").error.status_code == 409
    assert McpError("UNKNOWN_FIELD", "typo").error.status_code == 400
    assert McpError("AUTH_FORBIDDEN", "denied").error.status_code == 403
    assert McpError("TOOL_SCHEMA_ERROR", "broken").error.status_code == 500


def test_success_response_wraps_payload():
    assert success_response({"count": 0}) == {"ok": True, "data": {"count": 0}}
