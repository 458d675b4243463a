import pytest

from tools.mcp_tools import ToolSchemaError, load_tool_definitions


def test_load_tool_definitions_rejects_missing_file(tmp_path):
    with pytest.raises(ToolSchemaError):
        load_tool_definitions(tmp_path / "missing.json")


def test_load_tool_definitions_rejects_invalid_json(tmp_path):
    path = tmp_path / "tools.json"
    path.write_text("{not valid json", encoding="utf-8")
    with pytest.raises(ToolSchemaError):
        load_tool_definitions(path)


def test_load_tool_definitions_rejects_non_list(tmp_path):
    path = tmp_path / "tools.json"
    path.write_text('{"type":"function"}', encoding="utf-8")
    with pytest.raises(ToolSchemaError):
        load_tool_definitions(path)


def test_load_tool_definitions_rejects_duplicate_names(tmp_path):
    path = tmp_path / "tools.json"
    tool = '{"type":"function","function":{"name":"ping","parameters":{}}}'
    path.write_text(f"[{tool},{tool}]", encoding="utf-8")
    with pytest.raises(ToolSchemaError, match="more than once"):
        load_tool_definitions(path)


def test_load_tool_definitions_rejects_undeclared_required(tmp_path):
    path = tmp_path / "tools.json"
    path.write_text(
        '[{"type":"function","function":{"name":"ping","parameters":'
        '{"properties":{},"required":["text"]}}}]',
        encoding="utf-8",
    )
    with pytest.raises(ToolSchemaError, match="undeclared"):
        load_tool_definitions(path)


def test_bundled_tool_definitions_are_valid():
    tools = load_tool_definitions()

    assert [tool["function"]["name"] for tool in tools][0] == "list_tasks"


def test_list_due_dates_query_documents_row_fallback():
    tools = {tool["function"]["name"]: tool for tool in load_tool_definitions()}

    query = tools["list_due_dates"]["function"]["parameters"]["properties"]["query"]

    assert "name or path" in query["description"]
    assert "assignment contains" in query["description"]
