"""Tests for tool declaration normalization."""

from copilot_gateway.translation.tools import (
    CustomTool,
    FunctionTool,
    LegacyTool,
    UnrecognizedTool,
    UnsupportedTool,
    classify_tool,
    normalize_tools,
    tools_to_dicts,
)


class TestClassifyTool:
    def test_function_tool(self):
        assert isinstance(
            classify_tool({"type": "function", "function": {"name": "f"}}), FunctionTool
        )

    def test_custom_tool(self):
        assert isinstance(classify_tool({"type": "custom", "custom": {"name": "c"}}), CustomTool)

    def test_flattened_responses_tool_is_legacy(self):
        assert isinstance(classify_tool({"type": "function", "name": "f"}), LegacyTool)

    def test_bare_tool_is_legacy(self):
        assert isinstance(classify_tool({"name": "f"}), LegacyTool)

    def test_hosted_tool_is_unsupported(self):
        assert classify_tool({"type": "web_search_preview"}) == UnsupportedTool(
            "web_search_preview"
        )

    def test_unknown_and_malformed(self):
        unknown = classify_tool({"type": "computer_use"})
        assert isinstance(unknown, UnrecognizedTool)
        assert "computer_use" in unknown.reason
        assert classify_tool("nope").reason == "not an object"
        assert classify_tool({"type": "function"}).reason == "missing name"


class TestNormalizeTools:
    def test_all_shapes_become_function_tools(self):
        tools = normalize_tools([
            {
                "type": "function",
                "function": {
                    "name": "get_weather",
                    "description": "Weather lookup",
                    "parameters": {"type": "object", "properties": {"city": {"type": "string"}}},
                    "strict": True,
                },
            },
            {"type": "custom", "custom": {"name": "edit", "input_schema": {"type": "object"}}},
            {"name": "legacy"},
        ])
        dicts = tools_to_dicts(tools)
        assert [d["function"]["name"] for d in dicts] == ["get_weather", "edit", "legacy"]
        assert all(d["type"] == "function" for d in dicts)
        assert dicts[0]["function"]["strict"] is True
        assert dicts[1]["function"]["parameters"] == {"type": "object"}
        assert dicts[2]["function"]["parameters"] == {"type": "object", "properties": {}}
        assert dicts[2]["function"]["description"] == ""
        assert "strict" not in dicts[2]["function"]

    def test_bad_entries_are_dropped_in_order(self):
        tools = normalize_tools([
            {"type": "file_search"},
            {"type": "function", "function": {"name": ""}},
            {"name": "keep_a"},
            42,
            {"type": "function", "function": {"name": "keep_b"}},
        ])
        assert [tool.name for tool in tools] == ["keep_a", "keep_b"]

    def test_nothing_usable_returns_none(self):
        assert normalize_tools([{"type": "code_interpreter"}, {}]) is None
        assert normalize_tools([]) is None
        assert normalize_tools(None) is None
        assert normalize_tools({"name": "not a list"}) is None
