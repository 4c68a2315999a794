from __future__ import annotations

from pydantic import BaseModel
import pytest

from geminiport.errors import MappingError
from geminiport.tools import map_tool_choice, map_tools
from geminiport.types import FunctionTool, ProviderDefinedTool, ToolChoice

pytestmark = pytest.mark.unit


class Lookup(BaseModel):
    query: str


def test_function_tools_share_one_backend_tool_entry() -> None:
    tools = [
        FunctionTool(
            name="get_weather",
            description="Current weather",
            input_schema={
                "$schema": "http://json-schema.org/draft-07/schema#",
                "properties": {"city": {"type": "string"}},
            },
        ),
        FunctionTool(name="lookup", input_schema=Lookup),
    ]

    mapped, warnings = map_tools(tools)

    assert warnings == []
    assert mapped is not None
    assert len(mapped) == 1
    first, second = mapped[0]["function_declarations"]
    assert first == {
        "name": "get_weather",
        "description": "Current weather",
        "parameters": {"properties": {"city": {"type": "string"}}, "type": "object"},
    }
    assert second["name"] == "lookup"
    assert "description" not in second
    assert second["parameters"]["properties"]["query"]["type"] == "string"


def test_tool_without_schema_has_no_parameters_key() -> None:
    mapped, _ = map_tools([FunctionTool(name="ping")])
    assert mapped == [{"function_declarations": [{"name": "ping"}]}]


def test_provider_defined_tools_are_skipped() -> None:
    tools = [ProviderDefinedTool(id="google.search", name="search")]
    assert map_tools(tools) == (None, [])


@pytest.mark.parametrize("tools", [None, []])
def test_no_tools_maps_to_none(tools: list | None) -> None:
    assert map_tools(tools) == (None, [])


@pytest.mark.parametrize(
    ("choice", "expected"),
    [
        (ToolChoice("auto"), {"function_calling_config": {"mode": "AUTO"}}),
        (ToolChoice("none"), {"function_calling_config": {"mode": "NONE"}}),
        (ToolChoice("required"), {"function_calling_config": {"mode": "ANY"}}),
        (
            ToolChoice.tool("get_weather"),
            {
                "function_calling_config": {
                    "mode": "ANY",
                    "allowed_function_names": ["get_weather"],
                }
            },
        ),
    ],
)
def test_tool_choice_modes(choice: ToolChoice, expected: dict) -> None:
    assert map_tool_choice(choice) == expected


def test_absent_tool_choice_maps_to_none() -> None:
    assert map_tool_choice(None) is None


def test_tool_choice_requires_name() -> None:
    with pytest.raises(MappingError, match="tool_name"):
        map_tool_choice(ToolChoice("tool"))


def test_unknown_tool_choice_raises() -> None:
    with pytest.raises(MappingError, match="sometimes"):
        map_tool_choice(ToolChoice("sometimes"))  # type: ignore[arg-type]
