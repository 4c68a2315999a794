"""Tool declarations and tool-choice mapping."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from geminiport.errors import MappingError
from geminiport.schema import to_parameters_schema
from geminiport.types import FunctionTool

if TYPE_CHECKING:
    from geminiport.types import CallWarning, Tool, ToolChoice

_CHOICE_MODES = {
    "auto": "AUTO",
    "none": "NONE",
    "required": "ANY",
    "tool": "ANY",
}


def map_tools(
    tools: list[Tool] | None,
) -> tuple[list[dict[str, Any]] | None, list[CallWarning]]:
    """Map function tools into a single backend tool entry.

    Provider-defined tools are skipped. Returns ``None`` when no function
    tools remain.
    """
    if not tools:
        return None, []

    warnings: list[CallWarning] = []
    declarations: list[dict[str, Any]] = []
    for tool in tools:
        if not isinstance(tool, FunctionTool):
            continue
        declaration: dict[str, Any] = {"name": tool.name}
        if tool.description is not None:
            declaration["description"] = tool.description
        parameters, schema_warnings = to_parameters_schema(tool.input_schema)
        warnings.extend(schema_warnings)
        if parameters is not None:
            declaration["parameters"] = parameters
        declarations.append(declaration)

    if not declarations:
        return None, warnings
    return [{"function_declarations": declarations}], warnings


def map_tool_choice(choice: ToolChoice | None) -> dict[str, Any] | None:
    """Map a tool choice into a backend tool config.

    No choice means no config, so the backend default applies.
    """
    if choice is None:
        return None

    mode = _CHOICE_MODES.get(choice.type)
    if mode is None:
        raise MappingError(f"Unsupported tool choice type: {choice.type!r}")

    calling_config: dict[str, Any] = {"mode": mode}
    if choice.type == "tool":
        if not choice.tool_name:
            raise MappingError("Tool choice 'tool' requires a tool_name")
        calling_config["allowed_function_names"] = [choice.tool_name]
    return {"function_calling_config": calling_config}
