"""MCP tool definitions for every BrowserGrid operation."""

from typing import Any

from mcp.types import Tool

from browser_grid.models.actions import ACTION_MODELS, BaseAction
from browser_grid.plugins import ToolPlugin

SESSION_ID = {
    "type": "string",
    "description": "Target session ID. Uses the default session if omitted.",
}

ACTION_DESCRIPTIONS = {
    "navigate": "Navigate to a URL.",
    "click": "Click an element.",
    "double_click": "Double-click an element.",
    "right_click": "Right-click an element.",
    "hover": "Hover over an element.",
    "type": "Type text into an input field.",
    "press": "Press a key on an element (e.g. 'Enter', 'Tab').",
    "select_option": "Select an option in a <select> element by value, label or index.",
    "drag_and_drop": "Drag an element onto another element.",
    "fill_form": "Fill several form fields in order, optionally submitting the form afterwards.",
    "check_element_exists": "Check whether an element exists. Never fails on absence; returns exists and count.",
    "list_elements": "List page elements with a unique selector, text and key attributes. Without a selector, lists buttons, inputs and links.",
    "execute_script": "Execute JavaScript in the page and return the result.",
    "screenshot": "Take a screenshot of the page or of one element. Returns base64 PNG data.",
    "wait": "Wait for an element to reach a state, or sleep for duration_ms when no selector is given.",
    "wait_for_url": "Wait until the page URL matches a pattern.",
    "get_text": "Get the text content of an element.",
    "get_title": "Get the page title.",
    "get_url": "Get the current page URL.",
}

ERROR_POLICY_PROPERTIES = {
    "continue_on_error": {
        "type": "boolean",
        "description": "Run every action even after failures (requires stop_on_error=false). Default: false.",
    },
    "stop_on_error": {
        "type": "boolean",
        "description": "Halt at the first failing action. Default: true.",
    },
}


def action_schema(model: type[BaseAction]) -> dict[str, Any]:
    """JSON schema for an action tool: the model's fields plus session_id."""
    schema = model.model_json_schema()
    properties = {k: v for k, v in schema.get("properties", {}).items() if k != "action"}
    properties["session_id"] = SESSION_ID
    result: dict[str, Any] = {"type": "object", "properties": properties}
    required = [name for name in schema.get("required", []) if name != "action"]
    if required:
        result["required"] = required
    if "$defs" in schema:
        result["$defs"] = schema["$defs"]
    return result


def action_tools() -> list[Tool]:
    return [
        Tool(name=name, description=ACTION_DESCRIPTIONS[name], inputSchema=action_schema(model))
        for name, model in ACTION_MODELS.items()
    ]


def plugin_tools(plugins: list[ToolPlugin]) -> list[Tool]:
    return [Tool(name=p.name, description=p.description, inputSchema=p.input_schema) for p in plugins]


def session_tools() -> list[Tool]:
    return [
        Tool(
            name="browser_open",
            description="Open a new browser session. Returns the session ID.",
            inputSchema={
                "type": "object",
                "properties": {
                    "session_id": {
                        "type": "string",
                        "description": "Optional session ID. Auto-generated if not provided.",
                    },
                    "headless": {"type": "boolean", "description": "Run without a visible window."},
                    "browser_type": {
                        "type": "string",
                        "enum": ["chromium", "firefox", "webkit"],
                        "description": "Browser engine. Default: chromium.",
                    },
                    "viewport_width": {"type": "integer", "description": "Viewport width in pixels."},
                    "viewport_height": {"type": "integer", "description": "Viewport height in pixels."},
                    "user_agent": {"type": "string", "description": "Custom user agent."},
                    "proxy": {"type": "string", "description": "Proxy server URL."},
                },
            },
        ),
        Tool(
            name="browser_close",
            description="Close a browser session. Closing an unknown session is a no-op.",
            inputSchema={"type": "object", "properties": {"session_id": SESSION_ID}},
        ),
        Tool(
            name="browser_close_all",
            description="Close every browser session.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="browser_list",
            description="List live browser sessions.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="browser_set_default",
            description="Make a session the default target for calls without session_id.",
            inputSchema={
                "type": "object",
                "properties": {"session_id": {"type": "string", "description": "Session to make default."}},
                "required": ["session_id"],
            },
        ),
        Tool(
            name="console_logs",
            description="Get buffered browser console messages for a session.",
            inputSchema={
                "type": "object",
                "properties": {
                    "session_id": SESSION_ID,
                    "level": {"type": "string", "description": "Only this level (e.g. 'error', 'warning')."},
                    "limit": {"type": "integer", "description": "Return at most this many newest entries."},
                },
            },
        ),
        Tool(
            name="clear_console_logs",
            description="Clear a session's console buffer.",
            inputSchema={"type": "object", "properties": {"session_id": SESSION_ID}},
        ),
        Tool(
            name="execute_sequence",
            description=(
                "Run a list of actions in order against one session. Each action is an object with an "
                "'action' field (e.g. navigate, click, type) and that action's parameters."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "session_id": SESSION_ID,
                    "actions": {
                        "type": "array",
                        "items": {"type": "object"},
                        "description": "Action descriptors, executed in order.",
                    },
                    **ERROR_POLICY_PROPERTIES,
                },
                "required": ["actions"],
            },
        ),
        Tool(
            name="action_history",
            description="Read the action history log.",
            inputSchema={
                "type": "object",
                "properties": {
                    "date": {"type": "string", "description": "Day to read (YYYY-MM-DD). Default: today."},
                    "session_id": {"type": "string", "description": "Only entries for this session."},
                    "limit": {"type": "integer", "description": "Maximum entries. Default: 50."},
                },
            },
        ),
    ]


def scenario_tools() -> list[Tool]:
    scenario_name = {"type": "string", "description": "Scenario name (or ID)."}
    return [
        Tool(
            name="record_scenario",
            description="Start recording actions on a session as a named scenario.",
            inputSchema={
                "type": "object",
                "properties": {
                    "scenario_name": {"type": "string", "description": "Name of the new scenario."},
                    "session_id": SESSION_ID,
                    "description": {"type": "string", "description": "What the scenario does."},
                },
                "required": ["scenario_name"],
            },
        ),
        Tool(
            name="stop_recording_scenario",
            description="Stop recording a scenario and optionally save it.",
            inputSchema={
                "type": "object",
                "properties": {
                    "scenario_name": scenario_name,
                    "save_scenario": {"type": "boolean", "description": "Persist the scenario. Default: true."},
                },
                "required": ["scenario_name"],
            },
        ),
        Tool(
            name="replay_scenario",
            description=(
                "Replay a saved scenario. Placeholders like ${name} or {{name}} are filled from "
                "'variables', then from the scenario's defaults. Without session_id a temporary "
                "headless session is used."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "scenario_name": scenario_name,
                    "session_id": {"type": "string", "description": "Session to replay against."},
                    "variables": {
                        "type": "object",
                        "additionalProperties": {"type": "string"},
                        "description": "Values for scenario placeholders.",
                    },
                    **ERROR_POLICY_PROPERTIES,
                },
                "required": ["scenario_name"],
            },
        ),
        Tool(
            name="list_scenarios",
            description="List scenarios, newest first.",
            inputSchema={
                "type": "object",
                "properties": {
                    "filter": {"type": "string", "description": "Case-insensitive match on name or description."},
                    "limit": {"type": "integer", "minimum": 1, "description": "Maximum entries. Default: 50."},
                },
            },
        ),
        Tool(
            name="update_scenario",
            description="Update a scenario's name, description, steps or default variables (variables are merged).",
            inputSchema={
                "type": "object",
                "properties": {
                    "scenario_name": scenario_name,
                    "name": {"type": "string", "description": "New name."},
                    "description": {"type": "string", "description": "New description."},
                    "steps": {"type": "array", "items": {"type": "object"}, "description": "Replacement steps."},
                    "variables": {"type": "object", "description": "Default variable values to merge."},
                },
                "required": ["scenario_name"],
            },
        ),
        Tool(
            name="delete_scenario",
            description="Delete a scenario. Requires confirm=true.",
            inputSchema={
                "type": "object",
                "properties": {
                    "scenario_name": scenario_name,
                    "confirm": {"type": "boolean", "description": "Must be true to delete."},
                },
                "required": ["scenario_name"],
            },
        ),
    ]


def build_tools(plugins: list[ToolPlugin] | None = None) -> list[Tool]:
    """Every tool exposed by the server."""
    return session_tools() + action_tools() + scenario_tools() + plugin_tools(plugins or [])
