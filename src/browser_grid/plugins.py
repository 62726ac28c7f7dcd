"""Registrable tool plugins.

A plugin contributes one tool: a name, a JSON schema for its arguments and
an async handler. Handlers receive the session registry and the action
executor explicitly, e.g.::

    async def page_title(arguments, registry, executor):
        result = await executor.run(arguments.get("session_id"), {"action": "get_title"})
        return result.data

    plugins.register(ToolPlugin("page_title", "Return the page title", page_title))
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from browser_grid.errors import DuplicatePlugin, UnknownTool
from browser_grid.executor import ActionExecutor
from browser_grid.session import SessionRegistry

logger = logging.getLogger(__name__)

PluginHandler = Callable[..., Awaitable[Any]]


def _empty_schema() -> dict[str, Any]:
    return {"type": "object", "properties": {}}


@dataclass
class ToolPlugin:
    name: str
    description: str
    handler: PluginHandler
    input_schema: dict[str, Any] = field(default_factory=_empty_schema)


class PluginRegistry:
    """Holds registered plugins and invokes their handlers."""

    def __init__(self, registry: SessionRegistry, executor: ActionExecutor):
        self.registry = registry
        self.executor = executor
        self._plugins: dict[str, ToolPlugin] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)

    def register(self, plugin: ToolPlugin) -> None:
        """Add a plugin.

        Raises:
            DuplicatePlugin: A plugin with the same name is registered
        """
        if plugin.name in self._plugins:
            raise DuplicatePlugin(f"Plugin tool '{plugin.name}' is already registered")
        self._plugins[plugin.name] = plugin
        logger.info("Plugin registered: %s", plugin.name)

    def unregister(self, name: str) -> bool:
        """Remove a plugin; returns False if it was not registered."""
        if self._plugins.pop(name, None) is None:
            return False
        logger.info("Plugin unregistered: %s", name)
        return True

    def get(self, name: str) -> ToolPlugin | None:
        return self._plugins.get(name)

    def plugins(self) -> list[ToolPlugin]:
        return list(self._plugins.values())

    async def call(self, name: str, arguments: dict[str, Any]) -> Any:
        """Invoke a plugin's handler.

        Raises:
            UnknownTool: No plugin by that name
        """
        plugin = self._plugins.get(name)
        if plugin is None:
            raise UnknownTool(f"Unknown tool: {name}")
        return await plugin.handler(arguments, registry=self.registry, executor=self.executor)
