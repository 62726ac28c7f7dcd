"""MCP server exposing BrowserGrid operations as tools over stdio."""

import asyncio
import json
import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import ImageContent, TextContent, Tool

from browser_grid.config import Config
from browser_grid.grid import BrowserGrid, OperationResult
from browser_grid.logs import configure_logging
from browser_grid.tools import build_tools

logger = logging.getLogger(__name__)


def _pop_images(value: Any) -> list[str]:
    """Remove base64 screenshots from a payload, returning them in order."""
    images = []
    if isinstance(value, dict):
        image = value.pop("image_base64", None)
        if image:
            images.append(image)
        for item in value.values():
            images.extend(_pop_images(item))
    elif isinstance(value, list):
        for item in value:
            images.extend(_pop_images(item))
    return images


def render_result(result: OperationResult) -> list[TextContent | ImageContent]:
    """Convert an OperationResult into MCP content blocks.

    Screenshots are returned as image blocks after the JSON summary.
    """
    payload = result.model_dump(mode="json", exclude_none=True)
    images = _pop_images(payload)
    contents: list[TextContent | ImageContent] = [
        TextContent(type="text", text=json.dumps(payload, indent=2, default=str))
    ]
    contents.extend(ImageContent(type="image", data=image, mimeType="image/png") for image in images)
    return contents


def create_server(grid: BrowserGrid) -> Server:
    """Create an MCP server bound to a grid."""
    server = Server("browser-grid")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List built-in tools plus registered plugin tools."""
        return build_tools(grid.plugins.plugins())

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent | ImageContent]:
        result = await grid.call_tool(name, arguments or {})
        if not result.success:
            logger.info("Tool %s failed: [%s] %s", name, result.error_kind, result.message)
        return render_result(result)

    return server


async def run_server(config: Config | None = None) -> None:
    """Run the MCP server until stdin closes."""
    config = config or Config.load()
    configure_logging(config.logging)

    grid = BrowserGrid(config)
    await grid.start()
    server = create_server(grid)

    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await grid.shutdown()


def main():
    """Main entry point."""
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
