#!/usr/bin/env python3
"""Basic browser automation example."""

import asyncio

from browser_grid import BrowserGrid


async def main():
    """Demonstrate single actions against one session."""
    async with BrowserGrid() as grid:
        await grid.open_session(session_id="basic-example")

        # Navigate to a website
        result = await grid.run_action({"action": "navigate", "url": "https://example.com"}, "basic-example")
        print(result.message)

        # Get page title
        result = await grid.call_tool("get_title", {"session_id": "basic-example"})
        print(f"Page title: {result.data['data']['title']}")

        # Get text content
        result = await grid.call_tool("get_text", {"selector": "h1", "session_id": "basic-example"})
        print(f"Heading: {result.message}")

        # Take a screenshot
        result = await grid.call_tool("screenshot", {"filename": "homepage.png", "session_id": "basic-example"})
        print(f"Screenshot saved to: {result.data['data']['path']}")

        # Sessions are closed on exit


async def form_example():
    """Demonstrate a sequence of form interactions."""
    async with BrowserGrid() as grid:
        await grid.open_session(session_id="form-example")

        result = await grid.execute_sequence(
            [
                {"action": "navigate", "url": "https://httpbin.org/forms/post"},
                {"action": "type", "selector": 'input[name="custname"]', "text": "John Doe"},
                {"action": "type", "selector": 'input[name="custtel"]', "text": "555-1234"},
                {"action": "type", "selector": 'input[name="custemail"]', "text": "john@example.com"},
                {"action": "click", "selector": 'input[name="size"][value="medium"]'},
                {"action": "type", "selector": 'textarea[name="comments"]', "text": "Please deliver quickly!"},
                {"action": "screenshot", "filename": "form_filled.png"},
            ],
            session_id="form-example",
        )
        print(result.message)

        # Note: Not submitting to avoid leaving example site


async def javascript_example():
    """Demonstrate JavaScript evaluation."""
    async with BrowserGrid() as grid:
        await grid.open_session(session_id="js-example")
        await grid.call_tool("navigate", {"url": "https://example.com"})

        result = await grid.call_tool("execute_script", {"script": "navigator.userAgent"})
        print(f"User Agent: {result.data['data']['result']}")

        result = await grid.call_tool(
            "execute_script",
            {"script": "({ width: window.innerWidth, height: window.innerHeight })"},
        )
        print(f"Viewport: {result.data['data']['result']}")


if __name__ == "__main__":
    print("=== Basic Usage Example ===")
    asyncio.run(main())

    print("\n=== Form Example ===")
    asyncio.run(form_example())

    print("\n=== JavaScript Example ===")
    asyncio.run(javascript_example())
