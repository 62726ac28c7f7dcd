#!/usr/bin/env python3
"""Scenario example - record a flow once, replay it with different variables."""

import asyncio

from browser_grid import BrowserGrid


async def record():
    """Record a search scenario with a placeholder for the query."""
    async with BrowserGrid() as grid:
        await grid.open_session(session_id="recorder")
        await grid.start_recording("wiki-search", "recorder", "Search Wikipedia")

        # Placeholders are stored as typed and filled in at replay time
        await grid.execute_sequence(
            [
                {"action": "navigate", "url": "https://en.wikipedia.org"},
                {"action": "type", "selector": "input[name='search']", "text": "${query}"},
                {"action": "press", "selector": "input[name='search']", "key": "Enter"},
                {"action": "wait_for_url", "pattern": "**/wiki/**"},
            ],
            session_id="recorder",
            continue_on_error=True,
            stop_on_error=False,
        )

        result = await grid.stop_recording("wiki-search")
        print(f"{result.message}: {result.data['total_steps']} steps")

        await grid.update_scenario("wiki-search", variables={"query": "Python"})


async def replay():
    """Replay the stored scenario in temporary headless sessions."""
    async with BrowserGrid() as grid:
        listed = await grid.list_scenarios("wiki")
        for summary in listed.data["scenarios"]:
            print(f"{summary['name']}: {summary['total_steps']} steps, variables {summary['variables_used']}")

        # Uses the stored default for ${query}
        result = await grid.replay_scenario("wiki-search")
        print(result.message)

        # Overrides the default
        result = await grid.replay_scenario("wiki-search", variables={"query": "Playwright"})
        print(result.message)


if __name__ == "__main__":
    print("=== Record ===")
    asyncio.run(record())

    print("\n=== Replay ===")
    asyncio.run(replay())
