#!/usr/bin/env python3
"""Parallel sessions example - independent browsers driven concurrently."""

import asyncio

from browser_grid import BrowserGrid

SITES = {
    "python": "https://www.python.org",
    "pypi": "https://pypi.org",
    "docs": "https://docs.python.org/3/",
}


async def visit(grid: BrowserGrid, session_id: str, url: str):
    result = await grid.execute_sequence(
        [
            {"action": "navigate", "url": url},
            {"action": "get_title"},
            {"action": "screenshot", "filename": f"{session_id}.png"},
        ],
        session_id=session_id,
    )
    title = result.data["results"][1]["data"]["title"] if result.success else None
    print(f"[{session_id}] {result.message} - {title}")


async def main():
    async with BrowserGrid() as grid:
        for session_id in SITES:
            await grid.open_session(session_id=session_id)

        # Actions on different sessions run in parallel; each session stays in order
        await asyncio.gather(*(visit(grid, session_id, url) for session_id, url in SITES.items()))

        listed = await grid.list_sessions()
        for session in listed.data["sessions"]:
            print(f"{session['session_id']}: last used {session['last_used']}")


if __name__ == "__main__":
    asyncio.run(main())
