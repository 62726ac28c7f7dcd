"""Action history: a daily JSONL log of every executed action."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiofiles

from browser_grid.models.actions import ActionResult


class ActionHistory:
    """Appends executed actions to ``actions_YYYY-MM-DD.jsonl`` files.

    Entries are kept across sessions for debugging and for rebuilding
    scenarios from past interaction.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def path_for(self, date: str | None = None) -> Path:
        """Get the log file for a date (YYYY-MM-DD, default today)."""
        date = date or datetime.utcnow().strftime("%Y-%m-%d")
        return self.directory / f"actions_{date}.jsonl"

    async def append(self, session_id: str | None, result: ActionResult, source: str = "api") -> None:
        """Log one action result.

        Args:
            session_id: Session the action ran against
            result: The action's result
            source: Who issued it ('api', 'playback', or a plugin name)
        """
        entry = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "session_id": session_id,
            "source": source,
            "action": result.action,
            "description": result.description,
            "success": result.success,
            "message": result.message,
            "error": result.error.kind.value if result.error else None,
            "duration_ms": result.duration_ms,
        }
        # Remove None values for cleaner logs
        entry = {k: v for k, v in entry.items() if v is not None}

        self.directory.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path_for(), "a") as f:
            await f.write(json.dumps(entry) + "\n")

    async def read(
        self,
        date: str | None = None,
        session_id: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Read the newest entries of a day's log.

        Args:
            date: Day to read (YYYY-MM-DD, default today)
            session_id: Only return entries for this session
            limit: Maximum number of entries

        Returns:
            Entries in the order they were written
        """
        path = self.path_for(date)
        if not path.exists():
            return []

        entries: list[dict[str, Any]] = []
        async with aiofiles.open(path) as f:
            async for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if session_id and entry.get("session_id") != session_id:
                    continue
                entries.append(entry)

        return entries[-limit:] if limit > 0 else entries
