"""Pydantic models describing live sessions."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ConsoleLogEntry(BaseModel):
    """Single browser console message."""

    level: str = "log"
    message: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    location: dict[str, Any] | None = None


class SessionSummary(BaseModel):
    """Public view of a live session; never carries the driver handle."""

    session_id: str
    created_at: datetime
    last_used: datetime
    headless: bool
    browser_type: str
    viewport: dict[str, int]
    is_default: bool = False
    recording: str | None = None  # name of the scenario being recorded
    console_entries: int = 0
