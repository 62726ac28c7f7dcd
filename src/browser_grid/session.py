"""Registry of live browser sessions."""

import asyncio
import inspect
import logging
import uuid
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import datetime

from browser_grid.config import BrowserConfig, Config
from browser_grid.driver import DriverAdapter, DriverFactory, playwright_driver_factory
from browser_grid.errors import (
    BrowserGridError,
    DriverError,
    DriverInitializationError,
    DuplicateIdentifier,
    SessionNotFound,
)
from browser_grid.models.scenario import ActiveRecording
from browser_grid.models.session import ConsoleLogEntry, SessionSummary

logger = logging.getLogger(__name__)

CloseListener = Callable[[str, ActiveRecording | None], Awaitable[None] | None]


class Session:
    """One live browser and its per-session state.

    ``lock`` serialises every driver call for this session; it is never
    shared with other sessions.
    """

    def __init__(
        self,
        session_id: str,
        config: BrowserConfig,
        driver: DriverAdapter,
        console_logs: deque[ConsoleLogEntry],
    ):
        self.session_id = session_id
        self.config = config
        self.driver = driver
        self.console_logs = console_logs
        self.created_at = datetime.utcnow()
        self.last_used = self.created_at
        self.lock = asyncio.Lock()
        self.recording: ActiveRecording | None = None
        self.closed = False

    def touch(self) -> None:
        """Update the last_used timestamp."""
        self.last_used = datetime.utcnow()

    def summary(self, is_default: bool = False) -> SessionSummary:
        return SessionSummary(
            session_id=self.session_id,
            created_at=self.created_at,
            last_used=self.last_used,
            headless=self.config.headless,
            browser_type=self.config.browser_type,
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
            is_default=is_default,
            recording=self.recording.scenario_name if self.recording else None,
            console_entries=len(self.console_logs),
        )


class SessionRegistry:
    """Owns the mapping from session identifier to live session.

    Map mutations never span an ``await``, so they are atomic on the event
    loop. Driver access is serialised per session through ``Session.lock``;
    there is no registry-wide lock, so sessions proceed independently.
    """

    def __init__(
        self,
        config: Config | None = None,
        driver_factory: DriverFactory | None = None,
    ):
        self.config = config or Config.load()
        self._driver_factory = driver_factory or playwright_driver_factory
        self._sessions: dict[str, Session] = {}
        self._opening: set[str] = set()
        self._pinned_default: str | None = None
        self._close_listeners: list[CloseListener] = []

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def add_close_listener(self, listener: CloseListener) -> None:
        """Register a callback run after a session is closed.

        The callback receives the session id and the recording that was
        discarded with it (or None).
        """
        self._close_listeners.append(listener)

    async def open(
        self,
        config: BrowserConfig | None = None,
        session_id: str | None = None,
    ) -> Session:
        """Start a browser and register it as a new session.

        Args:
            config: Browser configuration (defaults to the registry's browser config)
            session_id: Caller-chosen identifier (auto-generated if not provided)

        Returns:
            The registered Session

        Raises:
            DuplicateIdentifier: session_id names a live or opening session
            DriverInitializationError: The browser could not be started
        """
        session_id = session_id or str(uuid.uuid4())
        if session_id in self._sessions or session_id in self._opening:
            raise DuplicateIdentifier(
                f"Session '{session_id}' already exists. Use a different ID or close the existing session first."
            )

        # Reserve the id while the browser starts, without blocking other opens
        self._opening.add(session_id)
        try:
            browser_config = (config or self.config.browser).model_copy(deep=True)
            console_logs: deque[ConsoleLogEntry] = deque(maxlen=self.config.sessions.console_buffer_size)
            try:
                driver = await self._driver_factory(browser_config, console_logs.append)
            except DriverInitializationError:
                raise
            except Exception as e:
                raise DriverInitializationError(f"Failed to start browser for session '{session_id}': {e}") from e

            session = Session(session_id, browser_config, driver, console_logs)
            self._sessions[session_id] = session
        finally:
            self._opening.discard(session_id)

        logger.info(
            "Session opened: %s (%s, headless=%s)",
            session_id,
            browser_config.browser_type,
            browser_config.headless,
        )
        return session

    @property
    def default_session_id(self) -> str | None:
        """Session used when a caller names none.

        A pinned default wins; otherwise the configured policy picks the
        oldest (``first``) or newest (``latest``) live session.
        """
        if self._pinned_default in self._sessions:
            return self._pinned_default
        if not self._sessions:
            return None
        if self.config.sessions.default_policy == "latest":
            return next(reversed(self._sessions))
        return next(iter(self._sessions))

    def set_default(self, session_id: str) -> None:
        """Pin the default session.

        Raises:
            SessionNotFound: session_id is not live
        """
        if session_id not in self._sessions:
            raise SessionNotFound(f"Session '{session_id}' not found")
        self._pinned_default = session_id

    def resolve(self, session_id: str | None = None) -> Session:
        """Return the named session, or the default session when none is named.

        Raises:
            SessionNotFound: Unknown identifier, or no default session exists
        """
        target = session_id or self.default_session_id
        if target is None:
            raise SessionNotFound("No session is open. Open a session first.")
        session = self._sessions.get(target)
        if session is None or session.closed:
            raise SessionNotFound(f"Session '{target}' not found")
        return session

    def is_live(self, session: Session) -> bool:
        """True while ``session`` is open and still registered under its id."""
        return not session.closed and self._sessions.get(session.session_id) is session

    async def close(self, session_id: str | None = None) -> bool:
        """Close a session and release its browser.

        Closing an unknown or already-closed session is a no-op.

        Args:
            session_id: Session to close (defaults to the default session)

        Returns:
            True if a session was closed, False if there was nothing to close

        Raises:
            DriverError: The session was removed but its browser failed to shut down
        """
        target = session_id or self.default_session_id
        if target is None:
            return False
        session = self._sessions.pop(target, None)
        if session is None:
            return False

        # Later lookups fail fast from here on
        session.closed = True
        if self._pinned_default == target:
            self._pinned_default = None
        discarded = session.recording
        session.recording = None

        try:
            # Waits for the in-flight action, if any
            async with session.lock:
                await session.driver.close()
        except Exception as e:
            raise DriverError(f"Session '{target}' removed but its browser failed to close: {e}") from e
        finally:
            session.console_logs.clear()
            await self._notify_closed(target, discarded)

        if discarded:
            logger.info(
                "Session closed: %s (discarded recording '%s' with %d steps)",
                target,
                discarded.scenario_name,
                len(discarded.steps),
            )
        else:
            logger.info("Session closed: %s", target)
        return True

    async def _notify_closed(self, session_id: str, recording: ActiveRecording | None) -> None:
        for listener in self._close_listeners:
            try:
                result = listener(session_id, recording)
                if inspect.isawaitable(result):
                    await result
            except BrowserGridError as e:
                logger.warning("Close listener failed for session %s: %s", session_id, e)

    async def close_all(self) -> dict[str, str]:
        """Close every session concurrently (shutdown sweep).

        Returns:
            Mapping of session id to error message for sessions whose browser
            failed to close; every session is removed regardless
        """
        session_ids = list(self._sessions)
        results = await asyncio.gather(
            *(self.close(session_id) for session_id in session_ids),
            return_exceptions=True,
        )
        failures = {
            session_id: str(result)
            for session_id, result in zip(session_ids, results)
            if isinstance(result, Exception)
        }
        for session_id, error in failures.items():
            logger.warning("Failed to close session %s: %s", session_id, error)
        logger.info("Closed %d sessions (%d failed)", len(session_ids) - len(failures), len(failures))
        return failures

    def list_sessions(self) -> list[SessionSummary]:
        """Snapshot of all live sessions."""
        default_id = self.default_session_id
        return [
            session.summary(is_default=session.session_id == default_id)
            for session in self._sessions.values()
        ]

    def console_logs(
        self,
        session_id: str | None = None,
        level: str | None = None,
        limit: int | None = None,
    ) -> list[ConsoleLogEntry]:
        """Buffered console messages for a session, oldest first.

        Args:
            session_id: Session to read (defaults to the default session)
            level: Only return entries of this level (e.g. 'error')
            limit: Return at most this many of the newest entries
        """
        session = self.resolve(session_id)
        entries = [e for e in session.console_logs if level is None or e.level == level]
        if limit is not None and limit > 0:
            entries = entries[-limit:]
        return entries

    def clear_console_logs(self, session_id: str | None = None) -> int:
        """Empty a session's console buffer and return how many entries were dropped."""
        session = self.resolve(session_id)
        count = len(session.console_logs)
        session.console_logs.clear()
        return count
