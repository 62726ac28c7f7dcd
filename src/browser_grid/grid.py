"""BrowserGrid: the operation boundary over sessions, actions and scenarios.

Every public operation returns an :class:`OperationResult`; component
errors are recovered here and never escape to the caller.
"""

import functools
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from browser_grid.config import BrowserConfig, Config
from browser_grid.driver import DriverFactory
from browser_grid.errors import (
    BrowserGridError,
    DuplicatePlugin,
    ErrorKind,
    InvalidArguments,
    UnknownTool,
)
from browser_grid.executor import ActionExecutor
from browser_grid.history import ActionHistory
from browser_grid.models.actions import ACTION_MODELS, ErrorPolicy, normalize_action_name
from browser_grid.models.scenario import ScenarioPatch
from browser_grid.player import ScenarioPlayer
from browser_grid.plugins import PluginRegistry, ToolPlugin
from browser_grid.recording import ScenarioRecorder
from browser_grid.scenarios import ScenarioLibrary
from browser_grid.session import SessionRegistry
from browser_grid.storage import ScenarioStore

logger = logging.getLogger(__name__)


class OperationResult(BaseModel):
    """Structured outcome of a public operation."""

    success: bool
    message: str
    error_kind: ErrorKind | None = None
    data: Any = None

    @classmethod
    def ok(cls, message: str, data: Any = None) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def failure(cls, error: BrowserGridError, data: Any = None) -> "OperationResult":
        return cls(success=False, message=error.message, error_kind=error.kind, data=data)


def _validation_message(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}" for err in error.errors()
    )


def operation(func: Callable[..., Awaitable[OperationResult]]) -> Callable[..., Awaitable[OperationResult]]:
    """Convert errors raised by an operation into failed OperationResults."""

    @functools.wraps(func)
    async def wrapper(self: "BrowserGrid", *args, **kwargs) -> OperationResult:
        try:
            return await func(self, *args, **kwargs)
        except BrowserGridError as e:
            return OperationResult.failure(e)
        except ValidationError as e:
            return OperationResult.failure(InvalidArguments(_validation_message(e)))
        except Exception as e:
            logger.exception("Unexpected error in %s", func.__name__)
            return OperationResult(
                success=False,
                message=f"Internal error: {e}",
                error_kind=ErrorKind.INTERNAL_ERROR,
            )

    return wrapper


def _policy(continue_on_error: bool, stop_on_error: bool) -> ErrorPolicy:
    return ErrorPolicy(continue_on_error=continue_on_error, stop_on_error=stop_on_error)


class BrowserGrid:
    """Owns one of each component and exposes every public operation.

    Usage:
        async with BrowserGrid() as grid:
            await grid.open_session(session_id="s1")
            await grid.run_action({"action": "navigate", "url": "https://example.com"}, "s1")
            result = await grid.call_tool("get_title", {"session_id": "s1"})
    """

    def __init__(
        self,
        config: Config | None = None,
        driver_factory: DriverFactory | None = None,
    ):
        self.config = config or Config.load()
        self.sessions = SessionRegistry(self.config, driver_factory)
        self.history = ActionHistory(self.config.history.directory) if self.config.history.enabled else None
        self.executor = ActionExecutor(self.sessions, self.config, self.history)
        self.library = ScenarioLibrary(ScenarioStore(self.config.scenarios.storage_dir))
        self.recorder = ScenarioRecorder(self.sessions, self.library)
        self.player = ScenarioPlayer(self.sessions, self.executor, self.library)
        self.plugins = PluginRegistry(self.sessions, self.executor)

        self._routes: dict[str, Callable[..., Awaitable[OperationResult]]] = {
            "browser_open": self.open_session,
            "browser_close": self.close_session,
            "browser_close_all": self.close_all_sessions,
            "browser_list": self.list_sessions,
            "browser_set_default": self.set_default_session,
            "execute_sequence": self.execute_sequence,
            "console_logs": self.console_logs,
            "clear_console_logs": self.clear_console_logs,
            "record_scenario": self.start_recording,
            "stop_recording_scenario": self.stop_recording,
            "replay_scenario": self.replay_scenario,
            "list_scenarios": self.list_scenarios,
            "update_scenario": self.update_scenario,
            "delete_scenario": self.delete_scenario,
            "action_history": self.action_history,
        }

    async def start(self) -> None:
        """Load persisted scenarios."""
        await self.library.load()

    async def shutdown(self) -> dict[str, str]:
        """Close every session. Returns failures by session id."""
        return await self.sessions.close_all()

    async def __aenter__(self) -> "BrowserGrid":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    @property
    def builtin_tool_names(self) -> list[str]:
        return list(self._routes) + list(ACTION_MODELS)

    # Sessions

    @operation
    async def open_session(
        self,
        session_id: str | None = None,
        headless: bool | None = None,
        browser_type: str | None = None,
        viewport_width: int | None = None,
        viewport_height: int | None = None,
        user_agent: str | None = None,
        proxy: str | None = None,
    ) -> OperationResult:
        overrides = {
            "headless": headless,
            "browser_type": browser_type,
            "viewport_width": viewport_width,
            "viewport_height": viewport_height,
            "user_agent": user_agent,
            "proxy": proxy,
        }
        browser_config = BrowserConfig.model_validate(
            {**self.config.browser.model_dump(), **{k: v for k, v in overrides.items() if v is not None}}
        )
        session = await self.sessions.open(browser_config, session_id=session_id)
        summary = session.summary(is_default=self.sessions.default_session_id == session.session_id)
        return OperationResult.ok(
            f"Browser session '{session.session_id}' opened",
            summary.model_dump(mode="json"),
        )

    @operation
    async def close_session(self, session_id: str | None = None) -> OperationResult:
        closed = await self.sessions.close(session_id)
        if not closed:
            return OperationResult.ok(
                f"Session '{session_id or '<default>'}' is not open; nothing to close",
                {"closed": False},
            )
        return OperationResult.ok(f"Session '{session_id or '<default>'}' closed", {"closed": True})

    @operation
    async def close_all_sessions(self) -> OperationResult:
        count = len(self.sessions)
        failures = await self.sessions.close_all()
        data = {"closed": count, "failures": failures}
        if failures:
            return OperationResult(
                success=False,
                message=f"Closed {count} sessions, {len(failures)} browsers failed to shut down",
                error_kind=ErrorKind.DRIVER_ERROR,
                data=data,
            )
        return OperationResult.ok(f"Closed {count} sessions", data)

    @operation
    async def list_sessions(self) -> OperationResult:
        summaries = self.sessions.list_sessions()
        return OperationResult.ok(
            f"{len(summaries)} active sessions",
            {
                "sessions": [s.model_dump(mode="json") for s in summaries],
                "default_session_id": self.sessions.default_session_id,
            },
        )

    @operation
    async def set_default_session(self, session_id: str) -> OperationResult:
        self.sessions.set_default(session_id)
        return OperationResult.ok(f"Default session set to '{session_id}'", {"session_id": session_id})

    @operation
    async def console_logs(
        self,
        session_id: str | None = None,
        level: str | None = None,
        limit: int | None = None,
    ) -> OperationResult:
        entries = self.sessions.console_logs(session_id, level=level, limit=limit)
        return OperationResult.ok(
            f"{len(entries)} console entries",
            {"entries": [e.model_dump(mode="json") for e in entries]},
        )

    @operation
    async def clear_console_logs(self, session_id: str | None = None) -> OperationResult:
        count = self.sessions.clear_console_logs(session_id)
        return OperationResult.ok(f"Cleared {count} console entries", {"cleared": count})

    # Actions

    @operation
    async def run_action(self, action: dict[str, Any], session_id: str | None = None) -> OperationResult:
        result = await self.executor.run(session_id, action)
        return OperationResult(
            success=result.success,
            message=result.message,
            error_kind=result.error.kind if result.error else None,
            data=result.model_dump(mode="json"),
        )

    @operation
    async def execute_sequence(
        self,
        actions: list[dict[str, Any]],
        session_id: str | None = None,
        continue_on_error: bool = False,
        stop_on_error: bool = True,
    ) -> OperationResult:
        if not isinstance(actions, list):
            raise InvalidArguments("actions must be a list of action descriptors")
        report = await self.executor.execute(session_id, actions, _policy(continue_on_error, stop_on_error))
        failure = report.first_failure
        return OperationResult(
            success=report.success,
            message=report.message,
            error_kind=failure.error.kind if failure and failure.error else None,
            data=report.model_dump(mode="json"),
        )

    # Scenarios

    @operation
    async def start_recording(
        self,
        scenario_name: str,
        session_id: str | None = None,
        description: str | None = None,
    ) -> OperationResult:
        if not scenario_name:
            raise InvalidArguments("scenario_name must not be empty")
        scenario = self.recorder.start_recording(session_id, scenario_name, description)
        return OperationResult.ok(
            f"Recording started for scenario '{scenario_name}'",
            {
                "scenario_id": scenario.scenario_id,
                "scenario_name": scenario.name,
                "session_id": scenario.session_id,
            },
        )

    @operation
    async def stop_recording(self, scenario_name: str, save_scenario: bool = True) -> OperationResult:
        outcome = await self.recorder.stop_recording(scenario_name, save_scenario=save_scenario)
        scenario = outcome.scenario
        data = {
            "scenario_id": scenario.scenario_id,
            "scenario_name": scenario.name,
            "total_steps": scenario.metadata.total_steps,
            "duration": scenario.metadata.duration,
            "saved": outcome.saved,
        }
        if outcome.save_error:
            return OperationResult(
                success=False,
                message=(
                    f"Recording stopped for scenario '{scenario.name}' but it could not be saved: "
                    f"{outcome.save_error}"
                ),
                error_kind=ErrorKind.STORAGE_ERROR,
                data=data,
            )
        return OperationResult.ok(f"Recording stopped for scenario '{scenario.name}'", data)

    @operation
    async def replay_scenario(
        self,
        scenario_name: str,
        session_id: str | None = None,
        variables: dict[str, Any] | None = None,
        continue_on_error: bool = False,
        stop_on_error: bool = True,
    ) -> OperationResult:
        report = await self.player.play(
            scenario_name,
            session_id=session_id,
            variables=variables,
            policy=_policy(continue_on_error, stop_on_error),
        )
        failure = report.first_failure
        if report.failed:
            message = f"Scenario '{scenario_name}' replayed with {report.failed} errors"
        else:
            message = f"Scenario '{scenario_name}' replayed successfully"
        return OperationResult(
            success=report.success,
            message=message,
            error_kind=failure.error.kind if failure and failure.error else None,
            data=report.model_dump(mode="json"),
        )

    @operation
    async def list_scenarios(self, filter: str | None = None, limit: int = 50) -> OperationResult:
        summaries = self.library.list_scenarios(filter, limit=limit)
        return OperationResult.ok(
            f"Found {len(summaries)} scenarios",
            {"scenarios": [s.model_dump(mode="json") for s in summaries]},
        )

    @operation
    async def update_scenario(
        self,
        scenario_name: str,
        name: str | None = None,
        description: str | None = None,
        steps: list[dict[str, Any]] | None = None,
        variables: dict[str, Any] | None = None,
    ) -> OperationResult:
        patch = ScenarioPatch(name=name, description=description, steps=steps, variables=variables)
        scenario = await self.library.update(scenario_name, patch)
        return OperationResult.ok(
            f"Scenario '{scenario_name}' updated successfully",
            scenario.summary().model_dump(mode="json"),
        )

    @operation
    async def delete_scenario(self, scenario_name: str, confirm: bool = False) -> OperationResult:
        scenario = await self.library.delete(scenario_name, confirm=confirm)
        return OperationResult.ok(
            f"Scenario '{scenario.name}' deleted successfully",
            {"scenario_id": scenario.scenario_id},
        )

    @operation
    async def action_history(
        self,
        date: str | None = None,
        session_id: str | None = None,
        limit: int = 50,
    ) -> OperationResult:
        if self.history is None:
            return OperationResult.ok("Action history is disabled", {"entries": []})
        entries = await self.history.read(date=date, session_id=session_id, limit=limit)
        return OperationResult.ok(f"{len(entries)} history entries", {"entries": entries})

    # Plugins and tool routing

    def register_plugin(self, plugin: ToolPlugin) -> None:
        """Register a plugin tool.

        Raises:
            DuplicatePlugin: The name is taken by a built-in or registered tool
        """
        if plugin.name in self.builtin_tool_names:
            raise DuplicatePlugin(f"'{plugin.name}' is a built-in tool")
        self.plugins.register(plugin)

    @operation
    async def call_plugin(self, name: str, arguments: dict[str, Any]) -> OperationResult:
        result = await self.plugins.call(name, arguments)
        if isinstance(result, OperationResult):
            return result
        return OperationResult.ok(f"Tool '{name}' completed", result)

    @operation
    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> OperationResult:
        """Route a named tool call to its operation.

        Required arguments are checked against the operation's signature;
        missing or unexpected arguments yield InvalidArguments.
        """
        arguments = dict(arguments or {})

        action_name = normalize_action_name(name)
        if action_name in ACTION_MODELS:
            session_id = arguments.pop("session_id", None)
            return await self.run_action({**arguments, "action": action_name}, session_id)

        if name in self.plugins:
            return await self.call_plugin(name, arguments)

        handler = self._routes.get(name)
        if handler is None:
            raise UnknownTool(f"Unknown tool: {name}")

        parameters = inspect.signature(handler).parameters
        missing = [
            p.name for p in parameters.values()
            if p.default is inspect.Parameter.empty and arguments.get(p.name) is None
        ]
        if missing:
            raise InvalidArguments(f"Missing required arguments for '{name}': {', '.join(missing)}")
        unexpected = sorted(set(arguments) - set(parameters))
        if unexpected:
            raise InvalidArguments(f"Unexpected arguments for '{name}': {', '.join(unexpected)}")

        return await handler(**arguments)
