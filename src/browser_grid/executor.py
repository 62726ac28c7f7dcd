"""Action execution: single actions and ordered sequences against a session."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from browser_grid.config import Config
from browser_grid.driver import DriverAdapter, encode_screenshot
from browser_grid.errors import (
    ActionTimeout,
    BrowserGridError,
    DriverError,
    InvalidArguments,
    SessionNotFound,
)
from browser_grid.history import ActionHistory
from browser_grid.models.actions import (
    ActionResult,
    BaseAction,
    CheckElementExistsAction,
    ClickAction,
    DoubleClickAction,
    DragAndDropAction,
    ErrorDetail,
    ErrorMode,
    ErrorPolicy,
    ExecuteScriptAction,
    ExecutionReport,
    FillFormAction,
    GetTextAction,
    GetTitleAction,
    GetUrlAction,
    HoverAction,
    ListElementsAction,
    NavigateAction,
    PressAction,
    RightClickAction,
    ScreenshotAction,
    SelectOptionAction,
    TypeAction,
    WaitAction,
    WaitForUrlAction,
    normalize_action_name,
    parse_action,
)
from browser_grid.session import Session, SessionRegistry

logger = logging.getLogger(__name__)

# A handler performs one action and returns (message, payload)
Handler = Callable[[DriverAdapter, Any, int], Awaitable[tuple[str, Any]]]

SUBMIT_BUTTON = 'button[type="submit"], input[type="submit"]'


async def _navigate(driver: DriverAdapter, action: NavigateAction, timeout_ms: int) -> tuple[str, Any]:
    data = await driver.navigate(action.url, action.wait_until, timeout_ms)
    return f"Navigated to: {action.url}", data


async def _click(driver: DriverAdapter, action: ClickAction, timeout_ms: int) -> tuple[str, Any]:
    await driver.click(action.selector, action.by, timeout_ms)
    return f"Clicked element: {action.selector}", {"selector": action.selector}


async def _double_click(driver: DriverAdapter, action: DoubleClickAction, timeout_ms: int) -> tuple[str, Any]:
    await driver.click(action.selector, action.by, timeout_ms, click_count=2)
    return f"Double-clicked element: {action.selector}", {"selector": action.selector}


async def _right_click(driver: DriverAdapter, action: RightClickAction, timeout_ms: int) -> tuple[str, Any]:
    await driver.click(action.selector, action.by, timeout_ms, button="right")
    return f"Right-clicked element: {action.selector}", {"selector": action.selector}


async def _hover(driver: DriverAdapter, action: HoverAction, timeout_ms: int) -> tuple[str, Any]:
    await driver.hover(action.selector, action.by, timeout_ms)
    return f"Hovered over element: {action.selector}", {"selector": action.selector}


async def _type(driver: DriverAdapter, action: TypeAction, timeout_ms: int) -> tuple[str, Any]:
    await driver.type_text(action.selector, action.by, action.text, action.clear, timeout_ms)
    return (
        f"Typed {len(action.text)} characters into {action.selector}",
        {"selector": action.selector, "text": action.text},
    )


async def _press(driver: DriverAdapter, action: PressAction, timeout_ms: int) -> tuple[str, Any]:
    await driver.press(action.selector, action.by, action.key, timeout_ms)
    return f"Pressed {action.key} on {action.selector}", {"selector": action.selector, "key": action.key}


async def _select_option(driver: DriverAdapter, action: SelectOptionAction, timeout_ms: int) -> tuple[str, Any]:
    if action.value is None and action.label is None and action.index is None:
        raise InvalidArguments("select_option needs one of value, label or index")
    selected = await driver.select_option(
        action.selector,
        action.by,
        timeout_ms,
        value=action.value,
        label=action.label,
        index=action.index,
    )
    return f"Selected {selected} in {action.selector}", {"selector": action.selector, "selected": selected}


async def _drag_and_drop(driver: DriverAdapter, action: DragAndDropAction, timeout_ms: int) -> tuple[str, Any]:
    await driver.drag_and_drop(action.selector, action.by, action.target_selector, action.target_by, timeout_ms)
    return (
        f"Dragged {action.selector} to {action.target_selector}",
        {"source": action.selector, "target": action.target_selector},
    )


async def _fill_form(driver: DriverAdapter, action: FillFormAction, timeout_ms: int) -> tuple[str, Any]:
    filled = []
    for name, field in action.fields.items():
        try:
            await driver.type_text(field.selector, field.by, field.value, True, timeout_ms)
        except BrowserGridError as e:
            raise type(e)(f"Field '{name}': {e.message}") from e
        filled.append(name)
    if action.submit:
        await driver.click(action.submit_selector or SUBMIT_BUTTON, "css", timeout_ms)
    message = f"Form filled: {len(filled)} fields"
    if action.submit:
        message += " and submitted"
    return message, {"filled": filled, "submitted": action.submit}


async def _check_element_exists(
    driver: DriverAdapter, action: CheckElementExistsAction, timeout_ms: int
) -> tuple[str, Any]:
    count = await driver.element_count(action.selector, action.by)
    message = f"Element {action.selector} exists" if count else f"Element {action.selector} does not exist"
    return message, {"selector": action.selector, "exists": count > 0, "count": count}


async def _list_elements(driver: DriverAdapter, action: ListElementsAction, timeout_ms: int) -> tuple[str, Any]:
    elements = await driver.list_elements(action.selector, action.by, action.limit, action.include_hidden)
    return f"Found {len(elements)} elements", {"count": len(elements), "elements": elements}


async def _execute_script(driver: DriverAdapter, action: ExecuteScriptAction, timeout_ms: int) -> tuple[str, Any]:
    result = await driver.execute_script(action.script, action.args, timeout_ms)
    return "Script executed", {"result": result}


async def _screenshot(driver: DriverAdapter, action: ScreenshotAction, timeout_ms: int) -> tuple[str, Any]:
    image = await driver.screenshot(
        timeout_ms,
        path=action.filename,
        full_page=action.full_page,
        selector=action.selector,
        by=action.by,
    )
    message = f"Screenshot saved to: {action.filename}" if action.filename else "Screenshot captured"
    return message, {"path": action.filename, "size": len(image), "image_base64": encode_screenshot(image)}


async def _wait(driver: DriverAdapter, action: WaitAction, timeout_ms: int) -> tuple[str, Any]:
    if action.selector:
        await driver.wait_for_element(action.selector, action.by, action.state, timeout_ms)
        return f"Element {action.selector} is now {action.state}", {"selector": action.selector}
    if action.duration_ms is not None:
        await asyncio.sleep(action.duration_ms / 1000)
        return f"Waited {action.duration_ms}ms", {"duration_ms": action.duration_ms}
    raise InvalidArguments("wait needs a selector or duration_ms")


async def _wait_for_url(driver: DriverAdapter, action: WaitForUrlAction, timeout_ms: int) -> tuple[str, Any]:
    url = await driver.wait_for_url(action.pattern, timeout_ms)
    return f"Page URL matches {action.pattern}", {"url": url}


async def _get_text(driver: DriverAdapter, action: GetTextAction, timeout_ms: int) -> tuple[str, Any]:
    text = await driver.get_text(action.selector, action.by, timeout_ms)
    return text, {"text": text}


async def _get_title(driver: DriverAdapter, action: GetTitleAction, timeout_ms: int) -> tuple[str, Any]:
    title = await driver.get_title()
    return f"Page title: {title}", {"title": title}


async def _get_url(driver: DriverAdapter, action: GetUrlAction, timeout_ms: int) -> tuple[str, Any]:
    url = await driver.get_url()
    return f"Current URL: {url}", {"url": url}


DISPATCH: dict[str, Handler] = {
    "navigate": _navigate,
    "click": _click,
    "double_click": _double_click,
    "right_click": _right_click,
    "hover": _hover,
    "type": _type,
    "press": _press,
    "select_option": _select_option,
    "drag_and_drop": _drag_and_drop,
    "fill_form": _fill_form,
    "check_element_exists": _check_element_exists,
    "list_elements": _list_elements,
    "execute_script": _execute_script,
    "screenshot": _screenshot,
    "wait": _wait,
    "wait_for_url": _wait_for_url,
    "get_text": _get_text,
    "get_title": _get_title,
    "get_url": _get_url,
}


class ActionExecutor:
    """Dispatches action descriptors to a session's driver.

    Usage:
        executor = ActionExecutor(registry)
        result = await executor.run("s1", {"action": "navigate", "url": "https://example.com"})
        report = await executor.execute("s1", [
            {"action": "type", "selector": "#user", "text": "bob"},
            {"action": "click", "selector": "#submit"},
        ], ErrorPolicy(continue_on_error=True, stop_on_error=False))
    """

    def __init__(
        self,
        registry: SessionRegistry,
        config: Config | None = None,
        history: ActionHistory | None = None,
    ):
        self.registry = registry
        self.config = config or registry.config
        self.history = history

    def timeout_for(self, action: BaseAction) -> int:
        """Effective timeout for an action, in milliseconds."""
        if action.timeout:
            return action.timeout
        if action.page_load:
            return self.config.executor.navigation_timeout_ms
        timeout = self.config.executor.element_timeout_ms
        if isinstance(action, WaitAction) and not action.selector and action.duration_ms:
            # Leave room for the requested sleep
            timeout = max(timeout, action.duration_ms + 1000)
        return timeout

    async def run(
        self,
        session_id: str | None,
        action: BaseAction | dict[str, Any],
        index: int = 0,
        record: bool = True,
        source: str = "api",
        session: Session | None = None,
    ) -> ActionResult:
        """Execute one action and report its outcome.

        Never raises for action-level failures: errors are captured in the
        returned ActionResult.

        Args:
            session_id: Target session (defaults to the default session)
            action: Action model or raw descriptor mapping
            index: Position of the action within its sequence
            record: Append to the session's active recording, if any
            source: Origin tag for the action history
            session: Already-resolved session to run on; the action fails
                instead of re-resolving if it has since been closed
        """
        started = time.monotonic()
        if isinstance(action, BaseAction):
            name = action.action
        elif isinstance(action, dict):
            name = normalize_action_name(str(action.get("action")))
        else:
            name = "unknown"
        description = None
        logged_id = session_id

        try:
            parsed = parse_action(action)
            name = parsed.action
            description = parsed.description
            if session is None:
                session = self.registry.resolve(session_id)
            logged_id = session.session_id
            if not self.registry.is_live(session):
                raise SessionNotFound(f"Session '{session.session_id}' was closed")

            # Intent is recorded before dispatch so failed actions are captured too
            if record and session.recording is not None:
                session.recording.steps.append(parsed.model_copy(deep=True))

            timeout_ms = self.timeout_for(parsed)
            handler = DISPATCH[parsed.action]
            async with session.lock:
                if not self.registry.is_live(session):
                    raise SessionNotFound(f"Session '{session.session_id}' was closed")
                session.touch()
                try:
                    message, data = await asyncio.wait_for(
                        handler(session.driver, parsed, timeout_ms),
                        timeout=timeout_ms / 1000,
                    )
                except asyncio.TimeoutError as e:
                    raise ActionTimeout(f"{parsed.describe()} timed out after {timeout_ms}ms") from e

            result = ActionResult(
                index=index,
                action=name,
                description=description,
                success=True,
                message=message,
                data=data,
                duration_ms=(time.monotonic() - started) * 1000,
            )
        except BrowserGridError as e:
            result = self._failure(index, name, description, e, started)
        except Exception as e:
            logger.exception("Unexpected driver failure during %s", name)
            result = self._failure(index, name, description, DriverError(str(e)), started)

        if not result.success:
            logger.warning(
                "Action %s failed on session %s: [%s] %s",
                name,
                logged_id or "<default>",
                result.error.kind.value,
                result.error.message,
            )

        if self.history:
            try:
                await self.history.append(logged_id, result, source=source)
            except OSError as e:
                logger.warning("Could not write action history: %s", e)

        return result

    def _failure(
        self,
        index: int,
        name: str,
        description: str | None,
        error: BrowserGridError,
        started: float,
    ) -> ActionResult:
        return ActionResult(
            index=index,
            action=name,
            description=description,
            success=False,
            message=error.message,
            error=ErrorDetail(kind=error.kind, message=error.message),
            duration_ms=(time.monotonic() - started) * 1000,
        )

    async def execute(
        self,
        session_id: str | None,
        actions: Iterable[BaseAction | dict[str, Any]],
        policy: ErrorPolicy | None = None,
        record: bool = True,
        source: str = "api",
    ) -> ExecutionReport:
        """Run actions strictly in order against one session.

        Every attempted action contributes one result, in issue order. With
        the halt mode execution stops after the first failure; with
        continue-and-collect every action is attempted.

        Args:
            session_id: Target session (defaults to the default session)
            actions: Action models or raw descriptor mappings
            policy: Error policy (defaults to halting on the first error)
            record: Append actions to the session's active recording, if any
            source: Origin tag for the action history

        Returns:
            ExecutionReport with the ordered per-action results
        """
        policy = policy or ErrorPolicy()
        mode = policy.mode
        actions = list(actions)

        # Pin the session object so neither a default change nor a reopened id can redirect steps
        try:
            pinned = self.registry.resolve(session_id)
        except SessionNotFound:
            pinned = None
        target = pinned.session_id if pinned else session_id

        results: list[ActionResult] = []
        for index, action in enumerate(actions):
            result = await self.run(target, action, index=index, record=record, source=source, session=pinned)
            results.append(result)
            if not result.success and mode is ErrorMode.HALT_ON_FIRST_ERROR:
                break

        failed = sum(1 for r in results if not r.success)
        succeeded = len(results) - failed
        success = failed == 0 or (mode is ErrorMode.CONTINUE_AND_COLLECT and len(results) > 0)

        message = f"Action sequence completed: {succeeded} successful, {failed} failed"
        if len(results) < len(actions):
            message += f" (halted at step {len(results)} of {len(actions)})"

        return ExecutionReport(
            session_id=target,
            mode=mode,
            success=success,
            results=results,
            total=len(actions),
            succeeded=succeeded,
            failed=failed,
            message=message,
        )
