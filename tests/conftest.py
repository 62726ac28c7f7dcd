"""Shared fixtures: an in-memory driver that records every call."""

import asyncio
from typing import Any

import pytest

from browser_grid.config import BrowserConfig, Config, HistoryConfig, ScenariosConfig
from browser_grid.driver import ConsoleSink, DriverAdapter
from browser_grid.errors import (
    ElementNotFound,
    NavigationError,
    ScriptExecutionError,
)
from browser_grid.executor import ActionExecutor
from browser_grid.grid import BrowserGrid
from browser_grid.models.session import ConsoleLogEntry
from browser_grid.session import SessionRegistry


class FakeDriver(DriverAdapter):
    """Driver stand-in.

    ``calls`` lists (method, *key args) in dispatch order. Selectors in
    ``missing`` raise ElementNotFound; ``delay`` makes every call slow.
    ``counts`` overrides how many elements a selector matches (default 1).
    """

    def __init__(self, factory: "FakeDriverFactory", config: BrowserConfig, console_sink: ConsoleSink | None):
        self.factory = factory
        self.config = config
        self.console_sink = console_sink
        self.calls: list[tuple[Any, ...]] = []
        self.url = "about:blank"
        self.title = "Blank"
        self.values: dict[str, str] = {}
        self.texts: dict[str, str] = {}
        self.missing: set[str] = set()
        self.script_result: Any = None
        self.counts: dict[str, int] = {}
        self.elements: list[dict[str, Any]] = []
        self.delay = 0.0
        self.fail_close = False
        self.closed = False
        self.in_flight = 0
        self.max_in_flight = 0

    async def _call(self, *call: Any, selector: str | None = None) -> None:
        self.calls.append(call)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.factory.enter()
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
            self.factory.leave()
        if selector is not None and selector in self.missing:
            raise ElementNotFound(f"Element not found: {selector}")

    def emit_console(self, message: str, level: str = "log") -> None:
        if self.console_sink:
            self.console_sink(ConsoleLogEntry(level=level, message=message))

    async def navigate(self, url: str, wait_until: str, timeout_ms: int) -> dict[str, Any]:
        await self._call("navigate", url)
        if url.startswith("bad://"):
            raise NavigationError(f"Navigation to {url} failed")
        self.url = url
        return {"url": url, "title": self.title}

    async def click(self, selector, by, timeout_ms, button="left", click_count=1) -> None:
        name = "double_click" if click_count == 2 else "right_click" if button == "right" else "click"
        await self._call(name, selector, selector=selector)

    async def hover(self, selector, by, timeout_ms) -> None:
        await self._call("hover", selector, selector=selector)

    async def type_text(self, selector, by, text, clear, timeout_ms) -> None:
        await self._call("type_text", selector, text, selector=selector)
        self.values[selector] = text if clear else self.values.get(selector, "") + text

    async def press(self, selector, by, key, timeout_ms) -> None:
        await self._call("press", selector, key, selector=selector)

    async def select_option(self, selector, by, timeout_ms, value=None, label=None, index=None) -> list[str]:
        await self._call("select_option", selector, selector=selector)
        chosen = value if value is not None else label if label is not None else str(index)
        return [chosen]

    async def drag_and_drop(self, selector, by, target_selector, target_by, timeout_ms) -> None:
        await self._call("drag_and_drop", selector, target_selector, selector=selector)

    async def element_count(self, selector, by) -> int:
        await self._call("element_count", selector)
        if selector in self.missing:
            return 0
        return self.counts.get(selector, 1)

    async def list_elements(self, selector, by, limit, include_hidden) -> list[dict[str, Any]]:
        await self._call("list_elements", selector)
        return self.elements[:limit]

    async def execute_script(self, script, args, timeout_ms) -> Any:
        await self._call("execute_script", script)
        if "throw" in script:
            raise ScriptExecutionError("Script error: boom")
        return self.script_result

    async def screenshot(self, timeout_ms, path=None, full_page=False, selector=None, by="css") -> bytes:
        await self._call("screenshot", path, selector=selector)
        return b"\x89PNG-fake"

    async def wait_for_element(self, selector, by, state, timeout_ms) -> None:
        await self._call("wait_for_element", selector, state, selector=selector)

    async def wait_for_url(self, pattern, timeout_ms) -> str:
        await self._call("wait_for_url", pattern)
        return self.url

    async def get_text(self, selector, by, timeout_ms) -> str:
        await self._call("get_text", selector, selector=selector)
        return self.texts.get(selector, "")

    async def get_title(self) -> str:
        await self._call("get_title")
        return self.title

    async def get_url(self) -> str:
        await self._call("get_url")
        return self.url

    async def close(self) -> None:
        self.calls.append(("close",))
        if self.fail_close:
            raise RuntimeError("browser process did not exit")
        self.closed = True


class FakeDriverFactory:
    """DriverFactory producing FakeDrivers; tracks concurrency across all of them."""

    def __init__(self):
        self.drivers: list[FakeDriver] = []
        self.launch_error: Exception | None = None
        self.launch_delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    def enter(self) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)

    def leave(self) -> None:
        self.in_flight -= 1

    async def __call__(self, config: BrowserConfig, console_sink: ConsoleSink | None = None) -> FakeDriver:
        if self.launch_delay:
            await asyncio.sleep(self.launch_delay)
        if self.launch_error is not None:
            error, self.launch_error = self.launch_error, None
            raise error
        driver = FakeDriver(self, config, console_sink)
        self.drivers.append(driver)
        return driver


@pytest.fixture
def config(tmp_path):
    return Config(
        scenarios=ScenariosConfig(storage_dir=tmp_path / "scenarios"),
        history=HistoryConfig(directory=tmp_path / "history"),
    )


@pytest.fixture
def factory():
    return FakeDriverFactory()


@pytest.fixture
def registry(config, factory):
    return SessionRegistry(config, driver_factory=factory)


@pytest.fixture
def executor(registry):
    return ActionExecutor(registry)


@pytest.fixture
async def grid(config, factory):
    grid = BrowserGrid(config, driver_factory=factory)
    await grid.start()
    yield grid
    await grid.shutdown()

