"""Driver adapters: the boundary between the grid and a real browser.

Each session exclusively owns one :class:`DriverAdapter`. The production
adapter wraps Playwright; tests plug in an in-memory fake through the
same :data:`DriverFactory` signature.
"""

import base64
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, Literal

from playwright.async_api import (
    Browser,
    BrowserContext,
    ConsoleMessage,
    Error as PlaywrightError,
    Locator,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from browser_grid.config import BrowserConfig
from browser_grid.errors import (
    ActionTimeout,
    DriverError,
    DriverInitializationError,
    ElementNotFound,
    InvalidSelector,
    NavigationError,
    ScriptExecutionError,
)
from browser_grid.models.session import ConsoleLogEntry

logger = logging.getLogger(__name__)

ConsoleSink = Callable[[ConsoleLogEntry], None]

WaitState = Literal["attached", "detached", "visible", "hidden"]

_SELECTOR_ERROR_MARKERS = (
    "is not a valid selector",
    "Unexpected token",
    "Unknown engine",
    "Failed to parse selector",
)

_FUNCTION_PREFIX_RE = re.compile(r"^\s*(async\s+)?(function\b|\([^)]*\)\s*=>|[A-Za-z_$][\w$]*\s*=>)")

INTERACTIVE_ELEMENTS = 'button, [role="button"], input, textarea, select, a[href], [onclick], [tabindex]'

_LIST_ELEMENTS_JS = """
(elements, [limit, includeHidden]) => {
  const isVisible = (el) => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    return rect.width > 0 && rect.height > 0 && style.visibility !== "hidden" && style.display !== "none";
  };
  const uniqueSelector = (el) => {
    if (el.id) return "#" + CSS.escape(el.id);
    const parts = [];
    for (let node = el; node && node.nodeType === 1 && node !== document.body; node = node.parentElement) {
      let part = node.nodeName.toLowerCase();
      const siblings = node.parentElement
        ? Array.from(node.parentElement.children).filter((s) => s.nodeName === node.nodeName)
        : [];
      if (siblings.length > 1) part += ":nth-of-type(" + (siblings.indexOf(node) + 1) + ")";
      parts.unshift(part);
    }
    return parts.join(" > ");
  };
  return elements
    .filter((el) => includeHidden || isVisible(el))
    .slice(0, limit)
    .map((el, i) => ({
      index: i + 1,
      tag: el.tagName.toLowerCase(),
      selector: uniqueSelector(el),
      text: (el.innerText || el.textContent || "").trim().slice(0, 200),
      attributes: Object.fromEntries(
        ["id", "name", "type", "placeholder", "href", "role", "aria-label", "data-testid"]
          .filter((name) => el.hasAttribute(name))
          .map((name) => [name, el.getAttribute(name)])
      ),
      visible: isVisible(el),
      enabled: !el.disabled,
    }));
}
"""


def to_playwright_selector(selector: str, by: str = "css") -> str:
    """Translate a selector kind into a Playwright selector string.

    Only a prefix or attribute wrapper is added; the selector itself is
    passed through untouched.
    """
    if by == "css":
        return selector
    if by == "xpath":
        return f"xpath={selector}"
    if by == "id":
        return f"id={selector}"
    if by == "name":
        escaped = selector.replace('"', '\\"')
        return f'css=[name="{escaped}"]'
    if by == "className":
        return f"css=.{selector}"
    if by == "tagName":
        return f"css={selector}"
    if by == "text":
        return f"text={selector}"
    raise InvalidSelector(f"Unsupported selector kind: {by}")


def wrap_script(script: str, args: list[Any]) -> str:
    """Make a script callable by ``page.evaluate`` with ``args``.

    Function expressions are used as-is. Statement bodies (e.g.
    ``return document.title``) run inside a function whose ``arguments``
    are the supplied args.
    """
    if _FUNCTION_PREFIX_RE.match(script):
        return script
    if args or re.search(r"\breturn\b", script):
        return f"(args) => (function() {{ {script}\n}}).apply(null, args)"
    return script


class DriverAdapter(ABC):
    """Per-session browser handle. Implementations are not safe for concurrent use."""

    @abstractmethod
    async def navigate(self, url: str, wait_until: str, timeout_ms: int) -> dict[str, Any]: ...

    @abstractmethod
    async def click(
        self,
        selector: str,
        by: str,
        timeout_ms: int,
        button: Literal["left", "right", "middle"] = "left",
        click_count: int = 1,
    ) -> None: ...

    @abstractmethod
    async def hover(self, selector: str, by: str, timeout_ms: int) -> None: ...

    @abstractmethod
    async def type_text(self, selector: str, by: str, text: str, clear: bool, timeout_ms: int) -> None: ...

    @abstractmethod
    async def press(self, selector: str, by: str, key: str, timeout_ms: int) -> None: ...

    @abstractmethod
    async def select_option(
        self,
        selector: str,
        by: str,
        timeout_ms: int,
        value: str | None = None,
        label: str | None = None,
        index: int | None = None,
    ) -> list[str]: ...

    @abstractmethod
    async def drag_and_drop(
        self, selector: str, by: str, target_selector: str, target_by: str, timeout_ms: int
    ) -> None: ...

    @abstractmethod
    async def element_count(self, selector: str, by: str) -> int: ...

    @abstractmethod
    async def list_elements(
        self, selector: str | None, by: str, limit: int, include_hidden: bool
    ) -> list[dict[str, Any]]: ...

    @abstractmethod
    async def execute_script(self, script: str, args: list[Any], timeout_ms: int) -> Any: ...

    @abstractmethod
    async def screenshot(
        self,
        timeout_ms: int,
        path: str | None = None,
        full_page: bool = False,
        selector: str | None = None,
        by: str = "css",
    ) -> bytes: ...

    @abstractmethod
    async def wait_for_element(self, selector: str, by: str, state: WaitState, timeout_ms: int) -> None: ...

    @abstractmethod
    async def wait_for_url(self, pattern: str, timeout_ms: int) -> str: ...

    @abstractmethod
    async def get_text(self, selector: str, by: str, timeout_ms: int) -> str: ...

    @abstractmethod
    async def get_title(self) -> str: ...

    @abstractmethod
    async def get_url(self) -> str: ...

    @abstractmethod
    async def close(self) -> None: ...


DriverFactory = Callable[[BrowserConfig, ConsoleSink | None], Awaitable[DriverAdapter]]


class PlaywrightDriver(DriverAdapter):
    """Driver adapter backed by one Playwright browser, context and page.

    Usage:
        driver = await PlaywrightDriver.launch(BrowserConfig(headless=True))
        await driver.navigate("https://example.com", "load", 30000)
        await driver.click("#login", "css", 10000)
        await driver.close()
    """

    def __init__(
        self,
        playwright: Playwright,
        browser: Browser,
        context: BrowserContext,
        page: Page,
    ):
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._page = page
        self._closed = False

    @classmethod
    async def launch(
        cls,
        config: BrowserConfig,
        console_sink: ConsoleSink | None = None,
    ) -> "PlaywrightDriver":
        """Start a browser for one session.

        Args:
            config: Browser configuration snapshot
            console_sink: Receives console messages and page errors

        Returns:
            A ready driver with one open page

        Raises:
            DriverInitializationError: The browser could not be started
        """
        playwright = await async_playwright().start()
        try:
            launcher = getattr(playwright, config.browser_type)
            launch_options: dict[str, Any] = {
                "headless": config.headless,
                "args": list(config.extra_args),
            }
            if config.proxy:
                launch_options["proxy"] = {"server": config.proxy}
            browser = await launcher.launch(**launch_options)

            context_options: dict[str, Any] = {
                "viewport": {
                    "width": config.viewport_width,
                    "height": config.viewport_height,
                },
            }
            if config.user_agent:
                context_options["user_agent"] = config.user_agent

            context = await browser.new_context(**context_options)
            page = await context.new_page()
        except PlaywrightError as e:
            await playwright.stop()
            raise DriverInitializationError(f"Failed to launch {config.browser_type}: {e.message}") from e

        driver = cls(playwright, browser, context, page)
        if console_sink:
            driver._attach_console(console_sink)
        return driver

    def _attach_console(self, sink: ConsoleSink) -> None:
        def on_console(message: ConsoleMessage) -> None:
            sink(ConsoleLogEntry(level=message.type, message=message.text, location=message.location))

        def on_page_error(error: PlaywrightError) -> None:
            sink(ConsoleLogEntry(level="error", message=str(error)))

        self._page.on("console", on_console)
        self._page.on("pageerror", on_page_error)

    @property
    def page(self) -> Page:
        """Get the current page."""
        if self._closed:
            raise DriverError("Driver is closed")
        return self._page

    def _locator(self, selector: str, by: str) -> Locator:
        return self.page.locator(to_playwright_selector(selector, by)).first

    async def _count(self, selector: str, by: str) -> int | None:
        """Number of matching elements, or None when the selector is rejected."""
        try:
            return await self.page.locator(to_playwright_selector(selector, by)).count()
        except PlaywrightError:
            return None

    async def _translate(
        self, error: PlaywrightError, elements: list[tuple[str, str]], timeout_ms: int
    ) -> Exception:
        """Map a Playwright failure on an element action to a grid error.

        ``elements`` lists every (selector, by) pair the action touched. Each
        one is checked separately so the error names the element at fault.
        """
        described = ", ".join(f"{selector} ({by})" for selector, by in elements)
        if any(marker in error.message for marker in _SELECTOR_ERROR_MARKERS):
            rejected = [(s, b) for s, b in elements if await self._count(s, b) is None]
            selector, by = (rejected or elements)[0]
            return InvalidSelector(f"Invalid {by} selector '{selector}': {error.message}")
        if isinstance(error, PlaywrightTimeoutError):
            for selector, by in elements:
                if not await self._count(selector, by):
                    return ElementNotFound(f"Element not found within {timeout_ms}ms: {selector} ({by})")
            return ActionTimeout(f"Timed out after {timeout_ms}ms on element: {described}")
        return DriverError(f"Driver error on {described}: {error.message}")

    async def navigate(self, url: str, wait_until: str, timeout_ms: int) -> dict[str, Any]:
        try:
            response = await self.page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ActionTimeout(f"Navigation to {url} timed out after {timeout_ms}ms") from e
        except PlaywrightError as e:
            raise NavigationError(f"Failed to navigate to {url}: {e.message}") from e
        return {"url": self.page.url, "status": response.status if response else None}

    async def click(
        self,
        selector: str,
        by: str,
        timeout_ms: int,
        button: Literal["left", "right", "middle"] = "left",
        click_count: int = 1,
    ) -> None:
        try:
            locator = self._locator(selector, by)
            if click_count == 2:
                await locator.dblclick(button=button, timeout=timeout_ms)
            else:
                await locator.click(button=button, click_count=click_count, timeout=timeout_ms)
        except PlaywrightError as e:
            raise await self._translate(e, [(selector, by)], timeout_ms) from e

    async def hover(self, selector: str, by: str, timeout_ms: int) -> None:
        try:
            await self._locator(selector, by).hover(timeout=timeout_ms)
        except PlaywrightError as e:
            raise await self._translate(e, [(selector, by)], timeout_ms) from e

    async def type_text(self, selector: str, by: str, text: str, clear: bool, timeout_ms: int) -> None:
        try:
            locator = self._locator(selector, by)
            if clear:
                await locator.fill(text, timeout=timeout_ms)
            else:
                await locator.press_sequentially(text, timeout=timeout_ms)
        except PlaywrightError as e:
            raise await self._translate(e, [(selector, by)], timeout_ms) from e

    async def press(self, selector: str, by: str, key: str, timeout_ms: int) -> None:
        try:
            await self._locator(selector, by).press(key, timeout=timeout_ms)
        except PlaywrightError as e:
            raise await self._translate(e, [(selector, by)], timeout_ms) from e

    async def select_option(
        self,
        selector: str,
        by: str,
        timeout_ms: int,
        value: str | None = None,
        label: str | None = None,
        index: int | None = None,
    ) -> list[str]:
        try:
            return await self._locator(selector, by).select_option(
                value=value,
                label=label,
                index=index,
                timeout=timeout_ms,
            )
        except PlaywrightError as e:
            raise await self._translate(e, [(selector, by)], timeout_ms) from e

    async def drag_and_drop(
        self, selector: str, by: str, target_selector: str, target_by: str, timeout_ms: int
    ) -> None:
        source = self._locator(selector, by)
        target = self._locator(target_selector, target_by)
        try:
            await source.drag_to(target, timeout=timeout_ms)
        except PlaywrightError as e:
            raise await self._translate(e, [(selector, by), (target_selector, target_by)], timeout_ms) from e

    async def element_count(self, selector: str, by: str) -> int:
        try:
            return await self.page.locator(to_playwright_selector(selector, by)).count()
        except PlaywrightError as e:
            raise await self._translate(e, [(selector, by)], 0) from e

    async def list_elements(
        self, selector: str | None, by: str, limit: int, include_hidden: bool
    ) -> list[dict[str, Any]]:
        """Describe matching elements, or the page's interactive elements without a selector."""
        if not selector:
            selector, by = INTERACTIVE_ELEMENTS, "css"
        try:
            return await self.page.locator(to_playwright_selector(selector, by)).evaluate_all(
                _LIST_ELEMENTS_JS, [limit, include_hidden]
            )
        except PlaywrightError as e:
            raise await self._translate(e, [(selector, by)], 0) from e

    async def execute_script(self, script: str, args: list[Any], timeout_ms: int) -> Any:
        # page.evaluate has no timeout of its own; the executor bounds it
        try:
            return await self.page.evaluate(wrap_script(script, args), args)
        except PlaywrightError as e:
            raise ScriptExecutionError(f"Script failed: {e.message}") from e

    async def screenshot(
        self,
        timeout_ms: int,
        path: str | None = None,
        full_page: bool = False,
        selector: str | None = None,
        by: str = "css",
    ) -> bytes:
        try:
            if selector:
                return await self._locator(selector, by).screenshot(path=path, timeout=timeout_ms)
            return await self.page.screenshot(path=path, full_page=full_page, timeout=timeout_ms)
        except PlaywrightError as e:
            if selector:
                raise await self._translate(e, [(selector, by)], timeout_ms) from e
            if isinstance(e, PlaywrightTimeoutError):
                raise ActionTimeout(f"Screenshot timed out after {timeout_ms}ms") from e
            raise DriverError(f"Screenshot failed: {e.message}") from e

    async def wait_for_element(self, selector: str, by: str, state: WaitState, timeout_ms: int) -> None:
        try:
            await self._locator(selector, by).wait_for(state=state, timeout=timeout_ms)
        except PlaywrightError as e:
            raise await self._translate(e, [(selector, by)], timeout_ms) from e

    async def wait_for_url(self, pattern: str, timeout_ms: int) -> str:
        # Glob patterns go to Playwright as-is; anything else is a substring match
        target: str | re.Pattern = pattern if "*" in pattern else re.compile(re.escape(pattern))
        try:
            await self.page.wait_for_url(target, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ActionTimeout(f"URL did not match '{pattern}' within {timeout_ms}ms") from e
        except PlaywrightError as e:
            raise NavigationError(f"Failed waiting for URL '{pattern}': {e.message}") from e
        return self.page.url

    async def get_text(self, selector: str, by: str, timeout_ms: int) -> str:
        try:
            return await self._locator(selector, by).text_content(timeout=timeout_ms) or ""
        except PlaywrightError as e:
            raise await self._translate(e, [(selector, by)], timeout_ms) from e

    async def get_title(self) -> str:
        try:
            return await self.page.title()
        except PlaywrightError as e:
            raise DriverError(f"Failed to get page title: {e.message}") from e

    async def get_url(self) -> str:
        return self.page.url

    async def close(self) -> None:
        """Close context, browser and Playwright; safe to call twice."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._context.close()
            await self._browser.close()
        finally:
            await self._playwright.stop()


async def playwright_driver_factory(
    config: BrowserConfig,
    console_sink: ConsoleSink | None = None,
) -> DriverAdapter:
    """Default :data:`DriverFactory`."""
    logger.debug("Launching %s (headless=%s)", config.browser_type, config.headless)
    return await PlaywrightDriver.launch(config, console_sink)


def encode_screenshot(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
