"""
Browser capability used by the review pipeline.

The core only depends on the `Renderer` / `RenderedPage` protocols; the
Playwright-backed implementation lives here too but is never imported by the
evaluator, extractor, or pagination code directly.

Selectors in a control path are chained locators, so each step searches
inside the previous element, including its open shadow root.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol

from playwright.async_api import Browser, BrowserContext, Locator, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from banreview.util.logger import get_logger

logger = get_logger("renderer")

# Fields accepted by BrowserContext.add_cookies.
COOKIE_FIELDS = ("name", "value", "url", "domain", "path", "expires", "httpOnly", "secure", "sameSite")


class RenderedPage(Protocol):
    async def navigate(self, url: str) -> None: ...

    async def content(self) -> str: ...

    async def extract_structured(self, selector_spec: Mapping[str, str]) -> Optional[Dict[str, str]]: ...

    async def click_control(self, path: Sequence[str]) -> bool: ...

    async def has_element(self, selector: str) -> bool: ...

    async def wait_for(self, selector: str, timeout: float) -> bool: ...

    async def bring_to_front(self) -> None: ...

    async def close(self) -> None: ...


class Renderer(Protocol):
    async def new_page(self) -> RenderedPage: ...

    async def add_cookies(self, cookies: Sequence[Mapping[str, Any]]) -> None: ...

    async def cookies(self) -> List[Dict[str, Any]]: ...

    async def close(self) -> None: ...


def sanitize_cookies(cookies: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Drop keys Playwright rejects (e.g. ``size``/``session`` from other tools)."""
    cleaned: List[Dict[str, Any]] = []
    for cookie in cookies:
        if not isinstance(cookie, Mapping):
            logger.debug("Skipping cookie entry that is not an object: %r", cookie)
            continue
        if not cookie.get("name") or "value" not in cookie:
            continue
        cleaned.append({key: cookie[key] for key in COOKIE_FIELDS if key in cookie})
    return cleaned


class PlaywrightPage:
    """`RenderedPage` backed by a Playwright page."""

    def __init__(self, page: Page) -> None:
        self.page = page

    async def navigate(self, url: str) -> None:
        await self.page.goto(url, wait_until="domcontentloaded")

    async def content(self) -> str:
        return await self.page.content()

    async def extract_structured(self, selector_spec: Mapping[str, str]) -> Optional[Dict[str, str]]:
        """Return the inner text of each selector, or None if any is missing."""
        fields: Dict[str, str] = {}
        for field_name, selector in selector_spec.items():
            locator = self.page.locator(selector).first
            if await locator.count() == 0:
                return None
            fields[field_name] = (await locator.inner_text()).strip()
        return fields

    def _resolve(self, path: Sequence[str]) -> Locator:
        if not path:
            raise ValueError("control path must contain at least one selector")
        locator = self.page.locator(path[0])
        for selector in path[1:]:
            locator = locator.locator(selector)
        return locator.first

    async def click_control(self, path: Sequence[str]) -> bool:
        locator = self._resolve(path)
        if await locator.count() == 0:
            logger.debug("Control %s not found", " >> ".join(path))
            return False
        if await locator.is_disabled():
            logger.debug("Control %s is disabled", " >> ".join(path))
            return False
        await locator.click()
        return True

    async def has_element(self, selector: str) -> bool:
        return await self.page.locator(selector).count() > 0

    async def wait_for(self, selector: str, timeout: float) -> bool:
        try:
            await self.page.wait_for_selector(selector, state="visible", timeout=timeout * 1000)
        except PlaywrightTimeoutError:
            return False
        return True

    async def bring_to_front(self) -> None:
        await self.page.bring_to_front()

    async def close(self) -> None:
        try:
            await self.page.close()
        except PlaywrightError as exc:
            logger.warning("Failed to close page: %s", exc)


class PlaywrightRenderer:
    """`Renderer` backed by one Chromium browser context."""

    def __init__(self, playwright: Playwright, browser: Browser, context: BrowserContext) -> None:
        self.playwright = playwright
        self.browser = browser
        self.context = context

    @classmethod
    async def launch(cls, *, headless: bool = False, user_agent: str | None = None) -> PlaywrightRenderer:
        playwright = await async_playwright().start()
        browser = await playwright.chromium.launch(headless=headless, args=["--start-maximized"])
        context_args: Dict[str, Any] = {"no_viewport": True}
        if user_agent:
            context_args["user_agent"] = user_agent
        context = await browser.new_context(**context_args)
        logger.info("Launched Chromium (headless=%s)", headless)
        return cls(playwright, browser, context)

    async def new_page(self) -> PlaywrightPage:
        return PlaywrightPage(await self.context.new_page())

    async def add_cookies(self, cookies: Sequence[Mapping[str, Any]]) -> None:
        await self.context.add_cookies(sanitize_cookies(cookies))  # type: ignore[arg-type]

    async def cookies(self) -> List[Dict[str, Any]]:
        return [dict(cookie) for cookie in await self.context.cookies()]

    async def close(self) -> None:
        try:
            await self.context.close()
            await self.browser.close()
        finally:
            await self.playwright.stop()


@asynccontextmanager
async def launch_renderer(*, headless: bool = False, user_agent: str | None = None) -> AsyncIterator[PlaywrightRenderer]:
    """Launch a browser for the duration of the ``async with`` block."""
    renderer = await PlaywrightRenderer.launch(headless=headless, user_agent=user_agent)
    try:
        yield renderer
    finally:
        await renderer.close()
        logger.info("Browser closed.")
