"""Session reuse via a saved cookie file, with manual login as the fallback."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from pathlib import Path

from playwright.async_api import Error as PlaywrightError
from prompt_toolkit.shortcuts import PromptSession

from banreview.browser.renderer import RenderedPage, Renderer
from banreview.datatypes.review_datatypes import REDDIT_BASE_URL
from banreview.util.logger import get_logger

logger = get_logger("session")

LOGIN_URL = f"{REDDIT_BASE_URL}/login"
LOGGED_OUT_MARKER = 'a[href*="/login"]'

LOGIN_PROMPT = (
    "\nPlease log in manually in the browser.\n"
    "Press ENTER in this terminal once you are fully logged in.\n"
)


async def prompt_operator(message: str) -> str:
    """Block on a line of operator input without freezing the event loop."""
    session: PromptSession[str] = PromptSession()
    return await session.prompt_async(message)


class SessionManager:
    """Restore a logged-in session or walk the operator through a manual login."""

    def __init__(
        self,
        renderer: Renderer,
        cookies_file: Path,
        *,
        prompt: Callable[[str], Awaitable[str]] = prompt_operator,
    ) -> None:
        self.renderer = renderer
        self.cookies_file = cookies_file
        self.prompt = prompt

    async def try_reuse(self, page: RenderedPage) -> bool:
        """Load saved cookies and report whether the home page shows us logged in."""
        if not self.cookies_file.exists():
            logger.info("No cookies file. Manual login required.")
            return False

        try:
            cookies = json.loads(self.cookies_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not read %s: %s. Manual login required.", self.cookies_file, exc)
            return False

        if not isinstance(cookies, list):
            logger.warning("Cookies file %s is not a list. Manual login required.", self.cookies_file)
            return False

        try:
            await self.renderer.add_cookies(cookies)
        except (PlaywrightError, ValueError, TypeError) as exc:
            logger.warning("Browser rejected cookies from %s: %s. Manual login required.", self.cookies_file, exc)
            return False

        await page.navigate(f"{REDDIT_BASE_URL}/")

        if await page.has_element(LOGGED_OUT_MARKER):
            logger.warning("Cookies found but not valid. Manual login required.")
            return False

        logger.info("Reused session via cookies (already logged in).")
        return True

    async def manual_login(self, page: RenderedPage) -> None:
        await page.navigate(LOGIN_URL)
        await self.prompt(LOGIN_PROMPT)

        cookies = await self.renderer.cookies()
        self.cookies_file.parent.mkdir(parents=True, exist_ok=True)
        self.cookies_file.write_text(json.dumps(cookies, indent=2), encoding="utf-8")
        logger.info("Cookies saved. Continuing...")

    async def ensure_logged_in(self, page: RenderedPage) -> None:
        if await self.try_reuse(page):
            return
        await self.manual_login(page)
