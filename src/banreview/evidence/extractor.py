"""
Evidence gathering for a single banned user.

Two independent sources are sampled:

1. Community-scoped search results for the user's posts and comments.
2. The moderation log filtered to the user, keeping content removals only.

Pages are rendered by the browser, captured as HTML, and parsed with
BeautifulSoup. Missing page structure yields no evidence rather than an error.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional
from urllib.parse import quote, urljoin

from bs4 import BeautifulSoup

from banreview.browser.renderer import RenderedPage
from banreview.datatypes.review_datatypes import REDDIT_BASE_URL, EvidenceRecord
from banreview.scheduler.front_lock import FrontSurfaceLock
from banreview.scheduler.rate_limiter import RateLimiter
from banreview.util.logger import get_logger

logger = get_logger("evidence_extractor")

CONTENT_KINDS = ("posts", "comments")
REMOVAL_ACTIONS = frozenset({"Remove link", "Remove comment"})

MODLOG_PAGE = "mod-log-page"
USERNAME_FILTER_PATH = (MODLOG_PAGE, "mod-log-username-filter")
FILTER_DONE_PATH = ("mod-log-username-filter", 'faceplate-form button[data-testid="done-btn"]')

RENDER_SETTLE_SECONDS = 2.0
FRONT_SURFACE_SETTLE_SECONDS = 0.1


def _build_record(url: str, text: str, *, is_modlog_entry: bool) -> Optional[EvidenceRecord]:
    try:
        return EvidenceRecord(url=url, text=text, is_modlog_entry=is_modlog_entry)
    except ValueError:
        return None


def parse_search_results(html: str, kind: str) -> List[EvidenceRecord]:
    """Extract ``(url, text)`` evidence from a rendered search results page.

    For posts the text is the link's ``aria-label`` (the title); for comments
    it is the paragraph text of the matched reply.
    """
    soup = BeautifulSoup(html, "html.parser")
    records: List[EvidenceRecord] = []

    for tracker in soup.find_all("search-telemetry-tracker"):
        link = tracker.find("a", href=True)
        if link is None:
            continue

        if kind == "posts":
            labelled = tracker.find("a", attrs={"aria-label": True})
            text = str(labelled.get("aria-label", "")) if labelled else ""
        else:
            text = " ".join(p.get_text(" ", strip=True) for p in tracker.find_all("p"))

        record = _build_record(urljoin(REDDIT_BASE_URL, str(link["href"])), text.strip(), is_modlog_entry=False)
        if record is not None:
            records.append(record)

    return records


def parse_modlog_table(html: str, log_url: str) -> List[EvidenceRecord]:
    """Extract content-removal entries from the moderation log table.

    Column 4 holds the action and column 5 the removed content. When the
    content cell links to the removed item, that link is used as the evidence
    URL; otherwise the log page URL is.
    """
    soup = BeautifulSoup(html, "html.parser")
    records: List[EvidenceRecord] = []

    for row in soup.select("table.mod-log-table tbody tr"):
        cells = row.find_all("td")
        if len(cells) < 5:
            continue

        action = cells[3].get_text(strip=True)
        content_cell = cells[4]
        content = content_cell.get_text(" ", strip=True)
        if action not in REMOVAL_ACTIONS or not content:
            continue

        link = content_cell.find("a", href=True)
        url = urljoin(REDDIT_BASE_URL, str(link["href"])) if link else log_url

        record = _build_record(url, content, is_modlog_entry=True)
        if record is not None:
            records.append(record)

    return records


class EvidenceExtractor:
    """Collect search and moderation-log evidence for banned users."""

    def __init__(
        self,
        subreddit: str,
        front_lock: FrontSurfaceLock,
        rate_limiter: RateLimiter,
        *,
        html_dir: Path | None = None,
    ) -> None:
        self.subreddit = subreddit
        self.front_lock = front_lock
        self.rate_limiter = rate_limiter
        self.html_dir = html_dir

    def search_url(self, username: str, kind: str) -> str:
        return f"{REDDIT_BASE_URL}/r/{self.subreddit}/search/?q=author%3A{quote(username)}&type={kind}"

    def modlog_url(self, username: str) -> str:
        return f"{REDDIT_BASE_URL}/mod/{self.subreddit}/log?pageSize=100&authorUsername={quote(username)}"

    def _snapshot(self, name: str, html: str) -> None:
        if self.html_dir is None:
            return
        try:
            self.html_dir.mkdir(parents=True, exist_ok=True)
            (self.html_dir / name).write_text(html, encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not save snapshot %s: %s", name, exc)

    async def fetch_activity(self, page: RenderedPage, username: str) -> List[EvidenceRecord]:
        collected: List[EvidenceRecord] = []

        for kind in CONTENT_KINDS:
            await page.navigate(self.search_url(username, kind))
            await self.rate_limiter.wait(RENDER_SETTLE_SECONDS)
            html = await page.content()
            self._snapshot(f"debug-{kind}-{username}.html", html)
            found = parse_search_results(html, kind)
            logger.debug("Search %s for %s: %d record(s)", kind, username, len(found))
            collected.extend(found)

        return collected

    async def fetch_modlog(self, page: RenderedPage, username: str) -> List[EvidenceRecord]:
        log_url = self.modlog_url(username)
        await page.navigate(log_url)

        if not await page.wait_for(MODLOG_PAGE, timeout=30.0):
            logger.warning("Mod log page did not render for %s; skipping modlog evidence", username)
            return []

        # The username filter widget only reacts while its tab is in front.
        async with self.front_lock:
            await page.bring_to_front()
            await self.rate_limiter.wait(FRONT_SURFACE_SETTLE_SECONDS)
            opened = await page.click_control(USERNAME_FILTER_PATH)
            if opened:
                await page.click_control(FILTER_DONE_PATH)

        if not opened:
            logger.warning("Mod log username filter missing for %s; skipping modlog evidence", username)
            return []

        await self.rate_limiter.wait(RENDER_SETTLE_SECONDS)
        html = await page.content()
        self._snapshot(f"debug-modlog-{username}.html", html)
        entries = parse_modlog_table(html, log_url)
        logger.debug("Mod log for %s: %d removal(s)", username, len(entries))
        return entries
