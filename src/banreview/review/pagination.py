"""
Ban list pagination.

Walks the paginated ban list, evaluates every user not seen on an earlier
page, and persists each page's verdicts before moving on. The loop stops at
the first page it cannot advance past; whatever was written stays on disk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import count
from typing import Dict, List, Set

from banreview.browser.renderer import RenderedPage
from banreview.datatypes.review_datatypes import BanRecord, Verdict
from banreview.reporting.csv_report import ReportWriter
from banreview.review.evaluator import UnbanEvaluator
from banreview.scheduler.concurrency_pool import ConcurrencyPool
from banreview.scheduler.rate_limiter import RateLimiter
from banreview.util.logger import get_logger

logger = get_logger("pagination")

NEXT_PAGE_PATH = ("user-management-pagination", "button.paginate-next-btn")
FIRST_ROW_SELECTOR = 'div[slot^="USERNAME0"]'
PAGE_SETTLE_SECONDS = 2.0

STOP_NO_NEXT_PAGE = "no-next-page"
STOP_LOAD_TIMEOUT = "load-timeout"
STOP_PAGE_LIMIT = "page-limit"
STOP_NAVIGATION_ERROR = "navigation-error"


def row_selectors(index: int) -> dict[str, str]:
    return {
        "username": f'div[slot="USERNAME{index}"] a[href^="/user/"]',
        "reason": f'div[slot="REASON{index}"]',
    }


async def read_ban_rows(page: RenderedPage) -> List[BanRecord]:
    """Read every visible ``(username, reason)`` row of the current list page."""
    rows: List[BanRecord] = []
    for index in count():
        fields = await page.extract_structured(row_selectors(index))
        if fields is None:
            break
        username = fields.get("username", "").strip()
        if username.startswith("u/"):
            username = username[2:]
        if not username:
            logger.debug("Skipping ban row %d without a username", index)
            continue
        rows.append(BanRecord(username=username, raw_reason=fields.get("reason", "")))
    return rows


@dataclass(slots=True)
class PaginationSummary:
    pages: int
    evaluated: int
    recommended: int
    stop_reason: str
    states: Dict[str, int] = field(default_factory=dict)


class PaginationDriver:
    """Drive the ban list page by page through the evaluation pool."""

    def __init__(
        self,
        evaluator: UnbanEvaluator,
        pool: ConcurrencyPool[BanRecord, Verdict],
        writer: ReportWriter,
        rate_limiter: RateLimiter,
        *,
        page_limit: int = 999,
        load_timeout: float = 10.0,
    ) -> None:
        self.evaluator = evaluator
        self.pool = pool
        self.writer = writer
        self.rate_limiter = rate_limiter
        self.page_limit = page_limit
        self.load_timeout = load_timeout

    async def advance(self, page: RenderedPage) -> str | None:
        """Move to the next list page; return a stop reason if that fails."""
        try:
            if not await page.click_control(NEXT_PAGE_PATH):
                return STOP_NO_NEXT_PAGE
            await self.rate_limiter.wait(PAGE_SETTLE_SECONDS)
            if not await page.wait_for(FIRST_ROW_SELECTOR, timeout=self.load_timeout):
                return STOP_LOAD_TIMEOUT
        except Exception as exc:
            logger.warning("Could not advance ban list: %s", exc)
            return STOP_NAVIGATION_ERROR
        return None

    async def run(self, page: RenderedPage) -> PaginationSummary:
        seen: Set[str] = set()
        first_write = True
        page_index = 0
        pages = 0
        evaluated = 0
        recommended = 0
        stop_reason = STOP_PAGE_LIMIT

        while page_index < self.page_limit:
            try:
                rows = await read_ban_rows(page)
            except Exception as exc:
                logger.warning("Could not read ban list page %d: %s", page_index + 1, exc)
                stop_reason = STOP_NAVIGATION_ERROR
                break

            pending: List[BanRecord] = []
            for record in rows:
                if record.username in seen:
                    continue
                seen.add(record.username)
                pending.append(record)

            verdicts = await self.pool.run(
                pending,
                self.evaluator.evaluate_safely,
                label=lambda record: record.username,
            )

            self.writer.write_page(verdicts, append=not first_write)
            first_write = False
            pages += 1
            evaluated += len(verdicts)
            recommended += sum(1 for verdict in verdicts if verdict.unban_recommended)
            logger.info("Page %d: wrote %d users to CSV", page_index + 1, len(verdicts))

            reason = await self.advance(page)
            if reason is not None:
                stop_reason = reason
                break
            page_index += 1

        logger.info("Pagination finished after %d page(s): %s", pages, stop_reason)
        return PaginationSummary(
            pages=pages,
            evaluated=evaluated,
            recommended=recommended,
            stop_reason=stop_reason,
            states=self.evaluator.state_counts(),
        )
