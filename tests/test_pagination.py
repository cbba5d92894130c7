import csv
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest

from banreview.datatypes.review_datatypes import BanRecord, EvidenceRecord
from banreview.reporting.csv_report import ReportWriter
from banreview.review.evaluator import DecisionPolicy, UnbanEvaluator
from banreview.review.pagination import (
    FIRST_ROW_SELECTOR,
    NEXT_PAGE_PATH,
    STOP_LOAD_TIMEOUT,
    STOP_NAVIGATION_ERROR,
    STOP_NO_NEXT_PAGE,
    STOP_PAGE_LIMIT,
    PaginationDriver,
    read_ban_rows,
)
from banreview.scheduler.concurrency_pool import ConcurrencyPool
from banreview.scheduler.front_lock import FrontSurfaceLock
from fakes import FakePage, FakeRenderer, PrefixClassifier, instant_rate_limiter

POLICY = "de voertaal is Nederlands"


class FakeBanListPage(FakePage):
    """Ban list with several pages of ``(username, reason)`` rows."""

    def __init__(self, pages: List[List[tuple[str, str]]], *, loads: bool = True) -> None:
        super().__init__()
        self.pages = pages
        self.index = 0
        self.loads = loads

    async def extract_structured(self, selector_spec: Mapping[str, str]) -> Optional[Dict[str, str]]:
        rows = self.pages[self.index]
        row_index = int(selector_spec["reason"].split("REASON")[1].split('"')[0])
        if row_index >= len(rows):
            return None
        username, reason = rows[row_index]
        return {"username": f"u/{username}", "reason": reason}

    async def click_control(self, path: Sequence[str]) -> bool:
        if tuple(path) != tuple(NEXT_PAGE_PATH) or self.index + 1 >= len(self.pages):
            return False
        self.index += 1
        self.clicked.append(tuple(path))
        return True

    async def wait_for(self, selector: str, timeout: float) -> bool:
        return self.loads and selector == FIRST_ROW_SELECTOR


def thread_url(thread: str) -> str:
    return f"https://www.reddit.com/r/nederlands/comments/{thread}/title/"


EVIDENCE: Dict[str, List[EvidenceRecord]] = {
    "bob": [EvidenceRecord(thread_url(f"b{i}"), "en:english post") for i in range(3)],
    "carol": [
        EvidenceRecord(thread_url(f"c{i}"), ("nl:" if i < 8 else "en:") + "bericht") for i in range(10)
    ],
    "dave": [EvidenceRecord(thread_url(f"d{i}"), "en:english") for i in range(6)],
}


def build_driver(result_dir: Path, *, page_limit: int = 999) -> tuple[PaginationDriver, MagicMock]:
    extractor = MagicMock()
    extractor.fetch_activity = AsyncMock(side_effect=lambda page, user: list(EVIDENCE.get(user, [])))
    extractor.fetch_modlog = AsyncMock(return_value=[])
    limiter = instant_rate_limiter()
    evaluator = UnbanEvaluator(
        FakeRenderer(),
        extractor,
        PrefixClassifier("nl"),
        DecisionPolicy(policy_phrase=POLICY),
        FrontSurfaceLock(),
        limiter,
    )
    driver = PaginationDriver(
        evaluator,
        ConcurrencyPool(20, limiter),
        ReportWriter(result_dir),
        limiter,
        page_limit=page_limit,
    )
    return driver, extractor


def read_rows(path: Path) -> List[List[str]]:
    with path.open(newline="", encoding="utf-8") as handle:
        return list(csv.reader(handle))


@pytest.mark.asyncio
async def test_read_ban_rows_strips_user_prefix() -> None:
    page = FakeBanListPage([[("alice", "Spam"), ("bob", POLICY)]])

    rows = await read_ban_rows(page)

    assert rows == [BanRecord("alice", "Spam"), BanRecord("bob", POLICY)]


@pytest.mark.asyncio
async def test_end_to_end_three_users(tmp_path: Path) -> None:
    driver, _ = build_driver(tmp_path)
    page = FakeBanListPage(
        [[("alice", "Spam en reclame"), ("bob", f"Regel 1: {POLICY}"), ("carol", POLICY.upper())]]
    )

    summary = await driver.run(page)

    full = read_rows(tmp_path / "language_ban_review.csv")
    unban = read_rows(tmp_path / "unban_only.csv")
    assert full[0][0] == "Username"
    assert [row[0] for row in full[1:]] == ["alice", "bob", "carol"]
    assert [row[3] for row in full[1:]] == ["0", "1", "1"]
    assert sorted(row[0] for row in unban[1:]) == ["bob", "carol"]
    assert summary.evaluated == 3
    assert summary.recommended == 2
    assert summary.stop_reason == STOP_NO_NEXT_PAGE


@pytest.mark.asyncio
async def test_users_repeated_across_pages_are_evaluated_once(tmp_path: Path) -> None:
    driver, extractor = build_driver(tmp_path)
    page = FakeBanListPage(
        [
            [("bob", POLICY), ("dave", POLICY)],
            [("dave", POLICY), ("carol", POLICY)],
        ]
    )

    summary = await driver.run(page)

    full = read_rows(tmp_path / "language_ban_review.csv")
    assert [row[0] for row in full] == ["Username", "bob", "dave", "carol"]
    unban = read_rows(tmp_path / "unban_only.csv")
    assert [row[0] for row in unban] == ["Username", "bob", "carol"]
    assert extractor.fetch_activity.await_count == 3
    assert summary.pages == 2


@pytest.mark.asyncio
async def test_load_timeout_stops_pagination(tmp_path: Path) -> None:
    driver, _ = build_driver(tmp_path)
    page = FakeBanListPage([[("bob", POLICY)], [("carol", POLICY)]], loads=False)

    summary = await driver.run(page)

    assert summary.stop_reason == STOP_LOAD_TIMEOUT
    assert summary.pages == 1


@pytest.mark.asyncio
async def test_page_limit_stops_pagination(tmp_path: Path) -> None:
    driver, _ = build_driver(tmp_path, page_limit=1)
    page = FakeBanListPage([[("bob", POLICY)], [("carol", POLICY)]])

    summary = await driver.run(page)

    assert summary.stop_reason == STOP_PAGE_LIMIT
    assert summary.pages == 1


@pytest.mark.asyncio
async def test_navigation_error_keeps_written_results(tmp_path: Path) -> None:
    driver, _ = build_driver(tmp_path)
    page = FakeBanListPage([[("bob", POLICY)], [("carol", POLICY)]])
    page.click_control = AsyncMock(side_effect=RuntimeError("target closed"))  # type: ignore[method-assign]

    summary = await driver.run(page)

    assert summary.stop_reason == STOP_NAVIGATION_ERROR
    assert [row[0] for row in read_rows(tmp_path / "language_ban_review.csv")] == ["Username", "bob"]


@pytest.mark.asyncio
async def test_failed_evaluation_is_reported_not_raised(tmp_path: Path) -> None:
    driver, extractor = build_driver(tmp_path)
    extractor.fetch_modlog.side_effect = RuntimeError("mod log exploded")
    page = FakeBanListPage([[("alice", "Spam"), ("bob", POLICY)]])

    summary = await driver.run(page)

    full = read_rows(tmp_path / "language_ban_review.csv")
    assert full[2][0] == "bob"
    assert full[2][2] == "Error during evaluation"
    assert full[2][3] == "0"
    assert summary.evaluated == 2


class BrokenSecondPage(FakeBanListPage):
    async def extract_structured(self, selector_spec: Mapping[str, str]) -> Optional[Dict[str, str]]:
        if self.index == 1:
            raise RuntimeError("Execution context was destroyed")
        return await super().extract_structured(selector_spec)


@pytest.mark.asyncio
async def test_unreadable_next_page_ends_run_with_summary(tmp_path: Path) -> None:
    driver, _ = build_driver(tmp_path)
    page = BrokenSecondPage([[("bob", POLICY)], [("carol", POLICY)]])

    summary = await driver.run(page)

    assert summary.stop_reason == STOP_NAVIGATION_ERROR
    assert summary.pages == 1
    assert summary.evaluated == 1
    assert [row[0] for row in read_rows(tmp_path / "language_ban_review.csv")] == ["Username", "bob"]


@pytest.mark.asyncio
async def test_summary_counts_users_by_evaluation_state(tmp_path: Path) -> None:
    driver, extractor = build_driver(tmp_path)

    def modlog_for(page, user):
        if user == "dave":
            raise RuntimeError("mod log exploded")
        return []

    extractor.fetch_modlog.side_effect = modlog_for
    page = FakeBanListPage([[("alice", "Spam"), ("bob", POLICY), ("carol", POLICY), ("dave", POLICY)]])

    summary = await driver.run(page)

    # dave failed before his evidence was gathered, so he never reached a state.
    assert summary.states == {"screened_out": 1, "decided": 2}
