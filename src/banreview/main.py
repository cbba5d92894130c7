"""
Language-Ban Review
===================

One-off run that logs into Reddit, walks a subreddit's ban list, and writes a
full review report plus an unban-only report for bans issued under the
language rule.
"""

import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from banreview.browser.renderer import launch_renderer
from banreview.browser.session import SessionManager
from banreview.configuration.app_configuration import AppConfig, resolve_config_path
from banreview.evidence.extractor import EvidenceExtractor
from banreview.evidence.language import LanguageClassifier
from banreview.reporting.csv_report import ReportWriter
from banreview.review.evaluator import DecisionPolicy, UnbanEvaluator
from banreview.review.pagination import PaginationDriver, PaginationSummary
from banreview.scheduler.concurrency_pool import ConcurrencyPool
from banreview.scheduler.front_lock import FrontSurfaceLock
from banreview.scheduler.rate_limiter import RateLimiter
from banreview.util.logger import get_log_filepath, get_logger, handle_exception, set_log_filepath

logger = get_logger("main")


def resolve_base_dir() -> Path:
    """Determine the directory the run reads config from and writes results to.

    Resolution order:
    1. BANREVIEW_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, the project root (two levels above this package).
    """
    if env_home := os.getenv("BANREVIEW_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


def prepare_outputs(config: AppConfig) -> ReportWriter:
    """Clear stale reports and point the run log into the result directory."""
    writer = ReportWriter(config.result_dir)
    writer.reset()
    set_log_filepath(writer.run_log_path)
    return writer


async def review_ban_list(config: AppConfig, writer: ReportWriter) -> PaginationSummary:
    """Open the browser, restore the session and review every ban list page."""
    rate_limiter = RateLimiter(config.min_delay, config.max_delay)
    front_lock = FrontSurfaceLock()

    async with launch_renderer(headless=config.headless, user_agent=config.user_agent) as renderer:
        list_page = await renderer.new_page()
        await SessionManager(renderer, config.cookies_file).ensure_logged_in(list_page)
        await list_page.navigate(config.banlist_url)

        extractor = EvidenceExtractor(
            config.subreddit,
            front_lock,
            rate_limiter,
            html_dir=config.html_dir if config.save_html_snapshots else None,
        )
        evaluator = UnbanEvaluator(
            renderer,
            extractor,
            LanguageClassifier(config.target_language, min_text_length=config.min_text_length),
            DecisionPolicy(
                policy_phrase=config.target_reason,
                language_name=config.target_language_name,
                min_evidence=config.min_evidence,
                ratio_threshold=config.ratio_threshold,
            ),
            front_lock,
            rate_limiter,
        )
        driver = PaginationDriver(
            evaluator,
            ConcurrencyPool(config.concurrency_limit, rate_limiter),
            writer,
            rate_limiter,
            page_limit=config.page_limit,
            load_timeout=config.pagination_timeout_seconds,
        )
        return await driver.run(list_page)


async def async_main() -> int:
    load_dotenv(dotenv_path=Path.cwd() / ".env")
    config = AppConfig(resolve_config_path())
    writer = prepare_outputs(config)

    logger.info("Reviewing language bans on r/%s", config.subreddit)
    summary = await review_ban_list(config, writer)
    logger.info(
        "Done! %d user(s) over %d page(s), %d recommended for unban (stopped: %s).",
        summary.evaluated,
        summary.pages,
        summary.recommended,
        summary.stop_reason,
    )
    if summary.states:
        logger.info(
            "Evaluation outcomes: %s",
            ", ".join(f"{state}={count}" for state, count in sorted(summary.states.items())),
        )
    logger.info("Reports: %s, %s", writer.full_report_path, writer.unban_report_path)
    return 0


def main() -> int:
    """Entrypoint that runs the review and returns the process exit code."""
    os.chdir(resolve_base_dir())
    # File handlers built at import time resolved the log path against the launch directory.
    set_log_filepath(get_log_filepath())
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Review interrupted by user.")
        return 0
    except Exception as exc:
        logger.critical("An unexpected error occurred during the review: %s", exc, exc_info=True)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
