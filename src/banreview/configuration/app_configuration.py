from __future__ import annotations
from pathlib import Path
import fcntl
import os
from typing import Any, Dict
import yaml

from banreview.util.logger import get_logger

logger = get_logger("app_configuration")


DEFAULT_CONFIG_PATH = Path("./config/app_config.yml")


def resolve_config_path() -> Path:
    """Return the config path, honouring the ``BANREVIEW_CONFIG`` override."""
    return Path(os.getenv("BANREVIEW_CONFIG", str(DEFAULT_CONFIG_PATH))).resolve()


class BrowserSettings:
    """Typed accessors for the ``browser:`` section."""

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    @property
    def headless(self) -> bool:
        return bool(self.data.get("headless", False))

    @property
    def user_agent(self) -> str:
        return str(self.data.get("user_agent") or (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
        ))

    @property
    def cookies_file(self) -> Path:
        return Path(self.data.get("cookies_file", "cookies.json"))

    @property
    def pagination_timeout_seconds(self) -> float:
        return float(self.data.get("pagination_timeout_seconds", 10.0))


class ReviewSettings:
    """Typed accessors for the ``review:`` section (pacing and decision rules)."""

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    @property
    def page_limit(self) -> int:
        return int(self.data.get("page_limit", 999))

    @property
    def concurrency_limit(self) -> int:
        return int(self.data.get("concurrency_limit", 20))

    @property
    def min_delay(self) -> float:
        """Lower bound of the random jitter, in seconds."""
        return float(self.data.get("min_delay", 0.020))

    @property
    def max_delay(self) -> float:
        """Upper bound of the random jitter, in seconds."""
        return float(self.data.get("max_delay", 0.050))

    @property
    def min_evidence(self) -> int:
        return int(self.data.get("min_evidence", 5))

    @property
    def ratio_threshold(self) -> float:
        return float(self.data.get("ratio_threshold", 70.0))

    @property
    def min_text_length(self) -> int:
        return int(self.data.get("min_text_length", 10))


class AppConfig:
    """File-lock based accessor around the YAML run configuration.

    Caches the contents of ``config/app_config.yml`` and exposes typed
    properties for every knob the review run needs. Missing keys fall back
    to the defaults used against r/nederlands.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # Target community and policy
    # --------------------------
    @property
    def subreddit(self) -> str:
        return str(self._data.get("subreddit") or "nederlands")

    @property
    def target_reason(self) -> str:
        """Policy phrase a ban reason must contain to be reviewed."""
        return str(self._data.get("target_reason") or "de voertaal is Nederlands")

    @property
    def target_language(self) -> str:
        """Language code returned by the classifier for the target language."""
        return str(self._data.get("target_language") or "nl")

    @property
    def target_language_name(self) -> str:
        return str(self._data.get("target_language_name") or "Dutch")

    @property
    def banlist_url(self) -> str:
        value = self._data.get("banlist_url")
        if value:
            return str(value)
        return f"https://www.reddit.com/mod/{self.subreddit}/banned?pageSize=100"

    # --------------------------
    # Output locations
    # --------------------------
    @property
    def result_dir(self) -> Path:
        return Path(self._data.get("result_dir", "result"))

    @property
    def html_dir(self) -> Path:
        return Path(self._data.get("html_dir", "scrape_html"))

    @property
    def save_html_snapshots(self) -> bool:
        return bool(self._data.get("save_html_snapshots", True))

    # --------------------------
    # Sections
    # --------------------------
    @property
    def browser(self) -> BrowserSettings:
        section = self._data.get("browser", {})
        return BrowserSettings(section if isinstance(section, dict) else {})

    @property
    def review(self) -> ReviewSettings:
        section = self._data.get("review", {})
        return ReviewSettings(section if isinstance(section, dict) else {})

    # Shortcuts used across the run
    @property
    def page_limit(self) -> int:
        return self.review.page_limit

    @property
    def concurrency_limit(self) -> int:
        return self.review.concurrency_limit

    @property
    def min_delay(self) -> float:
        return self.review.min_delay

    @property
    def max_delay(self) -> float:
        return self.review.max_delay

    @property
    def min_evidence(self) -> int:
        return self.review.min_evidence

    @property
    def ratio_threshold(self) -> float:
        return self.review.ratio_threshold

    @property
    def min_text_length(self) -> int:
        return self.review.min_text_length

    @property
    def cookies_file(self) -> Path:
        return self.browser.cookies_file

    @property
    def user_agent(self) -> str:
        return self.browser.user_agent

    @property
    def headless(self) -> bool:
        return self.browser.headless

    @property
    def pagination_timeout_seconds(self) -> float:
        return self.browser.pagination_timeout_seconds
