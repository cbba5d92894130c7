"""
Record types for the ban review pipeline.

Key Features:
- `BanRecord`: one row read from the ban list.
- `EvidenceRecord`: a sampled post/comment or a moderation-log removal.
- `ClassifiedEvidence`: evidence with its detected language attached.
- `ThreadKey`: thread identity parsed from a content URL, used for dedup.
- `Verdict`: the final per-user recommendation written to the reports.

All records are immutable and validate their fields on construction.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence

REDDIT_BASE_URL = "https://www.reddit.com"

THREAD_URL_PATTERN = re.compile(r"comments/([a-z0-9]+)/[^/]+(/[a-z0-9]+)?")

REPORT_HEADER: List[str] = [
    "Username",
    "Ban Reason",
    "Note",
    "Unban",
    "User URL",
    "Checked Content URLs",
    "Content Checks (JSON)",
]

UNRELATED_BAN_NOTE = "Ban unrelated to language rule."
EVALUATION_ERROR_NOTE = "Error during evaluation"


class EvaluationState(Enum):
    """Lifecycle of a single user evaluation."""

    SCREENED_OUT = "screened_out"
    EVIDENCE_GATHERED = "evidence_gathered"
    CLASSIFIED = "classified"
    DECIDED = "decided"


def _require_text(value: object, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string")


def profile_url_for(username: str) -> str:
    return f"{REDDIT_BASE_URL}/user/{username}"


@dataclass(slots=True, frozen=True)
class BanRecord:
    """One banned user as listed on the ban list page.

    Attributes:
        username (str): Reddit username without the ``u/`` prefix.
        raw_reason (str): Moderator-entered ban reason, unmodified.
    """

    username: str
    raw_reason: str

    def __post_init__(self) -> None:
        _require_text(self.username, "username")
        if not isinstance(self.raw_reason, str):
            raise ValueError("raw_reason must be a string")


@dataclass(slots=True, frozen=True)
class EvidenceRecord:
    """A piece of user activity or a modlog removal entry.

    Attributes:
        url (str): Absolute URL of the content (or the log page it came from).
        text (str): Title, comment body, or removed-content excerpt.
        is_modlog_entry (bool): True when sourced from the moderation log.
    """

    url: str
    text: str
    is_modlog_entry: bool = False

    def __post_init__(self) -> None:
        _require_text(self.url, "url")
        _require_text(self.text, "text")


@dataclass(slots=True, frozen=True)
class ClassifiedEvidence:
    """Evidence with the classifier's verdict attached."""

    evidence: EvidenceRecord
    language_code: str
    is_target_language: bool

    @property
    def url(self) -> str:
        return self.evidence.url

    @property
    def text(self) -> str:
        return self.evidence.text

    @property
    def is_modlog_entry(self) -> bool:
        return self.evidence.is_modlog_entry

    def to_payload(self) -> dict:
        """Return the JSON-serialisable shape written to the report."""
        return {
            "url": self.url,
            "sampled_text": self.text,
            "lang_detected": self.language_code,
            "is_target_language": self.is_target_language,
            "is_modlog": self.is_modlog_entry,
        }


@dataclass(slots=True, frozen=True)
class ThreadKey:
    """Thread identity of a content URL.

    A submission URL and a comment URL in the same discussion share a
    ``thread_id``; ``is_comment`` tells the two apart.
    """

    thread_id: str
    is_comment: bool

    @classmethod
    def from_url(cls, url: str) -> ThreadKey | None:
        match = THREAD_URL_PATTERN.search(url)
        if match is None:
            return None
        return cls(thread_id=match.group(1), is_comment=match.group(2) is not None)


@dataclass(slots=True, frozen=True)
class Verdict:
    """Final recommendation for one banned user.

    Attributes:
        username (str): Evaluated user.
        reason (str): Normalised ban reason.
        note (str): Human readable explanation of the decision.
        unban_recommended (bool): Whether the ban should be lifted.
        profile_url (str): Link to the user's profile.
        evidence_urls (str): Checked content URLs joined with ``"; "``.
        evidence_detail (str): JSON array describing every checked record.
    """

    username: str
    reason: str
    note: str
    unban_recommended: bool
    profile_url: str = ""
    evidence_urls: str = ""
    evidence_detail: str = ""

    def __post_init__(self) -> None:
        _require_text(self.username, "username")
        _require_text(self.note, "note")
        if not isinstance(self.unban_recommended, bool):
            raise ValueError("unban_recommended must be a bool")

    @classmethod
    def screened_out(cls, username: str, reason: str) -> Verdict:
        return cls(
            username=username,
            reason=reason,
            note=UNRELATED_BAN_NOTE,
            unban_recommended=False,
            profile_url=profile_url_for(username),
        )

    @classmethod
    def failed(cls, record: BanRecord) -> Verdict:
        return cls(
            username=record.username,
            reason=record.raw_reason,
            note=EVALUATION_ERROR_NOTE,
            unban_recommended=False,
        )

    @classmethod
    def decided(
        cls,
        username: str,
        reason: str,
        note: str,
        unban_recommended: bool,
        evidence: Sequence[ClassifiedEvidence],
    ) -> Verdict:
        return cls(
            username=username,
            reason=reason,
            note=note,
            unban_recommended=unban_recommended,
            profile_url=profile_url_for(username),
            evidence_urls="; ".join(item.url for item in evidence),
            evidence_detail=json.dumps([item.to_payload() for item in evidence], indent=2, ensure_ascii=False),
        )

    def as_row(self) -> List[str]:
        """Return the row in ``REPORT_HEADER`` order."""
        return [
            self.username,
            self.reason,
            self.note,
            "1" if self.unban_recommended else "0",
            self.profile_url,
            self.evidence_urls,
            self.evidence_detail,
        ]
