"""
Per-user unban evaluation.

Each banned user moves through ``SCREENED_OUT`` (terminal) or
``EVIDENCE_GATHERED`` -> ``CLASSIFIED`` -> ``DECIDED``. The decision is a pure
function of the deduplicated evidence: recommend an unban when there is too
little activity to judge, or when enough of it is in the target language.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Sequence

from banreview.browser.renderer import Renderer
from banreview.datatypes.review_datatypes import (
    BanRecord,
    ClassifiedEvidence,
    EvaluationState,
    EvidenceRecord,
    ThreadKey,
    Verdict,
)
from banreview.evidence.extractor import FRONT_SURFACE_SETTLE_SECONDS, EvidenceExtractor
from banreview.evidence.language import LanguageClassifier
from banreview.scheduler.front_lock import FrontSurfaceLock
from banreview.scheduler.rate_limiter import RateLimiter
from banreview.util.logger import get_logger

logger = get_logger("unban_evaluator")

_NEWLINE_RUN = re.compile(r"\s*\n\s*")


def normalize_reason(raw_reason: str) -> str:
    """Collapse multi-line ban reasons into a single line."""
    return _NEWLINE_RUN.sub(" ", raw_reason).strip()


def mentions_policy(reason: str, policy_phrase: str) -> bool:
    return policy_phrase.lower() in reason.lower()


def deduplicate(
    activity: Sequence[ClassifiedEvidence],
    modlog: Sequence[ClassifiedEvidence],
) -> List[ClassifiedEvidence]:
    """Collapse activity to one record per thread, then merge modlog by URL.

    Within a thread the comment variant wins over the submission. Activity
    whose URL carries no thread id is dropped. Modlog entries skip the thread
    pass; on an exact URL collision the later record replaces the earlier one
    in place.
    """
    by_thread: Dict[str, tuple[ThreadKey, ClassifiedEvidence]] = {}
    for item in activity:
        key = ThreadKey.from_url(item.url)
        if key is None:
            continue
        existing = by_thread.get(key.thread_id)
        if existing is None or (not existing[0].is_comment and key.is_comment):
            by_thread[key.thread_id] = (key, item)

    by_url: Dict[str, ClassifiedEvidence] = {}
    for item in [entry for _, entry in by_thread.values()] + list(modlog):
        by_url[item.url] = item
    return list(by_url.values())


def target_language_ratio(evidence: Sequence[ClassifiedEvidence]) -> float:
    """Percentage of records in the target language; 0 for no evidence."""
    if not evidence:
        return 0.0
    matches = sum(1 for item in evidence if item.is_target_language)
    return matches / len(evidence) * 100


def should_unban(total: int, ratio: float, *, min_evidence: int = 5, ratio_threshold: float = 70.0) -> bool:
    return total < min_evidence or ratio >= ratio_threshold


@dataclass(slots=True)
class DecisionPolicy:
    """Thresholds and wording of the unban decision."""

    policy_phrase: str
    language_name: str = "Dutch"
    min_evidence: int = 5
    ratio_threshold: float = 70.0

    def note_for(self, total: int, ratio: float) -> str:
        if total < self.min_evidence:
            return "Low activity; unban recommended."
        if ratio >= self.ratio_threshold:
            return f"{self.ratio_threshold:g}%+ {self.language_name} activity; unban recommended."
        return f"Mostly non-{self.language_name} activity; keep ban."

    def recommend(self, total: int, ratio: float) -> bool:
        return should_unban(total, ratio, min_evidence=self.min_evidence, ratio_threshold=self.ratio_threshold)


class UnbanEvaluator:
    """Turn a `BanRecord` into a `Verdict` using live evidence."""

    def __init__(
        self,
        renderer: Renderer,
        extractor: EvidenceExtractor,
        classifier: LanguageClassifier,
        policy: DecisionPolicy,
        front_lock: FrontSurfaceLock,
        rate_limiter: RateLimiter,
    ) -> None:
        self.renderer = renderer
        self.extractor = extractor
        self.classifier = classifier
        self.policy = policy
        self.front_lock = front_lock
        self.rate_limiter = rate_limiter
        self.states: Dict[str, EvaluationState] = {}

    def _enter(self, username: str, state: EvaluationState) -> None:
        self.states[username] = state
        logger.debug("%s -> %s", username, state.value)

    def state_counts(self) -> Dict[str, int]:
        """Number of users whose evaluation last reached each state."""
        return dict(Counter(state.value for state in self.states.values()))

    def classify(self, records: Sequence[EvidenceRecord]) -> List[ClassifiedEvidence]:
        classified: List[ClassifiedEvidence] = []
        for record in records:
            code = self.classifier.detect(record.text)
            classified.append(
                ClassifiedEvidence(
                    evidence=record,
                    language_code=code,
                    is_target_language=self.classifier.is_target_language(code),
                )
            )
        return classified

    async def evaluate(self, record: BanRecord) -> Verdict:
        """Gather, classify and decide for one user; raises on browser failure."""
        username = record.username

        # Opening a tab steals focus, so page creation shares the front lock.
        async with self.front_lock:
            page = await self.renderer.new_page()
            await self.rate_limiter.wait(FRONT_SURFACE_SETTLE_SECONDS)

        try:
            reason = normalize_reason(record.raw_reason)
            if not mentions_policy(reason, self.policy.policy_phrase):
                self._enter(username, EvaluationState.SCREENED_OUT)
                return Verdict.screened_out(username, reason)

            activity = await self.extractor.fetch_activity(page, username)
            modlog = await self.extractor.fetch_modlog(page, username)
            self._enter(username, EvaluationState.EVIDENCE_GATHERED)

            classified_activity = self.classify(activity)
            classified_modlog = self.classify(modlog)
            self._enter(username, EvaluationState.CLASSIFIED)

            evidence = deduplicate(classified_activity, classified_modlog)
            total = len(evidence)
            ratio = target_language_ratio(evidence)

            note = self.policy.note_for(total, ratio)
            if modlog:
                note += f" | ModLog mentions: {len(modlog)}"

            verdict = Verdict.decided(
                username=username,
                reason=reason,
                note=note,
                unban_recommended=self.policy.recommend(total, ratio),
                evidence=evidence,
            )
            self._enter(username, EvaluationState.DECIDED)
            logger.debug("%s: %d record(s), %.1f%% %s", username, total, ratio, self.policy.language_name)
            return verdict
        finally:
            await page.close()

    async def evaluate_safely(self, record: BanRecord) -> Verdict:
        """Evaluate one user, substituting a failure verdict on any error."""
        try:
            verdict = await self.evaluate(record)
        except Exception as exc:
            logger.error("Error evaluating %s: %s", record.username, exc, exc_info=True)
            return Verdict.failed(record)

        logger.info("Evaluated: %s, Unban: %d", verdict.username, int(verdict.unban_recommended))
        return verdict
