"""Language detection for sampled user activity."""

from __future__ import annotations

from langdetect import DetectorFactory, detect
from langdetect.lang_detect_exception import LangDetectException

from banreview.util.logger import get_logger

logger = get_logger("language")

UNDETERMINED = "und"

# langdetect is probabilistic; a fixed seed keeps verdicts reproducible.
DetectorFactory.seed = 0


class LanguageClassifier:
    """Map free text to a language code, treating undetermined text leniently.

    Text that cannot be classified (too short, no usable features) counts as
    the target language. This errs toward recommending an unban, never toward
    keeping one.
    """

    def __init__(self, target_language: str, *, min_text_length: int = 10) -> None:
        self.target_language = target_language.lower()
        self.min_text_length = min_text_length

    def detect(self, text: str) -> str:
        stripped = text.strip()
        if len(stripped) < self.min_text_length:
            return UNDETERMINED
        try:
            return detect(stripped)
        except LangDetectException as exc:
            logger.debug("Language undetermined for %r: %s", stripped[:40], exc)
            return UNDETERMINED

    def is_target_language(self, language_code: str) -> bool:
        code = (language_code or "").strip().lower()
        return code in (self.target_language, UNDETERMINED, "")
