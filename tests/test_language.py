import pytest

from banreview.evidence.language import UNDETERMINED, LanguageClassifier


@pytest.fixture()
def classifier() -> LanguageClassifier:
    return LanguageClassifier("nl")


def test_short_text_is_undetermined(classifier: LanguageClassifier) -> None:
    assert classifier.detect("lol") == UNDETERMINED


def test_text_without_features_is_undetermined(classifier: LanguageClassifier) -> None:
    assert classifier.detect("1234567890 !!! ???") == UNDETERMINED


def test_detects_dutch_and_english(classifier: LanguageClassifier) -> None:
    dutch = "Ik denk dat de gemeente veel te weinig doet aan het onderhoud van de fietspaden in onze stad."
    english = "I think the city council is doing far too little to maintain the bicycle lanes in our town."

    assert classifier.detect(dutch) == "nl"
    assert classifier.detect(english) == "en"


@pytest.mark.parametrize(
    ("code", "expected"),
    [("nl", True), ("NL", True), ("und", True), ("", True), ("en", False), ("de", False)],
)
def test_is_target_language_is_lenient(classifier: LanguageClassifier, code: str, expected: bool) -> None:
    assert classifier.is_target_language(code) is expected
