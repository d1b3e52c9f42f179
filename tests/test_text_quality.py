import pytest

from reviewflow.services.text_quality import (
    GIBBERISH_MESSAGE,
    get_text_improvement_suggestions,
    has_meaningful_content,
    is_gibberish,
    validate_review_text,
)


def test_keyboard_mashing_is_rejected():
    result = validate_review_text("asdfgh jklqwe")

    assert result.is_valid is False
    assert GIBBERISH_MESSAGE in result.errors


def test_plain_sentence_is_accepted():
    result = validate_review_text("I really loved the food and service here today")

    assert result.is_valid is True
    assert result.errors == []


def test_short_repetition_is_rejected():
    result = validate_review_text("aaaaa")

    assert result.is_valid is False
    assert "Review must be at least 10 characters long" in result.errors
    assert GIBBERISH_MESSAGE in result.errors


def test_typical_review_is_accepted():
    assert validate_review_text("Excellent service, friendly staff, will return").is_valid


def test_text_is_trimmed_before_length_check():
    result = validate_review_text("   good food here   ")

    assert result.is_valid is True


def test_single_word_is_rejected():
    result = validate_review_text("Fantastically")

    assert result.errors == ["Review must contain at least 2 words"]


def test_overlong_text_is_rejected():
    result = validate_review_text("great food " * 600)

    assert "Review must not exceed 5000 characters" in result.errors


@pytest.mark.parametrize("text", ["", "   ", None, 42])
def test_missing_text_is_rejected(text):
    result = validate_review_text(text)

    assert result.is_valid is False
    assert result.errors == ["Text is required and must be a string"]


@pytest.mark.parametrize("text", [
    "good!!?? food##@@",
    "the service was greaaaat",
    "wow qwerty place",
    "bought abcdefgh123 today",
    "nice place ;;; really",
    "brrrr cold room",
])
def test_gibberish_patterns(text):
    assert is_gibberish(text) is True


def test_mostly_vowelless_words_are_gibberish():
    assert is_gibberish("xkcd pfft hmm") is True


def test_low_meaningful_ratio_is_rejected():
    result = validate_review_text("xo ya ok yo ne")

    assert result.is_valid is False
    assert result.errors == ["Review does not contain enough meaningful words"]


def test_longer_text_uses_lower_meaningful_ratio():
    # 12 words, 3 meaningful: 0.25 passes the long-text threshold only
    text = "xo ya ok yo ne uh so ah oh service quality staff"
    assert has_meaningful_content(text) is True
    assert has_meaningful_content("xo ya ok yo ne uh so service") is False


def test_each_failing_check_reports_its_own_error():
    result = validate_review_text("zzzzzz")

    assert len(result.errors) == 3


def test_suggestions_for_terse_feedback():
    suggestions = get_text_improvement_suggestions("ok fine")

    assert len(suggestions) == 3


def test_no_suggestions_for_detailed_feedback():
    text = "The staff were friendly and the pasta was excellent, we will come back"

    assert get_text_improvement_suggestions(text) == []
