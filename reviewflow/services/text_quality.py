import re
from dataclasses import dataclass, field


MIN_LENGTH = 10
MAX_LENGTH = 5000

GIBBERISH_MESSAGE = (
    "Please provide a meaningful review with proper words. "
    "Random characters or gibberish text is not allowed."
)


# ---------------- PATTERNS ----------------

CONSECUTIVE_PATTERN = re.compile(r"[bcdfghjklmnpqrstvwxyz]{5,}|[aeiou]{4,}")
REPEATED_CHAR_PATTERN = re.compile(r"(.)\1{4,}")

KEYBOARD_PATTERNS = [
    re.compile(r"qwerty|asdf|zxcv|hjkl", re.IGNORECASE),
    re.compile(r"123456|abcdef|[a-z]{6,}[0-9]{3,}", re.IGNORECASE),
    re.compile(r"[;',./]{3,}|[\[\]]{2,}|[{}]{2,}"),
]

SPECIAL_CHAR_PATTERN = re.compile(r"[^a-zA-Z0-9\s]")
LETTER_PATTERN = re.compile(r"[a-zA-Z]")
NON_LETTER_PATTERN = re.compile(r"[^a-z\s]")


COMMON_WORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "is", "are", "was", "were", "be", "been", "have", "has", "had", "do", "does", "did",
    "will", "would", "could", "should", "can", "may", "might", "must",
    "i", "you", "he", "she", "it", "we", "they", "me", "him", "her", "us", "them",
    "this", "that", "these", "those", "here", "there", "where", "when", "why", "how",
    "good", "great", "bad", "nice", "excellent", "amazing", "terrible", "awful",
    "service", "product", "quality", "price", "staff", "customer", "experience",
    "recommend", "satisfied", "disappointed", "happy", "unhappy", "love", "hate",
    "fast", "slow", "quick", "easy", "hard", "clean", "dirty", "friendly", "rude",
    "food", "restaurant", "store", "shop", "business", "company", "place",
    "time", "day", "week", "month", "year", "today", "yesterday", "tomorrow",
}

REVIEW_WORDS = {
    "ordered", "bought", "purchased", "visited", "went", "tried", "used",
    "delivery", "shipping", "arrived", "received", "package",
    "star", "stars", "rating", "review", "feedback", "opinion",
    "thank", "thanks", "grateful", "appreciate", "impressed",
    "frustrated", "pleased",
    "money", "worth", "value", "expensive", "cheap", "affordable",
    "return", "refund", "exchange", "warranty", "guarantee",
}

MEANINGFUL_WORDS = COMMON_WORDS | REVIEW_WORDS

DESCRIPTIVE_WORDS = [
    "good", "great", "excellent", "amazing", "wonderful", "terrible", "awful",
    "bad", "poor", "fantastic", "outstanding", "disappointing",
]


@dataclass
class TextValidation:
    is_valid: bool
    errors: list = field(default_factory=list)


def _letters_only(text: str) -> str:
    return NON_LETTER_PATTERN.sub("", text.lower())


# ---------------- CHECKS ----------------

def is_gibberish(text: str) -> bool:
    cleaned = _letters_only(text)

    if CONSECUTIVE_PATTERN.search(cleaned):
        return True

    if REPEATED_CHAR_PATTERN.search(text):
        return True

    if any(pattern.search(text) for pattern in KEYBOARD_PATTERNS):
        return True

    special = len(SPECIAL_CHAR_PATTERN.findall(text))
    letters = len(LETTER_PATTERN.findall(text))
    if letters > 0 and special / letters > 0.5:
        return True

    words = cleaned.split()
    if words:
        no_vowel = sum(
            1 for word in words
            if len(word) > 3 and not re.search(r"[aeiou]", word)
        )
        if no_vowel / len(words) > 0.5:
            return True

    return False


def has_meaningful_content(text: str) -> bool:
    words = _letters_only(text).split()
    if not words:
        return False

    meaningful = sum(
        1 for word in words
        if word in MEANINGFUL_WORDS or len(word) >= 4
    )

    required = 0.3 if len(words) <= 10 else 0.2
    return meaningful / len(words) >= required


def validate_review_text(text) -> TextValidation:
    """
    Quality gate for free-text feedback.

    Every failing check adds its own message, so callers can show the
    customer exactly what to fix.
    """
    if not isinstance(text, str) or not text.strip():
        return TextValidation(False, ["Text is required and must be a string"])

    cleaned = text.strip()
    errors = []

    if len(cleaned) < MIN_LENGTH:
        errors.append(f"Review must be at least {MIN_LENGTH} characters long")

    if len(cleaned) > MAX_LENGTH:
        errors.append(f"Review must not exceed {MAX_LENGTH} characters")

    if len(cleaned.split()) < 2:
        errors.append("Review must contain at least 2 words")

    if is_gibberish(cleaned):
        errors.append(GIBBERISH_MESSAGE)
    elif not has_meaningful_content(cleaned):
        errors.append("Review does not contain enough meaningful words")

    return TextValidation(is_valid=not errors, errors=errors)


def get_text_improvement_suggestions(text) -> list:
    text = text or ""
    suggestions = []

    if len(text.strip()) < 20:
        suggestions.append("Try to provide more details about your experience")

    if len(text.split()) < 5:
        suggestions.append("Consider adding more specific details about what you liked or disliked")

    lowered = text.lower()
    if not any(word in lowered for word in DESCRIPTIVE_WORDS):
        suggestions.append(
            "Try including words that describe your experience (e.g., excellent, disappointing, helpful)"
        )

    return suggestions
