import re


PROPER_NOUNS = ["google", "facebook", "instagram", "twitter", "linkedin", "youtube"]

# Only spellings that are not also real words ("were", "well", "its", "ill"...)
CONTRACTIONS = {
    "dont": "don't",
    "cant": "can't",
    "wont": "won't",
    "isnt": "isn't",
    "arent": "aren't",
    "wasnt": "wasn't",
    "werent": "weren't",
    "havent": "haven't",
    "hasnt": "hasn't",
    "hadnt": "hadn't",
    "wouldnt": "wouldn't",
    "couldnt": "couldn't",
    "shouldnt": "shouldn't",
    "didnt": "didn't",
    "doesnt": "doesn't",
    "im": "I'm",
    "ive": "I've",
    "youre": "you're",
    "youve": "you've",
    "theyre": "they're",
    "theyve": "they've",
    "thats": "that's",
    "whats": "what's",
    "theres": "there's",
}

TERMINAL_PUNCTUATION = (".", "!", "?")


def _capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def improve_text_formatting(text):
    """Tidy customer-typed text without changing what it says."""
    if not isinstance(text, str) or not text.strip():
        return text

    improved = re.sub(r"\s+", " ", text.strip())

    # spacing around punctuation; leave decimals like 4.5 alone
    improved = re.sub(r"\s*,\s*", ", ", improved)
    improved = re.sub(r"\s*([!?])\s*", r"\1 ", improved)
    improved = re.sub(r"\s*\.(?!\d)\s*", ". ", improved)
    improved = re.sub(r"\s+", " ", improved).strip()

    improved = re.sub(
        r"([.!?])\s+([a-z])",
        lambda match: f"{match.group(1)} {match.group(2).upper()}",
        improved,
    )

    improved = re.sub(r"\bi\b", "I", improved)

    for noun in PROPER_NOUNS:
        improved = re.sub(rf"\b{noun}\b", noun.capitalize(), improved, flags=re.IGNORECASE)

    for word, contraction in CONTRACTIONS.items():
        improved = re.sub(rf"\b{word}\b", contraction, improved, flags=re.IGNORECASE)

    improved = _capitalize_first(improved)

    if not improved.endswith(TERMINAL_PUNCTUATION):
        improved += "."

    return improved


def enhance_with_formatting(original: str, enhanced: str) -> str:
    improved = improve_text_formatting(original)

    if improved[:10].lower() not in enhanced.lower():
        return enhanced.replace(original, improved)

    return enhanced
