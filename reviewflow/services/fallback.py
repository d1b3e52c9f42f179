"""Template-based review text used when no language model answers."""

import random

from reviewflow.models import Sentiment


POSITIVE_WORDS = [
    "good", "great", "excellent", "amazing", "wonderful", "fantastic", "love", "perfect",
    "awesome", "outstanding", "nice", "pleasant", "satisfied", "happy", "impressed", "recommend",
]
NEGATIVE_WORDS = [
    "bad", "terrible", "awful", "horrible", "disappointing", "poor", "worst", "hate",
    "disgusting", "rude", "slow", "dirty", "expensive", "unsatisfied", "frustrated",
]


POSITIVE_OPENINGS = [
    "I recently had the pleasure of visiting {name}",
    "Just finished an incredible experience at {name}",
    "I'm thrilled to share my visit to {name}",
    "Had the most wonderful time at {name}",
    "I couldn't be more satisfied with {name}",
    "Outstanding experience from start to finish at {name}",
    "Genuinely impressed with {name}",
    "My visit to {name} exceeded all expectations",
]

POSITIVE_MIDDLES = [
    "{text} What really stood out was their genuine commitment to doing things well",
    "{text} I was particularly impressed by their attention to detail",
    "{text} The level of professionalism here is remarkable",
    "{text} What I loved most was how personal everything felt",
    "{text} The quality of service really sets them apart",
    "{text} The whole experience felt seamless and well organized",
]

POSITIVE_ENDINGS = [
    "I'll definitely be returning and recommend them to everyone!",
    "Five stars without hesitation, they've earned a loyal customer!",
    "Already planning my next visit!",
    "This is exactly what quality service looks like!",
    "If you're looking for a great experience, this is your place!",
]

NEUTRAL_TEMPLATES = [
    "I visited {name} recently and wanted to share my thoughts. {text} The {kind} provides "
    "reliable service that meets expectations. Staff was professional and handled everything "
    "adequately. It's a solid, dependable choice for the area.",
    "Had a decent experience at {name}. {text} The service was consistent and the team was "
    "courteous. For a {kind}, it delivers what you'd expect. A reliable option.",
]

NEGATIVE_TEMPLATES = [
    "I feel I should share my recent experience at {name}. {text} Unfortunately, there are "
    "several areas that need attention. I hope the management takes this feedback "
    "constructively, as there's definitely potential for improvement.",
    "My visit to {name} left room for improvement. {text} I don't enjoy writing critical "
    "reviews, but honest feedback matters. With some adjustments, this {kind} could "
    "significantly improve their service.",
]


def classify_sentiment(text: str) -> Sentiment:
    lowered = (text or "").lower()

    positive = sum(1 for word in POSITIVE_WORDS if word in lowered)
    negative = sum(1 for word in NEGATIVE_WORDS if word in lowered)

    if positive > negative:
        return Sentiment.POSITIVE
    if negative > positive:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def generate_fallback_enhancement(text: str, context: dict = None, seed=None) -> str:
    """
    Build review text from canned fragments.

    Fragments are picked with ``random.Random(seed)``, so equal seeds give
    equal output and a missing seed gives varied output.
    """
    context = context or {}
    rng = random.Random(seed)

    name = context.get("business_name") or "this business"
    kind = (context.get("business_type") or "establishment").lower()
    text = (text or "").strip()

    sentiment = classify_sentiment(text)

    if sentiment == Sentiment.POSITIVE:
        opening = rng.choice(POSITIVE_OPENINGS).format(name=name)
        middle = rng.choice(POSITIVE_MIDDLES).format(text=text)
        ending = rng.choice(POSITIVE_ENDINGS)
        return f"{opening}. {middle}. {ending}"

    templates = NEGATIVE_TEMPLATES if sentiment == Sentiment.NEGATIVE else NEUTRAL_TEMPLATES
    return rng.choice(templates).format(name=name, text=text, kind=kind)
