import logging

logger = logging.getLogger(__name__)

POSITIVE_RATING_THRESHOLD = 4

THANK_YOU_MESSAGE = (
    "Thank you for your feedback! We appreciate you taking the time "
    "to help us improve."
)
REDIRECT_MESSAGE = (
    "Thank you! Would you mind sharing your experience on Google as well?"
)


def should_redirect_externally(business, submitted_rating: int) -> bool:
    """
    Decide whether the customer is sent to the public review page.

    No URL means nowhere to send them. With the filter off every rating
    goes out; with it on (or unset) only ratings of 4 and 5 do.
    """
    url = getattr(business, "google_review_url", None)
    if not url or not str(url).strip():
        return False

    if getattr(business, "enable_smart_filter", None) is False:
        return True

    return submitted_rating >= POSITIVE_RATING_THRESHOLD


def normalize_review_url(url: str) -> str:
    url = url.strip()
    if url.startswith(("http://", "https://")):
        return url
    return f"https://{url}"


def redirect_decision(business, rating: int) -> dict:
    redirect = should_redirect_externally(business, rating)

    logger.info(
        f"Redirect decision | business={getattr(business, 'id', None)} "
        f"rating={rating} redirect={redirect}"
    )

    if not redirect:
        return {"redirect": False, "url": None, "message": THANK_YOU_MESSAGE}

    return {
        "redirect": True,
        "url": normalize_review_url(business.google_review_url),
        "message": REDIRECT_MESSAGE,
    }
