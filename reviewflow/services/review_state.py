import logging

from reviewflow.errors import (
    DuplicateReview,
    InvalidRating,
    InvalidStateTransition,
    MissingGeneration,
)
from reviewflow.models import (
    AIGeneration,
    GenerationStatus,
    Review,
    ReviewStatus,
    utcnow,
)

logger = logging.getLogger(__name__)


# ---------------- TRANSITIONS ----------------
# action -> (allowed source states, target state)

TRANSITIONS = {
    "mark_ai_generated": ({ReviewStatus.PENDING}, ReviewStatus.AI_GENERATED),
    "approve": ({ReviewStatus.AI_GENERATED}, ReviewStatus.APPROVED),
    "reject_generation": ({ReviewStatus.AI_GENERATED}, ReviewStatus.PENDING),
    "regenerate": (
        {ReviewStatus.PENDING, ReviewStatus.AI_GENERATED},
        ReviewStatus.AI_GENERATED,
    ),
    "publish": ({ReviewStatus.APPROVED}, ReviewStatus.PUBLISHED),
    "reject": (
        {ReviewStatus.PENDING, ReviewStatus.AI_GENERATED},
        ReviewStatus.REJECTED,
    ),
}

TERMINAL_STATES = {ReviewStatus.PUBLISHED, ReviewStatus.REJECTED}


def next_status(current, action: str) -> ReviewStatus:
    """Target state of ``action`` from ``current``, or InvalidStateTransition."""
    current = ReviewStatus(current)
    allowed, target = TRANSITIONS[action]

    if current in TERMINAL_STATES or current not in allowed:
        raise InvalidStateTransition(current.value, action)

    return target


def apply_transition(review, action: str) -> bool:
    """
    Move ``review`` along ``action``.

    Returns False without touching the review when it already sits in the
    action's target state, so a retried request is a no-op.
    """
    allowed, target = TRANSITIONS[action]
    current = ReviewStatus(review.status)

    if current not in allowed and current == target:
        return False

    review.status = next_status(current, action).value
    return True


def _stamp_moderation(review, by, note=None):
    review.moderated_at = utcnow()
    review.moderated_by = by
    if note is not None:
        review.moderation_note = note


# ---------------- QUERIES ----------------

def get_review(db, review_id: str):
    return db.query(Review).filter(Review.id == review_id).first()


def latest_generation(db, review_id: str):
    return (
        db.query(AIGeneration)
        .filter(AIGeneration.review_id == review_id)
        .order_by(AIGeneration.attempt.desc())
        .first()
    )


# ---------------- OPERATIONS ----------------

def validate_rating(rating):
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRating(rating)
    if rating < 1 or rating > 5:
        raise InvalidRating(rating)
    return rating


def create_review(
    db,
    business_id: str,
    customer_id: str,
    rating,
    feedback: str = "",
    form_data: dict = None,
    review_id: str = None,
):
    validate_rating(rating)

    if review_id and get_review(db, review_id):
        raise DuplicateReview(review_id)

    review = Review(
        business_id=business_id,
        customer_id=customer_id,
        rating=rating,
        feedback=(feedback or "").strip(),
        form_data=form_data or {},
        status=ReviewStatus.PENDING.value,
    )
    if review_id:
        review.id = review_id

    db.add(review)
    db.commit()
    db.refresh(review)

    logger.info(f"Review created | id={review.id} business={business_id} rating={rating}")
    return review


def mark_ai_generated(review, text: str, action: str = "mark_ai_generated") -> bool:
    """
    Move ``review`` to AI_GENERATED and keep ``text`` as its generated review.

    ``action`` is ``mark_ai_generated`` for a first draft and ``regenerate``
    when a newer draft replaces one.
    """
    changed = apply_transition(review, action)
    if changed:
        review.generated_review = text
    return changed


def approve(db, review, generation, by: str):
    if generation is None:
        raise MissingGeneration(review.id)

    if (
        review.status == ReviewStatus.APPROVED.value
        and generation.status == GenerationStatus.APPROVED.value
    ):
        return generation

    if generation.status != GenerationStatus.PENDING.value:
        raise InvalidStateTransition(review.status, "approve", generation_status=generation.status)

    apply_transition(review, "approve")

    now = utcnow()
    generation.status = GenerationStatus.APPROVED.value
    generation.approved_by = by
    generation.approved_at = now
    _stamp_moderation(review, by)

    db.commit()
    db.refresh(generation)

    logger.info(f"Generation approved | review={review.id} generation={generation.id} by={by}")
    return generation


def reject_generation(db, review, generation, note: str = None, by: str = None):
    if generation is None:
        raise MissingGeneration(review.id)

    if (
        review.status == ReviewStatus.PENDING.value
        and generation.status == GenerationStatus.REJECTED.value
    ):
        return generation

    if generation.status != GenerationStatus.PENDING.value:
        raise InvalidStateTransition(
            review.status,
            "reject_generation",
            generation_status=generation.status,
        )

    apply_transition(review, "reject_generation")

    generation.status = GenerationStatus.REJECTED.value
    generation.rejection_note = note
    _stamp_moderation(review, by, note)

    db.commit()
    db.refresh(generation)

    logger.info(f"Generation rejected | review={review.id} generation={generation.id}")
    return generation


def publish(db, review, by: str = None):
    if apply_transition(review, "publish"):
        _stamp_moderation(review, by)
        db.commit()
        db.refresh(review)
        logger.info(f"Review published | id={review.id}")
    return review


def reject_review(db, review, note: str = None, by: str = None):
    if apply_transition(review, "reject"):
        _stamp_moderation(review, by, note)
        db.commit()
        db.refresh(review)
        logger.info(f"Review rejected | id={review.id}")
    return review
