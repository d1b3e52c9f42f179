import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from reviewflow.auth import get_current_user
from reviewflow.db import get_db
from reviewflow.deps import get_ai_service, get_current_business, get_owned_review
from reviewflow.errors import InvalidContent, NotFoundError, ValidationError
from reviewflow.models import Business, Customer, Review, ReviewStatus
from reviewflow.schemas import ReviewCreate, ReviewOut, StatusUpdate
from reviewflow.services import review_state
from reviewflow.services.smart_filter import redirect_decision
from reviewflow.services.text_quality import get_text_improvement_suggestions, validate_review_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


# ---------------- HELPERS ----------------

def check_feedback(feedback: str):
    if not feedback or not feedback.strip():
        return

    validation = validate_review_text(feedback)
    if not validation.is_valid:
        raise InvalidContent(validation.errors, get_text_improvement_suggestions(feedback))


def check_customer(db, business_id: str, customer_id: str):
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer or customer.business_id != business_id:
        raise NotFoundError("Customer not found", customer_id=customer_id)
    return customer


def serialize(review) -> dict:
    return ReviewOut.model_validate(review).model_dump(mode="json")


# ---------------- SUBMIT ----------------

@router.post("", status_code=201)
def submit_review(
    payload: ReviewCreate,
    business=Depends(get_current_business),
    db: Session = Depends(get_db),
):

    check_customer(db, business.id, payload.customer_id)
    check_feedback(payload.feedback)

    review = review_state.create_review(
        db,
        business_id=business.id,
        customer_id=payload.customer_id,
        rating=payload.rating,
        feedback=payload.feedback,
        form_data=payload.form_data,
        review_id=payload.id,
    )

    return {"success": True, "review": serialize(review)}


@router.post("/public", status_code=201)
def submit_public_review(payload: ReviewCreate, db: Session = Depends(get_db)):

    if not payload.business_id:
        raise ValidationError("Business id is required", field="businessId")

    business = db.query(Business).filter(Business.id == payload.business_id).first()
    if not business:
        raise NotFoundError("Business not found", business_id=payload.business_id)

    check_customer(db, business.id, payload.customer_id)
    check_feedback(payload.feedback)

    review = review_state.create_review(
        db,
        business_id=business.id,
        customer_id=payload.customer_id,
        rating=payload.rating,
        feedback=payload.feedback,
        form_data=payload.form_data,
        review_id=payload.id,
    )

    return {
        "success": True,
        "review": serialize(review),
        "smart_filter": redirect_decision(business, review.rating),
    }


# ---------------- READ ----------------

@router.get("")
def list_reviews(
    status: Optional[ReviewStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    business=Depends(get_current_business),
    db: Session = Depends(get_db),
):

    query = db.query(Review).filter(Review.business_id == business.id)
    if status:
        query = query.filter(Review.status == status.value)

    total = query.count()
    reviews = (
        query.order_by(Review.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "success": True,
        "reviews": [serialize(r) for r in reviews],
        "pagination": {"page": page, "limit": limit, "total": total},
    }


@router.get("/{review_id}")
def get_review(
    review_id: str,
    business=Depends(get_current_business),
    db: Session = Depends(get_db),
):

    review = get_owned_review(review_id, business, db)
    return {"success": True, "review": serialize(review)}


# ---------------- STATUS ----------------

@router.put("/{review_id}/status")
def update_status(
    review_id: str,
    payload: StatusUpdate,
    business=Depends(get_current_business),
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    ai=Depends(get_ai_service),
):

    review = get_owned_review(review_id, business, db)
    by = user.get("sub")
    target = payload.status

    if target == ReviewStatus.AI_GENERATED:
        if not payload.generated_review:
            raise ValidationError("Generated review text is required", field="generatedReview")
        ai.attach_manual_generation(review, payload.generated_review, by=by)

    elif target == ReviewStatus.APPROVED:
        generation = review_state.latest_generation(db, review.id)
        review_state.approve(db, review, generation, by=by)

    elif target == ReviewStatus.PENDING:
        generation = review_state.latest_generation(db, review.id)
        review_state.reject_generation(db, review, generation, note=payload.note, by=by)

    elif target == ReviewStatus.PUBLISHED:
        review_state.publish(db, review, by=by)

    elif target == ReviewStatus.REJECTED:
        review_state.reject_review(db, review, note=payload.note, by=by)

    db.refresh(review)
    logger.info(f"Status update | review={review.id} target={target.value} status={review.status}")

    return {"success": True, "review": serialize(review)}
